"""
Model availability registry for IRB Sentinel.

Fetches the provider's live model list and filters the configured
reviewer roster against it. The check is best-effort: if the list
cannot be fetched, the full roster is used unfiltered.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Set

import requests

from .model_caller import DEFAULT_OPENROUTER_URL

logger = logging.getLogger(__name__)


@dataclass
class RosterFilterResult:
    """
    Outcome of filtering the roster.

    Attributes:
        available: Reviewers to call, in roster order
        unavailable: Reviewers the provider did not list
        validated: False when the availability check failed and the
            roster was used unfiltered
    """

    available: List[str] = field(default_factory=list)
    unavailable: List[str] = field(default_factory=list)
    validated: bool = False


class ModelRegistry:
    """
    Registry of models the oracle provider currently serves.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_OPENROUTER_URL,
        api_key: str = "",
        timeout: float = 5.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout

    def list_available(self) -> Optional[Set[str]]:
        """
        Fetch the set of model ids served by the provider.

        Returns:
            Set of model ids, or None if the list could not be fetched
        """
        headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}
        try:
            response = requests.get(
                f"{self.base_url}/models",
                headers=headers,
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.warning(f"[REGISTRY] Could not fetch model list: {e}")
            return None

        models = data.get("data", []) if isinstance(data, dict) else []
        available = {m.get("id", "") for m in models if isinstance(m, dict)}
        available.discard("")
        logger.debug(f"[REGISTRY] Provider lists {len(available)} models")
        return available

    def filter_roster(self, roster: Sequence[str]) -> RosterFilterResult:
        """
        Filter a roster against the live model list.

        An empty or unreachable model list degrades to the full roster.
        """
        available = self.list_available()
        if not available:
            logger.info("[REGISTRY] Availability check unavailable; using full roster")
            return RosterFilterResult(available=list(roster), validated=False)

        kept = [r for r in roster if r in available]
        missing = [r for r in roster if r not in available]
        if missing:
            logger.warning(f"[REGISTRY] Reviewers not listed by provider: {missing}")
        return RosterFilterResult(available=kept, unavailable=missing, validated=True)
