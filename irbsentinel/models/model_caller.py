"""
Reviewer oracle transport for IRB Sentinel.

Provides the OpenRouter chat-completions client used by the reviewer panel:
- Context-managed async HTTP clients (one per call, no reuse)
- Strict timeout enforcement
- Token accounting from the provider's usage block
- Detection of budget rejections ("can only afford N tokens")

Rules enforced:
1. Never reuse HTTP clients across calls
2. Transport failures are returned as ERROR responses, never raised
3. The API key is never logged
"""

import json
import logging
import re
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol

import httpx

from ..schemas.review import CallStatus

logger = logging.getLogger(__name__)

DEFAULT_OPENROUTER_URL = "https://openrouter.ai/api/v1"

# Maximum characters of an error body kept in an error detail
ERROR_BODY_LIMIT = 500

_AFFORD_PATTERN = re.compile(r"can only afford\s+(\d+)", re.IGNORECASE)


@dataclass
class OracleResponse:
    """
    Raw outcome of one oracle call.

    Attributes:
        status: OK when non-empty text came back
        text: Completion text
        latency_ms: Call latency in milliseconds
        tokens_in: Prompt tokens
        tokens_out: Completion tokens
        error: Error description for ERROR responses
        http_status: HTTP status code, if a response was received
        affordable_tokens: Provider-reported affordable max_tokens on a
            budget rejection, else None
    """

    status: CallStatus
    text: str = ""
    latency_ms: int = 0
    tokens_in: int = 0
    tokens_out: int = 0
    error: Optional[str] = None
    http_status: Optional[int] = None
    affordable_tokens: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.status == CallStatus.OK

    @property
    def is_budget_rejection(self) -> bool:
        return self.status == CallStatus.ERROR and self.affordable_tokens is not None


class ReviewerOracle(Protocol):
    """Capability: submit a prompt to a reviewer and get text or an error."""

    provider: str

    async def call(
        self,
        reviewer_id: str,
        prompt: str,
        timeout: float,
        max_tokens: int,
    ) -> OracleResponse:
        ...


def parse_affordable_tokens(body: Any) -> Optional[int]:
    """
    Extract the affordable token count from a budget rejection body.

    OpenRouter reports e.g. "You requested up to 900 tokens, but can only
    afford 412." inside the error message.
    """
    if body is None:
        return None
    text = body if isinstance(body, str) else json.dumps(body)
    match = _AFFORD_PATTERN.search(text)
    if match:
        return int(match.group(1))
    return None


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


class OpenRouterOracle:
    """
    OpenRouter chat-completions client.

    Each call opens its own httpx.AsyncClient so that concurrent reviewer
    calls share no connection state.
    """

    provider = "openrouter"

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_OPENROUTER_URL,
        temperature: float = 0.2,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the client.

        Args:
            api_key: OpenRouter API key
            base_url: API base URL
            temperature: Sampling temperature for every call
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.temperature = temperature
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    async def call(
        self,
        reviewer_id: str,
        prompt: str,
        timeout: float,
        max_tokens: int,
    ) -> OracleResponse:
        """
        Send one prompt to one reviewer model.

        Args:
            reviewer_id: OpenRouter model id
            prompt: Panel prompt
            timeout: Request timeout in seconds
            max_tokens: Requested completion budget

        Returns:
            OracleResponse; transport failures come back as ERROR responses
        """
        payload = {
            "model": reviewer_id,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": self.temperature,
            "max_tokens": max_tokens,
        }
        started = time.monotonic()

        try:
            logger.debug(f"[ORACLE] Opening async HTTP client for {reviewer_id} (max_tokens={max_tokens})")
            async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
                response = await client.post(
                    f"{self.base_url}/chat/completions",
                    headers=self._headers(),
                    json=payload,
                )
                latency_ms = _elapsed_ms(started)
                try:
                    body = response.json()
                except ValueError:
                    body = {}
                if not isinstance(body, dict):
                    body = {"raw": body}

                if response.status_code >= 400:
                    body_text = json.dumps(body)[:ERROR_BODY_LIMIT]
                    logger.warning(
                        f"[ORACLE] HTTP {response.status_code} from {reviewer_id}: {body_text}"
                    )
                    return OracleResponse(
                        status=CallStatus.ERROR,
                        latency_ms=latency_ms,
                        error=f"http={response.status_code} body={body_text}",
                        http_status=response.status_code,
                        affordable_tokens=parse_affordable_tokens(body),
                    )

                return self._parse_completion(reviewer_id, body, latency_ms, response.status_code)

        except httpx.TimeoutException as e:
            logger.warning(f"[ORACLE] Timeout calling {reviewer_id}: {e}")
            return OracleResponse(
                status=CallStatus.ERROR,
                latency_ms=_elapsed_ms(started),
                error=f"timeout after {timeout}s",
            )
        except httpx.RequestError as e:
            logger.warning(f"[ORACLE] Request error calling {reviewer_id}: {e}")
            return OracleResponse(
                status=CallStatus.ERROR,
                latency_ms=_elapsed_ms(started),
                error=f"request error: {e}",
            )
        finally:
            logger.debug(f"[ORACLE] Closing async HTTP client for {reviewer_id}")

    def _parse_completion(
        self,
        reviewer_id: str,
        body: Dict[str, Any],
        latency_ms: int,
        http_status: int,
    ) -> OracleResponse:
        choices = body.get("choices") or []
        text = ""
        if choices:
            message = choices[0].get("message") or {}
            text = (message.get("content") or "").strip()
        usage = body.get("usage") or {}
        tokens_in = int(usage.get("prompt_tokens") or 0)
        tokens_out = int(usage.get("completion_tokens") or 0)

        if not text:
            logger.warning(f"[ORACLE] Empty completion from {reviewer_id}")
            return OracleResponse(
                status=CallStatus.ERROR,
                latency_ms=latency_ms,
                tokens_in=tokens_in,
                tokens_out=tokens_out,
                error="empty response",
                http_status=http_status,
                affordable_tokens=parse_affordable_tokens(body.get("error")),
            )

        return OracleResponse(
            status=CallStatus.OK,
            text=text,
            latency_ms=latency_ms,
            tokens_in=tokens_in,
            tokens_out=tokens_out,
            http_status=http_status,
        )
