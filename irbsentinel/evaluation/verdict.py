"""
Verdict data types for reviewer responses.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Tuple


class RiskLevel(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class Recommendation(str, Enum):
    APPROVE = "APPROVE"
    REQUEST_CHANGES = "REQUEST_CHANGES"
    REJECT = "REJECT"

    @property
    def stance(self) -> str:
        """Lower-case stance label used in crosscheck opinions."""
        return self.value.lower()


DEFAULT_RISK = RiskLevel.MEDIUM
DEFAULT_RECOMMENDATION = Recommendation.REQUEST_CHANGES


@dataclass(frozen=True)
class Verdict:
    """
    Structured reading of one reviewer response.

    Attributes:
        risk: Reviewer risk rating (MEDIUM when unparseable)
        recommendation: Reviewer recommendation (REQUEST_CHANGES when unparseable)
        concerns: Concern bullets in response order
        required_gates: Gates/tests/evidence the reviewer requires
        parsed_risk: False when risk fell back to the default
        parsed_recommendation: False when recommendation fell back to the default
    """

    risk: RiskLevel = DEFAULT_RISK
    recommendation: Recommendation = DEFAULT_RECOMMENDATION
    concerns: Tuple[str, ...] = ()
    required_gates: Tuple[str, ...] = ()
    parsed_risk: bool = False
    parsed_recommendation: bool = False

    @property
    def fully_parsed(self) -> bool:
        return self.parsed_risk and self.parsed_recommendation

    def to_dict(self) -> Dict[str, Any]:
        return {
            "risk": self.risk.value,
            "recommendation": self.recommendation.value,
            "concerns": list(self.concerns),
            "required_gates": list(self.required_gates),
        }
