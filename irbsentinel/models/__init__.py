"""
Reviewer oracle client for IRB Sentinel.

Key components:
- ReviewRequest / ReviewerCall / ReviewerResult: Panel request and result types
- OpenRouterOracle: httpx-based chat-completions transport
- ModelRegistry: Live model list used to filter the roster
- ReviewerPanel: Concurrent fan-out with per-call timeout and budget retry
"""

from ..schemas.review import (
    CallStatus,
    ReviewerCall,
    ReviewerResult,
    ReviewMode,
    ReviewRequest,
)
from .model_caller import (
    OpenRouterOracle,
    OracleResponse,
    ReviewerOracle,
    parse_affordable_tokens,
)
from .model_registry import ModelRegistry, RosterFilterResult
from .reviewer_pool import (
    BUDGET_FLOOR,
    BUDGET_MARGIN,
    ReviewerPanel,
    clamp_max_tokens,
)

__all__ = [
    "CallStatus",
    "ReviewerCall",
    "ReviewerResult",
    "ReviewMode",
    "ReviewRequest",
    "OpenRouterOracle",
    "OracleResponse",
    "ReviewerOracle",
    "parse_affordable_tokens",
    "ModelRegistry",
    "RosterFilterResult",
    "BUDGET_FLOOR",
    "BUDGET_MARGIN",
    "ReviewerPanel",
    "clamp_max_tokens",
]
