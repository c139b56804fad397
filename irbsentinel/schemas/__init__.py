"""
Shared schemas for IRB Sentinel.

Review types flow between the panel, the parser and the evaluator;
they live here so none of those packages imports another.
"""

from .review import (
    CallStatus,
    ReviewerCall,
    ReviewerResult,
    ReviewMode,
    ReviewRequest,
)

__all__ = [
    "CallStatus",
    "ReviewerCall",
    "ReviewerResult",
    "ReviewMode",
    "ReviewRequest",
]
