"""
Surface classification for IRB Sentinel.

Key components:
- classify_surfaces: Changed paths -> SurfaceClassification
- apply_forced_surfaces: Caller override used by warm-up runs
- GATEABLE_SURFACES: Surfaces that require evidence and panel review
"""

from .classifier import (
    GATEABLE_SURFACES,
    SURFACE_RULES,
    SURFACE_VOCABULARY,
    SurfaceClassification,
    apply_forced_surfaces,
    classify_surfaces,
    is_gateable,
    surfaces_for_path,
)

__all__ = [
    "GATEABLE_SURFACES",
    "SURFACE_RULES",
    "SURFACE_VOCABULARY",
    "SurfaceClassification",
    "apply_forced_surfaces",
    "classify_surfaces",
    "is_gateable",
    "surfaces_for_path",
]
