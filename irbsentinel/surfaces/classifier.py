"""
Surface Classifier for IRB Sentinel.

Maps changed file paths onto risk surfaces using conservative path
heuristics. Deterministic, no I/O, no LLM usage.

A change is gateable when it touches any of the privilege, auth,
network, env-config or config surfaces.
"""

import logging
import re
from dataclasses import dataclass
from typing import FrozenSet, Iterable, List, Pattern, Sequence, Tuple

logger = logging.getLogger(__name__)

# Ordered (tag, pattern) rules. Several rules may fire for one path.
SURFACE_RULES: Tuple[Tuple[str, Pattern], ...] = (
    ("ci", re.compile(r"(^|/)\.github/")),
    ("ops-scripts", re.compile(r"(^|/)scripts/")),
    ("env-config", re.compile(r"(^|/)environments/|(^|/)\.env(\.[\w-]+)?$|\.env$")),
    ("config", re.compile(r"openclaw\.json|(^|/)config/")),
    ("privilege", re.compile(r"allowlist|approval|exec|privilege|sudo", re.IGNORECASE)),
    ("auth", re.compile(r"key|token|secret|auth|oauth", re.IGNORECASE)),
    ("network", re.compile(r"bind|listen|port|ingress|firewall|tls|cert", re.IGNORECASE)),
)

SURFACE_VOCABULARY: FrozenSet[str] = frozenset(tag for tag, _ in SURFACE_RULES)

GATEABLE_SURFACES: FrozenSet[str] = frozenset(
    {"privilege", "auth", "network", "env-config", "config"}
)


@dataclass(frozen=True)
class SurfaceClassification:
    """
    Surfaces touched by a change set.

    Attributes:
        surfaces: Union of tags across all changed paths
        gateable: True when the change requires evidence and panel review
        forced: True when the caller forced extra surfaces into the set
    """

    surfaces: FrozenSet[str]
    gateable: bool
    forced: bool = False

    def sorted_surfaces(self) -> List[str]:
        return sorted(self.surfaces)


def surfaces_for_path(path: str) -> List[str]:
    """Return every surface tag whose rule matches a single path."""
    normalized = path.replace("\\", "/").strip()
    if not normalized:
        return []
    return [tag for tag, pattern in SURFACE_RULES if pattern.search(normalized)]


def is_gateable(surfaces: Iterable[str]) -> bool:
    return not GATEABLE_SURFACES.isdisjoint(surfaces)


def classify_surfaces(changed_files: Sequence[str]) -> SurfaceClassification:
    """
    Classify a change set into surfaces.

    Args:
        changed_files: Changed file paths, relative to the repository root.
            May be empty.

    Returns:
        SurfaceClassification with the union of matched surfaces
    """
    surfaces = set()
    for path in changed_files:
        surfaces.update(surfaces_for_path(path))

    result = SurfaceClassification(
        surfaces=frozenset(surfaces),
        gateable=is_gateable(surfaces),
    )
    logger.debug(
        f"[SURFACES] {len(changed_files)} path(s) -> {result.sorted_surfaces()} "
        f"gateable={result.gateable}"
    )
    return result


def apply_forced_surfaces(
    classification: SurfaceClassification,
    forced_surfaces: Iterable[str],
) -> SurfaceClassification:
    """
    Merge caller-forced surfaces into a classification.

    Forced tags are not limited to the detection vocabulary. Supplying at
    least one forced tag marks the classification gateable.
    """
    forced = {s.strip() for s in forced_surfaces if s and s.strip()}
    if not forced:
        return classification

    logger.info(f"[SURFACES] Forcing surfaces: {sorted(forced)}")
    return SurfaceClassification(
        surfaces=classification.surfaces | frozenset(forced),
        gateable=True,
        forced=True,
    )
