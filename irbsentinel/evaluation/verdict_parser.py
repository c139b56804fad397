"""
Parser for extracting structured verdicts from reviewer responses.

Reviewers are asked for RISK / CONCERNS / REQUIRED_GATES / RECOMMENDATION
but routinely ignore the format: markdown emphasis, headings instead of
labels, numbered lists, prose. The parser degrades instead of rejecting:
unrecognized risk and recommendation fall back to MEDIUM and
REQUEST_CHANGES, missing sections become empty tuples.
"""

import logging
import re
from typing import Dict, List, Optional, Tuple

from ..schemas.review import ReviewerResult
from .verdict import (
    DEFAULT_RECOMMENDATION,
    DEFAULT_RISK,
    Recommendation,
    RiskLevel,
    Verdict,
)

logger = logging.getLogger(__name__)

# Items shorter than this are noise ("-", "ok", "n/a")
MIN_ITEM_LENGTH = 4

NONE_ACKNOWLEDGEMENTS = frozenset({
    "none",
    "n/a",
    "na",
    "nil",
    "nothing",
    "none identified",
    "none noted",
    "none required",
    "no concerns",
    "no gates",
    "not applicable",
})

_RISK_PATTERN = re.compile(
    r"\bRISK(?:[ _]LEVEL)?\b[\s*_:=\-]*(LOW|MEDIUM|HIGH|CRITICAL)\b",
    re.IGNORECASE,
)
_RECOMMENDATION_PATTERN = re.compile(
    r"\bRECOMMENDATION\b[\s*_:=\-]*(APPROVED?|REQUEST[\s_-]*CHANGES|REJECT(?:ED)?)\b",
    re.IGNORECASE,
)

# "CONCERNS:", "**Required gates:** x", "3) REQUIRED_GATES:", "## Concerns:"
_COLON_HEADER = re.compile(
    r"^\s*(?:#{1,6}\s*)?(?:\d+[.)]\s*)?[*_]{0,2}([A-Za-z][A-Za-z _-]*?)[*_]{0,2}\s*:[*_]{0,2}\s*(.*)$"
)
# "## Concerns"
_HASH_HEADER = re.compile(r"^\s*#{1,6}\s*([A-Za-z][A-Za-z _-]*?)\s*$")

_BULLET = re.compile(r"^\s*(?:[-*•+]|\d+[.)])\s+(.*)$")

SECTION_ALIASES: Dict[str, str] = {
    "CONCERNS": "CONCERNS",
    "CONCERN": "CONCERNS",
    "KEY_CONCERNS": "CONCERNS",
    "REQUIRED_GATES": "REQUIRED_GATES",
    "REQUIRED_GATE": "REQUIRED_GATES",
    "GATES": "REQUIRED_GATES",
}

TERMINATING_HEADERS = frozenset({
    "RISK",
    "RISK_LEVEL",
    "RECOMMENDATION",
    "SUMMARY",
    "RATIONALE",
    "REASONING",
    "JUSTIFICATION",
    "ASSESSMENT",
    "VERDICT",
    "CONCLUSION",
    "DECISION",
    "NOTES",
    "AFFECTED_SURFACES",
    "EVIDENCE_IDS",
})


def _normalize_header(name: str) -> str:
    return re.sub(r"[\s-]+", "_", name.strip()).strip("_").upper()


def _normalize_recommendation(token: str) -> Recommendation:
    token = token.upper()
    if token.startswith("APPROVE"):
        return Recommendation.APPROVE
    if token.startswith("REJECT"):
        return Recommendation.REJECT
    return Recommendation.REQUEST_CHANGES


class VerdictParser:
    """
    Parses reviewer text into Verdict objects.

    Pure and deterministic: the same text always yields the same Verdict.
    """

    def __init__(self, min_item_length: int = MIN_ITEM_LENGTH):
        self.min_item_length = min_item_length

    def parse(self, text: Optional[str]) -> Verdict:
        """
        Parse a reviewer response.

        Args:
            text: Raw reviewer text (may be empty or None)

        Returns:
            Verdict with defaults for anything unparseable
        """
        text = text or ""

        risk, parsed_risk = self._extract_risk(text)
        recommendation, parsed_rec = self._extract_recommendation(text)
        sections = self._split_sections(text)

        verdict = Verdict(
            risk=risk,
            recommendation=recommendation,
            concerns=self._clean_items(sections.get("CONCERNS", [])),
            required_gates=self._clean_items(sections.get("REQUIRED_GATES", [])),
            parsed_risk=parsed_risk,
            parsed_recommendation=parsed_rec,
        )

        if text and not verdict.fully_parsed:
            logger.debug(
                f"[PARSER] Defaulted fields (risk parsed={parsed_risk}, "
                f"recommendation parsed={parsed_rec})"
            )
        return verdict

    def parse_result(self, result: ReviewerResult) -> Verdict:
        """Parse a reviewer result; errored results get the default verdict."""
        if not result.ok:
            return Verdict()
        return self.parse(result.raw_text)

    def _extract_risk(self, text: str) -> Tuple[RiskLevel, bool]:
        match = _RISK_PATTERN.search(text)
        if match:
            return RiskLevel(match.group(1).upper()), True
        return DEFAULT_RISK, False

    def _extract_recommendation(self, text: str) -> Tuple[Recommendation, bool]:
        match = _RECOMMENDATION_PATTERN.search(text)
        if match:
            return _normalize_recommendation(re.sub(r"[\s_-]+", "_", match.group(1))), True
        return DEFAULT_RECOMMENDATION, False

    def _header_of(self, line: str) -> Optional[Tuple[str, str]]:
        """
        Classify a line as a section header.

        Returns:
            (normalized header, inline remainder) or None for content lines
        """
        if _BULLET.match(line) and not re.match(r"^\s*\d+[.)]", line):
            return None

        match = _COLON_HEADER.match(line)
        if match is None:
            match = _HASH_HEADER.match(line)
            if match is None:
                return None
            raw_name, remainder = match.group(1), ""
        else:
            raw_name, remainder = match.group(1), match.group(2)

        name = _normalize_header(raw_name)
        if name in SECTION_ALIASES:
            return SECTION_ALIASES[name], remainder
        if name in TERMINATING_HEADERS:
            return name, remainder
        # Labelled items such as "TLS: pinning removed" stay content
        return None

    def _split_sections(self, text: str) -> Dict[str, List[str]]:
        """Collect the raw lines of the CONCERNS and REQUIRED_GATES sections."""
        sections: Dict[str, List[str]] = {}
        current: Optional[str] = None

        for line in text.splitlines():
            header = self._header_of(line)
            if header is not None:
                name, remainder = header
                if name in ("CONCERNS", "REQUIRED_GATES"):
                    current = name
                    sections.setdefault(current, [])
                    if remainder.strip():
                        sections[current].append(remainder)
                else:
                    current = None
                continue

            if current is not None and line.strip():
                sections[current].append(line)

        return sections

    def _clean_items(self, lines: List[str]) -> Tuple[str, ...]:
        """
        Turn raw section lines into items.

        When a section contains bullets, only bullet lines count; prose
        after the list is dropped.
        """
        bullets = [m.group(1) for m in (_BULLET.match(line) for line in lines) if m]
        raw_items = bullets if bullets else [line for line in lines]

        items: List[str] = []
        seen = set()
        for raw in raw_items:
            item = raw.strip().strip("*_").strip()
            if len(item) < self.min_item_length:
                continue
            ack = re.sub(r"[^a-z/ ]", "", item.lower()).strip()
            if ack in NONE_ACKNOWLEDGEMENTS:
                continue
            key = item.casefold()
            if key in seen:
                continue
            seen.add(key)
            items.append(item)
        return tuple(items)
