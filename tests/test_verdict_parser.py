"""
Tests for the verdict parser.

Tests cover:
- The requested answer format
- Markdown-decorated and numbered variants
- Defaults for unparseable responses
- Section boundaries and noise filtering
"""

import pytest

from irbsentinel.evaluation import Recommendation, RiskLevel, Verdict, VerdictParser
from irbsentinel.schemas.review import CallStatus, ReviewerResult


@pytest.fixture
def parser():
    return VerdictParser()


class TestRiskAndRecommendation:
    """Tests for RISK and RECOMMENDATION extraction."""

    def test_plain_format(self, parser):
        """Test the requested answer format."""
        verdict = parser.parse("RISK: HIGH\nRECOMMENDATION: REJECT")
        assert verdict.risk == RiskLevel.HIGH
        assert verdict.recommendation == Recommendation.REJECT
        assert verdict.fully_parsed

    def test_markdown_emphasis(self, parser):
        """Test labels wrapped in markdown emphasis."""
        verdict = parser.parse("**Risk:** critical\n\n**Recommendation:** Request changes")
        assert verdict.risk == RiskLevel.CRITICAL
        assert verdict.recommendation == Recommendation.REQUEST_CHANGES

    def test_numbered_and_hyphenated(self, parser):
        """Test numbered labels with dash and equals separators."""
        verdict = parser.parse("1) RISK - LOW\n4) RECOMMENDATION = approved")
        assert verdict.risk == RiskLevel.LOW
        assert verdict.recommendation == Recommendation.APPROVE

    def test_risk_level_label(self, parser):
        """Test the "Risk level" label."""
        assert parser.parse("Risk level: medium").risk == RiskLevel.MEDIUM

    def test_request_changes_spellings(self, parser):
        """Test REQUEST_CHANGES spelling variants."""
        for text in ("RECOMMENDATION: REQUEST_CHANGES", "RECOMMENDATION: request-changes"):
            assert parser.parse(text).recommendation == Recommendation.REQUEST_CHANGES

    def test_defaults_when_missing(self, parser):
        """Test defaults for a response without labels."""
        verdict = parser.parse("Looks fine to me overall.")
        assert verdict.risk == RiskLevel.MEDIUM
        assert verdict.recommendation == Recommendation.REQUEST_CHANGES
        assert not verdict.parsed_risk
        assert not verdict.parsed_recommendation

    def test_unknown_values_fall_back(self, parser):
        """Test fallback for unknown risk and recommendation values."""
        verdict = parser.parse("RISK: EXTREME\nRECOMMENDATION: MAYBE")
        assert verdict == Verdict()

    @pytest.mark.parametrize("text", ["", None])
    def test_empty_text(self, parser, text):
        """Test that empty text gives the default verdict."""
        assert parser.parse(text) == Verdict()

    def test_deterministic(self, parser):
        """Test that parsing is deterministic."""
        text = "RISK: LOW\nCONCERNS:\n- Port 22 exposed\nRECOMMENDATION: APPROVE"
        assert parser.parse(text) == parser.parse(text)


class TestSections:
    """Tests for CONCERNS and REQUIRED_GATES extraction."""

    def test_bullets_in_order(self, parser):
        """Test bullet and numbered items in order."""
        text = (
            "RISK: HIGH\n"
            "CONCERNS:\n"
            "- Token scope widened to admin\n"
            "* Rollback path untested\n"
            "REQUIRED_GATES:\n"
            "1. Security review sign-off\n"
            "2. Canary deploy for 24h\n"
            "RECOMMENDATION: REQUEST_CHANGES\n"
        )
        verdict = parser.parse(text)
        assert verdict.concerns == ("Token scope widened to admin", "Rollback path untested")
        assert verdict.required_gates == ("Security review sign-off", "Canary deploy for 24h")

    def test_markdown_headings(self, parser):
        """Test markdown heading sections."""
        text = (
            "## Concerns\n"
            "- **Secrets committed in plain text**\n"
            "## Required gates\n"
            "- Move secrets to the vault\n"
            "## Recommendation\n"
            "REJECT\n"
        )
        verdict = parser.parse(text)
        assert verdict.concerns == ("Secrets committed in plain text",)
        assert verdict.required_gates == ("Move secrets to the vault",)

    def test_inline_item_after_header(self, parser):
        """Test an item on the header line."""
        verdict = parser.parse("CONCERNS: Firewall opened to the internet\nRECOMMENDATION: REJECT")
        assert verdict.concerns == ("Firewall opened to the internet",)

    def test_numbered_section_headers(self, parser):
        """Test numbered section headers."""
        text = (
            "1) RISK: MEDIUM\n"
            "2) CONCERNS:\n"
            "- Listener bound to all interfaces\n"
            "3) REQUIRED_GATES:\n"
            "- Bind to localhost only\n"
            "4) RECOMMENDATION: REQUEST_CHANGES\n"
        )
        verdict = parser.parse(text)
        assert verdict.concerns == ("Listener bound to all interfaces",)
        assert verdict.required_gates == ("Bind to localhost only",)

    def test_none_acknowledgements_dropped(self, parser):
        """Test that "none" acknowledgements are dropped."""
        text = "CONCERNS:\n- None\n- N/A\n- none identified.\nREQUIRED_GATES:\n- none required\n"
        verdict = parser.parse(text)
        assert verdict.concerns == ()
        assert verdict.required_gates == ()

    def test_short_noise_and_duplicates_dropped(self, parser):
        """Test that short noise and duplicates are dropped."""
        text = "CONCERNS:\n- ok\n- Audit log gap\n- audit log gap\n"
        assert parser.parse(text).concerns == ("Audit log gap",)

    def test_prose_after_list_ignored(self, parser):
        """Test that prose after a list is ignored."""
        text = (
            "CONCERNS:\n"
            "- Approval workflow bypassed\n"
            "\n"
            "Overall the change is risky but manageable.\n"
        )
        assert parser.parse(text).concerns == ("Approval workflow bypassed",)

    def test_known_header_ends_section(self, parser):
        """Test that a known header ends the section."""
        text = "CONCERNS:\n- Cert pinning removed\nRATIONALE:\n- This is explanation, not a concern\n"
        assert parser.parse(text).concerns == ("Cert pinning removed",)

    def test_numbered_items_with_uppercase_label(self, parser):
        """Test numbered items labelled with an uppercase word."""
        text = (
            "CONCERNS:\n"
            "1. TLS: certificate pinning removed\n"
            "2. Token scope widened to admin\n"
            "RECOMMENDATION: REJECT\n"
        )
        verdict = parser.parse(text)
        assert verdict.concerns == ("TLS: certificate pinning removed", "Token scope widened to admin")
        assert verdict.recommendation == Recommendation.REJECT

    def test_plain_items_with_uppercase_label(self, parser):
        """Test plain items labelled with an uppercase word."""
        text = "CONCERNS:\nSSH: root login enabled on bastion\nAPI: key rotation missing\n"
        assert parser.parse(text).concerns == (
            "SSH: root login enabled on bastion",
            "API: key rotation missing",
        )

    def test_labelled_gates_kept(self, parser):
        """Test a labelled required gate."""
        text = "REQUIRED_GATES:\n- DBA: sign off on the migration\nRISK: HIGH\n"
        assert parser.parse(text).required_gates == ("DBA: sign off on the migration",)

    def test_missing_sections_empty(self, parser):
        """Test empty tuples for missing sections."""
        verdict = parser.parse("RISK: LOW\nRECOMMENDATION: APPROVE")
        assert verdict.concerns == ()
        assert verdict.required_gates == ()


class TestParseResult:
    """Tests for parsing reviewer results."""

    def test_error_result_gets_default(self, parser):
        """Test the default verdict for an errored result."""
        result = ReviewerResult.error("x-ai/grok-2", "timeout after 60s")
        assert parser.parse_result(result) == Verdict()

    def test_ok_result_parsed(self, parser):
        """Test parsing an OK reviewer result."""
        result = ReviewerResult(
            reviewer_id="openai/gpt-4o",
            status=CallStatus.OK,
            raw_text="RISK: LOW\nRECOMMENDATION: APPROVE",
        )
        assert parser.parse_result(result).recommendation == Recommendation.APPROVE
