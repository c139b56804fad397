"""
Tests for the convergence evaluator.

Tests cover:
- GATEABLE unanimity and WARMUP supermajority
- Required reviewer errors
- Advisory reviewers do not decide
- Common disagreements and aggregate gates
"""

import pytest

from irbsentinel.consensus import ConvergenceEvaluator, supermajority_threshold
from irbsentinel.evaluation import Recommendation, Verdict
from irbsentinel.schemas.review import CallStatus, ReviewerResult, ReviewMode

APPROVE = Recommendation.APPROVE
CHANGES = Recommendation.REQUEST_CHANGES
REJECT = Recommendation.REJECT


def ok(reviewer_id):
    return ReviewerResult(reviewer_id=reviewer_id, status=CallStatus.OK, raw_text="...")


def panel(*recommendations, errors=(), concerns=None, gates=None):
    """Build parallel results/verdicts for reviewers r0..rN."""
    results, verdicts = [], []
    for i, rec in enumerate(recommendations):
        rid = f"r{i}"
        if i in errors:
            results.append(ReviewerResult.error(rid, "timeout after 60s"))
            verdicts.append(Verdict())
            continue
        results.append(ok(rid))
        verdicts.append(Verdict(
            recommendation=rec,
            concerns=tuple((concerns or {}).get(i, ())),
            required_gates=tuple((gates or {}).get(i, ())),
        ))
    return results, verdicts


class TestThresholds:
    """Tests for quorum thresholds."""

    @pytest.mark.parametrize("n,expected", [(1, 1), (2, 2), (3, 2), (4, 3), (5, 4), (6, 4)])
    def test_supermajority(self, n, expected):
        """Test the ceil(2n/3) supermajority."""
        assert supermajority_threshold(n) == expected

    def test_threshold_for_modes(self):
        """Test thresholds for warm-up and gateable modes."""
        evaluator = ConvergenceEvaluator(required_count=3)
        assert evaluator.threshold_for(ReviewMode.WARMUP) == 2
        assert evaluator.threshold_for(ReviewMode.GATEABLE) == 3

    def test_invalid_required_count(self):
        """Test that a non-positive required count is rejected."""
        with pytest.raises(ValueError):
            ConvergenceEvaluator(required_count=0)


class TestGateableMode:
    """Tests for unanimity among required reviewers."""

    def test_unanimous_converges(self):
        """Test that unanimous approval converges."""
        results, verdicts = panel(APPROVE, APPROVE, APPROVE)
        outcome = ConvergenceEvaluator().evaluate(ReviewMode.GATEABLE, results, verdicts)
        assert outcome.converged
        assert outcome.plurality_recommendation == APPROVE
        assert outcome.dissenting_reviewer_ids == ()

    def test_unanimous_reject_also_converges(self):
        """Test that unanimous rejection also converges."""
        results, verdicts = panel(REJECT, REJECT, REJECT)
        assert ConvergenceEvaluator().evaluate(ReviewMode.GATEABLE, results, verdicts).converged

    def test_split_does_not_converge(self):
        """Test that a split vote does not converge."""
        results, verdicts = panel(APPROVE, APPROVE, CHANGES)
        outcome = ConvergenceEvaluator().evaluate(ReviewMode.GATEABLE, results, verdicts)
        assert not outcome.converged
        assert outcome.dissenting_reviewer_ids == ("r2",)
        assert "r2" in outcome.dissent_explanation()

    def test_required_error_blocks(self):
        """Test that an errored required reviewer blocks convergence."""
        results, verdicts = panel(APPROVE, APPROVE, APPROVE, errors=(1,))
        outcome = ConvergenceEvaluator().evaluate(ReviewMode.GATEABLE, results, verdicts)
        assert not outcome.converged
        assert outcome.required_errors == {"r1": "timeout after 60s"}
        assert outcome.dissenting_reviewer_ids == ("r1",)

    def test_advisory_reviewer_does_not_decide(self):
        """Test that advisory votes do not affect convergence."""
        results, verdicts = panel(APPROVE, APPROVE, APPROVE, REJECT)
        outcome = ConvergenceEvaluator(required_count=3).evaluate(ReviewMode.GATEABLE, results, verdicts)
        assert outcome.converged
        assert outcome.required_reviewer_ids == ("r0", "r1", "r2")

    def test_advisory_error_does_not_block(self):
        """Test that an advisory error does not block convergence."""
        results, verdicts = panel(APPROVE, APPROVE, APPROVE, APPROVE, errors=(3,))
        assert ConvergenceEvaluator().evaluate(ReviewMode.GATEABLE, results, verdicts).converged

    def test_short_roster_does_not_converge(self):
        """Test that too few results never converge."""
        results, verdicts = panel(APPROVE, APPROVE)
        outcome = ConvergenceEvaluator(required_count=3).evaluate(ReviewMode.GATEABLE, results, verdicts)
        assert not outcome.converged

    def test_length_mismatch_raises(self):
        """Test that results and verdicts must align."""
        results, verdicts = panel(APPROVE, APPROVE, APPROVE)
        with pytest.raises(ValueError):
            ConvergenceEvaluator().evaluate(ReviewMode.GATEABLE, results, verdicts[:2])


class TestWarmupMode:
    """Tests for the two-thirds supermajority."""

    def test_two_of_three_converges(self):
        """Test that two of three required reviewers converge in warm-up."""
        results, verdicts = panel(APPROVE, CHANGES, APPROVE)
        outcome = ConvergenceEvaluator().evaluate(ReviewMode.WARMUP, results, verdicts)
        assert outcome.converged
        assert outcome.plurality_count == 2
        assert outcome.dissenting_reviewer_ids == ("r1",)

    def test_three_way_split_does_not_converge(self):
        """Test that a three-way split does not converge."""
        results, verdicts = panel(APPROVE, CHANGES, REJECT)
        assert not ConvergenceEvaluator().evaluate(ReviewMode.WARMUP, results, verdicts).converged

    def test_required_error_blocks_even_with_supermajority(self):
        """Test that a required error blocks a warm-up supermajority."""
        results, verdicts = panel(APPROVE, APPROVE, APPROVE, errors=(2,))
        outcome = ConvergenceEvaluator().evaluate(ReviewMode.WARMUP, results, verdicts)
        assert outcome.plurality_count == 2
        assert not outcome.converged

    def test_plurality_tie_broken_by_roster_order(self):
        """Test that plurality ties follow roster order."""
        results, verdicts = panel(CHANGES, APPROVE, APPROVE, CHANGES)
        outcome = ConvergenceEvaluator(required_count=4).evaluate(ReviewMode.WARMUP, results, verdicts)
        assert outcome.plurality_recommendation == CHANGES
        assert not outcome.converged


class TestAggregation:
    """Tests for common disagreements and aggregate gates."""

    def test_common_disagreements_need_two_reviewers(self):
        """Test that a concern needs two reviewers to count."""
        results, verdicts = panel(
            CHANGES, CHANGES, APPROVE,
            concerns={
                0: ["Firewall opened to 0.0.0.0/0", "Missing rollback plan"],
                1: ["firewall opened to 0.0.0.0/0.", "Logging disabled"],
                2: ["Missing rollback plan"],
            },
        )
        outcome = ConvergenceEvaluator().evaluate(ReviewMode.GATEABLE, results, verdicts)
        assert outcome.common_disagreements == ("Firewall opened to 0.0.0.0/0", "Missing rollback plan")
        assert outcome.top_disagreement == "Firewall opened to 0.0.0.0/0"

    def test_ranked_by_frequency(self):
        """Test ranking of shared concerns by frequency."""
        results, verdicts = panel(
            CHANGES, CHANGES, CHANGES,
            concerns={
                0: ["Audit gap", "Token scope too wide"],
                1: ["Audit gap", "Token scope too wide"],
                2: ["Token scope too wide"],
            },
        )
        outcome = ConvergenceEvaluator().evaluate(ReviewMode.GATEABLE, results, verdicts)
        assert outcome.common_disagreements == ("Token scope too wide", "Audit gap")

    def test_repeats_within_one_verdict_count_once(self):
        """Test that a repeated concern in one verdict counts once."""
        results, verdicts = panel(
            CHANGES, APPROVE, APPROVE,
            concerns={0: ["Audit gap", "audit gap"]},
        )
        outcome = ConvergenceEvaluator().evaluate(ReviewMode.GATEABLE, results, verdicts)
        assert outcome.common_disagreements == ()

    def test_prefix_grouping(self):
        """Test grouping of concerns by normalized prefix."""
        long_a = "The new ingress rule exposes the admin API to every tenant network" + " in production"
        long_b = "The new ingress rule exposes the admin API to every tenant network" + " and staging"
        results, verdicts = panel(CHANGES, CHANGES, APPROVE, concerns={0: [long_a], 1: [long_b]})
        outcome = ConvergenceEvaluator(concern_prefix_length=60).evaluate(
            ReviewMode.GATEABLE, results, verdicts
        )
        assert outcome.common_disagreements == (long_a,)

    def test_aggregate_gates_union(self):
        """Test the case-insensitive union of required gates."""
        results, verdicts = panel(
            APPROVE, APPROVE, APPROVE,
            gates={0: ["Security sign-off"], 1: ["security sign-off", "Canary 24h"], 2: []},
        )
        outcome = ConvergenceEvaluator().evaluate(ReviewMode.GATEABLE, results, verdicts)
        assert outcome.aggregate_gates == ("Security sign-off", "Canary 24h")

    def test_converged_outcome_has_empty_explanation(self):
        """Test that a converged outcome has no dissent text."""
        results, verdicts = panel(APPROVE, APPROVE, APPROVE)
        outcome = ConvergenceEvaluator().evaluate(ReviewMode.GATEABLE, results, verdicts)
        assert outcome.dissent_explanation() == ""
