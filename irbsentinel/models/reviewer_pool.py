"""
Reviewer Panel for IRB Sentinel.

Fans one review request out to every configured reviewer concurrently and
joins all results before returning:
- One independent call per reviewer, each with its own timeout
  (shared by the first attempt and the budget retry)
- One retry with a clamped token budget on budget rejection
- Optional roster filtering against the provider's model list

A failed call never raises out of the panel; it comes back as an ERROR
result so that it can be receipted and counted against convergence.
"""

import asyncio
import logging
import time
from typing import Dict, List, Optional, Sequence

from ..prompts.panel_prompt import build_panel_prompt
from ..schemas.review import CallStatus, ReviewerCall, ReviewerResult, ReviewRequest
from .model_caller import OracleResponse, ReviewerOracle
from .model_registry import ModelRegistry

logger = logging.getLogger(__name__)

# Budget retry clamp: max(BUDGET_FLOOR, min(requested, affordable - BUDGET_MARGIN))
BUDGET_FLOOR = 64
BUDGET_MARGIN = 32

UNLISTED_REVIEWER_ERROR = "not listed by provider"


def clamp_max_tokens(requested: int, affordable: int) -> int:
    """Token budget for the single retry after a budget rejection."""
    return max(BUDGET_FLOOR, min(requested, affordable - BUDGET_MARGIN))


class ReviewerPanel:
    """
    Runs a review request across the reviewer roster.

    Usage:
        panel = ReviewerPanel(oracle, timeout=60.0, max_tokens=900)
        results = panel.collect(request, ["openai/gpt-4o", "x-ai/grok-2"])
    """

    def __init__(
        self,
        oracle: ReviewerOracle,
        timeout: float = 60.0,
        max_tokens: int = 900,
        registry: Optional[ModelRegistry] = None,
    ):
        """
        Initialize the panel.

        Args:
            oracle: Reviewer oracle capability
            timeout: Per-call timeout in seconds
            max_tokens: Requested completion budget per call
            registry: Optional availability registry; None skips validation
        """
        self.oracle = oracle
        self.timeout = timeout
        self.max_tokens = max_tokens
        self.registry = registry

    def build_calls(self, request: ReviewRequest, roster: Sequence[str]) -> List[ReviewerCall]:
        prompt = build_panel_prompt(request)
        return [
            ReviewerCall(
                reviewer_id=reviewer_id,
                prompt=prompt,
                timeout=self.timeout,
                max_tokens=self.max_tokens,
            )
            for reviewer_id in roster
        ]

    def collect(self, request: ReviewRequest, roster: Sequence[str]) -> List[ReviewerResult]:
        """
        Run all reviewer calls and wait for every one of them.

        Args:
            request: The review request shared by all reviewers
            roster: Ordered reviewer ids

        Returns:
            One ReviewerResult per roster entry, in roster order
        """
        return asyncio.run(self.collect_async(request, roster))

    async def collect_async(
        self,
        request: ReviewRequest,
        roster: Sequence[str],
    ) -> List[ReviewerResult]:
        unlisted: List[str] = []
        callable_roster = list(roster)
        if self.registry is not None:
            # The availability check is a blocking HTTP call
            filtered = await asyncio.to_thread(self.registry.filter_roster, roster)
            callable_roster = filtered.available
            unlisted = filtered.unavailable

        calls = self.build_calls(request, callable_roster)
        logger.info(
            f"[PANEL] Dispatching {len(calls)} reviewer call(s) "
            f"(mode={request.mode.value}, skipped={len(unlisted)})"
        )

        completed = await asyncio.gather(*(self._run_call(call) for call in calls))
        by_reviewer: Dict[str, ReviewerResult] = {r.reviewer_id: r for r in completed}

        results: List[ReviewerResult] = []
        for reviewer_id in roster:
            if reviewer_id in by_reviewer:
                results.append(by_reviewer[reviewer_id])
            else:
                results.append(
                    ReviewerResult.error(
                        reviewer_id,
                        UNLISTED_REVIEWER_ERROR,
                        provider=self._provider,
                    )
                )

        ok_count = sum(1 for r in results if r.ok)
        logger.info(f"[PANEL] Joined {len(results)} result(s): {ok_count} OK, {len(results) - ok_count} ERROR")
        return results

    @property
    def _provider(self) -> str:
        return getattr(self.oracle, "provider", "oracle")

    async def _invoke(self, call: ReviewerCall, max_tokens: int, deadline: float) -> OracleResponse:
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise asyncio.TimeoutError()
        return await asyncio.wait_for(
            self.oracle.call(call.reviewer_id, call.prompt, remaining, max_tokens),
            timeout=remaining,
        )

    async def _run_call(self, call: ReviewerCall) -> ReviewerResult:
        """
        Run one reviewer call, including the budget retry.

        The call timeout bounds both attempts together, so a retried
        reviewer never takes longer than an unretried one.
        """
        started = time.monotonic()
        deadline = started + call.timeout
        effective_tokens = call.max_tokens
        retried = False

        try:
            response = await self._invoke(call, effective_tokens, deadline)

            if response.is_budget_rejection:
                effective_tokens = clamp_max_tokens(call.max_tokens, response.affordable_tokens)
                retried = True
                logger.info(
                    f"[PANEL] {call.reviewer_id} rejected for budget "
                    f"(affordable={response.affordable_tokens}); retrying with max_tokens={effective_tokens}"
                )
                response = await self._invoke(call, effective_tokens, deadline)

        except asyncio.TimeoutError:
            latency_ms = int((time.monotonic() - started) * 1000)
            logger.warning(f"[PANEL] {call.reviewer_id} timed out after {call.timeout}s")
            result = ReviewerResult.error(
                call.reviewer_id,
                f"timeout after {call.timeout}s",
                latency_ms=latency_ms,
                provider=self._provider,
            )
            result.retried = retried
            return result

        except Exception as e:
            latency_ms = int((time.monotonic() - started) * 1000)
            logger.warning(f"[PANEL] {call.reviewer_id} oracle error: {e}")
            result = ReviewerResult.error(
                call.reviewer_id,
                f"oracle error: {e}",
                latency_ms=latency_ms,
                provider=self._provider,
            )
            result.retried = retried
            return result

        latency_ms = int((time.monotonic() - started) * 1000)
        text = (response.text or "").strip()
        if response.ok and not text:
            status, error = CallStatus.ERROR, "empty response"
        elif response.ok:
            status, error = CallStatus.OK, None
        else:
            status, error = CallStatus.ERROR, response.error or "unknown oracle error"

        return ReviewerResult(
            reviewer_id=call.reviewer_id,
            status=status,
            raw_text=text if status == CallStatus.OK else "",
            latency_ms=latency_ms,
            tokens_in=response.tokens_in,
            tokens_out=response.tokens_out,
            error_detail=error,
            retried=retried,
            provider=self._provider,
            metadata={"max_tokens": effective_tokens},
        )
