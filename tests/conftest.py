"""
Pytest fixtures and configuration for the IRB Sentinel test suite.
"""

import asyncio
import shutil
import sys
import tempfile
from pathlib import Path
from typing import Callable, Dict, Generator, List, Optional, Union

import pytest

# Ensure irbsentinel package is importable
sys.path.insert(0, str(Path(__file__).parent.parent))

from irbsentinel.core.config import SentinelConfig, reset_sentinel_config
from irbsentinel.models.model_caller import OracleResponse
from irbsentinel.schemas.review import CallStatus

ROSTER = ["openai/gpt-4o", "anthropic/claude-3.5-sonnet", "x-ai/grok-2", "google/gemini-pro-1.5"]

APPROVE_TEXT = """RISK: LOW
CONCERNS:
- None
REQUIRED_GATES:
- Staging deploy passes smoke tests
RECOMMENDATION: APPROVE
"""

REQUEST_CHANGES_TEXT = """RISK: HIGH
CONCERNS:
- Secret rotation is not covered by a rollback plan
- Firewall change widens ingress to 0.0.0.0/0
REQUIRED_GATES:
- Rollback runbook reviewed
RECOMMENDATION: REQUEST_CHANGES
"""


class FakeOracle:
    """
    Scripted reviewer oracle.

    Replies are keyed by reviewer id. A reply may be a string (OK text), an
    OracleResponse, an exception to raise, or a list consumed one call at a time.
    """

    provider = "fake"

    def __init__(self, replies: Optional[Dict[str, object]] = None, default: str = APPROVE_TEXT, delay: float = 0.0):
        self.replies = dict(replies or {})
        self.default = default
        self.delay = delay
        self.calls: List[Dict[str, object]] = []

    async def call(self, reviewer_id: str, prompt: str, timeout: float, max_tokens: int) -> OracleResponse:
        self.calls.append({
            "reviewer_id": reviewer_id,
            "prompt": prompt,
            "timeout": timeout,
            "max_tokens": max_tokens,
        })
        if self.delay:
            await asyncio.sleep(self.delay)

        reply: object = self.replies.get(reviewer_id, self.default)
        if isinstance(reply, list):
            reply = reply.pop(0) if len(reply) > 1 else reply[0]
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, OracleResponse):
            return reply
        return OracleResponse(status=CallStatus.OK, text=str(reply), latency_ms=120, tokens_in=300, tokens_out=80)

    def called_ids(self) -> List[str]:
        return [c["reviewer_id"] for c in self.calls]


@pytest.fixture(autouse=True)
def _reset_config():
    reset_sentinel_config()
    yield
    reset_sentinel_config()


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    temp_path = Path(tempfile.mkdtemp(prefix="irbsentinel_test_"))
    yield temp_path
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def make_config(temp_dir: Path) -> Callable[..., SentinelConfig]:
    """Factory for configs rooted in the temp dir, with no network checks."""
    def _make(**overrides) -> SentinelConfig:
        values = {
            "reviewers": list(ROSTER),
            "required_count": 3,
            "timeout_seconds": 5.0,
            "validate_models": False,
            "artifact_dir": str(temp_dir / "meshcore"),
            "commit_enabled": False,
            "api_key": "test-key",
        }
        values.update(overrides)
        return SentinelConfig(**values)
    return _make


@pytest.fixture
def fake_oracle() -> Callable[..., FakeOracle]:
    def _make(replies: Optional[Dict[str, Union[str, object]]] = None, **kwargs) -> FakeOracle:
        return FakeOracle(replies, **kwargs)
    return _make
