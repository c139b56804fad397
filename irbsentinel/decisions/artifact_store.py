"""
Artifact Store for IRB Sentinel.

File-based persistence for run artifacts, one JSON file per record,
under a root directory that is usually a git checkout (MeshCORE).

Storage structure:
    projects/ai-irb/cases/{case_id}.json
    projects/ai-irb/crosschecks/{report_id}.json
    projects/ai-irb/findings/{finding_id}.json
    projects/ai-irb/receipts/{receipt_id}.json
    projects/ai-irb/backlog/YYYY/MM/DD/HH/{proposal_id}.json|.md

Writes raise StorageError. Commits are best-effort.
"""

import json
import logging
import subprocess
from pathlib import Path
from typing import Any, Dict, List, Protocol, Sequence

from ..core.errors import StorageError

logger = logging.getLogger(__name__)

IRB_PROJECT = "projects/ai-irb"


class ArtifactStore(Protocol):
    """Capability: write named artifacts, list them, and commit."""

    def write_json(self, rel_path: str, obj: Dict[str, Any]) -> str:
        ...

    def write_text(self, rel_path: str, text: str) -> str:
        ...

    def list(self, prefix: str) -> List[str]:
        ...

    def commit(self, message: str, paths: Sequence[str]) -> bool:
        ...


class FileArtifactStore:
    """
    Stores artifacts as files under a root directory.

    Key properties:
    - One file per record, named by the record id
    - Create-or-overwrite writes; ids are random so runs do not collide
    - Optional git commit of written paths, never fatal
    """

    def __init__(self, root: Path, commit_enabled: bool = True, git_timeout: float = 30.0):
        """
        Initialize the store.

        Args:
            root: Root directory of the artifact namespace
            commit_enabled: Whether commit() may run git
            git_timeout: Timeout for each git command in seconds
        """
        self.root = Path(root)
        self.commit_enabled = commit_enabled
        self.git_timeout = git_timeout

    def _resolve(self, rel_path: str) -> Path:
        path = (self.root / rel_path).resolve()
        if self.root.resolve() not in path.parents:
            raise StorageError(f"Artifact path escapes store root: {rel_path}", path=rel_path)
        return path

    def write_json(self, rel_path: str, obj: Dict[str, Any]) -> str:
        """
        Write a JSON artifact.

        Returns:
            The relative path written

        Raises:
            StorageError: If the file cannot be written
        """
        return self.write_text(rel_path, json.dumps(obj, indent=2, ensure_ascii=False) + "\n")

    def write_text(self, rel_path: str, text: str) -> str:
        path = self._resolve(rel_path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(text, encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Failed to write {rel_path}: {e}", path=rel_path, cause=e) from e
        logger.debug(f"[STORE] Wrote {rel_path}")
        return rel_path

    def list(self, prefix: str) -> List[str]:
        """List artifact files under a relative directory, sorted."""
        base = self.root / prefix
        if not base.is_dir():
            return []
        return sorted(
            str(p.relative_to(self.root)).replace("\\", "/")
            for p in base.rglob("*")
            if p.is_file()
        )

    @property
    def is_git_repo(self) -> bool:
        return (self.root / ".git").exists()

    def _git(self, *args: str) -> subprocess.CompletedProcess:
        return subprocess.run(
            ["git", *args],
            cwd=str(self.root),
            capture_output=True,
            text=True,
            timeout=self.git_timeout,
            check=True,
        )

    def commit(self, message: str, paths: Sequence[str]) -> bool:
        """
        Stage and commit written artifacts.

        Best-effort: failures are logged and reported as False.
        """
        if not self.commit_enabled:
            logger.debug("[STORE] Commit disabled")
            return False
        if not self.is_git_repo:
            logger.debug(f"[STORE] {self.root} is not a git repository; skipping commit")
            return False
        if not paths:
            return False

        try:
            self._git("add", "--", *paths)
            self._git("commit", "-m", message)
        except subprocess.CalledProcessError as e:
            logger.warning(f"[STORE] git commit failed: {(e.stderr or '').strip() or e}")
            return False
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.warning(f"[STORE] git unavailable: {e}")
            return False

        logger.info(f"[STORE] Committed {len(paths)} artifact(s): {message}")
        return True
