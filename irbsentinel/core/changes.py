"""
Change discovery for IRB Sentinel.

Lists the paths touched by a commit range with git. Discovery never fails
a run: if git is missing or the range is invalid, the change set is empty.
"""

import logging
import subprocess
from typing import List, Optional

logger = logging.getLogger(__name__)

DEFAULT_DIFF_RANGE = "HEAD~1..HEAD"


def changed_files_from_git(
    diff_range: str = DEFAULT_DIFF_RANGE,
    cwd: Optional[str] = None,
    timeout: float = 30.0,
) -> List[str]:
    """
    List files changed in a commit range.

    Args:
        diff_range: Range passed to git diff --name-only
        cwd: Repository directory (default: current directory)
        timeout: Timeout for the git command in seconds

    Returns:
        Changed paths, or an empty list when discovery fails
    """
    try:
        result = subprocess.run(
            ["git", "diff", "--name-only", diff_range],
            cwd=cwd,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.warning(f"[CHANGES] git diff unavailable: {e}")
        return []

    if result.returncode != 0:
        logger.warning(f"[CHANGES] git diff {diff_range} failed: {result.stderr.strip()}")
        return []

    files = [line.strip() for line in result.stdout.splitlines() if line.strip()]
    logger.debug(f"[CHANGES] {len(files)} file(s) changed in {diff_range}")
    return files
