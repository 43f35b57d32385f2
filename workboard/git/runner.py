"""Subprocess wrapper for the few git commands workboard needs.

Output is decoded as UTF-8 without newline translation, so a work item read
with `git show` keeps its CRLF line endings.
"""

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30
GIT_NOT_FOUND = 127


@dataclass
class GitResult:
    """Outcome of one git invocation."""
    returncode: int
    stdout: str
    stderr: str
    timed_out: bool = False

    @property
    def success(self) -> bool:
        return self.returncode == 0 and not self.timed_out


def _decode(data: bytes | None) -> str:
    return (data or b"").decode("utf-8", errors="replace")


def run_git(
    args: list[str],
    cwd: Path,
    timeout: int = DEFAULT_TIMEOUT,
) -> GitResult:
    """
    Run `git -C <cwd> <args>`.

    Args:
        args: Git arguments (e.g., ["show", "HEAD:.work/1_todo/001-x.md"])
        cwd: Repository root
        timeout: Seconds before the command is abandoned

    Returns:
        GitResult; never raises for git failures. A missing git binary is
        returncode 127, a timeout is returncode -1 with timed_out set.
    """
    command = " ".join(args)
    try:
        proc = subprocess.run(["git", "-C", str(cwd), *args], capture_output=True, timeout=timeout)
    except subprocess.TimeoutExpired:
        logger.warning(f"[GIT] git {command}: timed out after {timeout}s")
        return GitResult(returncode=-1, stdout="", stderr=f"git {command} timed out after {timeout}s", timed_out=True)
    except FileNotFoundError:
        logger.warning("[GIT] git executable not found")
        return GitResult(returncode=GIT_NOT_FOUND, stdout="", stderr="git executable not found")

    result = GitResult(returncode=proc.returncode, stdout=_decode(proc.stdout), stderr=_decode(proc.stderr))
    if not result.success:
        logger.debug(f"[GIT] git {command}: exit {result.returncode}: {result.stderr.strip()}")
    return result
