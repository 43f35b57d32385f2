"""Git commit operations."""

from pathlib import Path

from workboard.git.runner import run_git, GitResult


def stage_files(repo: Path, files: list[str]) -> GitResult:
    """Stage specific files."""
    return run_git(["add", "--"] + files, repo)


def commit(repo: Path, message: str) -> GitResult:
    """Create a commit with the given message."""
    return run_git(["commit", "-m", message], repo)


def commit_files(repo: Path, files: list[str], message: str) -> GitResult:
    """Stage files and commit them. Returns the first failing result."""
    staged = stage_files(repo, files)
    if not staged.success:
        return staged
    return commit(repo, message)
