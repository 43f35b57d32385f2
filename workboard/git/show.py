"""Read files as they were at a git revision."""

from pathlib import Path

from workboard.git.runner import run_git


def show_file_at_ref(repo: Path, path: str, ref: str = "HEAD") -> str | None:
    """Content of path (relative to repo) at ref, or None if it didn't exist there."""
    result = run_git(["show", f"{ref}:{path}"], repo)
    if not result.success:
        return None
    return result.stdout


def list_files_at_ref(repo: Path, directory: str, ref: str = "HEAD") -> list[str]:
    """Paths of files under directory at ref. Returns [] on failure."""
    result = run_git(["ls-tree", "-r", "--name-only", ref, "--", directory], repo)
    if not result.success:
        return []
    return [line for line in result.stdout.splitlines() if line]
