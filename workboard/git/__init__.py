"""Git operations for workboard.

Return type conventions:
- Functions returning GitResult: Caller must check .success before using output.
  Examples: stage_files(), commit()
- Functions returning parsed values (str, list): Return None/empty on failure.
  Examples: show_file_at_ref() -> None, list_files_at_ref() -> []
"""

from workboard.git.runner import GitResult, run_git
from workboard.git.show import show_file_at_ref, list_files_at_ref
from workboard.git.commit import stage_files, commit, commit_files

__all__ = [
    "GitResult",
    "run_git",
    # show
    "show_file_at_ref",
    "list_files_at_ref",
    # commit
    "stage_files",
    "commit",
    "commit_files",
]
