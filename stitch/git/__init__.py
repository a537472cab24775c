"""Git operations for stitch.

Return type conventions:
- Functions returning bool: True on success/condition met, False otherwise.
  Examples: commit_exists()
- Functions returning parsed values: return empty on failure where a
  missing answer is normal (get_commits_in_range() -> []), and raise
  GitError where the caller asked for something specific
  (resolve_ref(), get_staged_diff(), blame_file()).
"""

from stitch.git.runner import run_git, GitResult, DEFAULT_TIMEOUT
from stitch.git.repo import (
    get_repo_root,
    commit_exists,
    resolve_ref,
    get_commits_in_range,
)
from stitch.git.diff import (
    get_staged_diff,
    hash_diff,
)
from stitch.git.blame import (
    BlameEntry,
    parse_blame_output,
    blame_file,
)

__all__ = [
    # runner
    "run_git",
    "GitResult",
    "DEFAULT_TIMEOUT",
    # repo
    "get_repo_root",
    "commit_exists",
    "resolve_ref",
    "get_commits_in_range",
    # diff
    "get_staged_diff",
    "hash_diff",
    # blame
    "BlameEntry",
    "parse_blame_output",
    "blame_file",
]
