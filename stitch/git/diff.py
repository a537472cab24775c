"""Staged diff capture and fingerprinting."""

import hashlib
from pathlib import Path

from stitch.git.runner import DEFAULT_TIMEOUT, run_git


def get_staged_diff(repo_root: Path, timeout: int = DEFAULT_TIMEOUT) -> str:
    """Get `git diff --staged` output.

    Raises:
        GitError: If git fails
    """
    result = run_git(["diff", "--staged"], repo_root, timeout)
    return result.raise_for_status("Failed to get staged diff").stdout


def hash_diff(diff: str) -> str:
    """SHA-256 hex digest of a diff."""
    return hashlib.sha256(diff.encode("utf-8")).hexdigest()
