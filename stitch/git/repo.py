"""Repository and commit lookups."""

from pathlib import Path

from stitch.git.runner import DEFAULT_TIMEOUT, run_git
from stitch.lib.errors import GitError, RepoNotFoundError


def get_repo_root(cwd: Path | None = None, timeout: int = DEFAULT_TIMEOUT) -> Path:
    """Get the top-level directory of the repository containing cwd.

    Raises:
        RepoNotFoundError: If cwd is not inside a git work tree
    """
    cwd = Path(cwd) if cwd is not None else Path.cwd()
    if not cwd.is_dir():
        raise RepoNotFoundError(str(cwd))

    result = run_git(["rev-parse", "--show-toplevel"], cwd, timeout)
    if not result.success or not result.stdout.strip():
        raise RepoNotFoundError(str(cwd))
    return Path(result.stdout.strip())


def commit_exists(sha: str, repo_root: Path, timeout: int = DEFAULT_TIMEOUT) -> bool:
    """Check if sha names a commit."""
    result = run_git(["cat-file", "-e", f"{sha}^{{commit}}"], repo_root, timeout)
    return result.success


def resolve_ref(ref: str, repo_root: Path, timeout: int = DEFAULT_TIMEOUT) -> str:
    """Resolve a ref (short SHA, branch, HEAD~1) to a full SHA.

    Raises:
        GitError: If the ref cannot be resolved
    """
    message = f"Failed to resolve ref: {ref}"
    result = run_git(["rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}"], repo_root, timeout)
    sha = result.raise_for_status(message).stdout.strip()
    if not sha:
        raise GitError(message, result.command, 1)
    return sha


def get_commits_in_range(rng: str, repo_root: Path, timeout: int = DEFAULT_TIMEOUT) -> list[str]:
    """
    Get the commit SHAs in a range (e.g., "main..HEAD").

    Returns:
        List of full SHAs, or [] if the range is invalid or empty
    """
    result = run_git(["rev-list", rng], repo_root, timeout)
    if not result.success:
        return []
    return [line.strip() for line in result.stdout.splitlines() if line.strip()]
