"""Run git subprocesses for a repository.

run_git() never raises: timeouts and a missing git binary come back as a
failed GitResult. Callers that need an answer use raise_for_status(), which
turns a failure into a GitError carrying the command and exit code.
"""

import logging
import subprocess
from dataclasses import dataclass, field
from pathlib import Path

from stitch.lib.errors import GitError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30

# Exit code reported when the git executable is missing, as a shell would
GIT_NOT_FOUND = 127


@dataclass
class GitResult:
    returncode: int
    stdout: str
    stderr: str
    timed_out: bool = False
    args: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.returncode == 0 and not self.timed_out

    @property
    def command(self) -> str:
        return "git " + " ".join(self.args)

    def raise_for_status(self, message: str) -> "GitResult":
        """Raise GitError(message) unless the command succeeded."""
        if self.success:
            return self
        detail = self.stderr.strip()
        logger.debug(f"[GIT] {self.command} failed ({self.returncode}): {detail}")
        raise GitError(message, self.command, self.returncode or 1)


def run_git(args: list[str], cwd: Path, timeout: int = DEFAULT_TIMEOUT) -> GitResult:
    """Run `git -C cwd <args>` and capture text output."""
    logger.debug(f"[GIT] {' '.join(args)} (in {cwd})")
    try:
        proc = subprocess.run(
            ["git", "-C", str(cwd), *args],
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired:
        logger.warning(f"[GIT] git {' '.join(args)} timed out after {timeout}s")
        return GitResult(-1, "", f"Command timed out after {timeout}s", timed_out=True, args=args)
    except FileNotFoundError:
        return GitResult(GIT_NOT_FOUND, "", "git executable not found", args=args)

    return GitResult(proc.returncode, proc.stdout, proc.stderr, args=args)
