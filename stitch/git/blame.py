"""git blame --line-porcelain parsing."""

import re
from dataclasses import dataclass
from pathlib import Path

from stitch.git.runner import DEFAULT_TIMEOUT, run_git

# "<40 hex sha> <orig line> <final line> [<group size>]"
_HEADER_PATTERN = re.compile(r'^([a-f0-9]{40})\s+\d+\s+(\d+)')


@dataclass
class BlameEntry:
    sha: str
    line_number: int
    line_text: str


def parse_blame_output(output: str) -> list[BlameEntry]:
    """Parse `git blame --line-porcelain` output into one entry per line."""
    entries: list[BlameEntry] = []
    current_sha: str | None = None
    current_line: int | None = None

    for line in output.split("\n"):
        match = _HEADER_PATTERN.match(line)
        if match:
            current_sha = match.group(1)
            current_line = int(match.group(2))
            continue

        # Content lines start with a tab
        if line.startswith("\t") and current_sha and current_line:
            entries.append(BlameEntry(
                sha=current_sha,
                line_number=current_line,
                line_text=line[1:],
            ))
            current_sha = None
            current_line = None

    return entries


def blame_file(file_path: str, repo_root: Path, timeout: int = DEFAULT_TIMEOUT) -> list[BlameEntry]:
    """Run git blame on a file.

    Raises:
        GitError: If git blame fails (untracked file, bad path)
    """
    result = run_git(["blame", "--line-porcelain", "--", str(file_path)], repo_root, timeout)
    result.raise_for_status(f"Failed to blame file: {file_path}")
    return parse_blame_output(result.stdout)
