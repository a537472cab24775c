"""Attribute each line of a file to the stitches whose commits produced it."""

from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path

from stitch.git import DEFAULT_TIMEOUT, blame_file, get_commits_in_range
from stitch.store.documents import list_stitches
from stitch.store.models import BlameLine, StitchDoc


@dataclass
class BlameStats:
    total: int = 0
    stitched: int = 0
    unstitched: int = 0
    by_stitch: dict[str, int] = field(default_factory=dict)


def build_commit_map(
    repo_root: Path,
    stitches: list[StitchDoc],
    timeout: int = DEFAULT_TIMEOUT,
) -> dict[str, list[str]]:
    """Map commit SHA -> stitch IDs that link it. Range links are expanded."""
    commit_map: dict[str, list[str]] = {}

    def add(sha: str, stitch_id: str) -> None:
        ids = commit_map.setdefault(sha, [])
        if stitch_id not in ids:
            ids.append(stitch_id)

    for doc in stitches:
        for link in doc.frontmatter.git.links:
            if link.kind == "commit" and link.sha:
                add(link.sha, doc.id)
            elif link.kind == "range" and link.range:
                for sha in get_commits_in_range(link.range, repo_root, timeout):
                    add(sha, doc.id)

    return commit_map


def stitch_blame(
    repo_root: Path,
    file_path: str,
    timeout: int = DEFAULT_TIMEOUT,
) -> list[BlameLine]:
    """Blame a file and attach stitch IDs to every line."""
    entries = blame_file(file_path, repo_root, timeout)
    commit_map = build_commit_map(repo_root, list_stitches(repo_root), timeout)

    return [
        BlameLine(
            line=entry.line_number,
            sha=entry.sha,
            stitch_ids=list(commit_map.get(entry.sha, [])),
            text=entry.line_text,
        )
        for entry in entries
    ]


def filter_line_range(
    lines: list[BlameLine],
    start: int | None = None,
    end: int | None = None,
) -> list[BlameLine]:
    """Keep lines with start <= line <= end (both inclusive, both optional)."""
    lo = start if start is not None else 1
    return [bl for bl in lines if bl.line >= lo and (end is None or bl.line <= end)]


def get_unique_stitch_ids(lines: list[BlameLine]) -> list[str]:
    """Stitch IDs in order of first appearance."""
    seen: dict[str, None] = {}
    for bl in lines:
        for stitch_id in bl.stitch_ids:
            seen.setdefault(stitch_id, None)
    return list(seen)


def get_blame_stats(lines: list[BlameLine]) -> BlameStats:
    by_stitch: Counter[str] = Counter()
    stitched = 0
    for bl in lines:
        if bl.stitch_ids:
            stitched += 1
            by_stitch.update(bl.stitch_ids)

    return BlameStats(
        total=len(lines),
        stitched=stitched,
        unstitched=len(lines) - stitched,
        by_stitch=dict(by_stitch),
    )
