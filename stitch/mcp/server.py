"""MCP server exposing stitch as tools.

Launched via: stitch-mcp
Transport: stdio (JSON-RPC over stdin/stdout), so all logging goes to stderr.
"""

import json
import logging
import os
import sys
from typing import Any, Literal, Optional

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError

from stitch.lib.errors import StitchError
from stitch.lib.locking import LockTimeout
from stitch.mcp import handlers
from stitch.mcp.schemas import (
    StitchBlameInput,
    StitchCreateInput,
    StitchFinishInput,
    StitchGetInput,
    StitchLinkCommitInput,
    StitchLinkRangeInput,
    StitchLinkStagedDiffInput,
    StitchListInput,
    StitchUpdateBodyInput,
    StitchUpdateFrontmatterInput,
)

logger = logging.getLogger(__name__)

mcp = FastMCP("stitch-mcp")


def to_tool_error(error: Exception) -> ToolError:
    """Wrap an error as a ToolError whose text is JSON {error, message}."""
    return ToolError(json.dumps({"error": type(error).__name__, "message": str(error)}))


async def _call(handler, inp):
    try:
        result = await handler(inp)
    except (StitchError, LockTimeout, OSError) as e:
        logger.warning(f"[MCP] {handler.__name__} failed: {e}")
        raise to_tool_error(e) from e

    if isinstance(result, list):
        return [item.model_dump() for item in result]
    return result.model_dump()


# ---------------------------------------------------------------------------
# Read tools
# ---------------------------------------------------------------------------


@mcp.tool()
async def stitch_get(repo_root: str, stitch_id: str) -> dict:
    """Get a stitch: frontmatter, markdown body and file path."""
    return await _call(handlers.handle_stitch_get, StitchGetInput(repo_root=repo_root, stitch_id=stitch_id))


@mcp.tool()
async def stitch_list(
    repo_root: str,
    status: Optional[Literal["open", "closed", "superseded", "abandoned"]] = None,
    tag: Optional[str] = None,
) -> list[dict]:
    """List stitches, newest first, optionally filtered by status or tag."""
    return await _call(
        handlers.handle_stitch_list,
        StitchListInput(repo_root=repo_root, status=status, tag=tag),
    )


@mcp.tool()
async def stitch_blame(
    repo_root: str,
    path: str,
    line_start: Optional[int] = None,
    line_end: Optional[int] = None,
) -> dict:
    """Attribute each line of a file to the stitches whose commits produced it.

    Args:
        repo_root: Absolute path to the git repository root
        path: File path relative to the repository root
        line_start: First line to include (1-indexed)
        line_end: Last line to include (inclusive)
    """
    return await _call(
        handlers.handle_stitch_blame,
        StitchBlameInput(repo_root=repo_root, path=path, line_start=line_start, line_end=line_end),
    )


# ---------------------------------------------------------------------------
# Write tools
# ---------------------------------------------------------------------------


@mcp.tool()
async def stitch_create(
    repo_root: str,
    title: str,
    parent: Optional[str] = None,
    depends_on: Optional[list[str]] = None,
) -> dict:
    """Create a new open stitch. Initializes .stitch/ if needed."""
    return await _call(
        handlers.handle_stitch_create,
        StitchCreateInput(repo_root=repo_root, title=title, parent=parent, depends_on=depends_on or []),
    )


@mcp.tool()
async def stitch_update_frontmatter(repo_root: str, stitch_id: str, patch: dict[str, Any]) -> dict:
    """Patch frontmatter fields. id is never changed; relations, git and scope are merged."""
    return await _call(
        handlers.handle_stitch_update_frontmatter,
        StitchUpdateFrontmatterInput(repo_root=repo_root, stitch_id=stitch_id, patch=patch),
    )


@mcp.tool()
async def stitch_update_body(repo_root: str, stitch_id: str, body_markdown: str) -> dict:
    """Replace the markdown body of a stitch."""
    return await _call(
        handlers.handle_stitch_update_body,
        StitchUpdateBodyInput(repo_root=repo_root, stitch_id=stitch_id, body_markdown=body_markdown),
    )


@mcp.tool()
async def stitch_link_commit(repo_root: str, stitch_id: str, sha: str) -> dict:
    """Link a commit (stored by full SHA) to a stitch."""
    return await _call(
        handlers.handle_stitch_link_commit,
        StitchLinkCommitInput(repo_root=repo_root, stitch_id=stitch_id, sha=sha),
    )


@mcp.tool()
async def stitch_link_range(repo_root: str, stitch_id: str, range: str) -> dict:
    """Link a commit range such as origin/main..HEAD to a stitch."""
    return await _call(
        handlers.handle_stitch_link_range,
        StitchLinkRangeInput(repo_root=repo_root, stitch_id=stitch_id, range=range),
    )


@mcp.tool()
async def stitch_link_staged_diff(repo_root: str, stitch_id: str) -> dict:
    """Record a sha256 fingerprint of the staged diff on a stitch."""
    return await _call(
        handlers.handle_stitch_link_staged_diff,
        StitchLinkStagedDiffInput(repo_root=repo_root, stitch_id=stitch_id),
    )


@mcp.tool()
async def stitch_finish(
    repo_root: str,
    stitch_id: Optional[str] = None,
    status: Optional[Literal["closed", "superseded", "abandoned"]] = None,
    superseded_by: Optional[str] = None,
    force: bool = False,
    skip_confirmation: bool = True,
) -> dict:
    """Finish a stitch and cascade the status to its descendants.

    Defaults to the current stitch. A stitch with no linked commits or with
    open children is auto-detected as abandoned unless force is set.
    """
    return await _call(
        handlers.handle_stitch_finish,
        StitchFinishInput(
            repo_root=repo_root,
            stitch_id=stitch_id,
            status=status,
            superseded_by=superseded_by,
            force=force,
            skip_confirmation=skip_confirmation,
        ),
    )


def main() -> None:
    level = os.environ.get("STITCH_LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    logger.info("[MCP] Starting stitch-mcp over stdio")
    mcp.run()


if __name__ == "__main__":
    main()
