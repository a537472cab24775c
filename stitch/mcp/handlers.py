"""
Async handlers behind the MCP tools.

Every mutation of a stitch runs under stitch_lock(stitch_id), so overlapping
tool calls against the same stitch serialize while different stitches
proceed concurrently. Blocking file and git work runs in a worker thread.

A finish takes the lock of its target only. Descendants touched by the
cascade are not locked.
"""

import asyncio
import logging
from dataclasses import replace
from pathlib import Path

from stitch.git import get_repo_root
from stitch.lib.config import clear_current_stitch, get_current_stitch
from stitch.lib.errors import NoCurrentStitchError, RepoNotFoundError, ValidationError
from stitch.lib.locking import stitch_lock
from stitch.mcp.schemas import (
    FingerprintOutput,
    OkOutput,
    StitchBlameInput,
    StitchBlameOutput,
    StitchCreateInput,
    StitchDocOutput,
    StitchFinishInput,
    StitchFinishOutput,
    StitchFrontmatterOutput,
    StitchGetInput,
    StitchGetOutput,
    StitchLinkCommitInput,
    StitchLinkRangeInput,
    StitchLinkStagedDiffInput,
    StitchLinkStagedDiffOutput,
    StitchListInput,
    StitchListSummary,
    StitchUpdateBodyInput,
    StitchUpdateFrontmatterInput,
    blame_to_output,
    doc_to_get_output,
    doc_to_list_summary,
    doc_to_output,
    finish_to_output,
)
from stitch.store.documents import (
    create_stitch,
    initialize_stitch,
    is_initialized,
    list_stitches,
    load_stitch,
    save_stitch,
)
from stitch.store.frontmatter import frontmatter_from_dict
from stitch.store.index import add_child, remove_child
from stitch.store.models import StitchDoc
from stitch.workflow.blame import filter_line_range, stitch_blame
from stitch.workflow.finish import FinishOptions, execute_finish, finished_ids, prepare_finish
from stitch.workflow.link import add_commit_link, add_range_link, add_staged_diff_fingerprint
from stitch.workflow.state_machine import transition

logger = logging.getLogger(__name__)

# Nested tables that a patch merges into instead of replacing
MERGED_TABLES = ("relations", "git", "scope")


async def _validate_repo_root(repo_root: str) -> Path:
    try:
        return await asyncio.to_thread(get_repo_root, Path(repo_root))
    except RepoNotFoundError:
        raise RepoNotFoundError(repo_root) from None


def apply_frontmatter_patch(doc: StitchDoc, patch: dict) -> StitchDoc:
    """Shallow-merge patch into the frontmatter of doc.

    The id never changes. relations, git and scope are merged one level
    deep. A status change must be a legal transition.

    Raises:
        ValidationError: If the patched frontmatter does not validate
        InvalidTransition: If the status change is not allowed
    """
    data = doc.frontmatter.to_dict()

    for key, value in patch.items():
        if key == "id":
            continue
        if key in MERGED_TABLES and isinstance(value, dict):
            data[key] = {**data.get(key, {}), **value}
        else:
            data[key] = value

    new_status = data.get("status")
    if new_status != doc.status:
        if not isinstance(new_status, str):
            raise ValidationError(f"Invalid status: {new_status!r}")
        transition(doc.status, new_status, stitch_id=doc.id)

    return replace(doc, frontmatter=frontmatter_from_dict(data))


async def handle_stitch_create(inp: StitchCreateInput) -> StitchDocOutput:
    """Create a stitch, initializing .stitch/ on first use."""
    repo_root = Path(inp.repo_root)
    await _validate_repo_root(inp.repo_root)

    if not is_initialized(repo_root):
        await asyncio.to_thread(initialize_stitch, repo_root)
        logger.info(f"[MCP] Initialized stitch in {repo_root}")

    if inp.parent:
        await asyncio.to_thread(load_stitch, repo_root, inp.parent)

    doc = await asyncio.to_thread(
        create_stitch, repo_root, inp.title, inp.parent, inp.depends_on or None
    )
    return doc_to_output(doc)


async def handle_stitch_get(inp: StitchGetInput) -> StitchGetOutput:
    await _validate_repo_root(inp.repo_root)
    doc = await asyncio.to_thread(load_stitch, Path(inp.repo_root), inp.stitch_id)
    return doc_to_get_output(doc)


async def handle_stitch_list(inp: StitchListInput) -> list[StitchListSummary]:
    await _validate_repo_root(inp.repo_root)
    docs = await asyncio.to_thread(list_stitches, Path(inp.repo_root), inp.status)
    if inp.tag:
        docs = [doc for doc in docs if inp.tag in doc.frontmatter.tags]
    return [doc_to_list_summary(doc) for doc in docs]


async def handle_stitch_update_frontmatter(
    inp: StitchUpdateFrontmatterInput,
) -> StitchFrontmatterOutput:
    repo_root = Path(inp.repo_root)
    await _validate_repo_root(inp.repo_root)

    async with stitch_lock(inp.stitch_id):
        doc = await asyncio.to_thread(load_stitch, repo_root, inp.stitch_id)
        patched = apply_frontmatter_patch(doc, inp.patch)
        saved = await asyncio.to_thread(save_stitch, repo_root, patched)

        old_parent = doc.frontmatter.parent
        new_parent = saved.frontmatter.parent
        if old_parent != new_parent:
            if old_parent:
                await asyncio.to_thread(remove_child, repo_root, old_parent, inp.stitch_id)
            if new_parent:
                await asyncio.to_thread(add_child, repo_root, new_parent, inp.stitch_id)

    logger.info(f"[MCP] Updated frontmatter of {inp.stitch_id}: {sorted(inp.patch)}")
    return StitchFrontmatterOutput(frontmatter=saved.frontmatter.to_dict())


async def handle_stitch_update_body(inp: StitchUpdateBodyInput) -> OkOutput:
    repo_root = Path(inp.repo_root)
    await _validate_repo_root(inp.repo_root)

    async with stitch_lock(inp.stitch_id):
        doc = await asyncio.to_thread(load_stitch, repo_root, inp.stitch_id)
        await asyncio.to_thread(save_stitch, repo_root, replace(doc, body=inp.body_markdown))

    return OkOutput()


async def handle_stitch_link_commit(inp: StitchLinkCommitInput) -> OkOutput:
    repo_root = Path(inp.repo_root)
    await _validate_repo_root(inp.repo_root)

    async with stitch_lock(inp.stitch_id):
        doc = await asyncio.to_thread(load_stitch, repo_root, inp.stitch_id)
        await asyncio.to_thread(add_commit_link, repo_root, doc, inp.sha)

    return OkOutput()


async def handle_stitch_link_range(inp: StitchLinkRangeInput) -> OkOutput:
    repo_root = Path(inp.repo_root)
    await _validate_repo_root(inp.repo_root)

    async with stitch_lock(inp.stitch_id):
        doc = await asyncio.to_thread(load_stitch, repo_root, inp.stitch_id)
        await asyncio.to_thread(add_range_link, repo_root, doc, inp.range)

    return OkOutput()


async def handle_stitch_link_staged_diff(
    inp: StitchLinkStagedDiffInput,
) -> StitchLinkStagedDiffOutput:
    repo_root = Path(inp.repo_root)
    await _validate_repo_root(inp.repo_root)

    async with stitch_lock(inp.stitch_id):
        doc = await asyncio.to_thread(load_stitch, repo_root, inp.stitch_id)
        _, fingerprint = await asyncio.to_thread(add_staged_diff_fingerprint, repo_root, doc)

    return StitchLinkStagedDiffOutput(fingerprint=FingerprintOutput(**fingerprint.to_dict()))


async def handle_stitch_blame(inp: StitchBlameInput) -> StitchBlameOutput:
    await _validate_repo_root(inp.repo_root)
    lines = await asyncio.to_thread(stitch_blame, Path(inp.repo_root), inp.path)
    if inp.line_start is not None or inp.line_end is not None:
        lines = filter_line_range(lines, inp.line_start, inp.line_end)
    return blame_to_output(inp.path, lines)


async def handle_stitch_finish(inp: StitchFinishInput) -> StitchFinishOutput:
    """Finish without prompting; clears the current pointer if it was finished."""
    repo_root = Path(inp.repo_root)
    await _validate_repo_root(inp.repo_root)

    stitch_id = inp.stitch_id or await asyncio.to_thread(get_current_stitch, repo_root)
    if not stitch_id:
        raise NoCurrentStitchError()

    options = FinishOptions(
        superseded_by=inp.superseded_by,
        force=inp.force,
        skip_confirmation=inp.skip_confirmation,
    )
    if inp.status:
        options.status = inp.status

    async with stitch_lock(stitch_id):
        preview = await asyncio.to_thread(prepare_finish, repo_root, stitch_id, options)
        result = await asyncio.to_thread(execute_finish, preview, options)

    current = await asyncio.to_thread(get_current_stitch, repo_root)
    if current and current in finished_ids(result):
        await asyncio.to_thread(clear_current_stitch, repo_root)
        logger.info(f"[MCP] Cleared current stitch {current} after finish")

    return finish_to_output(result)
