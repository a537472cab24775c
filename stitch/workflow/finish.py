"""Finish a stitch: move it and its subtree to a terminal status.

Two phases:
- prepare_finish() loads the target and its descendants, decides the final
  status (auto-detecting abandoned work) and returns a FinishPreview. It
  never writes.
- execute_finish() applies the preview to every affected stitch as a single
  all-or-nothing write: if any file fails to write, every file already
  written is restored from its captured original content.

Auto-detection: a stitch with no linked commits, or with any open
descendant, looks abandoned. Asking for another status then needs force.

The engine does not know about the "current stitch" pointer. Callers clear it
when a finished stitch was current.
"""

import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Optional

from stitch.lib.errors import (
    FinishForceRequiredError,
    InvalidSupersededByError,
    StitchNotFoundError,
    ValidationError,
)
from stitch.store.documents import (
    load_stitch,
    read_stitch_file,
    require_initialized,
    write_stitch_file,
)
from stitch.store.frontmatter import serialize_stitch_file, update_timestamp
from stitch.store.index import get_descendants
from stitch.store.models import StitchDoc
from stitch.workflow.state_machine import (
    TERMINAL_STATUSES,
    StitchStatus,
    can_transition,
    transition,
)

logger = logging.getLogger(__name__)

DEFAULT_FINISH_STATUS = StitchStatus.CLOSED.value


@dataclass
class FinishOptions:
    """Options for finishing a stitch."""
    status: str = DEFAULT_FINISH_STATUS    # may be auto-detected to abandoned
    superseded_by: Optional[str] = None    # only with status=superseded
    force: bool = False                    # override auto-abandon detection
    skip_confirmation: bool = False        # non-interactive callers


@dataclass
class FinishedStitch:
    id: str
    title: str
    previous_status: str
    new_status: str


@dataclass
class FinishResult:
    finished: list[FinishedStitch]
    warnings: list[str]
    auto_detected_status: bool
    final_status: str


@dataclass
class FinishPreview:
    """Everything needed to confirm (or refuse) a finish before writing."""
    target: StitchDoc
    affected: list[StitchDoc]              # target + descendants whose status changes
    final_status: str
    auto_detected: bool
    warnings: list[str] = field(default_factory=list)
    requires_confirmation: bool = False    # cascade touches 2+ stitches
    force_required: Optional[str] = None   # set when execute must refuse without --force
    descendants: list[StitchDoc] = field(default_factory=list)


def _auto_abandon_reason(target: StitchDoc, descendants: list[StitchDoc]) -> Optional[str]:
    """Return why the target looks abandoned, or None."""
    if not target.frontmatter.has_linked_commits():
        return "No linked commits"

    open_count = sum(1 for d in descendants if d.status == StitchStatus.OPEN.value)
    if open_count > 0:
        return f"Has {open_count} open children"

    return None


def _validate_options(repo_root: Path, options: FinishOptions) -> None:
    if options.status not in TERMINAL_STATUSES:
        raise ValidationError(
            f"Invalid finish status '{options.status}'. "
            f"Valid: {', '.join(sorted(TERMINAL_STATUSES))}"
        )

    if options.superseded_by and options.status != StitchStatus.SUPERSEDED.value:
        raise InvalidSupersededByError()

    if options.superseded_by:
        try:
            load_stitch(repo_root, options.superseded_by)
        except StitchNotFoundError:
            raise InvalidSupersededByError(
                f"Superseding stitch '{options.superseded_by}' not found"
            ) from None


def prepare_finish(
    repo_root: Path,
    stitch_id: str,
    options: Optional[FinishOptions] = None,
) -> FinishPreview:
    """Prepare a finish operation without executing it.

    Raises:
        NotInitializedError: If .stitch/ is missing
        InvalidSupersededByError: superseded_by without status=superseded, or unknown
        StitchNotFoundError: If the target does not exist
        InvalidTransition: If an affected stitch cannot move to the final status
    """
    require_initialized(repo_root)
    options = options or FinishOptions()
    _validate_options(repo_root, options)

    warnings: list[str] = []
    target = load_stitch(repo_root, stitch_id)

    descendants: list[StitchDoc] = []
    for desc_id in get_descendants(repo_root, stitch_id):
        try:
            descendants.append(load_stitch(repo_root, desc_id))
        except (StitchNotFoundError, ValidationError, OSError, UnicodeDecodeError) as e:
            logger.warning(f"[FINISH] Skipping descendant {desc_id}: {e}")
            warnings.append(f"Warning: Could not load descendant '{desc_id}'")

    final_status = options.status
    auto_detected = False
    force_required: Optional[str] = None

    reason = _auto_abandon_reason(target, descendants)
    if reason and options.status != StitchStatus.ABANDONED.value:
        if options.force:
            warnings.append(
                f"Warning: {reason}. Forcing status to '{options.status}' as requested."
            )
        else:
            final_status = StitchStatus.ABANDONED.value
            auto_detected = True
            force_required = (
                f"Cannot set status to '{options.status}' when {reason.lower()}. "
                "Use --force to override, or --status=abandoned."
            )
            warnings.append(
                f"Warning: {reason}. Marking as abandoned. "
                "Use --status=superseded if this work was replaced."
            )

    affected = [target] + [d for d in descendants if d.status != final_status]

    for doc in affected:
        if not can_transition(doc.status, final_status):
            # transition() raises InvalidTransition with full context
            transition(doc.status, final_status, stitch_id=doc.id)

    preview = FinishPreview(
        target=target,
        affected=affected,
        final_status=final_status,
        auto_detected=auto_detected,
        warnings=warnings,
        requires_confirmation=len(affected) >= 2,
        force_required=force_required,
        descendants=descendants,
    )
    logger.debug(
        f"[FINISH] Prepared {stitch_id}: {final_status}, "
        f"{len(affected)} affected, auto_detected={auto_detected}"
    )
    return preview


@dataclass
class _PendingWrite:
    doc: StitchDoc
    original_content: str
    new_content: str


def execute_finish(
    preview: FinishPreview,
    options: Optional[FinishOptions] = None,
) -> FinishResult:
    """Apply a prepared finish to every affected stitch, all or nothing.

    A preview that carries force_required is refused unless options.force is
    set, in which case the auto-detected status is applied as previewed.

    Raises:
        FinishForceRequiredError: If the preview needs --force; nothing is written
        OSError: If a write fails; every file already written is restored first
    """
    options = options or FinishOptions()

    if preview.force_required and not options.force:
        raise FinishForceRequiredError(preview.force_required)

    target_id = preview.target.id
    pending: list[_PendingWrite] = []
    finished: list[FinishedStitch] = []

    for doc in preview.affected:
        original_content = read_stitch_file(doc.file_path)

        new_status = transition(doc.status, preview.final_status, stitch_id=doc.id)
        frontmatter = replace(doc.frontmatter, status=new_status)

        if options.superseded_by and doc.id == target_id:
            depends_on = list(frontmatter.relations.depends_on)
            if options.superseded_by not in depends_on:
                depends_on.append(options.superseded_by)
            frontmatter = replace(
                frontmatter,
                relations=replace(frontmatter.relations, depends_on=depends_on),
            )

        frontmatter = update_timestamp(frontmatter)

        pending.append(_PendingWrite(
            doc=replace(doc, frontmatter=frontmatter),
            original_content=original_content,
            new_content=serialize_stitch_file(frontmatter, doc.body),
        ))
        finished.append(FinishedStitch(
            id=doc.id,
            title=doc.title,
            previous_status=doc.status,
            new_status=new_status,
        ))

    written: list[_PendingWrite] = []
    try:
        for item in pending:
            write_stitch_file(item.doc.file_path, item.new_content)
            written.append(item)
    except Exception:
        logger.error(
            f"[FINISH] Write failed after {len(written)}/{len(pending)} stitch(es), rolling back"
        )
        _rollback(written)
        raise

    for item in finished:
        logger.info(f"[FINISH] {item.id}: {item.previous_status} -> {item.new_status}")

    return FinishResult(
        finished=finished,
        warnings=list(preview.warnings),
        auto_detected_status=preview.auto_detected,
        final_status=preview.final_status,
    )


def _rollback(written: list[_PendingWrite]) -> None:
    """Restore every written file. Failures are logged, never raised."""
    for item in written:
        try:
            write_stitch_file(item.doc.file_path, item.original_content)
        except Exception as e:
            logger.warning(f"[FINISH] Rollback failed for {item.doc.id}: {e}")


def finish_stitch(
    repo_root: Path,
    stitch_id: str,
    options: Optional[FinishOptions] = None,
) -> FinishResult:
    """Prepare and execute in one call, for callers that skip confirmation."""
    preview = prepare_finish(repo_root, stitch_id, options)
    return execute_finish(preview, options)


def finished_ids(result: FinishResult) -> set[str]:
    return {item.id for item in result.finished}
