"""Plain-text and JSON rendering for CLI output."""

import json
from dataclasses import asdict
from datetime import datetime

from stitch.store.models import BlameLine, StatusResult, StitchDoc
from stitch.workflow.finish import FinishPreview, FinishResult


def _truncate(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    return text[:max_length - 3] + "..."


def _format_date(iso: str) -> str:
    try:
        return datetime.fromisoformat(iso.replace("Z", "+00:00")).strftime("%Y-%m-%d %H:%M UTC")
    except ValueError:
        return iso


def render_stitch_list(docs: list[StitchDoc]) -> str:
    if not docs:
        return "No stitches found."

    lines = [f"{'ID':<18}  {'STATUS':<10}  TITLE", "-" * 60]
    for doc in docs:
        lines.append(f"{doc.id:<18}  {doc.status:<10}  {_truncate(doc.title, 30)}")
    return "\n".join(lines)


def render_status(status: StatusResult) -> str:
    if not status.current:
        return "\n".join([
            "No current stitch.",
            "",
            "Start a new stitch with: stitch start <title>",
            "Or switch to an existing one: stitch switch <id>",
        ])

    lines = [f"Current stitch: {status.current}"]
    if len(status.lineage) > 1:
        lines += ["", "Lineage:"]
        for depth, stitch_id in enumerate(status.lineage):
            marker = "-> " if depth == 0 else "   "
            lines.append(f"{'  ' * depth}{marker}{stitch_id}")
    return "\n".join(lines)


def render_stitch_doc(doc: StitchDoc) -> str:
    fm = doc.frontmatter
    lines = [
        f"# {fm.title}",
        "",
        f"ID: {fm.id}",
        f"Status: {fm.status}",
        f"Created: {_format_date(fm.created_at)}",
        f"Updated: {_format_date(fm.updated_at)}",
    ]
    if fm.provenance:
        lines.append(f"Provenance: {fm.provenance}")
    if fm.confidence:
        lines.append(f"Confidence: {fm.confidence}")
    if fm.tags:
        lines.append(f"Tags: {', '.join(fm.tags)}")
    if fm.relations.parent:
        lines.append(f"Parent: {fm.relations.parent}")
    if fm.relations.depends_on:
        lines.append(f"Depends on: {', '.join(fm.relations.depends_on)}")

    if fm.git.links:
        lines += ["", "Git links:"]
        for link in fm.git.links:
            if link.kind == "commit":
                lines.append(f"  - commit: {link.sha[:8]}")
            else:
                lines.append(f"  - range: {link.range}")

    if doc.body.strip():
        lines += ["", "-" * 40, "", doc.body.strip()]

    return "\n".join(lines)


def render_blame_plain(blame_lines: list[BlameLine]) -> str:
    if not blame_lines:
        return "No blame information available."

    width = len(str(max(bl.line for bl in blame_lines)))
    out = []
    for bl in blame_lines:
        stitch_id = bl.stitch_ids[0] if bl.stitch_ids else "unstitched"
        out.append(f"{bl.line:>{width}} | {bl.sha[:8]} | {stitch_id:<18} | {bl.text}")
    return "\n".join(out)


def render_blame_json(blame_lines: list[BlameLine]) -> str:
    return json.dumps([asdict(bl) for bl in blame_lines], indent=2)


def render_finish_preview(preview: FinishPreview) -> str:
    lines = []
    for warning in preview.warnings:
        lines.append(warning)
    if preview.warnings:
        lines.append("")

    count = len(preview.affected)
    lines.append(f"Finishing as '{preview.final_status}' ({count} stitch(es)):")
    for doc in preview.affected:
        marker = "*" if doc.id == preview.target.id else "-"
        lines.append(f"  {marker} {doc.id}  {doc.status} -> {preview.final_status}  {_truncate(doc.title, 40)}")
    return "\n".join(lines)


def render_finish_result(result: FinishResult) -> str:
    lines = [f"Finished {len(result.finished)} stitch(es) as '{result.final_status}':"]
    for item in result.finished:
        lines.append(f"  {item.id}  {item.previous_status} -> {item.new_status}")
    return "\n".join(lines)


def render_json(data) -> str:
    return json.dumps(data, indent=2)
