"""
stitch finish - Move a stitch and its subtree to a terminal status.

Shows what will change first. Refuses when auto-detection wants
'abandoned' and --force was not given. Asks for confirmation when the
cascade touches more than one stitch, unless --yes.
"""

from stitch.api import StitchClient
from stitch.lib.render import render_finish_preview, render_finish_result
from stitch.workflow.finish import FinishOptions


def _confirm(prompt: str) -> bool:
    try:
        response = input(prompt).strip().lower()
    except (EOFError, KeyboardInterrupt):
        print()
        return False
    return response in ("y", "yes")


def cmd_finish(args, client: StitchClient) -> int:
    """Finish a stitch (current stitch unless an ID is given)."""
    options = FinishOptions(
        status=args.status or client.config.default_status,
        superseded_by=args.by,
        force=args.force,
        skip_confirmation=args.yes,
    )

    preview = client.prepare_finish(args.id, options)
    print(render_finish_preview(preview))
    print()

    if preview.force_required:
        print(f"ERROR: {preview.force_required}")
        return 1

    if preview.requires_confirmation and not options.skip_confirmation:
        if not _confirm(f"Finish {len(preview.affected)} stitches? [y/N]: "):
            print("Aborted.")
            return 1

    result = client.execute_finish(preview, options)
    print(render_finish_result(result))
    return 0
