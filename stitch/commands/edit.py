"""
stitch edit - Open a stitch in $EDITOR.
"""

from stitch.api import StitchClient


def cmd_edit(args, client: StitchClient) -> int:
    client.open_in_editor(args.id)
    return 0
