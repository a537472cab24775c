"""
stitch blame - Show which stitch produced each line of a file.
"""

from stitch.api import StitchClient
from stitch.lib.render import render_blame_json, render_blame_plain


def cmd_blame(args, client: StitchClient) -> int:
    lines = client.blame(args.path)
    if args.format == "json":
        print(render_blame_json(lines))
    else:
        print(render_blame_plain(lines))
    return 0
