"""
stitch show - Print one stitch.
"""

from stitch.api import StitchClient
from stitch.lib.render import render_stitch_doc


def cmd_show(args, client: StitchClient) -> int:
    print(render_stitch_doc(client.get(args.id)))
    return 0
