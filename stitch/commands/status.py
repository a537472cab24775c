"""
stitch status - Show the current stitch and its lineage.
"""

from dataclasses import asdict

from stitch.api import StitchClient
from stitch.lib.render import render_json, render_status


def cmd_status(args, client: StitchClient) -> int:
    status = client.status()
    if args.json:
        print(render_json(asdict(status)))
    else:
        print(render_status(status))
    return 0
