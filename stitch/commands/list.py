"""
stitch list - List stitches, newest first.
"""

from stitch.api import StitchClient
from stitch.lib.render import render_json, render_stitch_list


def cmd_list(args, client: StitchClient) -> int:
    """List stitches, optionally filtered by status."""
    docs = client.list_stitches(status=args.status)

    if args.json:
        print(render_json([
            {
                "id": doc.id,
                "title": doc.title,
                "status": doc.status,
                "updated_at": doc.frontmatter.updated_at,
                "parent": doc.frontmatter.parent,
            }
            for doc in docs
        ]))
        return 0

    print(render_stitch_list(docs))
    if docs:
        print()
        print(f"{len(docs)} stitch(es)")
    return 0
