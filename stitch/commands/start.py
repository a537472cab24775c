"""
stitch start / child / switch - Create stitches and move the current pointer.
"""

from stitch.api import StitchClient


def _title(args) -> str:
    return " ".join(args.title).strip()


def cmd_start(args, client: StitchClient) -> int:
    """Create a root stitch and make it current."""
    title = _title(args)
    if not title:
        print("ERROR: Title is required")
        return 2

    doc = client.start(title)
    print(f"Started stitch {doc.id}: {doc.title}")
    return 0


def cmd_child(args, client: StitchClient) -> int:
    """Create a child of the current stitch and make it current."""
    title = _title(args)
    if not title:
        print("ERROR: Title is required")
        return 2

    doc = client.child(title)
    print(f"Started child stitch {doc.id}: {doc.title}")
    print(f"  Parent: {doc.frontmatter.parent}")
    return 0


def cmd_switch(args, client: StitchClient) -> int:
    client.switch(args.id)
    print(f"Now on stitch: {args.id}")
    return 0
