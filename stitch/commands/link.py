"""
stitch link - Bind a commit, a range or the staged diff to a stitch.
"""

from stitch.api import StitchClient


def cmd_link(args, client: StitchClient) -> int:
    """Link git history to a stitch (current stitch unless --id)."""
    if args.commit:
        doc = client.link_commit(args.commit, args.id)
        print(f"Linked commit {args.commit} to {doc.id}")
    elif args.range:
        doc = client.link_range(args.range, args.id)
        print(f"Linked range {args.range} to {doc.id}")
    elif args.staged:
        fingerprint = client.link_staged_diff(args.id)
        print(f"Recorded staged diff fingerprint {fingerprint.value[:12]}")
    else:
        print("ERROR: One of --commit, --range or --staged is required")
        return 2
    return 0
