"""
stitch index rebuild - Regenerate .stitch/index.json from the stitch files.
"""

from stitch.api import StitchClient
from stitch.store.index import rebuild_index


def cmd_index_rebuild(args, client: StitchClient) -> int:
    index = rebuild_index(client.repo_root)
    parents = len(index.children)
    children = sum(len(kids) for kids in index.children.values())
    print(f"Rebuilt index: {parents} parent(s), {children} child link(s)")
    return 0
