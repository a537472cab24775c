"""
Stitch document store.

Stitch files (TOML frontmatter + markdown body) under .stitch/stitches/ and
the parent-children index cache in .stitch/index.json.
"""

from stitch.store.models import (
    Frontmatter,
    GitLink,
    DiffFingerprint,
    StitchDoc,
    StitchGit,
    StitchRelations,
)
from stitch.store.documents import (
    initialize_stitch,
    is_initialized,
    create_stitch,
    load_stitch,
    save_stitch,
    list_stitches,
    get_lineage,
    get_stitch_file_path,
)
from stitch.store.index import (
    get_children,
    get_descendants,
    rebuild_index,
    add_child,
    remove_child,
)

__all__ = [
    "Frontmatter",
    "GitLink",
    "DiffFingerprint",
    "StitchDoc",
    "StitchGit",
    "StitchRelations",
    "initialize_stitch",
    "is_initialized",
    "create_stitch",
    "load_stitch",
    "save_stitch",
    "list_stitches",
    "get_lineage",
    "get_stitch_file_path",
    "get_children",
    "get_descendants",
    "rebuild_index",
    "add_child",
    "remove_child",
]
