"""
Parent-children index for fast descendant lookups.

Stored at .stitch/index.json. The index is a cache derived from each
stitch's relations.parent: it is rebuilt from the stitch files whenever it is
missing, unreadable, or carries a different version.
"""

import json
import logging
from collections import deque
from dataclasses import dataclass, field
from pathlib import Path

from stitch.lib.validate import is_valid, validate_before_write
from stitch.store.documents import get_stitch_dir, list_stitches, require_initialized
from stitch.store.frontmatter import now_iso

logger = logging.getLogger(__name__)

INDEX_FILE = "index.json"
INDEX_VERSION = 1


@dataclass
class StitchIndex:
    """Parent ID -> ordered child IDs."""
    children: dict[str, list[str]] = field(default_factory=dict)
    version: int = INDEX_VERSION
    updated_at: str = field(default_factory=now_iso)

    def to_dict(self) -> dict:
        return {
            "version": self.version,
            "children": {parent: list(kids) for parent, kids in self.children.items()},
            "updated_at": self.updated_at,
        }


def get_index_file_path(repo_root: Path) -> Path:
    require_initialized(repo_root)
    return get_stitch_dir(repo_root) / INDEX_FILE


def index_exists(repo_root: Path) -> bool:
    return get_index_file_path(repo_root).exists()


def load_index(repo_root: Path) -> StitchIndex | None:
    """Load the index, or None if it is missing, corrupt or from another version."""
    index_path = get_index_file_path(repo_root)
    if not index_path.exists():
        return None

    try:
        data = json.loads(index_path.read_text())
    except (json.JSONDecodeError, OSError, UnicodeDecodeError) as e:
        logger.warning(f"[INDEX] Unreadable index {index_path}: {e}")
        return None

    if not isinstance(data, dict) or not is_valid(data, "index"):
        logger.warning(f"[INDEX] Malformed index {index_path}")
        return None

    if data["version"] != INDEX_VERSION:
        logger.info(f"[INDEX] Version {data['version']} != {INDEX_VERSION}, will rebuild")
        return None

    return StitchIndex(
        children={parent: list(kids) for parent, kids in data["children"].items()},
        version=data["version"],
        updated_at=data["updated_at"],
    )


def save_index(repo_root: Path, index: StitchIndex) -> None:
    index_path = get_index_file_path(repo_root)
    validate_before_write(index.to_dict(), "index", index_path)
    index_path.write_text(json.dumps(index.to_dict(), indent=2))


def rebuild_index(repo_root: Path) -> StitchIndex:
    """Rebuild the index by scanning every stitch file, then overwrite it.

    Children are kept in stitch ID order so two rebuilds over the same files
    produce identical maps.
    """
    index = StitchIndex()
    docs = sorted(list_stitches(repo_root), key=lambda d: d.id)

    for doc in docs:
        parent_id = doc.frontmatter.relations.parent
        if parent_id:
            index.children.setdefault(parent_id, []).append(doc.id)

    save_index(repo_root, index)
    logger.info(f"[INDEX] Rebuilt from {len(docs)} stitch(es)")
    return index


def get_index(repo_root: Path) -> StitchIndex:
    """Load the index, rebuilding it if needed."""
    index = load_index(repo_root)
    if index is None:
        index = rebuild_index(repo_root)
    return index


def get_children(repo_root: Path, stitch_id: str) -> list[str]:
    """Direct children of a stitch (empty if none or unknown)."""
    return list(get_index(repo_root).children.get(stitch_id, []))


def get_descendants(repo_root: Path, stitch_id: str) -> list[str]:
    """All descendants of a stitch in breadth-first order, excluding itself.

    Each node is visited once, so a malformed parent cycle cannot loop.
    """
    index = get_index(repo_root)
    descendants: list[str] = []
    visited = {stitch_id}
    queue = deque([stitch_id])

    while queue:
        current = queue.popleft()
        for child_id in index.children.get(current, []):
            if child_id in visited:
                continue
            visited.add(child_id)
            descendants.append(child_id)
            queue.append(child_id)

    return descendants


def add_child(repo_root: Path, parent_id: str, child_id: str) -> None:
    """Record child_id under parent_id. No-op if already present."""
    index = get_index(repo_root)
    children = index.children.setdefault(parent_id, [])
    if child_id in children:
        return
    children.append(child_id)
    index.updated_at = now_iso()
    save_index(repo_root, index)


def remove_child(repo_root: Path, parent_id: str, child_id: str) -> None:
    """Remove child_id from parent_id. Drops the parent entry once it is empty."""
    index = get_index(repo_root)
    children = index.children.get(parent_id)
    if children is None or child_id not in children:
        return
    children.remove(child_id)
    if not children:
        del index.children[parent_id]
    index.updated_at = now_iso()
    save_index(repo_root, index)
