"""
Stitch document CRUD.

Stitches are stored one file per ID in:
  <repo>/.stitch/stitches/S-YYYYMMDD-xxxx.md
"""

import logging
import os
import tempfile
from dataclasses import replace
from pathlib import Path
from typing import Optional

from stitch.lib.errors import NotInitializedError, StitchNotFoundError, ValidationError
from stitch.store.frontmatter import (
    now_iso,
    parse_stitch_file,
    serialize_stitch_file,
    update_timestamp,
)
from stitch.store.ids import generate_stitch_id
from stitch.store.models import (
    DEFAULT_STITCH_BODY,
    Frontmatter,
    StitchDoc,
    StitchRelations,
)

logger = logging.getLogger(__name__)

STITCH_DIR = ".stitch"
STITCHES_SUBDIR = "stitches"
CURRENT_FILE = "current"
MAX_ID_ATTEMPTS = 16


def get_stitch_dir(repo_root: Path) -> Path:
    """Get the .stitch directory for a repository."""
    return Path(repo_root) / STITCH_DIR


def get_stitches_dir(repo_root: Path) -> Path:
    """Get the directory holding stitch files."""
    return get_stitch_dir(repo_root) / STITCHES_SUBDIR


def get_current_file_path(repo_root: Path) -> Path:
    return get_stitch_dir(repo_root) / CURRENT_FILE


def get_stitch_file_path(repo_root: Path, stitch_id: str) -> Path:
    return get_stitches_dir(repo_root) / f"{stitch_id}.md"


def is_initialized(repo_root: Path) -> bool:
    return get_stitch_dir(repo_root).exists()


def require_initialized(repo_root: Path) -> None:
    if not is_initialized(repo_root):
        raise NotInitializedError()


def initialize_stitch(repo_root: Path) -> None:
    """Create .stitch/stitches and an empty current pointer. Safe to re-run."""
    get_stitches_dir(repo_root).mkdir(parents=True, exist_ok=True)
    current_path = get_current_file_path(repo_root)
    if not current_path.exists():
        current_path.write_text("")
    logger.debug(f"[STORE] Initialized {get_stitch_dir(repo_root)}")


def read_stitch_file(path: Path) -> str:
    """Read the raw serialized form of a stitch file."""
    return Path(path).read_text(encoding="utf-8")


def write_stitch_file(path: Path, content: str) -> None:
    """Write a stitch file atomically (temp file in the same dir, then rename)."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.tmp.", dir=str(path.parent))
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
    finally:
        try:
            if tmp_path.exists():
                tmp_path.unlink()
        except FileNotFoundError:
            pass


def _new_stitch_id(repo_root: Path) -> str:
    for _ in range(MAX_ID_ATTEMPTS):
        stitch_id = generate_stitch_id()
        if not get_stitch_file_path(repo_root, stitch_id).exists():
            return stitch_id
    raise ValidationError("Could not generate a unique stitch ID")


def create_stitch(
    repo_root: Path,
    title: str,
    parent_id: Optional[str] = None,
    depends_on: Optional[list[str]] = None,
) -> StitchDoc:
    """Create a new open stitch.

    If parent_id is given the child is recorded in the parent-child index.
    """
    require_initialized(repo_root)

    stitch_id = _new_stitch_id(repo_root)
    now = now_iso()

    frontmatter = Frontmatter(
        id=stitch_id,
        title=title,
        status="open",
        created_at=now,
        updated_at=now,
        provenance="human",
        confidence="medium",
        relations=StitchRelations(parent=parent_id, depends_on=list(depends_on or [])),
    )

    file_path = get_stitch_file_path(repo_root, stitch_id)
    write_stitch_file(file_path, serialize_stitch_file(frontmatter, DEFAULT_STITCH_BODY))
    logger.info(f"[STORE] Created {stitch_id}" + (f" (parent {parent_id})" if parent_id else ""))

    if parent_id:
        from stitch.store.index import add_child
        add_child(repo_root, parent_id, stitch_id)

    return StitchDoc(frontmatter=frontmatter, body=DEFAULT_STITCH_BODY.strip(), file_path=file_path)


def load_stitch(repo_root: Path, stitch_id: str) -> StitchDoc:
    """Load a stitch by ID.

    Raises:
        StitchNotFoundError: If no file exists for the ID
        ValidationError: If the file is malformed
    """
    require_initialized(repo_root)

    file_path = get_stitch_file_path(repo_root, stitch_id)
    if not file_path.exists():
        raise StitchNotFoundError(stitch_id)

    frontmatter, body = parse_stitch_file(read_stitch_file(file_path))
    return StitchDoc(frontmatter=frontmatter, body=body, file_path=file_path)


def stitch_exists(repo_root: Path, stitch_id: str) -> bool:
    return get_stitch_file_path(repo_root, stitch_id).exists()


def save_stitch(repo_root: Path, doc: StitchDoc) -> StitchDoc:
    """Write a stitch back to disk with a fresh updated_at."""
    require_initialized(repo_root)

    frontmatter = update_timestamp(doc.frontmatter)
    write_stitch_file(doc.file_path, serialize_stitch_file(frontmatter, doc.body))
    return replace(doc, frontmatter=frontmatter)


def list_stitches(repo_root: Path, status: Optional[str] = None) -> list[StitchDoc]:
    """List all stitches, newest updated_at first.

    Malformed files are skipped with a warning.
    """
    require_initialized(repo_root)

    stitches_dir = get_stitches_dir(repo_root)
    if not stitches_dir.exists():
        return []

    docs = []
    for f in sorted(stitches_dir.glob("*.md")):
        try:
            frontmatter, body = parse_stitch_file(read_stitch_file(f))
        except (ValidationError, OSError, UnicodeDecodeError) as e:
            logger.warning(f"[STORE] Skipping malformed stitch file {f.name}: {e}")
            continue

        if status and frontmatter.status != status:
            continue

        docs.append(StitchDoc(frontmatter=frontmatter, body=body, file_path=f))

    docs.sort(key=lambda d: d.frontmatter.updated_at, reverse=True)
    return docs


def get_lineage(repo_root: Path, stitch_id: str) -> list[str]:
    """Return the ancestor chain starting at stitch_id (self first, root last).

    Stops at a cycle or at a parent that cannot be loaded.
    """
    lineage: list[str] = []
    visited: set[str] = set()
    current_id: Optional[str] = stitch_id

    while current_id:
        if current_id in visited:
            logger.warning(f"[STORE] Parent cycle detected at {current_id}")
            break
        visited.add(current_id)

        try:
            doc = load_stitch(repo_root, current_id)
        except (StitchNotFoundError, ValidationError) as e:
            if current_id != stitch_id:
                logger.warning(f"[STORE] Dangling parent reference {current_id}: {e}")
            break

        lineage.append(current_id)
        current_id = doc.frontmatter.relations.parent

    return lineage
