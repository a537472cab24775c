"""Shared fixtures: an initialized .stitch store in a temp directory."""

from dataclasses import replace

import pytest

from stitch.store.documents import create_stitch, initialize_stitch, write_stitch_file
from stitch.store.frontmatter import serialize_stitch_file
from stitch.store.models import GitLink, StitchGit

LINKED_SHA = "a" * 40


@pytest.fixture
def repo_root(tmp_path):
    initialize_stitch(tmp_path)
    return tmp_path


@pytest.fixture
def make_stitch(repo_root):
    """Create a stitch on disk with a given status and optional commit link."""

    def _make(title="Work", parent=None, status="open", linked=True):
        doc = create_stitch(repo_root, title, parent_id=parent)
        frontmatter = replace(doc.frontmatter, status=status)
        if linked:
            frontmatter = replace(frontmatter, git=StitchGit(links=[GitLink.commit(LINKED_SHA)]))
        write_stitch_file(doc.file_path, serialize_stitch_file(frontmatter, doc.body))
        return replace(doc, frontmatter=frontmatter)

    return _make
