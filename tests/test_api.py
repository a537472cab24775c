"""Tests for stitch.api.StitchClient."""

import typing
from unittest.mock import MagicMock, patch

import pytest

from stitch.api import StitchClient
from stitch.lib.config import get_current_stitch, set_current_stitch
from stitch.lib.errors import NoCurrentStitchError, NotInitializedError, StitchError, StitchNotFoundError
from stitch.store.models import BlameLine, StitchDoc
from stitch.workflow.finish import FinishOptions


@pytest.fixture
def client(repo_root):
    with StitchClient(repo_root=repo_root) as c:
        yield c


class TestClientSurface:

    def test_annotations_resolve(self):
        assert typing.get_type_hints(StitchClient.blame)["return"] == list[BlameLine]
        assert typing.get_type_hints(StitchClient.list_stitches)["return"] == list[StitchDoc]


class TestNavigation:

    def test_init(self, tmp_path):
        client = StitchClient(repo_root=tmp_path)
        assert not client.is_initialized()
        client.init()
        assert client.is_initialized()

    def test_repo_root_from_git(self, tmp_path):
        with patch("stitch.api.get_repo_root", return_value=tmp_path) as mock_root:
            client = StitchClient()
            assert client.repo_root == tmp_path
            assert client.repo_root == tmp_path
        mock_root.assert_called_once()

    def test_start_sets_current(self, client):
        doc = client.start("Root")
        assert get_current_stitch(client.repo_root) == doc.id

    def test_child_requires_current(self, client):
        with pytest.raises(NoCurrentStitchError):
            client.child("Orphan")

    def test_child_links_parent(self, client):
        root = client.start("Root")
        child = client.child("Child")
        assert child.frontmatter.parent == root.id
        assert client.status().lineage == [child.id, root.id]

    def test_switch_validates(self, client):
        with pytest.raises(StitchNotFoundError):
            client.switch("S-20250101-0000")
        doc = client.start("A")
        client.start("B")
        client.switch(doc.id)
        assert client.status().current == doc.id

    def test_status_empty(self, client):
        status = client.status()
        assert status.current is None
        assert status.lineage == []

    def test_status_requires_init(self, tmp_path):
        with pytest.raises(NotInitializedError):
            StitchClient(repo_root=tmp_path).status()

    def test_list_and_get(self, client):
        doc = client.start("A")
        assert [d.id for d in client.list_stitches()] == [doc.id]
        assert client.list_stitches(status="closed") == []
        assert client.get(doc.id).title == "A"


class TestEditor:

    @patch("stitch.api.subprocess.run")
    def test_opens_file(self, mock_run, client, monkeypatch):
        monkeypatch.setenv("STITCH_EDITOR", "code --wait")
        mock_run.return_value = MagicMock(returncode=0)
        doc = client.start("A")

        client.open_in_editor()

        assert mock_run.call_args[0][0] == ["code", "--wait", str(doc.file_path)]

    @patch("stitch.api.subprocess.run")
    def test_editor_failure(self, mock_run, client):
        mock_run.return_value = MagicMock(returncode=3)
        client.start("A")
        with pytest.raises(StitchError, match="Editor exited with code 3"):
            client.open_in_editor()


class TestLinking:

    @patch("stitch.workflow.link.resolve_ref", return_value="f" * 40)
    @patch("stitch.workflow.link.commit_exists", return_value=True)
    def test_link_commit_defaults_to_current(self, mock_exists, mock_resolve, client):
        doc = client.start("A")
        client.link_commit("HEAD")
        assert client.get(doc.id).frontmatter.has_linked_commits()

    def test_link_requires_current(self, client):
        with pytest.raises(NoCurrentStitchError):
            client.link_range("main..HEAD")


class TestFinish:

    def test_clears_current_when_finished(self, client):
        root = client.start("Root")
        client.link_range("main..HEAD")
        child = client.child("Child")
        client.link_range("main..HEAD")
        assert get_current_stitch(client.repo_root) == child.id

        options = FinishOptions(force=True)
        preview = client.prepare_finish(root.id, options)
        result = client.execute_finish(preview, options)

        assert {f.id for f in result.finished} == {root.id, child.id}
        assert get_current_stitch(client.repo_root) is None

    def test_keeps_unrelated_current(self, client):
        done = client.start("Done")
        client.link_range("main..HEAD")
        other = client.start("Other")

        client.execute_finish(client.prepare_finish(done.id))

        assert get_current_stitch(client.repo_root) == other.id

    def test_default_status_from_config(self, client):
        (client.repo_root / ".stitch" / "config.yaml").write_text("default_status: abandoned\n")
        doc = client.start("A")

        preview = client.prepare_finish()

        assert preview.target.id == doc.id
        assert preview.final_status == "abandoned"
        assert preview.force_required is None

    def test_finish_requires_current(self, client):
        set_current_stitch(client.repo_root, "")
        with pytest.raises(NoCurrentStitchError):
            client.prepare_finish()
