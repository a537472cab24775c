"""Tests for stitch.workflow.finish (prepare/execute and the cascade write)."""

from unittest.mock import patch

import pytest

from stitch.lib.config import get_current_stitch, set_current_stitch
from stitch.lib.errors import (
    FinishForceRequiredError,
    InvalidSupersededByError,
    StitchNotFoundError,
    ValidationError,
)
from stitch.store.documents import load_stitch, read_stitch_file, write_stitch_file
from stitch.store.index import add_child
from stitch.workflow.finish import (
    FinishOptions,
    execute_finish,
    finish_stitch,
    finished_ids,
    prepare_finish,
)


def failing_on_call(k, fail_rollback=False, rollback_error=OSError):
    """Build a write_stitch_file replacement that raises on the k-th call.

    Calls after the k-th (the rollback) go through to the real writer unless
    fail_rollback is set.
    """
    calls = {"n": 0}

    def fake_write(path, content):
        calls["n"] += 1
        if calls["n"] == k:
            raise OSError(f"disk full on write {k}")
        if fail_rollback and calls["n"] > k:
            raise rollback_error(f"restore failed on write {calls['n']}")
        write_stitch_file(path, content)

    return fake_write, calls


class TestAutoDetection:
    """A target without commits, or with open descendants, looks abandoned."""

    def test_unlinked_leaf_resolves_to_abandoned(self, repo_root, make_stitch):
        doc = make_stitch("Spike", linked=False)

        preview = prepare_finish(repo_root, doc.id, FinishOptions(status="closed"))

        assert preview.final_status == "abandoned"
        assert preview.auto_detected is True
        assert preview.warnings
        assert "No linked commits" in preview.warnings[0]
        assert preview.force_required is not None

    def test_force_required_message(self, repo_root, make_stitch):
        doc = make_stitch(linked=False)

        preview = prepare_finish(repo_root, doc.id, FinishOptions(status="closed"))

        assert preview.force_required == (
            "Cannot set status to 'closed' when no linked commits. "
            "Use --force to override, or --status=abandoned."
        )
        assert preview.warnings == [
            "Warning: No linked commits. Marking as abandoned. "
            "Use --status=superseded if this work was replaced."
        ]

    def test_explicit_abandoned_needs_no_override(self, repo_root, make_stitch):
        doc = make_stitch(linked=False)

        preview = prepare_finish(repo_root, doc.id, FinishOptions(status="abandoned"))

        assert preview.final_status == "abandoned"
        assert preview.auto_detected is False
        assert preview.force_required is None
        assert preview.warnings == []

    def test_force_keeps_requested_status_with_warning(self, repo_root, make_stitch):
        doc = make_stitch(linked=False)

        preview = prepare_finish(repo_root, doc.id, FinishOptions(status="closed", force=True))

        assert preview.final_status == "closed"
        assert preview.auto_detected is False
        assert preview.force_required is None
        assert preview.warnings == [
            "Warning: No linked commits. Forcing status to 'closed' as requested."
        ]

    def test_fingerprints_do_not_count_as_links(self, repo_root, make_stitch):
        from dataclasses import replace
        from stitch.store.documents import save_stitch
        from stitch.store.models import DiffFingerprint, StitchGit

        doc = make_stitch(linked=False)
        fp = DiffFingerprint(algo="sha256", kind="staged-diff", value="f" * 64)
        save_stitch(repo_root, replace(doc, frontmatter=replace(
            doc.frontmatter, git=StitchGit(fingerprints=[fp]),
        )))

        preview = prepare_finish(repo_root, doc.id)

        assert preview.final_status == "abandoned"
        assert preview.auto_detected is True

    def test_open_descendant_triggers_detection(self, repo_root, make_stitch):
        parent = make_stitch("Parent")
        child = make_stitch("Child", parent=parent.id)
        make_stitch("Grandchild", parent=child.id)

        preview = prepare_finish(repo_root, parent.id)

        assert preview.final_status == "abandoned"
        assert preview.auto_detected is True
        assert "Has 2 open children" in preview.warnings[0]

    def test_linked_leaf_closes_cleanly(self, repo_root, make_stitch):
        doc = make_stitch(linked=True)

        preview = prepare_finish(repo_root, doc.id)

        assert preview.final_status == "closed"
        assert preview.auto_detected is False
        assert preview.warnings == []
        assert preview.force_required is None

    def test_closed_descendants_do_not_trigger_detection(self, repo_root, make_stitch):
        parent = make_stitch("Parent")
        make_stitch("Done child", parent=parent.id, status="closed")

        preview = prepare_finish(repo_root, parent.id)

        assert preview.final_status == "closed"
        assert preview.auto_detected is False


class TestPrepareValidation:
    """Validation and not-found errors happen before anything is written."""

    def test_missing_target(self, repo_root):
        with pytest.raises(StitchNotFoundError):
            prepare_finish(repo_root, "S-20250101-0000")

    def test_superseded_by_requires_superseded_status(self, repo_root, make_stitch):
        a = make_stitch("A")
        b = make_stitch("B")

        with pytest.raises(InvalidSupersededByError, match="--by can only be used"):
            prepare_finish(repo_root, a.id, FinishOptions(status="closed", superseded_by=b.id))

    def test_superseded_by_must_exist(self, repo_root, make_stitch):
        a = make_stitch("A")

        with pytest.raises(InvalidSupersededByError) as exc:
            prepare_finish(
                repo_root, a.id,
                FinishOptions(status="superseded", superseded_by="S-20250101-beef"),
            )
        assert str(exc.value) == "Superseding stitch 'S-20250101-beef' not found"

    def test_non_terminal_status_rejected(self, repo_root, make_stitch):
        a = make_stitch("A")

        with pytest.raises(ValidationError):
            prepare_finish(repo_root, a.id, FinishOptions(status="open"))

    def test_prepare_writes_nothing(self, repo_root, make_stitch):
        parent = make_stitch("Parent")
        child = make_stitch("Child", parent=parent.id)
        before = {d.id: read_stitch_file(d.file_path) for d in (parent, child)}

        prepare_finish(repo_root, parent.id, FinishOptions(force=True))

        after = {d.id: read_stitch_file(d.file_path) for d in (parent, child)}
        assert before == after

    def test_dangling_descendant_is_a_warning(self, repo_root, make_stitch):
        parent = make_stitch("Parent")
        add_child(repo_root, parent.id, "S-20250101-dead")

        preview = prepare_finish(repo_root, parent.id)

        assert "Warning: Could not load descendant 'S-20250101-dead'" in preview.warnings
        assert [d.id for d in preview.affected] == [parent.id]
        assert preview.final_status == "closed"

    def test_undecodable_descendant_is_a_warning(self, repo_root, make_stitch):
        parent = make_stitch("Parent")
        child = make_stitch("Child", parent=parent.id, status="closed")
        child.file_path.write_bytes(b'+++\nid = "\xff\xfe"\n+++\n')

        preview = prepare_finish(repo_root, parent.id, FinishOptions(status="closed"))

        assert f"Warning: Could not load descendant '{child.id}'" in preview.warnings
        assert [d.id for d in preview.affected] == [parent.id]
        assert preview.force_required is None


class TestAffectedSet:
    """Target plus every descendant whose status must change."""

    def test_leaf_never_requires_confirmation(self, repo_root, make_stitch):
        for status in ("closed", "superseded", "abandoned"):
            doc = make_stitch(f"Leaf {status}")
            preview = prepare_finish(repo_root, doc.id, FinishOptions(status=status, force=True))
            assert len(preview.affected) == 1
            assert preview.requires_confirmation is False

    def test_confirmation_iff_two_or_more(self, repo_root, make_stitch):
        parent = make_stitch("Parent")
        make_stitch("Child", parent=parent.id)

        preview = prepare_finish(repo_root, parent.id, FinishOptions(force=True))

        assert len(preview.affected) == 2
        assert preview.requires_confirmation is True

    def test_matching_descendants_excluded(self, repo_root, make_stitch):
        parent = make_stitch("Parent")
        done = make_stitch("Done", parent=parent.id, status="closed")
        pending = make_stitch("Pending", parent=parent.id, status="abandoned")

        preview = prepare_finish(repo_root, parent.id)

        affected_ids = [d.id for d in preview.affected]
        assert affected_ids == [parent.id, pending.id]
        assert done.id not in affected_ids
        assert {d.id for d in preview.descendants} == {done.id, pending.id}

    def test_target_always_included(self, repo_root, make_stitch):
        doc = make_stitch("Already closed", status="closed")

        preview = prepare_finish(repo_root, doc.id)

        assert [d.id for d in preview.affected] == [doc.id]


class TestExecute:
    """The write phase."""

    def test_refuses_without_force(self, repo_root, make_stitch):
        doc = make_stitch(linked=False)
        before = read_stitch_file(doc.file_path)
        preview = prepare_finish(repo_root, doc.id)

        with pytest.raises(FinishForceRequiredError):
            execute_finish(preview)

        assert read_stitch_file(doc.file_path) == before

    def test_force_on_execute_applies_previewed_status(self, repo_root, make_stitch):
        doc = make_stitch(linked=False)
        preview = prepare_finish(repo_root, doc.id)

        result = execute_finish(preview, FinishOptions(force=True))

        assert result.final_status == "abandoned"
        assert load_stitch(repo_root, doc.id).status == "abandoned"

    def test_result_reports_each_stitch(self, repo_root, make_stitch):
        doc = make_stitch("Ship it")

        result = finish_stitch(repo_root, doc.id)

        assert len(result.finished) == 1
        item = result.finished[0]
        assert (item.id, item.title, item.previous_status, item.new_status) == (
            doc.id, "Ship it", "open", "closed",
        )
        assert result.auto_detected_status is False
        assert result.final_status == "closed"
        assert finished_ids(result) == {doc.id}

    def test_body_preserved(self, repo_root, make_stitch):
        doc = make_stitch()

        finish_stitch(repo_root, doc.id)

        assert load_stitch(repo_root, doc.id).body == doc.body

    def test_superseded_by_appended_once_to_target_only(self, repo_root, make_stitch):
        old = make_stitch("Old")
        child = make_stitch("Old child", parent=old.id, status="closed")
        new = make_stitch("New")
        options = FinishOptions(status="superseded", superseded_by=new.id, force=True)

        finish_stitch(repo_root, old.id, options)
        finish_stitch(repo_root, old.id, options)

        assert load_stitch(repo_root, old.id).frontmatter.relations.depends_on == [new.id]
        assert load_stitch(repo_root, child.id).frontmatter.relations.depends_on == []
        assert load_stitch(repo_root, child.id).status == "superseded"

    def test_refinishing_same_status_is_status_noop(self, repo_root, make_stitch):
        doc = make_stitch(status="closed")

        result = finish_stitch(repo_root, doc.id)

        assert result.finished[0].previous_status == "closed"
        assert result.finished[0].new_status == "closed"
        reloaded = load_stitch(repo_root, doc.id)
        assert reloaded.status == "closed"
        assert reloaded.frontmatter.updated_at >= doc.frontmatter.updated_at

    def test_engine_does_not_touch_current_pointer(self, repo_root, make_stitch):
        doc = make_stitch()
        set_current_stitch(repo_root, doc.id)

        finish_stitch(repo_root, doc.id)

        assert get_current_stitch(repo_root) == doc.id


class TestCascadeConsistency:
    """All descendants end at the resolved status; siblings are untouched."""

    def test_cascade_with_override(self, repo_root, make_stitch):
        root = make_stitch("Root")
        a = make_stitch("A", parent=root.id)
        b = make_stitch("B", parent=root.id, status="abandoned")
        a1 = make_stitch("A1", parent=a.id)
        a2 = make_stitch("A2", parent=a.id, status="closed")
        sibling = make_stitch("Sibling")
        sibling_child = make_stitch("Sibling child", parent=sibling.id)
        sibling_before = read_stitch_file(sibling.file_path)
        sibling_child_before = read_stitch_file(sibling_child.file_path)

        preview = prepare_finish(repo_root, root.id, FinishOptions(status="closed", force=True))
        result = execute_finish(preview, FinishOptions(status="closed", force=True))

        assert result.final_status == "closed"
        for doc in (root, a, b, a1, a2):
            assert load_stitch(repo_root, doc.id).status == "closed"
        assert finished_ids(result) == {root.id, a.id, b.id, a1.id}
        assert read_stitch_file(sibling.file_path) == sibling_before
        assert read_stitch_file(sibling_child.file_path) == sibling_child_before


class TestAtomicity:
    """A failed k-th write leaves every document as it was."""

    @pytest.fixture
    def tree(self, repo_root, make_stitch):
        root = make_stitch("Root")
        a = make_stitch("A", parent=root.id)
        b = make_stitch("B", parent=root.id)
        c = make_stitch("C", parent=a.id)
        return [root, a, b, c]

    @pytest.mark.parametrize("k", [1, 2, 3, 4])
    def test_rollback_on_kth_write_failure(self, repo_root, tree, k):
        before = {d.id: read_stitch_file(d.file_path) for d in tree}
        options = FinishOptions(status="closed", force=True)
        preview = prepare_finish(repo_root, tree[0].id, options)
        assert len(preview.affected) == 4
        fake_write, _ = failing_on_call(k)

        with patch("stitch.workflow.finish.write_stitch_file", side_effect=fake_write):
            with pytest.raises(OSError, match=f"disk full on write {k}"):
                execute_finish(preview, options)

        after = {d.id: read_stitch_file(d.file_path) for d in tree}
        assert after == before
        for doc in tree:
            assert load_stitch(repo_root, doc.id).status == "open"

    def test_rollback_restores_only_written_files(self, repo_root, tree):
        options = FinishOptions(status="closed", force=True)
        preview = prepare_finish(repo_root, tree[0].id, options)
        fake_write, calls = failing_on_call(3)

        with patch("stitch.workflow.finish.write_stitch_file", side_effect=fake_write):
            with pytest.raises(OSError):
                execute_finish(preview, options)

        # 2 successful writes, 1 failure, 2 restores
        assert calls["n"] == 5

    def test_rollback_failure_does_not_mask_original_error(self, repo_root, tree, caplog):
        options = FinishOptions(status="closed", force=True)
        preview = prepare_finish(repo_root, tree[0].id, options)
        fake_write, _ = failing_on_call(3, fail_rollback=True)

        with patch("stitch.workflow.finish.write_stitch_file", side_effect=fake_write):
            with pytest.raises(OSError, match="disk full on write 3"):
                execute_finish(preview, options)

        assert "Rollback failed" in caplog.text

    def test_unexpected_rollback_error_is_logged(self, repo_root, tree, caplog):
        options = FinishOptions(status="closed", force=True)
        preview = prepare_finish(repo_root, tree[0].id, options)
        fake_write, calls = failing_on_call(3, fail_rollback=True, rollback_error=RuntimeError)

        with patch("stitch.workflow.finish.write_stitch_file", side_effect=fake_write):
            with pytest.raises(OSError, match="disk full on write 3"):
                execute_finish(preview, options)

        # both restores attempted despite the first one raising
        assert calls["n"] == 5
        assert caplog.text.count("Rollback failed") == 2


class TestConcreteScenarios:
    """End-to-end scenarios for the finish workflow."""

    def test_unlinked_leaf_then_forced_close(self, repo_root, make_stitch):
        a = make_stitch("A", linked=False)

        preview = prepare_finish(repo_root, a.id, FinishOptions(status="closed"))
        assert preview.final_status == "abandoned"
        assert preview.auto_detected is True
        assert preview.force_required

        preview = prepare_finish(repo_root, a.id, FinishOptions(status="closed", force=True))
        assert preview.final_status == "closed"
        assert preview.force_required is None
        assert len(preview.warnings) == 1

    def test_parent_with_open_child(self, repo_root, make_stitch):
        p = make_stitch("P", linked=True)
        c = make_stitch("C", parent=p.id)

        # Without force: detection downgrades to abandoned and blocks execute
        preview = prepare_finish(repo_root, p.id)
        assert preview.final_status == "abandoned"
        assert "when has 1 open children" in preview.force_required

        # Accepting the detected status abandons the whole subtree
        options = FinishOptions(status="abandoned")
        result = finish_stitch(repo_root, p.id, options)
        assert result.final_status == "abandoned"
        assert load_stitch(repo_root, p.id).status == "abandoned"
        assert load_stitch(repo_root, c.id).status == "abandoned"

    def test_parent_with_open_child_forced(self, repo_root, make_stitch):
        p = make_stitch("P", linked=True)
        c = make_stitch("C", parent=p.id)
        options = FinishOptions(force=True)

        preview = prepare_finish(repo_root, p.id, options)
        assert preview.final_status == "closed"
        assert preview.warnings == [
            "Warning: Has 1 open children. Forcing status to 'closed' as requested."
        ]

        execute_finish(preview, options)
        assert load_stitch(repo_root, p.id).status == "closed"
        assert load_stitch(repo_root, c.id).status == "closed"
