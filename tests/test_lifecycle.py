"""
修正項目生命週期測試

接受 / 忽略 / 還原，以及編輯覆蓋標註時的確認流程。
"""

import pytest

from proofmark.annotation.store import Upsert
from proofmark.annotation.types import ResultTag
from proofmark.config import AnnotationConfig
from proofmark.core.errors import ConflictResolutionError, InvalidTransitionError, UnknownCorrectionError
from proofmark.document.transaction import EditKind
from proofmark.engine import CorrectionEngine

from helpers import FakeTransport, make_item


def span_text(engine, item_id):
    item = engine.store.get(item_id)
    return engine.doc.text_between(item.from_, item.to)


class TestAccept:
    """測試接受建議"""

    def test_accept_and_undo_round_trip(self, engine, has_item):
        engine.store.add([has_item])

        accepted = engine.accept("has")
        assert accepted.result is ResultTag.ACCEPTED
        assert span_text(engine, "has") == "have"
        assert engine.doc.content[0].text_content == "I have a cat."
        assert accepted.accepted_snapshot.original_text == "has"

        restored = engine.undo_correction("has")
        assert restored.result is None
        assert span_text(engine, "has") == "has"
        assert engine.doc.content[0].text_content == "I has a cat."

    def test_accept_does_not_prompt(self, prompted_engine, prompts, has_item):
        prompted_engine.store.add([has_item])
        prompted_engine.accept("has")
        assert prompts == []
        assert prompted_engine.pending_conflicts == []

    def test_accept_shifts_following_items(self, engine, has_item):
        cat = make_item("cat", 9, 12, replacement="dog")
        engine.store.add([has_item, cat])

        engine.accept("has")
        assert span_text(engine, "cat") == "cat"

    def test_accept_twice_rejected(self, engine, has_item):
        engine.store.add([has_item])
        engine.accept("has")
        with pytest.raises(InvalidTransitionError):
            engine.accept("has")

    def test_accept_unknown(self, engine):
        with pytest.raises(UnknownCorrectionError):
            engine.accept("missing")

    def test_accept_without_suggestion(self, engine, has_item):
        engine.store.add([has_item.replace(suggestions=())])
        with pytest.raises(InvalidTransitionError):
            engine.accept("has")

    def test_editor_undo_reverts_text_and_state_together(self, engine, has_item):
        engine.store.add([has_item])
        engine.accept("has")

        assert engine.undo() is True
        assert engine.doc.content[0].text_content == "I has a cat."
        assert engine.store.get("has").result is None
        assert span_text(engine, "has") == "has"
        assert engine.pending_conflicts == []

        assert engine.redo() is True
        assert engine.store.get("has").result is ResultTag.ACCEPTED
        assert span_text(engine, "has") == "have"

    def test_editor_undo_after_new_run_keeps_old_item_out(self, engine, has_item):
        engine.store.add([has_item])
        engine.accept("has")

        engine.analyze(FakeTransport([]))
        engine.store.add([make_item("run", 19, 22, replacement="runs")])

        assert engine.undo() is True
        assert engine.doc.content[0].text_content == "I has a cat."
        assert "has" not in engine.store
        assert [item.id for item in engine.items] == ["run"]
        assert span_text(engine, "run") == "run"


class TestIgnore:
    """測試忽略"""

    def test_ignore_hides_overlay(self, engine, has_item):
        engine.store.add([has_item])
        ignored = engine.ignore("has")
        assert ignored.result is ResultTag.IGNORED
        assert engine.overlays == ()
        assert engine.doc.content[0].text_content == "I has a cat."

    def test_ignore_is_idempotent(self, engine, has_item):
        engine.store.add([has_item])
        engine.ignore("has")
        state = engine.store.state

        again = engine.ignore("has")
        assert again.result is ResultTag.IGNORED
        assert engine.store.state is state

    def test_undo_ignore(self, engine, has_item):
        engine.store.add([has_item])
        engine.ignore("has")
        restored = engine.undo_correction("has")
        assert restored.result is None
        assert len(engine.overlays) == 1

    def test_ignore_accepted_rejected(self, engine, has_item):
        engine.store.add([has_item])
        engine.accept("has")
        with pytest.raises(InvalidTransitionError):
            engine.ignore("has")

    def test_undo_pending_rejected(self, engine, has_item):
        engine.store.add([has_item])
        with pytest.raises(InvalidTransitionError):
            engine.undo_correction("has")


class TestUndoDrift:
    """接受後文字被其他內部編輯改動時，還原只清除標籤"""

    def test_drifted_text_keeps_span(self, engine, has_item):
        engine.store.add([has_item])
        accepted = engine.accept("has")

        tr = engine.session.transaction().replace_with_text(4, 5, "o")
        tr.set_meta(engine.store.key, Upsert((accepted,)))
        tr.set_edit_kind(EditKind.USER, internal=True)
        engine.session.dispatch(tr)
        assert span_text(engine, "has") == "hove"

        restored = engine.undo_correction("has")
        assert restored.result is None
        assert restored.accepted_snapshot is None
        assert span_text(engine, "has") == "hove"

    def test_drift_emits_warning(self, cat_doc, has_item):
        events = []
        engine = CorrectionEngine(cat_doc, on_event=events.append)
        engine.store.add([has_item])
        accepted = engine.accept("has")

        tr = engine.session.transaction().replace_with_text(4, 5, "o")
        tr.set_meta(engine.store.key, Upsert((accepted,)))
        tr.set_edit_kind(EditKind.USER, internal=True)
        engine.session.dispatch(tr)
        engine.undo_correction("has")

        (warning,) = [e for e in events if e["type"] == "warning"]
        assert warning["reason"] == "span_drift"
        assert warning["ids"] == ["has"]
        assert warning["source"] == "hove"


class TestRemovalConfirmation:
    """測試編輯覆蓋標註時的確認流程"""

    def test_conflicting_edit_prompts(self, prompted_engine, prompts, has_item):
        prompted_engine.store.add([has_item])
        prompted_engine.session.delete(4, 5)

        (conflict,) = prompts
        assert conflict.ids == ["has"]
        assert conflict.edit_kind is EditKind.USER
        assert conflict.reverse_operation == "undo"
        assert "has" not in prompted_engine.store

    def test_confirm_removal(self, prompted_engine, prompts, has_item):
        prompted_engine.store.add([has_item])
        prompted_engine.session.delete(4, 5)

        assert prompted_engine.confirm_removal(prompts[0].conflict_id) == ["has"]
        assert "has" not in prompted_engine.store
        assert prompted_engine.store.candidates == {}
        assert prompted_engine.pending_conflicts == []
        assert prompted_engine.doc.content[0].text_content == "I hs a cat."

    def test_cancel_removal_restores_item(self, prompted_engine, prompts, has_item):
        prompted_engine.store.add([has_item])
        prompted_engine.session.delete(4, 5)

        prompted_engine.cancel_removal(prompts[0].conflict_id)

        restored = prompted_engine.store.get("has")
        assert restored.original_text == "has"
        assert span_text(prompted_engine, "has") == "has"
        assert prompted_engine.doc.content[0].text_content == "I has a cat."
        assert prompted_engine.pending_conflicts == []
        assert len(prompted_engine.overlays) == 1

    def test_cancel_undo_triggered_conflict_redoes(self, prompted_engine, prompts):
        session = prompted_engine.session
        session.insert_text(1, "teh ")
        prompted_engine.store.add([make_item("teh", 1, 4, replacement="the")])

        session.undo()
        (conflict,) = prompts
        assert conflict.edit_kind is EditKind.UNDO
        assert conflict.reverse_operation == "redo"

        prompted_engine.cancel_removal(conflict.conflict_id)
        assert prompted_engine.doc.content[0].text_content == "teh I has a cat."
        assert span_text(prompted_engine, "teh") == "teh"

    def test_cancel_redo_triggered_conflict_undoes(self, prompted_engine, prompts, has_item):
        session = prompted_engine.session
        session.delete(3, 7)
        session.undo()
        prompted_engine.store.add([has_item])
        assert prompts == []

        session.redo()
        (conflict,) = prompts
        assert conflict.edit_kind is EditKind.REDO
        assert conflict.reverse_operation == "undo"
        assert prompted_engine.doc.content[0].text_content == "I a cat."

        assert prompted_engine.cancel_removal(conflict.conflict_id) == ["has"]
        assert prompted_engine.doc.content[0].text_content == "I has a cat."
        assert span_text(prompted_engine, "has") == "has"
        assert prompted_engine.pending_conflicts == []

    def test_cancel_after_newer_edit_rejected(self, prompted_engine, prompts, has_item):
        prompted_engine.store.add([has_item])
        prompted_engine.session.delete(4, 5)
        prompted_engine.session.insert_text(20, "!")

        conflict_id = prompts[0].conflict_id
        with pytest.raises(ConflictResolutionError):
            prompted_engine.cancel_removal(conflict_id)
        assert [c.conflict_id for c in prompted_engine.pending_conflicts] == [conflict_id]

    def test_new_run_discards_open_conflicts(self, cat_doc, has_item):
        events = []
        engine = CorrectionEngine(cat_doc, on_event=events.append)
        engine.store.add([has_item])
        engine.session.delete(4, 5)
        conflict_id = engine.pending_conflicts[0].conflict_id

        engine.analyze(FakeTransport([]))
        assert engine.pending_conflicts == []
        resolved = [e for e in events if e["type"] == "conflict_resolved"]
        assert [(e["conflict_id"], e["resolution"]) for e in resolved] == [(conflict_id, "discarded")]

        with pytest.raises(ConflictResolutionError):
            engine.cancel_removal(conflict_id)
        assert engine.doc.content[0].text_content == "I hs a cat."

    def test_cancel_without_candidates_leaves_document(self, prompted_engine, prompts, has_item):
        prompted_engine.store.add([has_item])
        prompted_engine.session.delete(4, 5)
        conflict_id = prompts[0].conflict_id
        prompted_engine.store.drop_candidates(conflict_id)

        with pytest.raises(ConflictResolutionError):
            prompted_engine.cancel_removal(conflict_id)
        assert prompted_engine.doc.content[0].text_content == "I hs a cat."
        assert prompted_engine.pending_conflicts == []

    def test_unknown_conflict(self, engine):
        with pytest.raises(ConflictResolutionError):
            engine.confirm_removal("missing")

    def test_auto_confirm(self, cat_doc, has_item):
        engine = CorrectionEngine(cat_doc, AnnotationConfig(auto_confirm=True))
        engine.store.add([has_item])
        engine.session.delete(4, 5)

        assert "has" not in engine.store
        assert engine.store.candidates == {}
        assert engine.pending_conflicts == []

    def test_events(self, cat_doc, has_item):
        events = []
        engine = CorrectionEngine(cat_doc, on_event=events.append)
        engine.store.add([has_item])
        engine.session.delete(4, 5)
        engine.cancel_removal(engine.pending_conflicts[0].conflict_id)

        assert [e["type"] for e in events] == ["removal_candidates", "conflict_resolved"]
        assert events[1]["resolution"] == "cancel"
        assert events[1]["ids"] == ["has"]
