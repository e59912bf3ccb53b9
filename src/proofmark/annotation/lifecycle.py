"""
Lifecycle Controller

負責使用者對修正項目的操作，以及「編輯覆蓋標註」時的確認流程。

狀態機（每個項目）:
    Pending → Accepted | Ignored
    Accepted → Pending（還原：範圍文字仍等於建議文字時換回原文，否則只清除標籤）
    Ignored → Pending（只清除標籤）
    任何狀態 → Removed（編輯覆蓋範圍且使用者確認移除）

accept/undo 的文字變更與 Store 狀態變更放在同一個 transaction，
並以 undoable metadata 登記到 History，讓 undo/redo 把兩者視為同一步。
這些都是內部編輯，不會觸發確認流程。
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Union

from proofmark.config import AnnotationConfig
from proofmark.core.errors import (
    ConflictResolutionError,
    InvalidTransitionError,
)
from proofmark.core.events import AnnotationEventHandler, emit_event
from proofmark.core.protocols.confirmation import ConfirmationPrompt
from proofmark.document.history import History, HistoryEntry
from proofmark.document.session import EditorSession
from proofmark.document.transaction import EditKind, Transaction
from proofmark.utils.logger import get_logger

from .store import CorrectionStore, RemovalCandidates, Upsert
from .types import AcceptedSnapshot, CorrectionItem, ResultTag

ItemRef = Union[CorrectionItem, str]


@dataclass(frozen=True)
class RemovalConflict:
    """
    一次編輯與標註的衝突

    屬性:
        conflict_id: 衝突識別碼（同 RemovalCandidates.conflict_id）
        items: 失效項目在編輯前的快照
        edit_kind: 造成衝突的編輯類型
        history_entry: 造成衝突的那一步 History 紀錄（取消時用來確認它仍是最新一步）
    """

    conflict_id: str
    items: tuple
    edit_kind: EditKind
    history_entry: Optional[HistoryEntry]

    @property
    def ids(self) -> List[str]:
        return [item.id for item in self.items]

    @property
    def reverse_operation(self) -> str:
        """取消時要執行的反向操作：由 undo 造成的衝突以 redo 反轉，其餘以 undo 反轉"""
        return "redo" if self.edit_kind is EditKind.UNDO else "undo"


class LifecycleController:
    """
    修正項目生命週期控制器

    使用範例:
        >>> controller = LifecycleController(session, store, history, prompt=show_dialog)
        >>> controller.accept(item_id)
        >>> controller.undo(item_id)
    """

    def __init__(
        self,
        session: EditorSession,
        store: CorrectionStore,
        history: History,
        *,
        prompt: Optional[ConfirmationPrompt] = None,
        config: Optional[AnnotationConfig] = None,
        on_event: Optional[AnnotationEventHandler] = None,
    ):
        self._session = session
        self._store = store
        self._history = history
        self._prompt = prompt
        self._config = config or AnnotationConfig()
        self._on_event = on_event
        self._conflicts: Dict[str, RemovalConflict] = {}
        self._generation = store.generation
        self._logger = get_logger("annotation.lifecycle")

        store.on_removal_candidates(self._on_candidates)
        session.subscribe(self._on_transaction)

    def set_prompt(self, prompt: Optional[ConfirmationPrompt]) -> None:
        self._prompt = prompt

    def _resolve(self, item: ItemRef) -> CorrectionItem:
        correction_id = item if isinstance(item, str) else item.id
        return self._store.get(correction_id)

    def _upsert(self, item: CorrectionItem) -> Upsert:
        return Upsert((item,), self._store.generation)

    # =========================================================================
    # 使用者操作
    # =========================================================================

    def accept(self, item: ItemRef) -> CorrectionItem:
        """
        以預設建議取代項目範圍

        在同一個 transaction 中：
        - 把 [from_, to) 換成建議文字
        - 更新項目範圍為 [from_, from_ + len(建議))、標記為 Accepted、記錄快照

        Raises:
            UnknownCorrectionError: id 不存在
            InvalidTransitionError: 項目不是待處理狀態或沒有建議
        """
        current = self._resolve(item)
        if current.result is not None:
            raise InvalidTransitionError(f"Cannot accept correction in state {current.result.value}")
        primary = current.primary
        if primary is None:
            raise InvalidTransitionError(f"Correction {current.id} has no suggestion")

        doc = self._session.doc
        original_text = doc.text_between(current.from_, current.to)
        new_text = primary.replacement_text
        accepted = current.replace(
            to=current.from_ + len(new_text),
            result=ResultTag.ACCEPTED,
            accepted_snapshot=AcceptedSnapshot(original_text=original_text, new_text=new_text),
        )

        tr = self._session.transaction()
        tr.replace_with_text(current.from_, current.to, new_text)
        tr.set_meta(self._store.key, self._upsert(accepted))
        tr.set_undoable_meta(self._store.key, forward=self._upsert(accepted), backward=self._upsert(current))
        tr.set_edit_kind(EditKind.USER, internal=True)
        self._session.dispatch(tr)

        self._logger.info(f"[接受修正] '{original_text}' -> '{new_text}'")
        return self._store.get(current.id)

    def ignore(self, item: ItemRef) -> CorrectionItem:
        """標記為忽略（純狀態變更）；對已忽略的項目是 no-op"""
        current = self._resolve(item)
        if current.result is ResultTag.IGNORED:
            return current
        if current.result is not None:
            raise InvalidTransitionError(f"Cannot ignore correction in state {current.result.value}")

        ignored = current.replace(result=ResultTag.IGNORED)
        tr = self._session.transaction().set_meta(self._store.key, self._upsert(ignored))
        tr.set_edit_kind(EditKind.USER, internal=True)
        self._session.dispatch(tr)

        self._logger.debug(f"Ignored correction {current.id}")
        return self._store.get(current.id)

    def undo(self, item: ItemRef) -> CorrectionItem:
        """
        還原項目的接受/忽略

        - Ignored：清除標籤
        - Accepted 且範圍文字仍等於建議文字：換回原文並還原範圍長度
        - Accepted 但文字已被改動：只清除標籤，範圍維持目前位置
        """
        current = self._resolve(item)
        if current.result is None:
            raise InvalidTransitionError(f"Correction {current.id} is pending, nothing to undo")

        tr = self._session.transaction()
        if current.result is ResultTag.IGNORED:
            restored = current.replace(result=None)
        else:
            snapshot = current.accepted_snapshot
            span_text = self._session.doc.text_between(current.from_, current.to)
            if snapshot is not None and span_text == snapshot.new_text:
                restored = current.replace(
                    to=current.from_ + len(snapshot.original_text),
                    result=None,
                    accepted_snapshot=None,
                )
                tr.replace_with_text(current.from_, current.to, snapshot.original_text)
                tr.set_undoable_meta(self._store.key, forward=self._upsert(restored), backward=self._upsert(current))
            else:
                self._logger.info(f"Correction {current.id} text drifted, clearing tag only")
                emit_event(
                    self._on_event,
                    {"type": "warning", "reason": "span_drift", "ids": [current.id], "source": span_text},
                    self._logger,
                )
                restored = current.replace(result=None, accepted_snapshot=None)

        tr.set_meta(self._store.key, self._upsert(restored))
        tr.set_edit_kind(EditKind.USER, internal=True)
        self._session.dispatch(tr)
        return self._store.get(current.id)

    # =========================================================================
    # 編輯衝突確認流程
    # =========================================================================

    @property
    def pending_conflicts(self) -> List[RemovalConflict]:
        return list(self._conflicts.values())

    def get_conflict(self, conflict_id: str) -> RemovalConflict:
        try:
            return self._conflicts[conflict_id]
        except KeyError:
            raise ConflictResolutionError(f"Unknown conflict {conflict_id!r}") from None

    def _on_transaction(self, tr: Transaction) -> None:
        """新的分析清空 Store 後，前一輪尚未解決的衝突一律作廢"""
        if self._store.generation == self._generation:
            return
        self._generation = self._store.generation
        stale, self._conflicts = list(self._conflicts.values()), {}
        for conflict in stale:
            self._logger.info(f"Discarded conflict {conflict.conflict_id} after store reset")
            self._emit_resolved(conflict, "discarded")

    def _on_candidates(self, removal: RemovalCandidates) -> None:
        if removal.edit_kind is EditKind.UNDO:
            entry = self._history.peek_undone()
        else:
            entry = self._history.peek_done()

        conflict = RemovalConflict(
            conflict_id=removal.conflict_id,
            items=removal.items,
            edit_kind=removal.edit_kind,
            history_entry=entry,
        )
        self._conflicts[conflict.conflict_id] = conflict
        emit_event(
            self._on_event,
            {
                "type": "removal_candidates",
                "conflict_id": conflict.conflict_id,
                "ids": conflict.ids,
                "edit_kind": conflict.edit_kind.value,
            },
            self._logger,
        )

        if self._config.auto_confirm:
            self.confirm_removal(conflict.conflict_id)
        elif self._prompt is not None:
            self._prompt(conflict)
        else:
            self._logger.debug(f"Conflict {conflict.conflict_id} waiting for resolution")

    def confirm_removal(self, conflict_id: str) -> List[str]:
        """確認移除：項目從 Store 永久刪除"""
        conflict = self.get_conflict(conflict_id)
        del self._conflicts[conflict_id]
        self._store.drop_candidates(conflict_id)

        self._logger.info(f"Removed corrections {conflict.ids}")
        self._emit_resolved(conflict, "confirm")
        return conflict.ids

    def cancel_removal(self, conflict_id: str) -> List[str]:
        """
        取消移除：反轉造成衝突的編輯，再把項目放回 Store

        Raises:
            ConflictResolutionError: 衝突不存在、候選項目已不在 Store（衝突作廢），
                或造成衝突的編輯已不是最新一步（衝突維持開啟）
        """
        conflict = self.get_conflict(conflict_id)
        if conflict_id not in self._store.candidates:
            del self._conflicts[conflict_id]
            raise ConflictResolutionError(f"Corrections behind conflict {conflict_id!r} are no longer held")

        if conflict.reverse_operation == "redo":
            latest = self._history.peek_undone()
        else:
            latest = self._history.peek_done()

        if conflict.history_entry is None or latest is not conflict.history_entry:
            raise ConflictResolutionError(
                f"Edit behind conflict {conflict_id!r} is no longer the latest history step"
            )

        if conflict.reverse_operation == "redo":
            self._history.redo(internal=True)
        else:
            self._history.undo(internal=True)

        del self._conflicts[conflict_id]
        self._store.restore_candidates(conflict_id)

        self._logger.info(f"Reverted edit ({conflict.reverse_operation}), restored corrections {conflict.ids}")
        self._emit_resolved(conflict, "cancel")
        return conflict.ids

    def _emit_resolved(self, conflict: RemovalConflict, resolution: str) -> None:
        emit_event(
            self._on_event,
            {
                "type": "conflict_resolved",
                "conflict_id": conflict.conflict_id,
                "ids": conflict.ids,
                "resolution": resolution,
                "edit_kind": conflict.edit_kind.value,
            },
            self._logger,
        )
