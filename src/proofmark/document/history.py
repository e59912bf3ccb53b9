"""
線性 undo/redo 紀錄

每個改變文件的 transaction（除非 meta add_to_history=False）都會被記錄成 HistoryEntry，
包含正向步驟、反向步驟與可重播的 plugin metadata。

由於紀錄是嚴格後進先出，undo 時文件必定與該 transaction 套用後的狀態相同，
反向步驟可以直接套用，不需要額外的位置映射。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple

from proofmark.utils.logger import get_logger

from .session import Plugin
from .steps import ReplaceStep
from .transaction import META_ADD_TO_HISTORY, META_HISTORY_ORIGIN, EditKind, Transaction

if TYPE_CHECKING:
    from .session import EditorSession


@dataclass(frozen=True, eq=False)
class HistoryEntry:
    steps: Tuple[ReplaceStep, ...]
    inverted: Tuple[ReplaceStep, ...]
    undoable: Dict[str, Tuple[Any, Any]] = field(default_factory=dict)

    @classmethod
    def from_transaction(cls, tr: Transaction) -> "HistoryEntry":
        inverted = [step.invert(doc) for step, doc in zip(tr.steps, tr.docs)]
        inverted.reverse()
        return cls(
            steps=tuple(tr.steps),
            inverted=tuple(inverted),
            undoable=tr.undoable_meta,
        )


class History(Plugin):
    key = "history"

    def __init__(self, depth: int = 100):
        self.depth = depth
        self.done: List[HistoryEntry] = []
        self.undone: List[HistoryEntry] = []
        self._session: Optional["EditorSession"] = None
        self._logger = get_logger("document.history")

    def init(self, session: "EditorSession") -> None:
        self._session = session

    def apply(self, tr: Transaction) -> None:
        origin = tr.get_meta(META_HISTORY_ORIGIN)
        if origin is not None:
            entry = origin[1]
            if origin[0] == "undo":
                self.done.pop()
                self.undone.append(entry)
            else:
                self.undone.pop()
                self.done.append(entry)
            return

        if not tr.doc_changed:
            return

        if tr.get_meta(META_ADD_TO_HISTORY) is False:
            # 未記錄的變更會讓後續反向步驟失效
            self._logger.debug("Untracked document change, history cleared")
            self.done.clear()
            self.undone.clear()
            return

        self.done.append(HistoryEntry.from_transaction(tr))
        if len(self.done) > self.depth:
            del self.done[0]
        self.undone.clear()

    # =========================================================================
    # 查詢
    # =========================================================================

    @property
    def can_undo(self) -> bool:
        return bool(self.done)

    @property
    def can_redo(self) -> bool:
        return bool(self.undone)

    def peek_done(self) -> Optional[HistoryEntry]:
        return self.done[-1] if self.done else None

    def peek_undone(self) -> Optional[HistoryEntry]:
        return self.undone[-1] if self.undone else None

    # =========================================================================
    # Undo / Redo
    # =========================================================================

    def undo(self, internal: bool = False) -> bool:
        """
        撤銷最近一次編輯

        Args:
            internal: 是否為引擎自身發起（例如取消衝突時的反向操作）

        Returns:
            bool: 是否有可撤銷的編輯
        """
        if not self.done:
            return False
        entry = self.done[-1]
        tr = self._session.transaction()
        for step in entry.inverted:
            tr.step(step)
        for key, (_, backward) in entry.undoable.items():
            tr.set_meta(key, backward)
        tr.set_meta(META_HISTORY_ORIGIN, ("undo", entry))
        tr.set_edit_kind(EditKind.UNDO, internal=internal)
        self._session.dispatch(tr)
        return True

    def redo(self, internal: bool = False) -> bool:
        """重做最近一次被撤銷的編輯"""
        if not self.undone:
            return False
        entry = self.undone[-1]
        tr = self._session.transaction()
        for step in entry.steps:
            tr.step(step)
        for key, (forward, _) in entry.undoable.items():
            tr.set_meta(key, forward)
        tr.set_meta(META_HISTORY_ORIGIN, ("redo", entry))
        tr.set_edit_kind(EditKind.REDO, internal=internal)
        self._session.dispatch(tr)
        return True
