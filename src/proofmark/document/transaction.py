"""
Transaction：一次原子編輯

一個 Transaction 由多個 ReplaceStep 組成，並攜帶 metadata：
- edit_kind: 這次編輯的來源（使用者直接編輯 / undo / redo）
- internal: 是否為引擎自身的編輯（接受、復原修正等），內部編輯不觸發確認流程
- 各 plugin 以自己的 key 放入的動作 (action)
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .model import Node
from .steps import Mapping, ReplaceStep

META_EDIT_KIND = "edit_kind"
META_INTERNAL = "internal"
META_ADD_TO_HISTORY = "add_to_history"
META_HISTORY_ORIGIN = "history_origin"


class EditKind(str, Enum):
    USER = "user"
    UNDO = "undo"
    REDO = "redo"


class Transaction:
    """
    原子編輯建立器

    使用範例:
        >>> tr = session.transaction()
        >>> tr.insert_text(1, "Hello ").set_meta("correction", action)
        >>> session.dispatch(tr)
    """

    def __init__(self, doc: Node, selection: Optional[int] = None):
        self.before = doc
        self.doc = doc
        self.steps: List[ReplaceStep] = []
        self.docs: List[Node] = []
        self.mapping = Mapping()
        self.selection = selection
        self.selection_set = False
        self.scrolled_into_view = False
        self._meta: Dict[str, Any] = {}
        self._undoable: Dict[str, Tuple[Any, Any]] = {}

    # =========================================================================
    # 編輯
    # =========================================================================

    @property
    def doc_changed(self) -> bool:
        return bool(self.steps)

    def step(self, step: ReplaceStep) -> "Transaction":
        new_doc = step.apply(self.doc)
        self.docs.append(self.doc)
        self.steps.append(step)
        step_map = step.get_map()
        self.mapping.append_map(step_map)
        self.doc = new_doc
        if self.selection is not None:
            self.selection = min(step_map.map(self.selection), new_doc.content_size)
        return self

    def replace(self, from_: int, to: int, content: Iterable[Node] = ()) -> "Transaction":
        content = tuple(content)
        if from_ == to and not content:
            return self
        return self.step(ReplaceStep(from_, to, content))

    def insert(self, pos: int, content: Iterable[Node]) -> "Transaction":
        return self.replace(pos, pos, content)

    def delete(self, from_: int, to: int) -> "Transaction":
        return self.replace(from_, to)

    def insert_text(self, pos: int, text: str, marks: Optional[Iterable[str]] = None) -> "Transaction":
        return self.replace_with_text(pos, pos, text, marks)

    def replace_with_text(
        self,
        from_: int,
        to: int,
        text: str,
        marks: Optional[Iterable[str]] = None,
    ) -> "Transaction":
        """以純文字取代範圍；未指定 marks 時繼承 from_ 處文字的 marks"""
        if marks is None:
            marks = self.doc.marks_at(from_)
        content = (Node.text_node(text, marks),) if text else ()
        return self.replace(from_, to, content)

    # =========================================================================
    # Metadata
    # =========================================================================

    def set_meta(self, key: str, value: Any) -> "Transaction":
        self._meta[key] = value
        return self

    def get_meta(self, key: str, default: Any = None) -> Any:
        return self._meta.get(key, default)

    def set_edit_kind(self, kind: EditKind, internal: bool = False) -> "Transaction":
        self._meta[META_EDIT_KIND] = kind
        self._meta[META_INTERNAL] = internal
        return self

    @property
    def edit_kind(self) -> EditKind:
        return self._meta.get(META_EDIT_KIND, EditKind.USER)

    @property
    def is_internal(self) -> bool:
        return bool(self._meta.get(META_INTERNAL, False))

    def set_undoable_meta(self, key: str, forward: Any, backward: Any) -> "Transaction":
        """
        宣告可隨 undo/redo 重播的 plugin 狀態變更

        History 在 undo 時把 backward 放進 meta[key]，redo 時放 forward，
        讓文字變更與 plugin 狀態變更成為同一個不可分割的步驟。
        """
        self._undoable[key] = (forward, backward)
        return self

    @property
    def undoable_meta(self) -> Dict[str, Tuple[Any, Any]]:
        return dict(self._undoable)

    # =========================================================================
    # 選取與捲動
    # =========================================================================

    def set_selection(self, pos: int) -> "Transaction":
        self.doc.check_position(pos)
        self.selection = pos
        self.selection_set = True
        return self

    def scroll_into_view(self) -> "Transaction":
        self.scrolled_into_view = True
        return self

    def __repr__(self) -> str:
        return (
            f"Transaction(steps={len(self.steps)}, kind={self.edit_kind.value}, "
            f"internal={self.is_internal}, meta={sorted(self._meta)})"
        )
