"""
Correction Store

修正標註的權威狀態：id → 項目、目前選取的 id、點擊回呼、衍生的 overlay 集合，
以及等待使用者確認的移除候選。

狀態只透過純函數 reduce(state, action, tr) 轉移，action 是帶標籤的變體：
Add / Remove / Clear / SetActive / SetClickHandler / Upsert / DropCandidates / RestoreCandidates。
每個 transaction 都先跑 Mutation（Remapper），再解讀 transaction 自己攜帶的 action。

CorrectionStore 是 EditorSession 的 plugin，持有狀態並提供指令介面；
每個指令都是一次原子的文件層級操作（一個 transaction）。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import (
    TYPE_CHECKING,
    AbstractSet,
    Callable,
    Dict,
    Iterable,
    List,
    Mapping,
    Optional,
    Tuple,
    Union,
)

from proofmark.core.errors import UnknownCorrectionError
from proofmark.document.session import Plugin
from proofmark.document.transaction import EditKind, Transaction
from proofmark.utils.ids import generate_id
from proofmark.utils.logger import TimingContext, get_logger

from .constants import DEFAULT_CODE_TYPES
from .overlay import Overlay, render_overlays
from .remapper import remap_items
from .types import CorrectionItem

if TYPE_CHECKING:
    from proofmark.document.session import EditorSession

ClickHandler = Callable[[str], None]
CandidatesListener = Callable[["RemovalCandidates"], None]

_logger = get_logger("annotation.store")


# =============================================================================
# Actions
# =============================================================================


@dataclass(frozen=True)
class Add:
    items: Tuple[CorrectionItem, ...]


@dataclass(frozen=True)
class Remove:
    id: str


@dataclass(frozen=True)
class Clear:
    pass


@dataclass(frozen=True)
class SetActive:
    id: Optional[str]


@dataclass(frozen=True)
class SetClickHandler:
    handler: Optional[ClickHandler]


@dataclass(frozen=True)
class Upsert:
    """
    生命週期控制器寫回單一或多個項目的新狀態

    generation 記錄寫入時的分析世代；History 重播時若 Store 已被新的分析清空，
    這筆寫入會被丟棄。None 表示不檢查。
    """

    items: Tuple[CorrectionItem, ...]
    generation: Optional[int] = None


@dataclass(frozen=True)
class DropCandidates:
    conflict_id: str


@dataclass(frozen=True)
class RestoreCandidates:
    conflict_id: str


CorrectionAction = Union[Add, Remove, Clear, SetActive, SetClickHandler, Upsert, DropCandidates, RestoreCandidates]


# =============================================================================
# State
# =============================================================================


@dataclass(frozen=True)
class RemovalCandidates:
    """一次互動式編輯所造成、等待確認的失效項目（保留編輯前的快照）"""

    conflict_id: str
    items: Tuple[CorrectionItem, ...]
    edit_kind: EditKind

    @property
    def ids(self) -> List[str]:
        return [item.id for item in self.items]


@dataclass(frozen=True)
class CorrectionState:
    items: Mapping[str, CorrectionItem] = field(default_factory=dict)
    active_id: Optional[str] = None
    click_handler: Optional[ClickHandler] = None
    overlays: Tuple[Overlay, ...] = ()
    candidates: Mapping[str, RemovalCandidates] = field(default_factory=dict)
    generation: int = 0


# =============================================================================
# Reducer
# =============================================================================


def reduce(
    state: CorrectionState,
    action: Optional[CorrectionAction],
    tr: Transaction,
    code_types: AbstractSet[str] = DEFAULT_CODE_TYPES,
) -> CorrectionState:
    """
    狀態轉移函數

    1. Mutation：以 Remapper 映射/剔除受編輯影響的項目
    2. 解讀 transaction 自身攜帶的 action
    3. 剩餘的失效項目：內部編輯直接移除；互動式編輯轉為移除候選
    4. 以存活項目重建 overlay
    """
    remapped = remap_items(state.items, tr)
    items: Dict[str, CorrectionItem] = remapped.items
    candidates: Dict[str, RemovalCandidates] = dict(state.candidates)
    invalidated = list(remapped.invalidated)
    active_id = state.active_id
    click_handler = state.click_handler
    generation = state.generation

    if isinstance(action, Clear):
        return CorrectionState(click_handler=click_handler, generation=generation + 1)

    if isinstance(action, Upsert) and action.generation is not None and action.generation != generation:
        _logger.debug(
            f"Discarding upsert of {[item.id for item in action.items]} from generation {action.generation}"
        )
        action = None

    if isinstance(action, (Add, Upsert)):
        for item in action.items:
            if not item.is_mapped:
                _logger.warning(f"Skipping unmapped correction {item.id}")
                continue
            items[item.id] = item
        written = {item.id for item in action.items}
        invalidated = [item for item in invalidated if item.id not in written]
    elif isinstance(action, Remove):
        items.pop(action.id, None)
        if active_id == action.id:
            active_id = None
    elif isinstance(action, SetActive):
        if action.id is None or action.id in items:
            active_id = action.id
        else:
            _logger.debug(f"Ignoring activation of unknown correction {action.id}")
    elif isinstance(action, SetClickHandler):
        click_handler = action.handler
    elif isinstance(action, DropCandidates):
        dropped = candidates.pop(action.conflict_id, None)
        if dropped is not None:
            _logger.debug(f"Dropped removal candidates {dropped.ids}")
    elif isinstance(action, RestoreCandidates):
        restored = candidates.pop(action.conflict_id, None)
        if restored is not None:
            for item in restored.items:
                items[item.id] = item

    if invalidated:
        if tr.is_internal:
            _logger.debug(f"Internal edit removed {[item.id for item in invalidated]}")
        else:
            conflict_id = generate_id()
            candidates[conflict_id] = RemovalCandidates(
                conflict_id=conflict_id,
                items=tuple(invalidated),
                edit_kind=tr.edit_kind,
            )

    if active_id is not None and active_id not in items:
        active_id = None

    return CorrectionState(
        items=items,
        active_id=active_id,
        click_handler=click_handler,
        overlays=render_overlays(items.values(), active_id, tr.doc, code_types),
        candidates=candidates,
        generation=generation,
    )


# =============================================================================
# Plugin
# =============================================================================


class CorrectionStore(Plugin):
    """
    修正標註 Store (session plugin)

    使用範例:
        >>> store = CorrectionStore()
        >>> session = EditorSession(doc, plugins=[store, History()])
        >>> store.add(items)
        >>> store.set_active(items[0].id)
    """

    key = "correction"

    def __init__(
        self,
        code_types: AbstractSet[str] = DEFAULT_CODE_TYPES,
        on_timing: Optional[Callable[[str, float], None]] = None,
    ):
        self.code_types = frozenset(code_types)
        self.state = CorrectionState()
        self._session: Optional["EditorSession"] = None
        self._timing_callback = on_timing
        self._candidate_listeners: List[CandidatesListener] = []
        self._new_candidates: List[RemovalCandidates] = []
        self._logger = get_logger("annotation.store")

    def init(self, session: "EditorSession") -> None:
        self._session = session
        session.subscribe(self._flush_candidates)

    def apply(self, tr: Transaction) -> None:
        action = tr.get_meta(self.key)
        if action is None and not tr.doc_changed:
            return

        before = self.state.candidates
        with TimingContext("CorrectionStore.apply", self._logger, logging.DEBUG, self._timing_callback):
            self.state = reduce(self.state, action, tr, self.code_types)

        for conflict_id, removal in self.state.candidates.items():
            if conflict_id not in before:
                self._new_candidates.append(removal)

    def on_removal_candidates(self, listener: CandidatesListener) -> Callable[[], None]:
        """註冊移除候選監聽者（在 dispatch 完成後呼叫）"""
        self._candidate_listeners.append(listener)
        return lambda: self._candidate_listeners.remove(listener)

    def _flush_candidates(self, tr: Transaction) -> None:
        pending, self._new_candidates = self._new_candidates, []
        for removal in pending:
            self._logger.info(
                f"Edit ({removal.edit_kind.value}) touched corrections {removal.ids}, awaiting confirmation"
            )
            for listener in list(self._candidate_listeners):
                listener(removal)

    # =========================================================================
    # 查詢
    # =========================================================================

    @property
    def items(self) -> List[CorrectionItem]:
        return list(self.state.items.values())

    @property
    def active_id(self) -> Optional[str]:
        return self.state.active_id

    @property
    def overlays(self) -> Tuple[Overlay, ...]:
        return self.state.overlays

    @property
    def generation(self) -> int:
        return self.state.generation

    @property
    def candidates(self) -> Mapping[str, RemovalCandidates]:
        return self.state.candidates

    def get(self, correction_id: str) -> CorrectionItem:
        try:
            return self.state.items[correction_id]
        except KeyError:
            raise UnknownCorrectionError(correction_id) from None

    def __contains__(self, correction_id: str) -> bool:
        return correction_id in self.state.items

    def __len__(self) -> int:
        return len(self.state.items)

    # =========================================================================
    # 指令
    # =========================================================================

    def _dispatch_action(self, action: CorrectionAction) -> None:
        tr = self._session.transaction().set_meta(self.key, action)
        self._session.dispatch(tr)

    def add(self, items: Iterable[CorrectionItem]) -> None:
        self._dispatch_action(Add(tuple(items)))

    def remove(self, correction_id: str) -> None:
        self._dispatch_action(Remove(correction_id))

    def clear(self) -> None:
        self._dispatch_action(Clear())

    def set_active(self, correction_id: Optional[str]) -> None:
        self._dispatch_action(SetActive(correction_id))

    def set_click_handler(self, handler: Optional[ClickHandler]) -> None:
        self._dispatch_action(SetClickHandler(handler))

    def drop_candidates(self, conflict_id: str) -> None:
        self._dispatch_action(DropCandidates(conflict_id))

    def restore_candidates(self, conflict_id: str) -> None:
        self._dispatch_action(RestoreCandidates(conflict_id))

    def scroll_to(self, correction_id: str) -> bool:
        """把選取移到項目目前映射後的起點並要求捲動"""
        item = self.state.items.get(correction_id)
        if item is None or item.from_ is None:
            return False
        doc = self._session.doc
        safe_pos = min(max(0, item.from_), doc.content_size)
        tr = self._session.transaction().set_selection(safe_pos).scroll_into_view()
        self._session.dispatch(tr)
        return True

    def click(self, pos: int) -> bool:
        """點擊位置落在 overlay 上時呼叫點擊回呼"""
        handler = self.state.click_handler
        if handler is None:
            return False
        for overlay in self.state.overlays:
            if overlay.contains(pos):
                handler(overlay.correction_id)
                return True
        return False
