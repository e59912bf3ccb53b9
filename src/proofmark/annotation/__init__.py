"""
修正標註層

把外部分析服務回報的問題以 overlay 標示在結構化文件上，
並在使用者編輯、接受、忽略、undo/redo 之間維持標註與文字一致。
"""

from .lifecycle import LifecycleController, RemovalConflict
from .overlay import Overlay, render_overlays
from .projector import addressable_length, project
from .remapper import RemapResult, remap_items
from .store import CorrectionState, CorrectionStore, RemovalCandidates, reduce
from .translator import PositionTranslator
from .traversal import LeafEvent, LeafKind, iter_leaves
from .types import AcceptedSnapshot, CorrectionItem, ResultTag, Suggestion, SuggestionClass

__all__ = [
    # 型別
    "CorrectionItem",
    "Suggestion",
    "SuggestionClass",
    "ResultTag",
    "AcceptedSnapshot",
    # 走訪 / 投影 / 轉換
    "LeafKind",
    "LeafEvent",
    "iter_leaves",
    "project",
    "addressable_length",
    "PositionTranslator",
    # 狀態
    "RemapResult",
    "remap_items",
    "CorrectionState",
    "CorrectionStore",
    "RemovalCandidates",
    "reduce",
    "Overlay",
    "render_overlays",
    # 生命週期
    "LifecycleController",
    "RemovalConflict",
]
