"""
事件模型（Event Model）

引擎本身不直接輸出到 stdout。
若需要取得「這次串流收到哪些批次」、「哪些修正被編輯覆蓋」等資訊，請使用事件回呼（event handler）。

設計原則：
- 可恢復的問題（找不到句子、格式錯誤）降級處理，但一定發出 warning 事件
- 回呼本身拋出的例外只記錄日誌，不影響編輯流程
"""

from __future__ import annotations

import logging
from typing import Callable, List, Literal, Optional, TypedDict


class AnnotationEvent(TypedDict, total=False):
    type: Literal[
        "progress",
        "batch",
        "warning",
        "stale_batch",
        "removal_candidates",
        "conflict_resolved",
        "error",
        "complete",
    ]
    trace_id: str

    # progress
    current: int
    total: int

    # batch / removal_candidates / conflict_resolved
    ids: List[str]
    conflict_id: str
    resolution: Literal["confirm", "cancel", "discarded"]
    edit_kind: str

    # warning / error
    reason: Literal["malformed_record", "source_not_found", "offset_clamped", "span_drift"]
    source: str
    exception_type: str
    exception_message: str


AnnotationEventHandler = Callable[[AnnotationEvent], None]


def emit_event(
    handler: Optional[AnnotationEventHandler],
    event: AnnotationEvent,
    logger: logging.Logger,
) -> None:
    """呼叫事件回呼；回呼失敗只記錄日誌"""
    if handler is None:
        return
    try:
        handler(event)
    except Exception:
        logger.exception("on_event 回呼執行失敗")
