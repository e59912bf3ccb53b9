"""
Streaming Ingestion Adapter

把修正服務的換行分隔事件串流轉成 CorrectionItem 批次。

回應紀錄格式（只處理 event == "progress" 且帶 result 的紀錄）:
    {"event": "progress", "line_index": 0, "total_lines": 2,
     "result": {"source": "I has a cat.",
                "errors": [{"position": 2, "end_position": 5, "original": "has",
                            "corrected": "have", "error_type": "typo", "explanation": ""}]}}

position/end_position 是相對於 source 句子的 offset。Adapter 以單調前進的游標
在請求文字中尋找 source，得到含換行的絕對 offset，再扣掉端點之前的換行數，
落在 canonical offset 空間（只計文字字元）。
"""

from __future__ import annotations

import json
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional

from proofmark.annotation.projector import project
from proofmark.annotation.store import CorrectionStore
from proofmark.annotation.translator import PositionTranslator
from proofmark.annotation.types import CorrectionItem, Suggestion, SuggestionClass
from proofmark.core.errors import StreamTransportError
from proofmark.core.events import AnnotationEventHandler, emit_event
from proofmark.core.protocols.transport import StreamTransportProtocol
from proofmark.document.session import EditorSession
from proofmark.utils.ids import generate_id, generate_trace_id
from proofmark.utils.logger import get_logger

ProgressCallback = Callable[[int, int], None]
DataCallback = Callable[[List[CorrectionItem]], None]
ErrorCallback = Callable[[Exception], None]
CompleteCallback = Callable[[], None]

DATA_PREFIX = "data:"


class MalformedRecordError(ValueError):
    """無法解讀的串流紀錄（只在 Adapter 內部使用，不會拋出到呼叫端）"""


def parse_record(line: str) -> Optional[Dict[str, Any]]:
    """
    解析一行串流紀錄

    Returns:
        dict: 解析後的紀錄；空白行回傳 None

    Raises:
        MalformedRecordError: 不是 JSON 物件
    """
    line = line.strip()
    if not line:
        return None
    if line.startswith(DATA_PREFIX):
        line = line[len(DATA_PREFIX):].strip()
    try:
        record = json.loads(line)
    except json.JSONDecodeError as e:
        raise MalformedRecordError(str(e)) from e
    if not isinstance(record, dict):
        raise MalformedRecordError(f"Expected JSON object, got {type(record).__name__}")
    return record


class CorrectionStreamAdapter:
    """
    串流紀錄 → 修正項目批次

    產生的項目只帶 source_offsets（canonical 座標），
    位置轉換由呼叫端在「處理批次當下」的文件上進行。
    """

    def __init__(self, on_event: Optional[AnnotationEventHandler] = None):
        self._on_event = on_event
        self._logger = get_logger("service.ingestion")

    def iter_batches(
        self,
        canonical_text: str,
        chunks: Iterable[str],
        on_progress: Optional[ProgressCallback] = None,
        trace_id: Optional[str] = None,
    ) -> Iterator[List[CorrectionItem]]:
        """
        逐個網路 chunk 產生批次（沒有項目的 chunk 不產生批次）

        Args:
            canonical_text: 送出分析的請求文字
            chunks: transport 產生的文字 chunk
            on_progress: 進度回呼 (line_index + 1, total_lines)
            trace_id: 事件關聯用的識別碼
        """
        trace_id = trace_id or generate_trace_id()
        buffer = ""
        cursor = 0

        for chunk in chunks:
            buffer += chunk
            lines = buffer.split("\n")
            buffer = lines.pop()

            batch: List[CorrectionItem] = []
            for line in lines:
                cursor = self._process_line(line, canonical_text, cursor, batch, on_progress, trace_id)
            if batch:
                yield batch

        if buffer.strip():
            batch = []
            self._process_line(buffer, canonical_text, cursor, batch, on_progress, trace_id)
            if batch:
                yield batch

    def _process_line(
        self,
        line: str,
        canonical_text: str,
        cursor: int,
        batch: List[CorrectionItem],
        on_progress: Optional[ProgressCallback],
        trace_id: str,
    ) -> int:
        try:
            record = parse_record(line)
        except MalformedRecordError as e:
            self._warn("malformed_record", f"Failed to parse record: {e}", trace_id, source=line)
            return cursor
        if record is None or record.get("event") != "progress" or not record.get("result"):
            return cursor

        line_index = record.get("line_index")
        total_lines = record.get("total_lines")
        if isinstance(line_index, int) and isinstance(total_lines, int):
            self._report_progress(line_index + 1, total_lines, on_progress, trace_id)

        result = record["result"]
        source = result.get("source") if isinstance(result, dict) else None
        if not isinstance(source, str) or not source:
            self._warn("malformed_record", "Progress record without source sentence", trace_id, source=line)
            return cursor

        start = canonical_text.find(source, cursor)
        if start == -1:
            self._warn("source_not_found", f"Could not find source text: {source!r}", trace_id, source=source)
            return cursor

        errors = result.get("errors") or []
        if not isinstance(errors, list):
            self._warn("malformed_record", "errors is not a list", trace_id, source=source)
            errors = []
        for error in errors:
            item = self._build_item(error, source, start, canonical_text, trace_id)
            if item is not None:
                batch.append(item)
        return start + len(source)

    def _build_item(
        self,
        error: Any,
        source: str,
        sentence_start: int,
        canonical_text: str,
        trace_id: str,
    ) -> Optional[CorrectionItem]:
        try:
            position = int(error["position"])
            end_position = int(error["end_position"])
        except (TypeError, KeyError, ValueError):
            self._warn("malformed_record", f"Invalid error entry: {error!r}", trace_id, source=source)
            return None

        clamped_start = min(max(position, 0), len(source))
        clamped_end = min(max(end_position, clamped_start), len(source))
        if (clamped_start, clamped_end) != (position, end_position):
            self._warn(
                "offset_clamped",
                f"Offsets ({position}, {end_position}) outside source sentence, clamped",
                trace_id,
                source=source,
            )

        global_start = sentence_start + clamped_start
        global_end = sentence_start + clamped_end
        offsets = (
            global_start - canonical_text.count("\n", 0, global_start),
            global_end - canonical_text.count("\n", 0, global_end),
        )

        suggestion = Suggestion(
            replacement_text=error.get("corrected") or "",
            suggestion_class=SuggestionClass.from_error_type(error.get("error_type")),
            explanation=error.get("explanation") or "",
        )
        return CorrectionItem(
            id=generate_id(),
            source_offsets=offsets,
            misspelled_word=error.get("original") or "",
            suggestions=(suggestion,),
        )

    def _report_progress(
        self,
        current: int,
        total: int,
        on_progress: Optional[ProgressCallback],
        trace_id: str,
    ) -> None:
        if on_progress is not None:
            on_progress(current, total)
        emit_event(
            self._on_event,
            {"type": "progress", "trace_id": trace_id, "current": current, "total": total},
            self._logger,
        )

    def _warn(self, reason: str, message: str, trace_id: str, source: str = "") -> None:
        self._logger.warning(message)
        emit_event(
            self._on_event,
            {"type": "warning", "trace_id": trace_id, "reason": reason, "source": source},
            self._logger,
        )


class AnalysisRun:
    """
    一次完整的分析流程

    1. 清空 Store（開始新的 generation）
    2. 投影 canonical text 並送出串流請求
    3. 每個批次都以「當下」的文件轉換位置後加入 Store
    4. Store 的 generation 改變（被新的分析清空）之後到達的批次一律丟棄

    使用範例:
        >>> run = AnalysisRun(session, store, client, on_data=print)
        >>> run.start()

    需要在批次之間穿插其他操作時，可以直接迭代 steps()：
        >>> for items in run.steps():
        ...     session.insert_text(1, "x")
    """

    def __init__(
        self,
        session: EditorSession,
        store: CorrectionStore,
        transport: StreamTransportProtocol,
        translator: Optional[PositionTranslator] = None,
        adapter: Optional[CorrectionStreamAdapter] = None,
        *,
        on_data: Optional[DataCallback] = None,
        on_progress: Optional[ProgressCallback] = None,
        on_error: Optional[ErrorCallback] = None,
        on_complete: Optional[CompleteCallback] = None,
        on_event: Optional[AnnotationEventHandler] = None,
    ):
        self._session = session
        self._store = store
        self._transport = transport
        self._translator = translator or PositionTranslator(store.code_types)
        self._adapter = adapter or CorrectionStreamAdapter(on_event=on_event)
        self._on_data = on_data
        self._on_progress = on_progress
        self._on_error = on_error
        self._on_complete = on_complete
        self._on_event = on_event
        self._logger = get_logger("service.run")

        self.trace_id = generate_trace_id()
        self.generation: Optional[int] = None
        self.canonical_text: Optional[str] = None
        self.item_count = 0
        self.superseded = False
        self.error: Optional[Exception] = None

    def _call(self, callback: Optional[Callable], *args) -> None:
        if callback is None:
            return
        try:
            callback(*args)
        except Exception:
            self._logger.exception("分析回呼執行失敗")

    def _emit(self, event) -> None:
        event["trace_id"] = self.trace_id
        emit_event(self._on_event, event, self._logger)

    def start(self) -> int:
        """
        執行整個分析流程直到串流結束

        Returns:
            int: 這次加入 Store 的項目數
        """
        for _ in self.steps():
            pass
        return self.item_count

    def steps(self) -> Iterator[List[CorrectionItem]]:
        """逐批執行分析，每加入一個批次就 yield 一次"""
        self._store.clear()
        self.generation = self._store.generation
        self.canonical_text = project(self._session.doc, self._store.code_types)
        self._logger.info(f"[{self.trace_id}] Analysis started ({len(self.canonical_text)} chars)")

        def report_progress(current: int, total: int) -> None:
            self._call(self._on_progress, current, total)

        try:
            chunks = self._transport.stream(self.canonical_text)
            batches = self._adapter.iter_batches(self.canonical_text, chunks, report_progress, self.trace_id)
            for batch in batches:
                if self._store.generation != self.generation:
                    self.superseded = True
                    self._logger.debug(f"[{self.trace_id}] Store was cleared by a newer run, batch discarded")
                    self._emit({"type": "stale_batch", "ids": [item.id for item in batch]})
                    return

                items = self._translator.convert_items(self._session.doc, batch)
                self._store.add(items)
                self.item_count += len(items)
                self._emit({"type": "batch", "ids": [item.id for item in items]})
                self._call(self._on_data, items)
                yield items
        except StreamTransportError as e:
            self.error = e
            self._logger.error(f"[{self.trace_id}] Correction stream error: {e}")
            self._emit(
                {
                    "type": "error",
                    "exception_type": type(e).__name__,
                    "exception_message": str(e),
                }
            )
            self._call(self._on_error, e)
            return

        self._logger.info(f"[{self.trace_id}] Analysis complete, {self.item_count} corrections")
        self._emit({"type": "complete"})
        self._call(self._on_complete)
