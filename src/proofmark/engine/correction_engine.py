"""
修正標註引擎 (CorrectionEngine)

把文件工作階段、修正標註 Store、undo/redo 紀錄與生命週期控制器組裝在一起，
並提供建立分析流程的工廠方法。

生命週期:
- 每份開啟的文件建立一個 Engine
- 每次「開始分析」透過 create_run() / analyze() 建立新的 AnalysisRun
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional

from proofmark.annotation.lifecycle import LifecycleController, RemovalConflict
from proofmark.annotation.overlay import Overlay
from proofmark.annotation.projector import project
from proofmark.annotation.store import CorrectionStore
from proofmark.annotation.translator import PositionTranslator
from proofmark.annotation.types import CorrectionItem
from proofmark.config import AnnotationConfig, ServiceConfig
from proofmark.core.events import AnnotationEventHandler
from proofmark.core.protocols.confirmation import ConfirmationPrompt
from proofmark.core.protocols.transport import StreamTransportProtocol
from proofmark.document.history import History
from proofmark.document.model import Node
from proofmark.document.session import EditorSession
from proofmark.service.client import CorrectionServiceClient
from proofmark.service.ingestion import AnalysisRun
from proofmark.utils.logger import TimingContext, get_logger, setup_logger


class CorrectionEngine:
    """
    修正標註引擎

    使用方式:
        engine = CorrectionEngine(doc(p("I has a cat."), p("It run fast.")))

        # 開啟詳細日誌
        engine = CorrectionEngine(document, config=AnnotationConfig(verbose=True))

        engine.analyze(CorrectionServiceClient(ServiceConfig.from_env()))
        for item in engine.items:
            engine.accept(item.id)
    """

    _engine_name = "correction"

    def __init__(
        self,
        doc: Node,
        config: Optional[AnnotationConfig] = None,
        *,
        prompt: Optional[ConfirmationPrompt] = None,
        on_event: Optional[AnnotationEventHandler] = None,
        history_depth: int = 100,
    ):
        self.config = config or AnnotationConfig()
        self._init_logger(verbose=self.config.verbose, on_timing=self.config.on_timing)
        self._on_event = on_event

        with self._log_timing("CorrectionEngine.__init__"):
            code_types = self.config.code_node_types
            # Store 必須在 History 之前：History 記錄的是 Store 已處理過的 transaction
            self.store = CorrectionStore(code_types, on_timing=self.config.on_timing)
            self.history = History(depth=history_depth)
            self.session = EditorSession(doc, plugins=[self.store, self.history])
            self.translator = PositionTranslator(code_types, on_timing=self.config.on_timing)
            self.controller = LifecycleController(
                self.session,
                self.store,
                self.history,
                prompt=prompt,
                config=self.config,
                on_event=on_event,
            )
            self._logger.info("CorrectionEngine initialized")

    def _init_logger(
        self,
        verbose: bool = False,
        on_timing: Optional[Callable[[str, float], None]] = None,
    ) -> None:
        self._verbose = verbose
        self._timing_callback = on_timing

        if verbose:
            setup_logger(level=logging.DEBUG)

        self._logger = get_logger(f"engine.{self._engine_name}")

    def _log_timing(self, operation: str) -> TimingContext:
        return TimingContext(
            operation=operation,
            logger=self._logger,
            level=logging.DEBUG,
            callback=self._timing_callback,
        )

    # =========================================================================
    # 文件與狀態
    # =========================================================================

    @property
    def doc(self) -> Node:
        return self.session.doc

    @property
    def items(self) -> List[CorrectionItem]:
        return self.store.items

    @property
    def overlays(self) -> tuple:
        return self.store.overlays

    @property
    def pending_conflicts(self) -> List[RemovalConflict]:
        return self.controller.pending_conflicts

    def canonical_text(self) -> str:
        with self._log_timing("project"):
            return project(self.session.doc, self.config.code_node_types)

    def get_stats(self) -> Dict[str, Any]:
        items = self.store.items
        return {
            "items": len(items),
            "pending": sum(1 for item in items if item.is_pending),
            "overlays": len(self.store.overlays),
            "conflicts": len(self.controller.pending_conflicts),
            "can_undo": self.history.can_undo,
            "can_redo": self.history.can_redo,
        }

    # =========================================================================
    # 分析
    # =========================================================================

    def create_run(
        self,
        transport: Optional[StreamTransportProtocol] = None,
        **callbacks,
    ) -> AnalysisRun:
        """
        建立一次分析流程（尚未開始）

        Args:
            transport: 串流傳輸（預設以環境變數設定建立 CorrectionServiceClient）
            **callbacks: on_data / on_progress / on_error / on_complete
        """
        if transport is None:
            transport = CorrectionServiceClient(ServiceConfig.from_env())
        return AnalysisRun(
            self.session,
            self.store,
            transport,
            self.translator,
            on_event=self._on_event,
            **callbacks,
        )

    def analyze(self, transport: Optional[StreamTransportProtocol] = None, **callbacks) -> AnalysisRun:
        """建立並執行完整的分析流程，回傳已完成的 AnalysisRun"""
        run = self.create_run(transport, **callbacks)
        with self._log_timing("CorrectionEngine.analyze"):
            run.start()
        return run

    # =========================================================================
    # 使用者操作（委派給 Store / LifecycleController）
    # =========================================================================

    def accept(self, correction_id: str) -> CorrectionItem:
        return self.controller.accept(correction_id)

    def ignore(self, correction_id: str) -> CorrectionItem:
        return self.controller.ignore(correction_id)

    def undo_correction(self, correction_id: str) -> CorrectionItem:
        return self.controller.undo(correction_id)

    def confirm_removal(self, conflict_id: str) -> List[str]:
        return self.controller.confirm_removal(conflict_id)

    def cancel_removal(self, conflict_id: str) -> List[str]:
        return self.controller.cancel_removal(conflict_id)

    def set_active(self, correction_id: Optional[str]) -> None:
        self.store.set_active(correction_id)

    def scroll_to(self, correction_id: str) -> bool:
        return self.store.scroll_to(correction_id)

    def overlay_at(self, pos: int) -> Optional[Overlay]:
        for overlay in self.store.overlays:
            if overlay.contains(pos):
                return overlay
        return None

    def undo(self) -> bool:
        return self.history.undo()

    def redo(self) -> bool:
        return self.history.redo()
