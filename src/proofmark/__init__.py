"""
proofmark - 結構化文件的修正標註引擎 (Correction Annotation Engine)

核心概念：
- 文件攤平成 canonical text 送給外部分析服務
- 服務回報的 offset 轉回文件結構位置，以 overlay 標示問題範圍
- 使用者編輯、接受、忽略、undo/redo 時，標註與文字保持一致

官方入口（穩定 API）：
- `proofmark.CorrectionEngine`
"""

# =============================================================================
# Engine 層（官方入口）
# =============================================================================
from proofmark.engine import CorrectionEngine

# =============================================================================
# 配置
# =============================================================================
from proofmark.config import DEFAULT_CONFIG, AnnotationConfig, ServiceConfig

# =============================================================================
# 日誌工具
# =============================================================================
from proofmark.utils.logger import enable_debug_logging, enable_timing_logging, get_logger

# =============================================================================
# 標註層與服務層（進階用途）
# =============================================================================
from proofmark.annotation import (
    CorrectionItem,
    CorrectionStore,
    LifecycleController,
    PositionTranslator,
    RemovalConflict,
    Suggestion,
    SuggestionClass,
    project,
)
from proofmark.service import AnalysisRun, CorrectionServiceClient, CorrectionStreamAdapter

# =============================================================================
# 例外與 Protocol
# =============================================================================
from proofmark.core.errors import (
    ConflictResolutionError,
    InvalidTransitionError,
    ProofmarkError,
    StreamTransportError,
    UnknownCorrectionError,
)
from proofmark.core.protocols import ConfirmationPrompt, StreamTransportProtocol

__all__ = [
    # Engine
    "CorrectionEngine",
    # Config
    "AnnotationConfig",
    "ServiceConfig",
    "DEFAULT_CONFIG",
    # Logging
    "get_logger",
    "enable_debug_logging",
    "enable_timing_logging",
    # Annotation (advanced)
    "CorrectionItem",
    "Suggestion",
    "SuggestionClass",
    "CorrectionStore",
    "LifecycleController",
    "RemovalConflict",
    "PositionTranslator",
    "project",
    # Service (advanced)
    "AnalysisRun",
    "CorrectionServiceClient",
    "CorrectionStreamAdapter",
    # Errors / Protocols
    "ProofmarkError",
    "UnknownCorrectionError",
    "InvalidTransitionError",
    "ConflictResolutionError",
    "StreamTransportError",
    "ConfirmationPrompt",
    "StreamTransportProtocol",
]

__version__ = "0.1.0"
