"""
核心抽象層

定義例外、事件與外部協作者介面。
"""

from .errors import (
    ConflictResolutionError,
    DispatchError,
    DocumentError,
    InvalidTransitionError,
    PositionError,
    ProofmarkError,
    ReplaceError,
    StreamTransportError,
    UnknownCorrectionError,
)
from .events import AnnotationEvent, AnnotationEventHandler, emit_event
from .protocols import ConfirmationPrompt, StreamTransportProtocol

__all__ = [
    "ProofmarkError",
    "DocumentError",
    "PositionError",
    "ReplaceError",
    "DispatchError",
    "UnknownCorrectionError",
    "InvalidTransitionError",
    "ConflictResolutionError",
    "StreamTransportError",
    "AnnotationEvent",
    "AnnotationEventHandler",
    "emit_event",
    "ConfirmationPrompt",
    "StreamTransportProtocol",
]
