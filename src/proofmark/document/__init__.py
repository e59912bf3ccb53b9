"""
結構化文件模型

提供樹狀文件、位置映射、原子編輯 (Transaction) 與 undo/redo，
作為修正標註引擎的編輯協作者。
"""

from .history import History, HistoryEntry
from .model import Node, ResolvedPos
from .schema import DEFAULT_SCHEMA, NodeType, Schema
from .session import EditorSession, Plugin
from .steps import Mapping, ReplaceStep, StepMap
from .transaction import EditKind, Transaction

__all__ = [
    "Node",
    "ResolvedPos",
    "NodeType",
    "Schema",
    "DEFAULT_SCHEMA",
    "ReplaceStep",
    "StepMap",
    "Mapping",
    "Transaction",
    "EditKind",
    "EditorSession",
    "Plugin",
    "History",
    "HistoryEntry",
]
