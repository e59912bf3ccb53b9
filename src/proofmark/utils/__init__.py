"""
工具模組

提供日誌、計時、識別碼等通用工具。
"""

from .ids import generate_id, generate_trace_id
from .logger import (
    TimingContext,
    enable_debug_logging,
    enable_timing_logging,
    get_logger,
    log_timing,
    setup_logger,
)

__all__ = [
    # 日誌工具
    "get_logger",
    "setup_logger",
    "enable_debug_logging",
    "enable_timing_logging",
    "log_timing",
    "TimingContext",

    # 識別碼
    "generate_id",
    "generate_trace_id",
]
