"""
日誌與計時工具

所有模組都透過 get_logger() 取得 "proofmark.<name>" 子 logger，
預設不輸出任何東西，使用者可用標準 logging 控制：

    import logging
    logging.getLogger("proofmark").setLevel(logging.DEBUG)

或直接使用:
    from proofmark import enable_debug_logging
    enable_debug_logging()
"""

import functools
import logging
import time
from typing import Callable, Optional

ROOT_LOGGER_NAME = "proofmark"
DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

_timing_enabled = False


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    取得 proofmark 命名空間下的 logger

    Args:
        name: 子 logger 名稱，例如 "annotation.store"

    Returns:
        logging.Logger
    """
    if not name:
        return logging.getLogger(ROOT_LOGGER_NAME)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def setup_logger(level: int = logging.INFO, fmt: str = DEFAULT_FORMAT) -> logging.Logger:
    """
    在 proofmark 根 logger 上安裝 StreamHandler（只安裝一次）

    Args:
        level: 日誌等級
        fmt: 輸出格式

    Returns:
        proofmark 根 logger
    """
    logger = get_logger()
    logger.setLevel(level)

    if not any(getattr(h, "_proofmark_handler", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(fmt))
        handler._proofmark_handler = True
        logger.addHandler(handler)

    for handler in logger.handlers:
        handler.setLevel(level)
    return logger


def enable_debug_logging() -> logging.Logger:
    """開啟 DEBUG 等級日誌"""
    return setup_logger(level=logging.DEBUG)


def enable_timing_logging() -> logging.Logger:
    """開啟計時日誌 (TimingContext 會以 INFO 等級輸出)"""
    global _timing_enabled
    _timing_enabled = True
    return setup_logger(level=logging.INFO)


def is_timing_enabled() -> bool:
    return _timing_enabled


class TimingContext:
    """
    計時上下文管理器

    使用範例:
        with TimingContext("project", logger):
            text = project(doc)

    Args:
        operation: 操作名稱
        logger: 輸出用 logger（預設為根 logger）
        level: 輸出等級（enable_timing_logging() 之後提升為 INFO）
        callback: 計時回呼 (operation, elapsed_seconds) -> None
    """

    def __init__(
        self,
        operation: str,
        logger: Optional[logging.Logger] = None,
        level: int = logging.DEBUG,
        callback: Optional[Callable[[str, float], None]] = None,
    ):
        self.operation = operation
        self.logger = logger or get_logger()
        self.level = level
        self.callback = callback
        self.elapsed = 0.0
        self._start = 0.0

    def __enter__(self) -> "TimingContext":
        self._start = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.elapsed = time.perf_counter() - self._start
        level = max(self.level, logging.INFO) if _timing_enabled else self.level
        if self.logger.isEnabledFor(level):
            self.logger.log(level, f"[Timing] {self.operation}: {self.elapsed * 1000:.2f}ms")

        if self.callback is not None:
            try:
                self.callback(self.operation, self.elapsed)
            except Exception:
                self.logger.exception("on_timing 回呼執行失敗")
        return False


def log_timing(operation: Optional[str] = None, level: int = logging.DEBUG):
    """
    函數計時裝飾器

    範例:
        @log_timing("translator.to_position")
        def to_position(...):
            ...
    """

    def decorator(func: Callable) -> Callable:
        name = operation or func.__qualname__
        logger = get_logger(func.__module__.replace(f"{ROOT_LOGGER_NAME}.", "", 1))

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            with TimingContext(name, logger, level):
                return func(*args, **kwargs)

        return wrapper

    return decorator
