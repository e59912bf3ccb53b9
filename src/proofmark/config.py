"""
全域配置模組

提供統一的配置類別，控制日誌、計時、衝突確認與修正服務連線等行為。

使用方式:
    from proofmark import AnnotationConfig, ServiceConfig

    # 簡單開啟 verbose 模式
    config = AnnotationConfig(verbose=True)

    # 服務設定可從環境變數讀取
    service = ServiceConfig.from_env()

    # 進階: 使用標準 logging 控制
    import logging
    logging.getLogger("proofmark").setLevel(logging.DEBUG)
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Callable, FrozenSet, Optional

from .utils.logger import setup_logger

DEFAULT_SERVICE_URL = "http://localhost:8000/correct/fulltext/stream"

ENV_SERVICE_URL = "PROOFMARK_SERVICE_URL"
ENV_API_TOKEN = "PROOFMARK_API_TOKEN"
ENV_TIMEOUT = "PROOFMARK_TIMEOUT"


def configure_logging(verbose: bool = False) -> None:
    """
    根據 verbose 設定配置 logging

    Args:
        verbose: 是否開啟詳細日誌
    """
    if verbose:
        setup_logger(level=logging.DEBUG)


@dataclass
class AnnotationConfig:
    """
    標註引擎配置

    屬性:
        verbose: 是否開啟詳細日誌
        on_timing: 計時回呼函數 (operation: str, elapsed: float) -> None
        auto_confirm: 使用者編輯覆蓋修正範圍時，是否不經確認直接移除
        code_node_types: 視為「原樣程式碼區塊」的節點類型名稱，
            這些節點不輸出文字、不計算 offset、也不會被標註
    """

    verbose: bool = False
    on_timing: Optional[Callable[[str, float], None]] = None
    auto_confirm: bool = False
    code_node_types: FrozenSet[str] = field(default_factory=lambda: frozenset({"code_block"}))

    def __post_init__(self):
        configure_logging(self.verbose)


@dataclass
class ServiceConfig:
    """
    修正服務連線配置

    屬性:
        url: 串流修正 API 端點
        token: Bearer token（None 則不送 Authorization）
        model_type / qwen_model_type / use_ensemble: 轉送給服務的分析參數
        timeout: 連線/讀取逾時秒數
        chunk_size: iter_content 的 chunk 大小（None 表示依網路到達切分）
    """

    url: str = DEFAULT_SERVICE_URL
    token: Optional[str] = None
    model_type: str = "gpt"
    qwen_model_type: str = "standard"
    use_ensemble: bool = True
    timeout: float = 60.0
    chunk_size: Optional[int] = None

    @classmethod
    def from_env(cls, **overrides) -> "ServiceConfig":
        """從環境變數建立配置，關鍵字參數優先"""
        values = {
            "url": os.environ.get(ENV_SERVICE_URL, DEFAULT_SERVICE_URL),
            "token": os.environ.get(ENV_API_TOKEN) or None,
        }
        timeout = os.environ.get(ENV_TIMEOUT)
        if timeout:
            values["timeout"] = float(timeout)
        values.update(overrides)
        return cls(**values)

    def request_payload(self, text: str) -> dict:
        return {
            "text": text,
            "model_type": self.model_type,
            "qwen_model_type": self.qwen_model_type,
            "use_ensemble": self.use_ensemble,
        }


# 預設配置實例 (靜默模式)
DEFAULT_CONFIG = AnnotationConfig(verbose=False)
DEFAULT_SERVICE_CONFIG = ServiceConfig()
