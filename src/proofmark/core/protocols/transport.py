"""
Stream Transport Protocol

定義串流傳輸的最小介面（canonical text -> 文字 chunk 迭代器）。
"""

from typing import Iterator, Protocol, runtime_checkable


@runtime_checkable
class StreamTransportProtocol(Protocol):
    def stream(self, text: str) -> Iterator[str]:
        """送出分析請求，依網路到達順序產生解碼後的文字 chunk"""
        ...
