"""
修正服務 HTTP 客戶端

以 requests 串流呼叫全文修正 API，依網路到達順序產生解碼後的文字 chunk。
實作 StreamTransportProtocol，AnalysisRun 只依賴該介面（測試時可換成假的 transport）。
"""

from __future__ import annotations

from typing import Dict, Iterator, Optional

import requests

from proofmark.config import ServiceConfig
from proofmark.core.errors import StreamTransportError
from proofmark.utils.logger import get_logger


class CorrectionServiceClient:
    """
    串流修正服務客戶端

    使用範例:
        >>> client = CorrectionServiceClient(ServiceConfig.from_env())
        >>> for chunk in client.stream("I has a cat.\\n"):
        ...     print(chunk)
    """

    def __init__(self, config: Optional[ServiceConfig] = None, session: Optional[requests.Session] = None):
        self.config = config or ServiceConfig()
        self._session = session or requests.Session()
        self._owns_session = session is None
        self._logger = get_logger("service.client")

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.config.token:
            headers["Authorization"] = f"Bearer {self.config.token}"
        return headers

    def stream(self, text: str) -> Iterator[str]:
        """
        送出分析請求並逐塊產生回應文字

        Raises:
            StreamTransportError: 連線失敗、非 2xx 回應或讀取中斷
        """
        self._logger.debug(f"POST {self.config.url} ({len(text)} chars)")
        try:
            response = self._session.post(
                self.config.url,
                json=self.config.request_payload(text),
                headers=self._headers(),
                stream=True,
                timeout=self.config.timeout,
            )
        except requests.RequestException as e:
            raise StreamTransportError(f"Correction request failed: {e}") from e

        with response:
            if not response.ok:
                raise StreamTransportError(
                    f"API request failed: {response.status_code} {response.reason}",
                    status_code=response.status_code,
                )
            if response.encoding is None:
                response.encoding = "utf-8"
            try:
                for chunk in response.iter_content(chunk_size=self.config.chunk_size, decode_unicode=True):
                    if chunk:
                        yield chunk
            except requests.RequestException as e:
                raise StreamTransportError(f"Correction stream interrupted: {e}") from e

    def close(self) -> None:
        if self._owns_session:
            self._session.close()

    def __enter__(self) -> "CorrectionServiceClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
