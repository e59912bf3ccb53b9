"""
修正服務客戶端與配置測試（以假的 requests.Session 取代網路）
"""

import pytest
import requests

from proofmark.config import DEFAULT_SERVICE_URL, ServiceConfig
from proofmark.core.errors import StreamTransportError
from proofmark.core.protocols import StreamTransportProtocol
from proofmark.service.client import CorrectionServiceClient


class FakeResponse:
    def __init__(self, chunks=(), status_code=200, reason="OK", fail_midway=False):
        self.chunks = list(chunks)
        self.status_code = status_code
        self.reason = reason
        self.encoding = None
        self.fail_midway = fail_midway
        self.closed = False

    @property
    def ok(self):
        return self.status_code < 400

    def iter_content(self, chunk_size=None, decode_unicode=False):
        for chunk in self.chunks:
            yield chunk
        if self.fail_midway:
            raise requests.ConnectionError("stream broken")

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.closed = True


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def post(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if self.error is not None:
            raise self.error
        return self.response


class TestCorrectionServiceClient:
    """測試串流請求"""

    def test_streams_chunks(self):
        response = FakeResponse(["line1\n", "", "line2\n"])
        session = FakeSession(response)
        client = CorrectionServiceClient(ServiceConfig(url="http://svc/stream", token="secret"), session=session)

        assert list(client.stream("I has a cat.\n")) == ["line1\n", "line2\n"]
        assert response.closed is True

        url, kwargs = session.calls[0]
        assert url == "http://svc/stream"
        assert kwargs["stream"] is True
        assert kwargs["headers"]["Authorization"] == "Bearer secret"
        assert kwargs["json"] == {
            "text": "I has a cat.\n",
            "model_type": "gpt",
            "qwen_model_type": "standard",
            "use_ensemble": True,
        }

    def test_no_token_no_authorization(self):
        session = FakeSession(FakeResponse())
        list(CorrectionServiceClient(ServiceConfig(), session=session).stream("x"))
        assert "Authorization" not in session.calls[0][1]["headers"]

    def test_http_error(self):
        session = FakeSession(FakeResponse(status_code=502, reason="Bad Gateway"))
        client = CorrectionServiceClient(session=session)
        with pytest.raises(StreamTransportError) as exc_info:
            list(client.stream("x"))
        assert exc_info.value.status_code == 502

    def test_connection_error(self):
        client = CorrectionServiceClient(session=FakeSession(error=requests.ConnectionError("refused")))
        with pytest.raises(StreamTransportError):
            list(client.stream("x"))

    def test_interrupted_stream(self):
        client = CorrectionServiceClient(session=FakeSession(FakeResponse(["a"], fail_midway=True)))
        received = []
        with pytest.raises(StreamTransportError):
            for chunk in client.stream("x"):
                received.append(chunk)
        assert received == ["a"]

    def test_satisfies_transport_protocol(self):
        assert isinstance(CorrectionServiceClient(session=FakeSession()), StreamTransportProtocol)


class TestServiceConfig:
    """測試環境變數配置"""

    def test_defaults(self, monkeypatch):
        for name in ("PROOFMARK_SERVICE_URL", "PROOFMARK_API_TOKEN", "PROOFMARK_TIMEOUT"):
            monkeypatch.delenv(name, raising=False)
        config = ServiceConfig.from_env()
        assert config.url == DEFAULT_SERVICE_URL
        assert config.token is None
        assert config.timeout == 60.0

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("PROOFMARK_SERVICE_URL", "http://example/stream")
        monkeypatch.setenv("PROOFMARK_API_TOKEN", "abc")
        monkeypatch.setenv("PROOFMARK_TIMEOUT", "5")

        config = ServiceConfig.from_env(model_type="qwen")
        assert config.url == "http://example/stream"
        assert config.token == "abc"
        assert config.timeout == 5.0
        assert config.model_type == "qwen"
