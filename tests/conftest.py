from typing import Any, Callable, List, Optional

import pytest
from requests.structures import CaseInsensitiveDict

from order_relay.clients.http import UpstreamResponse
from order_relay.config.config import AppConfig, ProxyConfig

CATALOG = {
    "products": [
        {"product_id": 2, "name": "Robusta Beans 250g", "price": 149.0},
        {"product_id": 10, "name": "Milk Frother", "price": 690.0},
        {"product_id": 1, "name": "Arabica Beans 250g", "price": 189.0},
    ],
    "users": [
        {"user_id": 7, "name": "Anan Srisuk", "email": "anan@example.com"},
    ],
}


class FakeResponse:
    """Stands in for a streamed requests.Response."""

    def __init__(self, status: int = 200, body: bytes = b"", headers: Optional[dict] = None, chunks: Optional[List[bytes]] = None):
        self.status_code = status
        self.headers = CaseInsensitiveDict(headers or {})
        self.encoding = "utf-8"
        self._chunks = chunks if chunks is not None else [body]
        self.closed = False

    def iter_content(self, chunk_size=1):
        for chunk in self._chunks:
            yield chunk

    def close(self):
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()


class FakeSession:
    """Stands in for requests.Session; returns a fixed response or raises."""

    def __init__(self, outcome: Any):
        self.outcome = outcome
        self.posts: List[dict] = []
        self.closed = False

    def post(self, url, **kwargs):
        self.posts.append({"url": url, **kwargs})
        if isinstance(self.outcome, BaseException):
            raise self.outcome
        return self.outcome

    def close(self):
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()


class ScriptedCall:
    """Upstream call double: each invocation takes the next scripted outcome."""

    def __init__(self, *outcomes: Any):
        self.outcomes = list(outcomes)
        self.calls: List[dict] = []

    def __call__(self, url, payload, timeout_ms=None):
        self.calls.append({"url": url, "payload": payload, "timeout_ms": timeout_ms})
        outcome = self.outcomes[min(len(self.calls), len(self.outcomes)) - 1]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


class SleepRecorder:
    def __init__(self):
        self.delays: List[float] = []

    def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


def ok_response(body: bytes = b'{"ok":true}', request_id: str = "R1", status: int = 200, content_type: Optional[str] = "application/json") -> UpstreamResponse:
    return UpstreamResponse(status=status, content_type=content_type, body=body, request_id=request_id)


@pytest.fixture
def proxy_config() -> ProxyConfig:
    return ProxyConfig(api_base_url="https://up.example/prod", api_path="/order", timeout_ms=20000, retries=2, backoff_ms=400)


@pytest.fixture
def app_config(proxy_config) -> AppConfig:
    return AppConfig(proxy=proxy_config, username="admin", password="s3cret", production=False, catalog=CATALOG)


@pytest.fixture
def sleep() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def session_factory() -> Callable[[Any], Callable[[], FakeSession]]:
    """Build a factory that hands out one FakeSession, kept for inspection."""

    def build(outcome: Any):
        session = FakeSession(outcome)

        def factory():
            return session

        factory.session = session
        return factory

    return build
