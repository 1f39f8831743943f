import json
import logging
import socket
import threading
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from dataclasses import dataclass
from typing import Any, Callable, Optional

import requests
from urllib3.exceptions import ReadTimeoutError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 20000
REQUEST_ID_HEADERS = ("x-amzn-requestid", "x-amz-request-id")
CHUNK_SIZE = 8192
JSON_HEADERS = {"content-type": "application/json"}


class UpstreamError(Exception):
    """Base class for every failed upstream call."""


class UpstreamTimeout(UpstreamError):
    def __init__(self, timeout_ms: int):
        super().__init__(f"Upstream call timed out after {timeout_ms} ms")
        self.timeout_ms = timeout_ms


class UpstreamNetworkFailure(UpstreamError):
    def __init__(self, cause: BaseException):
        super().__init__(f"{type(cause).__name__}: {cause}")
        self.cause = cause


class UpstreamHttpError(UpstreamError):
    def __init__(self, status: int, body: Any, request_id: str = ""):
        super().__init__(f"HTTP {status}: {body}")
        self.status = status
        self.body = body
        self.request_id = request_id


@dataclass(frozen=True)
class UpstreamResponse:
    status: int
    content_type: Optional[str]
    body: bytes
    request_id: str


class _Attempt:
    """One in-flight POST that another thread can abort at its deadline."""

    def __init__(self, session_factory: Callable[[], requests.Session]):
        self._session_factory = session_factory
        self._lock = threading.Lock()
        self._response = None
        self.aborted = False

    def run(self, url: str, data: str, timeout: float):
        with self._session_factory() as session:
            resp = session.post(
                url, data=data, headers=JSON_HEADERS, timeout=(timeout, timeout), stream=True
            )
            with resp:
                with self._lock:
                    if self.aborted:
                        return None
                    self._response = resp

                status = resp.status_code
                content_type = resp.headers.get("content-type")
                request_id = _request_id(resp.headers)
                body = b"".join(resp.iter_content(chunk_size=CHUNK_SIZE))
                return status, content_type, request_id, body, resp.encoding or "utf-8"

    def abort(self) -> None:
        with self._lock:
            self.aborted = True
            resp = self._response
        if resp is None:
            return
        # shutdown wakes a read blocked in the worker; close alone may not
        sock = getattr(getattr(getattr(resp, "raw", None), "connection", None), "sock", None)
        if sock is not None:
            try:
                sock.shutdown(socket.SHUT_RDWR)
            except OSError as e:
                logger.debug("Socket already gone during abort: %s", e)
        resp.close()


def safe_json(text: str) -> Any:
    try:
        return json.loads(text)
    except ValueError:
        return text


def _request_id(headers) -> str:
    for name in REQUEST_ID_HEADERS:
        value = headers.get(name)
        if value:
            return value
    return ""


def _is_read_timeout(exc: requests.RequestException) -> bool:
    # requests re-wraps urllib3 read timeouts hit while streaming as ConnectionError
    return any(isinstance(arg, ReadTimeoutError) for arg in exc.args)


def post_json(
    url: str,
    payload: Any,
    timeout_ms: int = DEFAULT_TIMEOUT_MS,
    session_factory: Callable[[], requests.Session] = requests.Session,
) -> UpstreamResponse:
    """POST ``payload`` as JSON to ``url`` within ``timeout_ms``.

    The call runs on a worker thread and the caller waits for it at most
    ``timeout_ms``, covering connect, headers and body together. On expiry the
    connection is shut down; the worker's own socket timeouts never exceed the
    same budget, so it unwinds and closes its session shortly after.

    Returns:
        The upstream response for a 2xx status.

    Raises:
        UpstreamTimeout: If the deadline elapses before the body is fully read.
        UpstreamNetworkFailure: On any other transport error.
        UpstreamHttpError: If the status is outside 200-299.
    """
    data = json.dumps(payload)
    timeout = timeout_ms / 1000.0
    attempt = _Attempt(session_factory)
    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="upstream-call")

    try:
        future = executor.submit(attempt.run, url, data, timeout)
        try:
            status, content_type, request_id, body, encoding = future.result(timeout=timeout)
        except FutureTimeout as e:
            attempt.abort()
            logger.debug("POST %s timed out after %d ms", url, timeout_ms)
            raise UpstreamTimeout(timeout_ms) from e
    except requests.Timeout as e:
        raise UpstreamTimeout(timeout_ms) from e
    except requests.RequestException as e:
        if _is_read_timeout(e):
            raise UpstreamTimeout(timeout_ms) from e
        logger.debug("POST %s failed: %s", url, e)
        raise UpstreamNetworkFailure(e) from e
    finally:
        executor.shutdown(wait=False)

    if not 200 <= status < 300:
        raise UpstreamHttpError(
            status, safe_json(body.decode(encoding, errors="replace")), request_id
        )

    return UpstreamResponse(
        status=status, content_type=content_type, body=body, request_id=request_id
    )
