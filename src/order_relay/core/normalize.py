import json
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from ..clients.http import UpstreamError, UpstreamHttpError, UpstreamResponse, UpstreamTimeout

UPSTREAM_CALL_FAILED = "UPSTREAM_CALL_FAILED"
REQUEST_ID_HEADER = "x-upstream-request-id"
JSON_CONTENT_TYPE = "application/json"


@dataclass(frozen=True)
class ProxyResult:
    status: int
    body: bytes
    headers: Dict[str, str] = field(default_factory=dict)


def _json_result(status: int, body: Any, headers: Optional[Dict[str, str]] = None) -> ProxyResult:
    merged = {"content-type": JSON_CONTENT_TYPE}
    merged.update(headers or {})
    return ProxyResult(status=status, body=json.dumps(body).encode("utf-8"), headers=merged)


def success_result(upstream: UpstreamResponse) -> ProxyResult:
    """Pass the upstream response through, surfacing its request id."""
    return ProxyResult(
        status=upstream.status,
        body=upstream.body,
        headers={
            "content-type": upstream.content_type or JSON_CONTENT_TYPE,
            REQUEST_ID_HEADER: upstream.request_id or "",
        },
    )


def failure_result(error: UpstreamError) -> ProxyResult:
    """Collapse a terminal upstream failure into the 502 envelope.

    ``detail`` carries the upstream's own (parsed) body for HTTP errors and the
    error message for timeouts and transport failures.
    """
    headers = {}
    if isinstance(error, UpstreamHttpError):
        detail = error.body
        if error.request_id:
            headers[REQUEST_ID_HEADER] = error.request_id
    else:
        detail = str(error)

    envelope = {
        "error": UPSTREAM_CALL_FAILED,
        "reason": "timeout" if isinstance(error, UpstreamTimeout) else "upstream_error",
        "detail": detail,
    }
    return _json_result(502, envelope, headers)


def client_error_result(message: str) -> ProxyResult:
    return _json_result(400, {"error": message})
