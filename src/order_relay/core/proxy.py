"""Outbound call proxy for order submission.

Accepts either ``{"url": ..., "payload": ...}`` or a bare payload, resolves the
destination, forwards the payload with bounded retries and normalizes the
outcome into a ProxyResult.
"""

import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Union

from ..clients.http import UpstreamError, UpstreamResponse, post_json
from ..config.config import ProxyConfig
from .normalize import ProxyResult, client_error_result, failure_result, success_result
from .retry import call_with_retry

log = logging.getLogger("relay")

MISSING_TARGET = "Missing target URL: provide 'url' in body or set API_BASE_URL"
INVALID_BODY = "Request body must be valid JSON"


class ClientError(Exception):
    """Raised for requests that are rejected before any upstream call."""


@dataclass(frozen=True)
class ExplicitTarget:
    url: Any
    payload: Any


@dataclass(frozen=True)
class BarePayload:
    payload: Any


ProxyRequest = Union[ExplicitTarget, BarePayload]


def _reject_constant(name: str):
    # NaN and Infinity are not JSON and could not be re-sent as JSON
    raise ValueError(f"Invalid JSON constant: {name}")


def parse_proxy_request(raw_body: bytes) -> ProxyRequest:
    """Decode the inbound body into one of the two request shapes.

    Raises:
        ClientError: If the body is not valid JSON.
    """
    try:
        incoming = json.loads(raw_body, parse_constant=_reject_constant)
    except (TypeError, ValueError, RecursionError) as e:
        raise ClientError(INVALID_BODY) from e

    if isinstance(incoming, dict) and "url" in incoming:
        return ExplicitTarget(url=incoming["url"], payload=incoming.get("payload"))
    return BarePayload(payload=incoming)


def resolve_destination(request: ProxyRequest, config: ProxyConfig) -> str:
    """Return the URL the payload is forwarded to.

    Raises:
        ClientError: If neither the request nor the configuration names one.
    """
    if isinstance(request, ExplicitTarget):
        target = request.url if isinstance(request.url, str) else None
    else:
        target = config.default_destination()
    if not target:
        raise ClientError(MISSING_TARGET)
    return target


class OrderProxy:
    def __init__(
        self,
        config: ProxyConfig,
        call: Callable[..., UpstreamResponse] = post_json,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.config = config
        self._call = call
        self._sleep = sleep

    def forward(self, destination: str, payload: Any) -> UpstreamResponse:
        """Send ``payload`` to ``destination`` under the configured retry policy."""
        return call_with_retry(
            lambda: self._call(destination, payload, timeout_ms=self.config.timeout_ms),
            retries=self.config.retries,
            base_delay_ms=self.config.backoff_ms,
            sleep=self._sleep,
        )

    def handle(self, raw_body: bytes) -> ProxyResult:
        try:
            request = parse_proxy_request(raw_body)
            destination = resolve_destination(request, self.config)
        except ClientError as e:
            log.info("Rejected proxy request: %s", e)
            return client_error_result(str(e))

        log.info("Forwarding order payload to %s: %s", destination, json.dumps(request.payload)[:500])
        try:
            upstream = self.forward(destination, request.payload)
        except UpstreamError as e:
            log.error("Upstream call to %s failed: %s", destination, e)
            return failure_result(e)

        log.info(
            "Upstream %s answered %d (request id %s)",
            destination,
            upstream.status,
            upstream.request_id or "-",
        )
        return success_result(upstream)
