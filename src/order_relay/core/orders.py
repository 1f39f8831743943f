"""Synthetic order payloads and their sequential submission through the proxy."""

import json
import logging
import random
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional

import requests

log = logging.getLogger("relay")

MIN_ORDERS = 1
MAX_ORDERS = 30
USER_ID_RANGE = (1, 30)
PRODUCT_ID_RANGE = (1, 100)
ITEMS_PER_ORDER = (1, 3)
QTY_RANGE = (1, 5)
# three attempts at 20 s plus backoff fit inside this
SUBMIT_TIMEOUT = 75


@dataclass(frozen=True)
class SubmissionResult:
    order_id: str
    ok: bool
    status: Optional[int]
    message: str

    def log_line(self) -> str:
        outcome = "succeeded" if self.ok else "failed"
        return f"order_id={self.order_id} {outcome} ({self.message})"


def clamp_order_count(count: Any) -> int:
    try:
        n = int(count)
    except (TypeError, ValueError):
        n = MIN_ORDERS
    return max(MIN_ORDERS, min(MAX_ORDERS, n))


def _pick_unique(rng: random.Random, low: int, high: int, n: int) -> List[int]:
    pool = range(low, high + 1)
    return rng.sample(pool, min(n, len(pool)))


def generate_order_payloads(
    count: Any,
    rng: Optional[random.Random] = None,
    now: Optional[datetime] = None,
) -> List[Dict]:
    """Build ``count`` orders (clamped to 1-30), each for a different user.

    Every order carries 1-3 distinct products with quantities 1-5 and the
    same ``created_at`` timestamp.
    """
    rng = rng or random.Random()
    created_at = (now or datetime.now(timezone.utc)).isoformat()
    user_ids = _pick_unique(rng, *USER_ID_RANGE, clamp_order_count(count))

    orders = []
    for index, user_id in enumerate(user_ids, start=1):
        product_ids = _pick_unique(rng, *PRODUCT_ID_RANGE, rng.randint(*ITEMS_PER_ORDER))
        items = [{"product_id": pid, "qty": rng.randint(*QTY_RANGE)} for pid in product_ids]
        orders.append(
            {
                "order": {
                    "order_id": str(index),
                    "created_at": created_at,
                    "user": {"user_id": user_id},
                    "cart": {"items": items},
                }
            }
        )
    return orders


def parse_edited_payloads(text: str) -> List[Dict]:
    """Parse hand-edited JSON back into a list of order payloads.

    Raises:
        ValueError: If the text is not a JSON list of objects.
    """
    data = json.loads(text)
    if not isinstance(data, list) or not all(isinstance(p, dict) for p in data):
        raise ValueError("Edited payloads must be a JSON list of objects")
    return data


def validate_target_url(url: Optional[str]) -> Optional[str]:
    """Return a stripped target URL, ``None`` when blank.

    Raises:
        ValueError: If the URL does not start with http:// or https://.
    """
    url = (url or "").strip()
    if not url:
        return None
    if not url.lower().startswith(("http://", "https://")):
        raise ValueError("Target URL must start with http:// or https://")
    return url


def order_id_of(payload: Dict, fallback: int) -> str:
    order = payload.get("order")
    if isinstance(order, dict) and order.get("order_id") is not None:
        return str(order["order_id"])
    return str(fallback)


def submit_orders(
    session: requests.Session,
    backend_url: str,
    payloads: List[Dict],
    target_url: Optional[str] = None,
    timeout: float = SUBMIT_TIMEOUT,
) -> Iterator[SubmissionResult]:
    """POST each payload to the proxy, one at a time, yielding each outcome.

    A transport error ends only the current order; the next one is still sent.
    """
    endpoint = backend_url.rstrip("/") + "/api/order"
    for index, payload in enumerate(payloads, start=1):
        order_id = order_id_of(payload, index)
        body = {"url": target_url, "payload": payload} if target_url else payload
        try:
            resp = session.post(endpoint, json=body, timeout=timeout)
        except requests.RequestException as e:
            log.warning("Submitting order %s failed: %s", order_id, e)
            yield SubmissionResult(order_id, False, None, f"network: {type(e).__name__}")
            continue

        ok = 200 <= resp.status_code < 300
        message = str(resp.status_code)
        if not ok:
            try:
                data = resp.json()
                reason = data.get("reason") or data.get("error")
            except (ValueError, AttributeError):
                reason = None
            if reason:
                message = f"{resp.status_code}, {reason}"
        yield SubmissionResult(order_id, ok, resp.status_code, message)
