import logging
import time
from typing import Callable, TypeVar

from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ..clients.http import UpstreamError

log = logging.getLogger("relay")

T = TypeVar("T")


def call_with_retry(
    fn: Callable[[], T],
    retries: int = 2,
    base_delay_ms: int = 400,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Run ``fn`` up to ``retries + 1`` times.

    Any UpstreamError is retried, whatever its kind, after waiting
    ``base_delay_ms * 2**attempt_index`` milliseconds. The failure of the last
    allowed attempt is re-raised unchanged. Other exceptions are not retried.
    """
    retryer = Retrying(
        reraise=True,
        retry=retry_if_exception_type(UpstreamError),
        wait=wait_exponential(multiplier=base_delay_ms / 1000.0, exp_base=2),
        stop=stop_after_attempt(retries + 1),
        sleep=sleep,
        before_sleep=before_sleep_log(log, logging.WARNING),
    )
    return retryer(fn)
