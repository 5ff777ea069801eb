"""
Bounded exponential-backoff retry around a transport.

Attempts run 0..max_retries inclusive. Attempt k > 0 first sleeps
base * 2^(k-1) milliseconds. The delay is not capped: callers bound the
worst case through max_retries.

Retryable: no HTTP response (status 0) and 5xx.
Final: 2xx, 4xx and anything else.
"""

import time
from collections.abc import Callable
from dataclasses import dataclass

from gatekeeper.core.logging import get_logger
from gatekeeper.core.typing import StringDict
from gatekeeper.providers.transport import Transport, TransportResult

logger = get_logger("providers.retry")


@dataclass
class InvocationOutcome:
    """Final transport result plus bookkeeping from the retry loop."""

    result: TransportResult
    attempts: int
    last_status: int  # last HTTP status seen on any attempt, 0 if none


def backoff_delay_ms(attempt: int, base_ms: int) -> int:
    """Delay before the given attempt (0 for the first one)."""
    if attempt <= 0:
        return 0
    return base_ms * (2 ** (attempt - 1))


def is_retryable(result: TransportResult) -> bool:
    return result.status == 0 or result.is_server_error


class RetryingInvoker:
    """Runs a transport call with retries.

    The sleep callable takes seconds, like time.sleep, and blocks the
    calling thread.
    """

    def __init__(
        self,
        transport: Transport,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.transport = transport
        self.sleep = sleep

    def invoke(
        self,
        url: str,
        method: str,
        body: str,
        headers: StringDict,
        timeout: float,
        max_retries: int,
        backoff_base_ms: int,
    ) -> InvocationOutcome:
        max_retries = max(0, max_retries)
        last_status = 0
        result = TransportResult(error="no attempt made")
        attempts = 0

        for attempt in range(max_retries + 1):
            if attempt > 0:
                delay_ms = backoff_delay_ms(attempt, backoff_base_ms)
                logger.info(
                    f"Retrying {method} {url} in {delay_ms}ms "
                    f"(attempt {attempt + 1}/{max_retries + 1})"
                )
                self.sleep(delay_ms / 1000)

            attempts += 1
            result = self.transport(url, method, body, headers, timeout)
            if result.status:
                last_status = result.status

            if not is_retryable(result):
                break

            logger.warning(
                f"{method} {url} attempt {attempt + 1} failed: "
                f"status={result.status} error={result.error or '-'}"
            )

        return InvocationOutcome(result=result, attempts=attempts, last_status=last_status)
