"""
Change-token retry loop.
"""

import threading
import time
from typing import Callable, Optional, TypeVar

from shared.errors import (
    ConflictError, ThrottledError, RetryTimeoutError, RetryCancelledError
)
from shared.logging import get_logger
from shared.metrics import MetricsCollector
from shared.retry import RetryConfig, calculate_delay
from ..adapters.api import RuleGroupApi

T = TypeVar("T")


class ChangeTokenRetryer:
    """Runs mutations with a fresh change token, retrying on contention.

    A ConflictError means the token went stale, so the next attempt
    acquires a new one. A ThrottledError backs off and retries with the
    same token; if that token has gone stale meanwhile, the retry surfaces
    as a conflict and is handled as above. Anything else propagates
    immediately.
    """

    def __init__(self,
                 api: RuleGroupApi,
                 scope: str = "global",
                 config: Optional[RetryConfig] = None,
                 metrics: Optional[MetricsCollector] = None,
                 clock: Callable[[], float] = time.monotonic,
                 sleep: Optional[Callable[[float], None]] = None):
        self.api = api
        self.scope = scope
        self.config = config or RetryConfig()
        self.metrics = metrics or MetricsCollector()
        self.logger = get_logger(f"rule_groups.retryer.{scope}")
        self._clock = clock
        self._sleep = sleep

    def retry_with_token(self,
                         fn: Callable[[str], T],
                         operation: str = "mutation",
                         cancel: Optional[threading.Event] = None) -> T:
        """Call ``fn(change_token)`` until it succeeds or the deadline passes.

        Raises RetryTimeoutError (with the last failure attached) when the
        configured timeout elapses, and RetryCancelledError when ``cancel``
        is set while waiting.
        """
        deadline = self._clock() + self.config.timeout
        token: Optional[str] = None
        attempts = 0
        retries = 0

        with self.metrics.time_operation(operation):
            while True:
                self._check_cancelled(cancel, operation, attempts)

                try:
                    if token is None:
                        token = self.api.get_change_token(self.scope)
                    attempts += 1
                    result = fn(token)

                except ConflictError as e:
                    token = None
                    last_exception: Exception = e
                    reason = "conflict"

                except ThrottledError as e:
                    last_exception = e
                    reason = "throttled"

                except Exception as e:
                    self.metrics.record_attempt(operation, "error")
                    self.logger.error(
                        "Mutation failed",
                        operation=operation,
                        attempt=attempts,
                        error=str(e)
                    )
                    raise

                else:
                    self.metrics.record_attempt(operation, "success")
                    if retries:
                        self.logger.info(
                            "Mutation succeeded after retries",
                            operation=operation,
                            attempts=attempts,
                            retries=retries
                        )
                    return result

                self.metrics.record_attempt(operation, reason)
                retries += 1

                remaining = deadline - self._clock()
                if remaining <= 0:
                    self.logger.error(
                        "Change token retries exhausted",
                        operation=operation,
                        attempts=attempts,
                        timeout=self.config.timeout,
                        error=str(last_exception)
                    )
                    raise RetryTimeoutError(
                        f"{operation} did not succeed within {self.config.timeout:g}s: {last_exception}",
                        last_exception=last_exception,
                        attempts=attempts
                    ) from last_exception

                delay = min(calculate_delay(retries, self.config), remaining)
                self.metrics.record_retry(reason)
                self.logger.warning(
                    "Mutation rejected, retrying",
                    operation=operation,
                    reason=reason,
                    attempt=attempts,
                    delay=delay,
                    reacquire_token=token is None,
                    error=str(last_exception)
                )
                self._pause(delay, cancel)

    def _pause(self, delay: float, cancel: Optional[threading.Event]) -> None:
        if self._sleep is not None:
            self._sleep(delay)
        elif cancel is not None:
            cancel.wait(delay)
        else:
            time.sleep(delay)

    def _check_cancelled(self, cancel: Optional[threading.Event], operation: str, attempts: int) -> None:
        if cancel is not None and cancel.is_set():
            self.logger.warning("Mutation cancelled", operation=operation, attempts=attempts)
            raise RetryCancelledError(f"{operation} cancelled after {attempts} attempts", attempts=attempts)
