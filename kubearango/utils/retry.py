# Copyright 2025 ApeCloud, Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Bounded-time polling of an arbitrary operation.

The operation signals "not yet" by raising and success by returning. Polling
stops at the first success or once the elapsed time reaches the timeout, in
which case PollTimeoutError is raised, chained to the last failure.

These helpers block their caller (thread or task) and are meant for checks
that are expected to resolve within the timeout. The plan executor never
uses them.
"""

import logging
from typing import Awaitable, Callable, Optional, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    RetryError,
    Retrying,
    retry_if_exception_type,
    retry_if_not_exception_type,
    stop_after_delay,
)

from kubearango.config import settings
from kubearango.errors import InvariantViolation, PollTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _wait_within(interval: float, timeout: float):
    """Fixed interval, clipped so the last attempt lands on the deadline"""

    def wait(retry_state: RetryCallState) -> float:
        remaining = timeout - (retry_state.seconds_since_start or 0.0)
        return max(0.0, min(interval, remaining))

    return wait


def _log_attempt(retry_state: RetryCallState) -> None:
    logger.debug(
        f"Attempt {retry_state.attempt_number} not ready after {retry_state.seconds_since_start:.1f}s: "
        f"{retry_state.outcome.exception()}"
    )


def _retrying_kwargs(timeout: float, interval: Optional[float]) -> dict:
    if interval is None:
        interval = settings.retry_interval
    return dict(
        stop=stop_after_delay(timeout),
        wait=_wait_within(interval, timeout),
        retry=retry_if_exception_type(Exception) & retry_if_not_exception_type(InvariantViolation),
        before_sleep=_log_attempt,
        reraise=False,
    )


def _timeout_error(e: RetryError, timeout: float) -> PollTimeoutError:
    attempts = e.last_attempt.attempt_number
    last = e.last_attempt.exception()
    return PollTimeoutError(f"Timeout after {timeout}s and {attempts} attempts: {last}", timeout, attempts)


def retry(operation: Callable[[], T], timeout: float, interval: Optional[float] = None) -> T:
    """
    Invoke operation until it returns without raising or timeout elapses.

    Args:
        operation: Callable raising while the awaited condition is not met
        timeout: Maximum total time in seconds
        interval: Delay between attempts (defaults to settings.retry_interval)

    Returns:
        Whatever operation returned on its successful call
    """
    try:
        return Retrying(**_retrying_kwargs(timeout, interval))(operation)
    except RetryError as e:
        raise _timeout_error(e, timeout) from e.last_attempt.exception()


async def async_retry(
    operation: Callable[[], Awaitable[T]], timeout: float, interval: Optional[float] = None
) -> T:
    """Coroutine flavour of retry(); operation is a coroutine function"""
    try:
        return await AsyncRetrying(**_retrying_kwargs(timeout, interval))(operation)
    except RetryError as e:
        raise _timeout_error(e, timeout) from e.last_attempt.exception()
