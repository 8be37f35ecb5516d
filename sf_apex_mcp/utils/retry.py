"""Bounded, cancellable polling with fixed or exponential backoff"""
import time
import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class PollTimeout(Exception):
    """Attempt cap or deadline reached while the value was still pending"""

    def __init__(self, message: str, attempts: int, last_value: Any = None):
        super().__init__(message)
        self.attempts = attempts
        self.last_value = last_value


class PollCancelled(Exception):
    """Cancellation event was set at a suspension point"""

    def __init__(self, message: str, attempts: int, last_value: Any = None):
        super().__init__(message)
        self.attempts = attempts
        self.last_value = last_value


@dataclass
class PollPolicy:
    """
    How long and how often to wait for a remote job.

    Attributes:
        interval: Wait before the first check (seconds)
        backoff: Multiplier applied to the wait after each check (1.0 = fixed)
        max_interval: Upper bound for a single wait
        timeout: Overall deadline in seconds (None = no deadline)
        max_attempts: Maximum number of checks (None = no cap)
    """

    interval: float = 1.0
    backoff: float = 1.0
    max_interval: Optional[float] = None
    timeout: Optional[float] = None
    max_attempts: Optional[int] = None

    def next_interval(self, current: float) -> float:
        wait = current * self.backoff
        if self.max_interval is not None:
            wait = min(wait, self.max_interval)
        return wait


def poll_until(
    fetch: Callable[[], Any],
    is_pending: Callable[[Any], bool],
    policy: Optional[PollPolicy] = None,
    cancel_event: Optional[threading.Event] = None,
    sleep: Optional[Callable[[float], Any]] = None,
    clock: Callable[[], float] = time.monotonic,
) -> Any:
    """
    Wait, fetch, and repeat while ``is_pending(value)`` holds.

    Every check is preceded by a wait, so the remote side always gets at
    least one interval to make progress. The cancellation event is checked
    before and after each wait; when no ``sleep`` is given and an event is
    supplied, the wait is ``cancel_event.wait`` so cancelling wakes it early.

    Args:
        fetch: Returns the current value (e.g. a status record)
        is_pending: True while polling should continue
        policy: Interval/backoff/deadline settings
        cancel_event: Optional caller-owned cancellation token
        sleep: Wait function (defaults to time.sleep or cancel_event.wait)
        clock: Monotonic clock used for the deadline

    Returns:
        The first value for which ``is_pending`` is False

    Raises:
        PollTimeout: Attempt cap or deadline reached
        PollCancelled: Cancellation event set
    """
    policy = policy or PollPolicy()
    if sleep is None:
        sleep = cancel_event.wait if cancel_event is not None else time.sleep

    started = clock()
    wait = policy.interval
    attempts = 0
    value = None

    while True:
        if cancel_event is not None and cancel_event.is_set():
            raise PollCancelled(f"Polling cancelled after {attempts} checks", attempts, value)

        if policy.max_attempts is not None and attempts >= policy.max_attempts:
            raise PollTimeout(f"Still pending after {attempts} checks", attempts, value)

        elapsed = clock() - started
        if policy.timeout is not None and elapsed >= policy.timeout:
            raise PollTimeout(
                f"Still pending after {elapsed:.1f}s ({attempts} checks)", attempts, value
            )

        sleep(wait)

        if cancel_event is not None and cancel_event.is_set():
            raise PollCancelled(f"Polling cancelled after {attempts} checks", attempts, value)

        value = fetch()
        attempts += 1
        if not is_pending(value):
            return value

        wait = policy.next_interval(wait)
        logger.debug("Poll check %s still pending; next wait %.2fs", attempts, wait)
