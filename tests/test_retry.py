import threading

import pytest

from sf_apex_mcp.utils.retry import PollCancelled, PollPolicy, PollTimeout, poll_until


def sequence(*values):
    items = list(values)
    calls = []

    def fetch():
        calls.append(1)
        return items.pop(0) if len(items) > 1 else items[0]

    fetch.calls = calls
    return fetch


def test_returns_first_settled_value(clock):
    fetch = sequence("Queued", "InProgress", "Completed")

    value = poll_until(fetch, lambda v: v in ("Queued", "InProgress"), sleep=clock.sleep, clock=clock)

    assert value == "Completed"
    assert len(fetch.calls) == 3
    assert clock.sleeps == [1.0, 1.0, 1.0]


def test_exponential_backoff_is_capped(clock):
    fetch = sequence("P", "P", "P", "P", "done")
    policy = PollPolicy(interval=1.0, backoff=2.0, max_interval=5.0)

    poll_until(fetch, lambda v: v == "P", policy, sleep=clock.sleep, clock=clock)

    assert clock.sleeps == [1.0, 2.0, 4.0, 5.0, 5.0]


def test_deadline_raises_with_last_value(clock):
    fetch = sequence("P")
    policy = PollPolicy(interval=2.0, timeout=5.0)

    with pytest.raises(PollTimeout) as exc_info:
        poll_until(fetch, lambda v: v == "P", policy, sleep=clock.sleep, clock=clock)

    assert exc_info.value.attempts == 3
    assert exc_info.value.last_value == "P"


def test_attempt_cap(clock):
    fetch = sequence("P")

    with pytest.raises(PollTimeout) as exc_info:
        poll_until(fetch, lambda v: v == "P", PollPolicy(max_attempts=4), sleep=clock.sleep, clock=clock)

    assert exc_info.value.attempts == 4
    assert len(fetch.calls) == 4


def test_cancelled_before_first_check(clock):
    cancel = threading.Event()
    cancel.set()
    fetch = sequence("P")

    with pytest.raises(PollCancelled):
        poll_until(fetch, lambda v: v == "P", cancel_event=cancel, sleep=clock.sleep, clock=clock)

    assert fetch.calls == []
    assert clock.sleeps == []


def test_cancel_event_wakes_default_wait():
    cancel = threading.Event()
    fetch = sequence("P")

    timer = threading.Timer(0.05, cancel.set)
    timer.start()
    try:
        with pytest.raises(PollCancelled):
            # a 60s interval would hang the test if the wait ignored the event
            poll_until(fetch, lambda v: v == "P", PollPolicy(interval=60.0), cancel_event=cancel)
    finally:
        timer.cancel()

    assert fetch.calls == []
