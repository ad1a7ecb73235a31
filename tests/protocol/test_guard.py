"""Tests for the engine-wide reentrancy guard."""

import threading

import pytest

from cdp_engine.protocol.errors import ReentrantCall
from cdp_engine.protocol.guard import ReentrancyGuard


def test_same_thread_reentry_fails_fast() -> None:
    guard = ReentrancyGuard()
    guard.acquire()
    with pytest.raises(ReentrantCall):
        guard.acquire()
    # The failed attempt leaves the original holder in place
    assert guard.locked
    guard.release()
    assert not guard.locked


def test_other_thread_waits_for_release() -> None:
    guard = ReentrancyGuard()
    order = []
    guard.acquire()

    def contender():
        guard.acquire()
        order.append("contender")
        guard.release()

    t = threading.Thread(target=contender)
    t.start()
    t.join(timeout=0.2)
    assert t.is_alive()
    order.append("holder")
    guard.release()
    t.join()
    assert order == ["holder", "contender"]
