"""Engine-wide exclusion for mutating entry points."""

from __future__ import annotations

import threading

from cdp_engine.protocol.errors import ReentrantCall


class ReentrancyGuard:
    """One lock shared by every mutating entry point of an engine.

    Callers pair :meth:`acquire` with :meth:`release` in a ``try``/``finally``.
    Another thread blocks until release; the owning thread re-entering (for
    example from a collaborator callback) fails fast with ReentrantCall.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._owner: int | None = None

    def acquire(self) -> None:
        me = threading.get_ident()
        if self._owner == me:
            raise ReentrantCall("Engine re-entered while a mutating call is in flight")
        self._lock.acquire()
        self._owner = me

    def release(self) -> None:
        self._owner = None
        self._lock.release()

    @property
    def locked(self) -> bool:
        return self._lock.locked()
