"""Admission control for the rendering pipeline.

:class:`RequestGate` bounds how many pipelines run at once and how many
requests may wait for a slot.  It is an asyncio primitive: waiting requests
park a future in a queue instead of holding a thread, so thousands of pending
connections cost next to nothing.

Policy
------
- A request is admitted immediately when a slot is free and nobody is
  already waiting.
- Otherwise it joins the wait queue, unless the queue already holds
  ``max_waiting`` requests, in which case it fails at once with
  :class:`~identicon.core.errors.ServiceOverloaded`.
- A queued request that is not handed a slot within ``timeout`` seconds
  fails with :class:`~identicon.core.errors.GateTimeout`.
- :meth:`RequestGate.release` hands the freed slot straight to the oldest
  live waiter.  Ordering is best effort; the only starvation bound is the
  timeout.

All state is mutated on the event loop thread with no ``await`` between a
check and its update, so two requests can never hold the same slot.

Usage
-----
::

    gate = RequestGate(limit=64, max_waiting=256, timeout=10.0)

    async with gate.admit():
        ...  # at most 64 of these bodies run at once
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from identicon.core.errors import GateTimeout, ServiceOverloaded

logger = logging.getLogger(__name__)


class Permit:
    """Proof that the holder owns one slot of a :class:`RequestGate`.

    Releasing a permit more than once is a no-op.
    """

    __slots__ = ("_gate", "_released")

    def __init__(self, gate: RequestGate) -> None:
        self._gate = gate
        self._released = False

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> None:
        self._gate.release(self)


class RequestGate:
    """Bounded-concurrency gate with a bounded wait queue.

    Args:
        limit: Maximum number of permits held at once.
        max_waiting: Maximum number of requests parked in the wait queue.
            ``0`` disables queueing: requests are admitted or shed.
        timeout: Seconds a request may wait for a slot, or ``None`` to
            wait indefinitely.

    Raises:
        ValueError: If ``limit`` is below 1, ``max_waiting`` is negative,
            or ``timeout`` is not positive.
    """

    def __init__(self, limit: int, max_waiting: int = 0, timeout: float | None = 10.0) -> None:
        if limit < 1:
            raise ValueError(f"limit must be at least 1, got {limit}")
        if max_waiting < 0:
            raise ValueError(f"max_waiting must not be negative, got {max_waiting}")
        if timeout is not None and timeout <= 0:
            raise ValueError(f"timeout must be positive, got {timeout}")

        self._limit = limit
        self._max_waiting = max_waiting
        self._timeout = timeout

        # Slots currently owned, including slots handed to a waiter that has
        # not resumed yet.
        self._in_flight = 0
        self._waiters: deque[asyncio.Future[None]] = deque()

    def __repr__(self) -> str:
        return (
            f"<RequestGate in_flight={self._in_flight}/{self._limit} "
            f"waiting={self.waiting}/{self._max_waiting}>"
        )

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def max_waiting(self) -> int:
        return self._max_waiting

    @property
    def timeout(self) -> float | None:
        return self._timeout

    @property
    def in_flight(self) -> int:
        return self._in_flight

    @property
    def waiting(self) -> int:
        return len(self._waiters)

    # -- Acquire / release ----------------------------------------------------

    async def acquire(self) -> Permit:
        """Wait for a free slot and return a permit for it.

        Returns:
            A :class:`Permit` that must be passed to :meth:`release`.

        Raises:
            ServiceOverloaded: The wait queue is full.
            GateTimeout: No slot was freed within the timeout.
            asyncio.CancelledError: The waiting task was cancelled.  No slot
                is held in that case.
        """
        if self._in_flight < self._limit and not self.waiting:
            self._in_flight += 1
            return Permit(self)

        if self.waiting >= self._max_waiting:
            logger.warning(
                "Shedding request: %d in flight, %d waiting", self._in_flight, self.waiting
            )
            raise ServiceOverloaded()

        waiter: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        try:
            await asyncio.wait_for(waiter, self._timeout)
        except BaseException as exc:
            self._abandon(waiter)
            if isinstance(exc, asyncio.TimeoutError):
                logger.warning("Request gave up after waiting %.1fs for a slot", self._timeout)
                raise GateTimeout() from exc
            raise
        return Permit(self)

    def release(self, permit: Permit) -> None:
        """Return the slot held by ``permit``.

        Raises:
            ValueError: If ``permit`` belongs to a different gate.
        """
        if permit._gate is not self:
            raise ValueError("permit was issued by a different gate")
        if permit._released:
            return
        permit._released = True
        self._hand_off()

    @asynccontextmanager
    async def admit(self) -> AsyncIterator[Permit]:
        """Hold a permit for the duration of an ``async with`` block.

        The permit is released on every exit path, including cancellation.
        """
        permit = await self.acquire()
        try:
            yield permit
        finally:
            self.release(permit)

    # -- Internals ------------------------------------------------------------

    def _hand_off(self) -> None:
        """Give a freed slot to the next live waiter, or drop the count."""
        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                waiter.set_result(None)
                return
        self._in_flight -= 1

    def _abandon(self, waiter: asyncio.Future[None]) -> None:
        """Clean up after a waiter that stopped waiting."""
        if waiter.done() and not waiter.cancelled():
            # The slot arrived together with the timeout or cancellation.
            self._hand_off()
            return
        try:
            self._waiters.remove(waiter)
        except ValueError:
            pass
