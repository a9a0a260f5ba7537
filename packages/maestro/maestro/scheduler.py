"""Scheduler protocol, asyncio and manual implementations, process default."""
from __future__ import annotations

import asyncio
import heapq
import itertools
import logging
from collections import deque
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Protocol, runtime_checkable

logger = logging.getLogger(__name__)

_Fire = Callable[[], None]


@runtime_checkable
class Handle(Protocol):
    """A scheduled wake-up that can be cancelled before it fires."""

    def cancel(self) -> None:
        ...


@runtime_checkable
class Scheduler(Protocol):
    """Monotonic clock plus single-shot wake-ups, in milliseconds.

    Implementations run every wake-up on a single logical thread. Callbacks
    queued with ``schedule_async`` run on the next turn of that thread,
    never inline, and before any timed wake-up that is due later.
    """

    def now(self) -> float:
        """Current monotonic time in milliseconds."""
        ...

    def schedule_after(self, ms: float, fire: _Fire) -> Any:
        """Call ``fire`` once after ``ms`` milliseconds; return a handle."""
        ...

    def schedule_async(self, fire: _Fire) -> Any:
        """Call ``fire`` on the next turn; return a handle."""
        ...

    def cancel(self, handle: Any) -> None:
        """Cancel a handle returned by this scheduler."""
        ...


class AsyncioScheduler:
    """Scheduler backed by an asyncio event loop.

    Args:
        loop: Loop to schedule on. When None, the loop running at call time
            is used, so timers must then be driven from inside a coroutine.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is not None:
            return self._loop
        try:
            return asyncio.get_running_loop()
        except RuntimeError:
            raise RuntimeError(
                "AsyncioScheduler has no loop and none is running; call from a "
                "coroutine, pass scheduler=, or call set_scheduler() first"
            ) from None

    def now(self) -> float:
        return self.loop.time() * 1000.0

    def schedule_after(self, ms: float, fire: _Fire) -> asyncio.TimerHandle:
        return self.loop.call_later(max(0.0, ms) / 1000.0, fire)

    def schedule_async(self, fire: _Fire) -> asyncio.Handle:
        return self.loop.call_soon(fire)

    def cancel(self, handle: asyncio.Handle) -> None:
        handle.cancel()


class ManualHandle:
    """Wake-up queued on a ManualScheduler."""

    __slots__ = ("when", "_fire", "_cancelled", "_done")

    def __init__(self, when: float, fire: _Fire) -> None:
        self.when = when
        self._fire = fire
        self._cancelled = False
        self._done = False

    def cancel(self) -> None:
        self._cancelled = True

    def cancelled(self) -> bool:
        return self._cancelled

    def pending(self) -> bool:
        return not (self._cancelled or self._done)

    def _run(self) -> None:
        self._done = True
        self._fire()


class ManualScheduler:
    """Deterministic scheduler whose clock only moves when told to.

    Time starts at ``start`` milliseconds and advances through ``advance``.
    Async callbacks behave like microtasks: they are drained before every
    timed wake-up and after the last one.
    """

    def __init__(self, start: float = 0.0) -> None:
        self._now = float(start)
        self._timed: list[tuple[float, int, ManualHandle]] = []
        self._soon: deque[ManualHandle] = deque()
        self._seq = itertools.count()

    def now(self) -> float:
        return self._now

    def schedule_after(self, ms: float, fire: _Fire) -> ManualHandle:
        handle = ManualHandle(self._now + max(0.0, ms), fire)
        heapq.heappush(self._timed, (handle.when, next(self._seq), handle))
        return handle

    def schedule_async(self, fire: _Fire) -> ManualHandle:
        handle = ManualHandle(self._now, fire)
        self._soon.append(handle)
        return handle

    def cancel(self, handle: ManualHandle) -> None:
        handle.cancel()

    def pending_count(self) -> int:
        """Number of queued wake-ups that have not fired or been cancelled."""
        live = [h for _, _, h in self._timed if h.pending()]
        return len(live) + sum(1 for h in self._soon if h.pending())

    def run_pending(self) -> int:
        """Run queued async callbacks, including ones they queue. Returns count run."""
        ran = 0
        while self._soon:
            handle = self._soon.popleft()
            if handle.cancelled():
                continue
            handle._run()
            ran += 1
        return ran

    def advance(self, ms: float) -> int:
        """Move the clock forward ``ms`` milliseconds, firing what falls due.

        Wake-ups fire in deadline order, ties in scheduling order, with the
        clock set to each deadline while it runs. Returns the number of
        callbacks run, async ones included.
        """
        if ms < 0:
            raise ValueError(f"cannot move the clock backwards ({ms} ms)")
        target = self._now + ms
        ran = self.run_pending()
        while self._timed and self._timed[0][0] <= target:
            when, _, handle = heapq.heappop(self._timed)
            if handle.cancelled():
                continue
            self._now = when
            handle._run()
            ran += 1
            ran += self.run_pending()
        self._now = target
        logger.debug("Manual clock advanced to %.3f ms (%d callbacks)", target, ran)
        return ran


_default: Scheduler | None = None


def get_scheduler() -> Scheduler:
    """Return the process-wide scheduler, creating the asyncio one on first use."""
    global _default
    if _default is None:
        _default = AsyncioScheduler()
    return _default


def set_scheduler(scheduler: Scheduler | None) -> None:
    """Replace the process-wide scheduler. None restores the asyncio default."""
    global _default
    _default = scheduler
    logger.debug("Default scheduler set to %r", scheduler)


@contextmanager
def use_scheduler(scheduler: Scheduler) -> Iterator[Scheduler]:
    """Temporarily install ``scheduler`` as the process-wide default."""
    previous = _default
    set_scheduler(scheduler)
    try:
        yield scheduler
    finally:
        set_scheduler(previous)
