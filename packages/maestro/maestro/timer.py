"""Pausable single-shot timer."""
from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable

from maestro.config import TimerConfig
from maestro.errors import InvalidArgument
from maestro.scheduler import Handle, Scheduler, get_scheduler

if TYPE_CHECKING:
    from maestro.group import Group

logger = logging.getLogger(__name__)

CompletionListener = Callable[["Timer"], Any]


@dataclass
class TimerState:
    """Mutable countdown bookkeeping.

    ``remaining_time`` only changes on start, pause and completion; the live
    countdown is derived from ``start_time`` and the scheduler clock.
    """

    start_time: float = 0.0
    remaining_time: float = 0.0
    handle: Handle | None = None
    is_paused: bool = False
    is_completed: bool = False


class Timer:
    """Countdown that calls ``callback`` once ``delay`` milliseconds have run.

    The countdown can be paused and resumed without drift, reset, and linked
    to any number of groups that aggregate completion.

    Args:
        callback: Called with ``args`` (preceded by ``context`` when set).
        config: TimerConfig or mapping of timer options.
        scheduler: Clock and wake-up source. Defaults to the process-wide one,
            an asyncio scheduler that needs a running event loop.
        **options: Timer options overriding ``config``.

    Raises:
        InvalidArgument: ``callback`` is missing or not callable, or an
            option is invalid.
        RuntimeError: Auto-starting on the default scheduler outside a
            running event loop.
    """

    def __init__(
        self,
        callback: Callable[..., Any] | None,
        config: TimerConfig | Mapping[str, Any] | None = None,
        *,
        scheduler: Scheduler | None = None,
        **options: Any,
    ) -> None:
        if callback is None or not callable(callback):
            raise InvalidArgument("Timer requires a callback function")
        cfg = TimerConfig.from_options(config, **options)

        self.callback = callback
        self.delay = cfg.delay
        self.context = cfg.context
        self.args = cfg.args
        self.scheduler = scheduler if scheduler is not None else get_scheduler()
        self.state = TimerState(remaining_time=self.delay)

        # dicts keep insertion order and reject duplicates
        self._groups: dict[Group, None] = {}
        self._listeners: dict[CompletionListener, None] = {}
        self._completing = False
        self._deferred: list[Callable[[], Any]] = []

        if cfg.auto_start:
            self.start()

    def __repr__(self) -> str:
        return f"Timer(delay={self.delay!r}, status={self.status!r})"

    @property
    def groups(self) -> tuple[Group, ...]:
        """Linked groups in link order."""
        return tuple(self._groups)

    @property
    def status(self) -> str:
        """One of ``"completed"``, ``"paused"``, ``"running"`` or ``"idle"``."""
        if self.state.is_completed:
            return "completed"
        if self.state.is_paused:
            return "paused"
        if self.state.handle is not None:
            return "running"
        return "idle"

    # --- Listeners and links ---

    def on_complete(self, listener: CompletionListener) -> Timer:
        """Call ``listener(timer)`` after every completion, in registration order."""
        self._listeners[listener] = None
        return self

    def off_complete(self, listener: CompletionListener) -> Timer:
        self._listeners.pop(listener, None)
        return self

    def link(self, *groups: Group) -> Timer:
        """Link to each argument that is a Group; anything else is skipped."""
        from maestro.group import Group

        for group in groups:
            if not isinstance(group, Group):
                logger.debug("Timer.link skipped non-group argument %r", group)
                continue
            group.add(self)
        return self

    def unlink(self, *groups: Group) -> Timer:
        from maestro.group import Group

        for group in groups:
            if not isinstance(group, Group):
                continue
            self._groups.pop(group, None)
            group._timers.pop(self, None)
        return self

    # --- Control ---

    def start(self) -> Timer:
        """Start from the full delay, or resume from where pause() stopped."""
        if self._completing:
            self._deferred.append(self.start)
            return self
        if self.state.is_completed:
            logger.debug("%r is completed; reset() it to run again", self)
            return self
        if not self.state.is_paused:
            self.state.remaining_time = self.delay
        self._count_down()
        logger.debug("Started %r with %.3f ms remaining", self, self.state.remaining_time)
        return self

    def pause(self) -> Timer:
        """Freeze the countdown. No-op unless a wake-up is pending."""
        if self._completing:
            self._deferred.append(self.pause)
            return self
        state = self.state
        if state.handle is None or state.is_paused:
            return self
        self._cancel_wakeup()
        elapsed = self.scheduler.now() - state.start_time
        state.remaining_time = max(0, state.remaining_time - elapsed)
        state.is_paused = True
        logger.debug("Paused %r with %.3f ms remaining", self, state.remaining_time)
        return self

    def reset(self, auto_start: bool = True) -> Timer:
        """Return to idle with the full delay remaining, then optionally start."""
        if self._completing:
            self._deferred.append(lambda: self.reset(auto_start))
            return self
        self._cancel_wakeup()
        self.state = TimerState(remaining_time=self.delay)
        logger.debug("Reset %r", self)
        if auto_start:
            self.start()
        return self

    # --- Queries ---

    def get_remaining_time(self) -> float:
        """Milliseconds left, computed live while counting down."""
        state = self.state
        if state.is_paused or state.handle is None:
            return state.remaining_time
        elapsed = self.scheduler.now() - state.start_time
        return max(0, state.remaining_time - elapsed)

    def is_active(self) -> bool:
        """True while counting down. Paused and completed timers are inactive."""
        return self.state.handle is not None and not self.state.is_completed

    # --- Internals ---

    def _restart_from(self, remaining: float) -> None:
        """Count down ``remaining`` ms from now, whatever the previous state."""
        if self._completing:
            self._deferred.append(lambda: self._restart_from(remaining))
            return
        self.state.remaining_time = remaining
        self._count_down()

    def _count_down(self) -> None:
        state = self.state
        self._cancel_wakeup()
        state.is_paused = False
        state.start_time = self.scheduler.now()
        if state.remaining_time <= 0:
            # never inline: zero-delay timers fire on the next scheduler turn
            state.handle = self.scheduler.schedule_async(self._fire)
        else:
            state.handle = self.scheduler.schedule_after(state.remaining_time, self._fire)

    def _cancel_wakeup(self) -> None:
        if self.state.handle is not None:
            self.scheduler.cancel(self.state.handle)
            self.state.handle = None

    def _fire(self) -> None:
        if self.state.is_paused:
            return
        # the wake-up is spent; a raising callback leaves the timer idle
        self.state.handle = None
        self.state.start_time = 0.0
        self._complete()

    def _complete(self) -> None:
        """Run the callback, then notify groups and listeners.

        Control calls made on this timer while this runs are queued and
        applied once the last listener has returned.
        """
        self._completing = True
        try:
            if self.context is None:
                self.callback(*self.args)
            else:
                self.callback(self.context, *self.args)

            state = self.state
            state.is_completed = True
            state.handle = None
            state.start_time = 0.0
            state.remaining_time = 0
            logger.debug("Completed %r", self)

            for group in list(self._groups):
                group.on_timer_complete(self)
            for listener in list(self._listeners):
                listener(self)
        finally:
            self._completing = False
            deferred, self._deferred = self._deferred, []

        for op in deferred:
            op()
