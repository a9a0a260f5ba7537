"""Group - bulk control and completion aggregation over timers."""
from __future__ import annotations

import logging
import time
from collections.abc import Mapping
from typing import Any, Callable

from maestro.config import GroupConfig
from maestro.timer import Timer

logger = logging.getLogger(__name__)

GroupListener = Callable[["Group"], Any]


class Group:
    """A named set of timers that reports when all of them have completed.

    Timers and groups link many-to-many: ``t in g.timers`` exactly when
    ``g in t.groups``. A chained group runs its members one after another
    from ``start_all``; any other group, synchronous or not, starts them
    together.
    """

    def __init__(self, config: GroupConfig | Mapping[str, Any] | str | None = None) -> None:
        cfg = GroupConfig.coerce(config)
        self.name = cfg.name or f"group_{int(time.time() * 1000)}"
        self.synchronous = cfg.synchronous
        self.chained = cfg.chained
        self.completed_timers: set[Timer] = set()
        self._timers: dict[Timer, None] = {}
        self._listeners: dict[GroupListener, None] = {}
        # sequential run state for chained groups
        self._chain: list[Timer] | None = None
        self._chain_index = 0

    def __repr__(self) -> str:
        return (
            f"Group(name={self.name!r}, synchronous={self.synchronous!r}, "
            f"chained={self.chained!r}, timers={len(self._timers)})"
        )

    @property
    def timers(self) -> tuple[Timer, ...]:
        """Members in insertion order."""
        return tuple(self._timers)

    # --- Membership ---

    def add(self, timer: Timer) -> Group:
        self._timers[timer] = None
        timer._groups[self] = None
        return self

    def link(self, *timers: Timer) -> Group:
        """Add each argument that is a Timer; anything else is skipped."""
        for timer in timers:
            if not isinstance(timer, Timer):
                logger.debug("Group %r skipped non-timer argument %r", self.name, timer)
                continue
            self.add(timer)
        return self

    def remove(self, *timers: Timer) -> Group:
        for timer in timers:
            if not isinstance(timer, Timer):
                continue
            self._timers.pop(timer, None)
            self.completed_timers.discard(timer)
            timer._groups.pop(self, None)
        return self

    # --- Bulk control ---

    def start_all(self) -> Group:
        """Start every member, or run them in order when chained."""
        if self.chained:
            self._run_chain()
        else:
            for timer in list(self._timers):
                timer.start()
        return self

    def pause_all(self) -> Group:
        for timer in list(self._timers):
            timer.pause()
        return self

    def reset_all(self, auto_start: bool = True) -> Group:
        """Reset every member, ending any sequential run in progress."""
        self._chain = None
        for timer in list(self._timers):
            timer.reset(auto_start)
        return self

    def restart_synchronized(self) -> Group:
        """Restart members in lockstep, rescaled to the longest delay.

        Each member keeps its progress ratio (remaining / own delay) but now
        counts it down against the longest member delay. Zero-delay members
        have nothing left to scale and restart with 0 remaining. Completed
        members are left alone.
        """
        members = list(self._timers)
        if not members:
            return self
        max_delay = max(timer.delay for timer in members)
        for timer in members:
            if timer.state.is_completed:
                continue
            ratio = timer.get_remaining_time() / timer.delay if timer.delay else 0
            timer._restart_from(max_delay * ratio)
        logger.debug("Group %r restarted %d timers against %s ms", self.name, len(members), max_delay)
        return self

    # --- Queries ---

    def get_active_count(self) -> int:
        return sum(1 for timer in self._timers if timer.is_active())

    # --- Completion ---

    def on_all_complete(self, listener: GroupListener) -> Group:
        """Call ``listener(group)`` each time every member has completed."""
        self._listeners[listener] = None
        return self

    def on_complete(self, callback: Callable[[], Any]) -> Group:
        """Call ``callback()`` when a current member completes and all members are done.

        Only timers in the group right now are watched; later additions are not.
        """

        def check(_timer: Timer) -> None:
            if all(t.state.is_completed for t in self._timers):
                callback()

        for timer in list(self._timers):
            timer.on_complete(check)
        return self

    def on_timer_complete(self, timer: Timer) -> None:
        """Hook called by a member timer right after it completes."""
        self.completed_timers.add(timer)
        # membership may have changed since earlier completions, so re-scan it
        if all(t.state.is_completed for t in self._timers):
            logger.debug("Group %r: all %d timers completed", self.name, len(self._timers))
            for listener in list(self._listeners):
                listener(self)
            self.completed_timers.clear()
        self._advance_chain(timer)

    # --- Sequential runs ---

    def _run_chain(self) -> None:
        """Start or resume a sequential run over the non-completed members."""
        current = self._chain_current()
        if current is not None:
            current.start()
            return

        pending = [t for t in self._timers if not t.state.is_completed]
        if not pending:
            self._chain = None
            return
        self._chain = pending
        self._chain_index = 0
        # later members wait their turn, keeping any progress already made
        for timer in pending[1:]:
            timer.pause()
        pending[0].start()

    def _chain_current(self) -> Timer | None:
        chain = self._chain
        if chain is None:
            return None
        while self._chain_index < len(chain):
            timer = chain[self._chain_index]
            if timer in self._timers and not timer.state.is_completed:
                return timer
            self._chain_index += 1
        self._chain = None
        return None

    def _advance_chain(self, timer: Timer) -> None:
        chain = self._chain
        if chain is None or chain[self._chain_index] is not timer:
            return
        self._chain_index += 1
        nxt = self._chain_current()
        if nxt is not None and not nxt.is_active():
            nxt.start()
