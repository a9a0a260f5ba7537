"""maestro - Pausable, resumable, groupable timers."""
from __future__ import annotations

import logging

from maestro.config import GroupConfig, TimerConfig
from maestro.errors import InvalidArgument
from maestro.factory import group, sequence, sync, timer
from maestro.group import Group
from maestro.scheduler import (
    AsyncioScheduler,
    ManualScheduler,
    Scheduler,
    get_scheduler,
    set_scheduler,
    use_scheduler,
)
from maestro.timer import Timer, TimerState

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "Timer",
    "TimerState",
    "Group",
    "TimerConfig",
    "GroupConfig",
    "InvalidArgument",
    "Scheduler",
    "AsyncioScheduler",
    "ManualScheduler",
    "get_scheduler",
    "set_scheduler",
    "use_scheduler",
    "timer",
    "group",
    "sequence",
    "sync",
]
