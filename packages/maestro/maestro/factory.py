"""Factory helpers composing timers and groups into common patterns."""
from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Callable

from maestro.config import GroupConfig, TimerConfig
from maestro.errors import InvalidArgument
from maestro.group import Group
from maestro.scheduler import Scheduler
from maestro.timer import Timer


def timer(
    callback: Callable[..., Any] | None = None,
    config: TimerConfig | Mapping[str, Any] | None = None,
    *,
    scheduler: Scheduler | None = None,
    **options: Any,
) -> Timer:
    """Create a timer. Auto-starts unless ``auto_start=False``.

    With the default asyncio scheduler this must be called from inside a
    running event loop; otherwise pass ``scheduler=`` or call
    ``set_scheduler`` first.
    """
    if callback is None:
        raise InvalidArgument("Timer requires a callback function")
    return Timer(callback, config, scheduler=scheduler, **options)


def group(name_or_config: str | GroupConfig | Mapping[str, Any] | None = None) -> Group:
    """Create a group from a bare name or a full configuration."""
    return Group(name_or_config)


def sequence(*configs: Mapping[str, Any], scheduler: Scheduler | None = None) -> Group:
    """Run timers strictly one after another.

    Each config is a mapping holding ``callback`` plus timer options. Every
    timer starts when the previous one completes; only the first starts now.
    """
    chain = Group(GroupConfig(synchronous=True, chained=True))
    timers = [_build(config, scheduler, auto_start=False) for config in configs]
    for previous, following in zip(timers, timers[1:]):
        previous.on_complete(_starter(following))
    for member in timers:
        chain.add(member)
    if timers:
        timers[0].start()
    return chain


def sync(*configs: Mapping[str, Any], scheduler: Scheduler | None = None) -> Group:
    """Group timers that start together (each auto-starts unless told otherwise)."""
    batch = Group(GroupConfig(synchronous=True))
    for config in configs:
        batch.add(_build(config, scheduler))
    return batch


def _build(config: Mapping[str, Any], scheduler: Scheduler | None, **overrides: Any) -> Timer:
    if not isinstance(config, Mapping):
        raise InvalidArgument(
            f"timer config must be a mapping with a callback, got {type(config).__name__}"
        )
    options = dict(config)
    callback = options.pop("callback", None)
    options.update(overrides)
    return Timer(callback, options, scheduler=scheduler)


def _starter(following: Timer) -> Callable[[Timer], None]:
    def start_next(_previous: Timer) -> None:
        following.start()

    return start_next
