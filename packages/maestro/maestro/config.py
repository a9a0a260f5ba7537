"""Timer and group configuration dataclasses."""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, fields
from typing import Any

from maestro.errors import InvalidArgument

DEFAULT_DELAY = 1000


@dataclass(frozen=True)
class TimerConfig:
    """Immutable timer options.

    Attributes:
        delay: Countdown length in milliseconds. 0 fires on the next
            scheduler turn.
        context: Receiver passed as the first callback argument when set.
        args: Positional arguments passed to the callback.
        auto_start: Start counting down as soon as the timer is built.
    """

    delay: float = DEFAULT_DELAY
    context: Any = None
    args: tuple[Any, ...] = ()
    auto_start: bool = True

    def __post_init__(self) -> None:
        if isinstance(self.delay, bool) or not isinstance(self.delay, (int, float)):
            raise InvalidArgument(f"delay must be a number, got {self.delay!r}")
        if self.delay < 0:
            raise InvalidArgument(f"delay must be >= 0, got {self.delay}")
        if not isinstance(self.args, (list, tuple)):
            raise InvalidArgument(
                f"args must be a list or tuple, got {type(self.args).__name__}"
            )
        object.__setattr__(self, "args", tuple(self.args))

    @classmethod
    def from_options(
        cls, config: TimerConfig | Mapping[str, Any] | None = None, **options: Any
    ) -> TimerConfig:
        """Merge a config (mapping or TimerConfig) with keyword overrides.

        Keys set to None fall back to their defaults. Unknown keys raise
        InvalidArgument.
        """
        known = [f.name for f in fields(cls)]
        if config is None:
            merged: dict[str, Any] = {}
        elif isinstance(config, TimerConfig):
            merged = {name: getattr(config, name) for name in known}
        elif isinstance(config, Mapping):
            merged = dict(config)
        else:
            raise InvalidArgument(
                f"config must be a mapping or TimerConfig, got {type(config).__name__}"
            )
        merged.update(options)

        unknown = sorted(set(merged) - set(known))
        if unknown:
            raise InvalidArgument(f"Unknown timer option(s): {', '.join(unknown)}")
        return cls(**{k: v for k, v in merged.items() if v is not None})


@dataclass(frozen=True)
class GroupConfig:
    """Immutable group options.

    Attributes:
        name: Label; generated by the group when missing.
        synchronous: Marks the members as belonging together.
        chained: ``start_all`` runs members one after another instead of
            starting them together.
    """

    name: str | None = None
    synchronous: bool = False
    chained: bool = False

    @classmethod
    def coerce(cls, value: str | GroupConfig | Mapping[str, Any] | None) -> GroupConfig:
        """Accept a bare name, a mapping, a GroupConfig or None."""
        if value is None:
            return cls()
        if isinstance(value, GroupConfig):
            return value
        if isinstance(value, str):
            return cls(name=value)
        if isinstance(value, Mapping):
            known = {f.name for f in fields(cls)}
            unknown = sorted(set(value) - known)
            if unknown:
                raise InvalidArgument(f"Unknown group option(s): {', '.join(unknown)}")
            return cls(**{k: v for k, v in value.items() if v is not None})
        raise InvalidArgument(
            f"group options must be a name, mapping or GroupConfig, got {type(value).__name__}"
        )
