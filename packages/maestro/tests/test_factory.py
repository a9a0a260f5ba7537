"""Tests for the timer/group/sequence/sync factory helpers."""
import pytest

import maestro
from maestro import Group, InvalidArgument, ManualScheduler, Timer


class TestTimerFactory:

    def test_creates_started_timer(self):
        clock = ManualScheduler()
        timer = maestro.timer(lambda: None, {"delay": 1000}, scheduler=clock)
        assert isinstance(timer, Timer)
        assert timer.delay == 1000
        assert timer.is_active()

    def test_keyword_options(self):
        clock = ManualScheduler()
        timer = maestro.timer(lambda: None, delay=20, auto_start=False, scheduler=clock)
        assert timer.delay == 20
        assert not timer.is_active()

    def test_missing_callback(self):
        with pytest.raises(InvalidArgument, match="Timer requires a callback function"):
            maestro.timer()

    def test_config_in_place_of_callback(self):
        with pytest.raises(InvalidArgument, match="Timer requires a callback function"):
            maestro.timer({"delay": 1000})

    def test_error_is_catchable_value_error(self):
        with pytest.raises(ValueError):
            maestro.timer(None)


class TestGroupFactory:

    def test_bare_name(self):
        group = maestro.group("test-group")
        assert isinstance(group, Group)
        assert group.name == "test-group"
        assert not group.synchronous

    def test_config_mapping(self):
        group = maestro.group({"name": "batch", "synchronous": True})
        assert group.name == "batch"
        assert group.synchronous

    def test_defaults(self):
        assert maestro.group().name.startswith("group_")

    def test_bad_options(self):
        with pytest.raises(InvalidArgument):
            maestro.group(42)


class TestSequence:

    def test_runs_strictly_in_order(self):
        """A, B, C at 50 ms each: B after A, C completes at 150 ms."""
        clock = ManualScheduler()
        order = []
        group = maestro.sequence(
            {"delay": 50, "callback": lambda: order.append(("A", clock.now()))},
            {"delay": 50, "callback": lambda: order.append(("B", clock.now()))},
            {"delay": 50, "callback": lambda: order.append(("C", clock.now()))},
            scheduler=clock,
        )

        clock.advance(150)
        assert order == [("A", 50), ("B", 100), ("C", 150)]

    def test_only_first_starts(self):
        clock = ManualScheduler()
        group = maestro.sequence(
            {"delay": 50, "callback": lambda: None},
            {"delay": 50, "callback": lambda: None},
            {"delay": 50, "callback": lambda: None},
            scheduler=clock,
        )
        first, second, third = group.timers
        assert group.synchronous
        assert group.chained
        assert first.is_active()
        assert not second.is_active()
        assert not third.is_active()

        clock.advance(50)
        assert second.is_active()
        assert not third.is_active()

    def test_explicit_auto_start_ignored(self):
        clock = ManualScheduler()
        group = maestro.sequence(
            {"delay": 10, "callback": lambda: None},
            {"delay": 10, "callback": lambda: None, "auto_start": True},
            scheduler=clock,
        )
        assert not group.timers[1].is_active()

    def test_group_completion(self):
        clock = ManualScheduler()
        done = []
        group = maestro.sequence(
            {"delay": 20, "callback": lambda: None},
            {"delay": 30, "callback": lambda: None},
            scheduler=clock,
        )
        group.on_all_complete(lambda g: done.append(clock.now()))

        clock.advance(100)
        assert done == [50]

    def test_args_and_context(self):
        clock = ManualScheduler()
        received = []
        maestro.sequence(
            {"delay": 5, "callback": lambda *a: received.append(a), "args": [1, 2]},
            {"delay": 5, "callback": lambda ctx: received.append(ctx), "context": "ctx"},
            scheduler=clock,
        )
        clock.advance(10)
        assert received == [(1, 2), "ctx"]

    def test_empty(self):
        group = maestro.sequence(scheduler=ManualScheduler())
        assert group.timers == ()

    def test_missing_callback(self):
        with pytest.raises(InvalidArgument):
            maestro.sequence({"delay": 50}, scheduler=ManualScheduler())

    def test_config_must_be_mapping(self):
        with pytest.raises(InvalidArgument):
            maestro.sequence(lambda: None, scheduler=ManualScheduler())


class TestSync:

    def test_timers_run_concurrently(self):
        clock = ManualScheduler()
        fired = []
        group = maestro.sync(
            {"delay": 50, "callback": lambda: fired.append(("a", clock.now()))},
            {"delay": 50, "callback": lambda: fired.append(("b", clock.now()))},
            scheduler=clock,
        )
        assert group.synchronous
        assert group.get_active_count() == 2

        clock.advance(50)
        assert fired == [("a", 50), ("b", 50)]

    def test_all_complete(self):
        clock = ManualScheduler()
        done = []
        group = maestro.sync(
            {"delay": 10, "callback": lambda: None},
            {"delay": 40, "callback": lambda: None},
            scheduler=clock,
        )
        group.on_all_complete(done.append)

        clock.advance(40)
        assert done == [group]

    def test_not_chained(self):
        group = maestro.sync({"delay": 10, "callback": lambda: None}, scheduler=ManualScheduler())
        assert not group.chained

    def test_reset_all_restarts_concurrently(self):
        clock = ManualScheduler()
        fired = []
        group = maestro.sync(
            {"delay": 100, "callback": lambda: fired.append(("a", clock.now()))},
            {"delay": 100, "callback": lambda: fired.append(("b", clock.now()))},
            scheduler=clock,
        )

        group.reset_all()
        assert group.get_active_count() == 2

        clock.advance(100)
        assert fired == [("a", 100), ("b", 100)]

    def test_pause_and_start_all_resume_together(self):
        clock = ManualScheduler()
        fired = []
        group = maestro.sync(
            {"delay": 100, "callback": lambda: fired.append(("a", clock.now()))},
            {"delay": 100, "callback": lambda: fired.append(("b", clock.now()))},
            scheduler=clock,
        )
        clock.advance(40)

        group.pause_all()
        group.start_all()
        assert group.get_active_count() == 2

        clock.advance(60)
        assert fired == [("a", 100), ("b", 100)]
