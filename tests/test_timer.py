"""Tests for the session timer engine."""

import asyncio

import pytest

from mindlock.timer import SessionTimer, format_duration


def make_timer(clock, scheduler, budget=0, on_complete=None):
    return SessionTimer(
        budget, on_complete=on_complete, clock=clock, scheduler=scheduler, tick_interval=0.2
    )


class TestStartPause:
    def test_initial_state(self, clock, scheduler):
        timer = make_timer(clock, scheduler, budget=60)
        assert timer.elapsed_seconds == 0
        assert timer.remaining_seconds == 60
        assert timer.is_running is False
        assert timer.is_complete is False

    def test_start_is_idempotent(self, clock, scheduler):
        timer = make_timer(clock, scheduler)
        timer.start()
        timer.start()
        assert timer.is_running is True
        assert len(scheduler.handles) == 1

    def test_pause_when_not_running_is_noop(self, clock, scheduler):
        timer = make_timer(clock, scheduler)
        timer.pause()
        assert timer.is_running is False
        assert timer.elapsed_seconds == 0

    def test_pause_cancels_ticks(self, clock, scheduler):
        timer = make_timer(clock, scheduler)
        timer.start()
        scheduler.advance(clock, 2)
        timer.pause()

        assert scheduler.active == []
        clock.advance(10)
        scheduler.fire()
        assert timer.elapsed_seconds == 2

    def test_pause_captures_time_since_last_tick(self, clock, scheduler):
        timer = make_timer(clock, scheduler)
        timer.start()
        clock.advance(5)
        timer.pause()
        assert timer.elapsed_seconds == 5

    def test_pause_resume_preserves_progress(self, clock, scheduler):
        timer = make_timer(clock, scheduler)
        timer.start()
        scheduler.advance(clock, 5)
        timer.pause()

        clock.advance(30)  # paused time does not count
        timer.start()
        scheduler.advance(clock, 3)

        assert timer.elapsed_seconds == 8

    def test_scheduling_failure_leaves_timer_stopped(self, clock, broken_scheduler):
        timer = make_timer(clock, broken_scheduler, budget=10)
        timer.start()
        assert timer.is_running is False
        assert timer.is_complete is False


class TestElapsedTime:
    def test_elapsed_is_monotonic(self, clock, scheduler):
        timer = make_timer(clock, scheduler)
        timer.start()

        seen = []
        for step in (0.3, 0.9, 0.1, 1.7, 0.0, 2.2):
            clock.advance(step)
            scheduler.fire()
            seen.append(timer.elapsed_seconds)

        assert seen == sorted(seen)

    def test_clock_going_backwards_does_not_rewind(self, clock, scheduler):
        timer = make_timer(clock, scheduler)
        timer.start()
        scheduler.advance(clock, 4)

        clock.advance(-3)
        scheduler.fire()
        assert timer.elapsed_seconds == 4

    def test_irregular_ticks_do_not_drift(self, clock, scheduler):
        timer = make_timer(clock, scheduler)
        timer.start()

        # Sub-second ticks: a per-tick counter would overcount, the clock does not
        for _ in range(12):
            clock.advance(0.25)
            scheduler.fire()

        assert timer.elapsed_seconds == 3

    def test_late_tick_catches_up(self, clock, scheduler):
        timer = make_timer(clock, scheduler)
        timer.start()
        clock.advance(42.5)
        scheduler.fire()
        assert timer.elapsed_seconds == 42


class TestCompletion:
    def test_single_completion(self, clock, scheduler):
        calls = []
        timer = make_timer(
            clock, scheduler, budget=5, on_complete=lambda: calls.append(timer.elapsed_seconds)
        )
        timer.start()
        scheduler.advance(clock, 10)

        assert len(calls) == 1
        assert calls[0] >= 5
        assert timer.is_complete is True
        assert timer.is_running is False
        assert timer.remaining_seconds == 0
        assert scheduler.active == []

    def test_racing_ticks_fire_once(self, clock, scheduler):
        calls = []
        timer = make_timer(clock, scheduler, budget=5, on_complete=lambda: calls.append(1))
        timer.start()

        clock.advance(9)
        timer.tick()
        timer.tick()
        scheduler.fire()

        assert calls == [1]

    def test_start_after_completion_is_noop(self, clock, scheduler):
        calls = []
        timer = make_timer(clock, scheduler, budget=2, on_complete=lambda: calls.append(1))
        timer.start()
        scheduler.advance(clock, 3)

        timer.start()
        scheduler.advance(clock, 3)

        assert timer.is_running is False
        assert calls == [1]

    def test_reset_starts_a_new_cycle(self, clock, scheduler):
        calls = []
        timer = make_timer(clock, scheduler, budget=2, on_complete=lambda: calls.append(1))
        timer.start()
        scheduler.advance(clock, 2)
        timer.reset()

        timer.start()
        scheduler.advance(clock, 5)

        assert calls == [1, 1]

    def test_unbounded_timer_never_completes(self, clock, scheduler):
        calls = []
        timer = make_timer(clock, scheduler, budget=0, on_complete=lambda: calls.append(1))
        timer.start()
        scheduler.advance(clock, 1000)

        assert timer.is_complete is False
        assert timer.is_running is True
        assert timer.elapsed_seconds == 1000
        assert calls == []

    def test_callback_error_does_not_escape(self, clock, scheduler):
        def boom():
            raise ValueError("boom")

        timer = make_timer(clock, scheduler, budget=1, on_complete=boom)
        timer.start()
        scheduler.advance(clock, 2)

        assert timer.is_complete is True
        assert timer.is_running is False

    def test_complete_implies_not_running(self, clock, scheduler):
        timer = make_timer(clock, scheduler, budget=3)
        timer.start()
        for _ in range(6):
            scheduler.advance(clock, 1)
            assert not (timer.is_complete and timer.is_running)

    def test_negative_budget_rejected(self, clock, scheduler):
        with pytest.raises(ValueError):
            make_timer(clock, scheduler, budget=-1)


class TestResetAndDispose:
    def test_reset_twice_matches_reset_once(self, clock, scheduler):
        timer = make_timer(clock, scheduler, budget=10)
        timer.start()
        scheduler.advance(clock, 4)

        timer.reset()
        once = (timer.elapsed_seconds, timer.is_running, timer.is_complete)
        timer.reset()
        twice = (timer.elapsed_seconds, timer.is_running, timer.is_complete)

        assert once == twice == (0, False, False)
        assert scheduler.active == []

    def test_reset_does_not_restart(self, clock, scheduler):
        timer = make_timer(clock, scheduler)
        timer.start()
        scheduler.advance(clock, 3)
        timer.reset()
        scheduler.advance(clock, 3)
        assert timer.elapsed_seconds == 0

    def test_dangling_callback_after_dispose_is_noop(self, clock, scheduler):
        calls = []
        timer = make_timer(clock, scheduler, budget=5, on_complete=lambda: calls.append(1))
        timer.start()
        handle = scheduler.handles[0]
        scheduler.advance(clock, 2)

        timer.dispose()
        clock.advance(10)
        handle.callback()  # fires anyway, as a stale interval might

        assert timer.elapsed_seconds == 2
        assert calls == []
        assert timer.is_disposed

    def test_start_after_dispose_is_noop(self, clock, scheduler):
        timer = make_timer(clock, scheduler)
        timer.dispose()
        timer.start()
        assert timer.is_running is False


class TestFormatting:
    def test_format_duration_full(self):
        ft = format_duration(3725)
        assert (ft.hours, ft.minutes, ft.seconds) == (1, 2, 5)
        assert ft.formatted == "01:02:05"

    def test_format_duration_short_omits_zero_hours(self):
        assert format_duration(125, short=True).formatted == "02:05"
        assert format_duration(3600, short=True).formatted == "01:00:00"

    def test_countdown_and_stopwatch(self, clock, scheduler):
        timer = make_timer(clock, scheduler, budget=1200)
        timer.start()
        scheduler.advance(clock, 65)

        assert timer.formatted_time().formatted == "00:01:05"
        assert timer.formatted_time(countdown=True, short=True).formatted == "18:55"


class TestAsyncioScheduler:
    @pytest.mark.asyncio
    async def test_ticks_on_running_loop(self, clock):
        calls = []
        timer = SessionTimer(
            2, on_complete=lambda: calls.append(1), clock=clock, tick_interval=0.01
        )
        timer.start()
        assert timer.is_running is True

        clock.advance(3)
        for _ in range(50):
            if calls:
                break
            await asyncio.sleep(0.01)

        assert calls == [1]
        assert timer.is_complete is True

    def test_start_without_loop_degrades(self, clock):
        timer = SessionTimer(10, clock=clock)
        timer.start()
        assert timer.is_running is False
