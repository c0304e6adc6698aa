"""
Session timer: a pausable stopwatch/countdown anchored to the clock.
"""

import asyncio
import math
import time
from typing import Callable, Optional, Protocol

from mindlock.config import settings
from mindlock.logger import setup_logger
from mindlock.models import FormattedTime

logger = setup_logger(__name__)

Clock = Callable[[], float]


class TickHandle(Protocol):
    def cancel(self) -> None: ...


class TickScheduler(Protocol):
    """Runs `callback` every `interval` seconds until the handle is cancelled."""

    def schedule(self, interval: float, callback: Callable[[], None]) -> TickHandle: ...


class _RepeatingCall:
    """Interval handle on an asyncio loop, re-armed after every call."""

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        interval: float,
        callback: Callable[[], None],
    ) -> None:
        self._loop = loop
        self._interval = interval
        self._callback = callback
        self._cancelled = False
        self._handle = loop.call_later(interval, self._run)

    def _run(self) -> None:
        if self._cancelled:
            return
        self._handle = self._loop.call_later(self._interval, self._run)
        self._callback()

    def cancel(self) -> None:
        self._cancelled = True
        self._handle.cancel()


class AsyncioTickScheduler:
    """Default scheduler. Requires a running event loop."""

    def schedule(self, interval: float, callback: Callable[[], None]) -> TickHandle:
        loop = asyncio.get_running_loop()
        return _RepeatingCall(loop, interval, callback)


def format_duration(total_seconds: int, short: bool = False) -> FormattedTime:
    """
    Split seconds into zero-padded HH:MM:SS.

    Args:
        total_seconds: Seconds to format (negative values clamp to 0)
        short: Drop the hours field when it is zero ("MM:SS")
    """
    total_seconds = max(0, int(total_seconds))
    hours = total_seconds // 3600
    minutes = (total_seconds % 3600) // 60
    seconds = total_seconds % 60

    if short and hours == 0:
        formatted = f"{minutes:02d}:{seconds:02d}"
    else:
        formatted = f"{hours:02d}:{minutes:02d}:{seconds:02d}"

    return FormattedTime(
        hours=hours, minutes=minutes, seconds=seconds, formatted=formatted
    )


class SessionTimer:
    """
    Restartable, pausable timer for exam and study sessions.

    Elapsed time is always recomputed from the clock on each tick, so a late
    or irregular tick never introduces drift. A bounded timer
    (budget_seconds > 0) completes once elapsed reaches the budget and fires
    `on_complete` exactly once per start/reset cycle. An unbounded timer
    (budget_seconds == 0) counts up forever.

    The timer never raises from start/pause/reset/tick. If the scheduler
    cannot be used, start() leaves `is_running` False.
    """

    def __init__(
        self,
        budget_seconds: int = 0,
        on_complete: Optional[Callable[[], None]] = None,
        clock: Optional[Clock] = None,
        scheduler: Optional[TickScheduler] = None,
        tick_interval: Optional[float] = None,
    ) -> None:
        """
        Args:
            budget_seconds: Time allowance; 0 means unbounded.
            on_complete: Called once when a bounded timer runs out.
            clock: Seconds source (default time.monotonic).
            scheduler: Recurring tick source (default: running asyncio loop).
            tick_interval: Seconds between ticks (default from settings).
        """
        if budget_seconds < 0:
            raise ValueError(f"budget_seconds must be >= 0, got {budget_seconds}")

        self.budget_seconds = int(budget_seconds)
        self.on_complete = on_complete
        self._clock: Clock = clock or time.monotonic
        self._scheduler: TickScheduler = scheduler or AsyncioTickScheduler()
        self._tick_interval = (
            tick_interval if tick_interval is not None else settings.timer_tick_interval
        )

        self._exact_elapsed = 0.0
        self._anchor: Optional[float] = None
        self._handle: Optional[TickHandle] = None
        self._running = False
        self._complete = False
        self._completion_fired = False
        self._disposed = False

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------
    @property
    def is_bounded(self) -> bool:
        return self.budget_seconds > 0

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def is_complete(self) -> bool:
        return self._complete

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    @property
    def elapsed_seconds(self) -> int:
        return int(math.floor(self._exact_elapsed))

    @property
    def remaining_seconds(self) -> int:
        """Seconds left for a bounded timer; 0 for unbounded ones."""
        if not self.is_bounded:
            return 0
        return max(0, self.budget_seconds - self.elapsed_seconds)

    # ------------------------------------------------------------------
    # Controls
    # ------------------------------------------------------------------
    def start(self) -> None:
        """Start or resume. No-op while running, after completion or disposal."""
        if self._disposed or self._running or self._complete:
            return

        # Anchor so that clock() - anchor continues from the accumulated time
        self._anchor = self._clock() - self._exact_elapsed
        self._running = True
        try:
            self._handle = self._scheduler.schedule(self._tick_interval, self.tick)
        except Exception as e:
            self._running = False
            self._anchor = None
            logger.warning(f"⚠️ Timer could not schedule ticks: {e}")
            return

        logger.debug(
            f"⏱️  Timer started (budget: {self.budget_seconds}s, "
            f"elapsed: {self.elapsed_seconds}s)"
        )

    def pause(self) -> None:
        """Stop ticking and keep the elapsed time."""
        if not self._running:
            return

        self.tick()
        if not self._running:
            # Ran out while being paused
            return

        self._running = False
        self._cancel_tick()
        logger.debug(f"⏸️  Timer paused at {self.elapsed_seconds}s")

    def reset(self) -> None:
        """Stop and zero the timer. Does not restart it."""
        self._cancel_tick()
        self._running = False
        self._complete = False
        self._completion_fired = False
        self._exact_elapsed = 0.0
        self._anchor = None

    def dispose(self) -> None:
        """Teardown. Any tick delivered afterwards is ignored."""
        self._disposed = True
        self._running = False
        self._cancel_tick()

    def tick(self) -> None:
        """Recompute elapsed time from the clock and check for completion."""
        if self._disposed or not self._running or self._anchor is None:
            return

        self._exact_elapsed = max(self._exact_elapsed, self._clock() - self._anchor)
        self._check_complete()

    # ------------------------------------------------------------------
    # Display
    # ------------------------------------------------------------------
    def formatted_time(self, countdown: bool = False, short: bool = False) -> FormattedTime:
        """
        Args:
            countdown: Show remaining time instead of elapsed time.
            short: Omit hours when zero.
        """
        total = self.remaining_seconds if countdown else self.elapsed_seconds
        return format_duration(total, short=short)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _check_complete(self) -> None:
        if not self.is_bounded or self._complete:
            return
        if self.elapsed_seconds < self.budget_seconds:
            return

        # Stop in the same tick that detected completion
        self._complete = True
        self._running = False
        self._cancel_tick()

        if self._completion_fired:
            return
        self._completion_fired = True

        logger.info(f"⌛ Timer complete after {self.elapsed_seconds}s")
        if self.on_complete is None:
            return
        try:
            self.on_complete()
        except Exception as e:
            logger.error(f"🔥 Timer completion callback failed: {e}", exc_info=True)

    def _cancel_tick(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
