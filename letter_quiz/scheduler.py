"""
Single-threaded scheduling for the quiz timer and orchestrator.

Scheduler is the seam between the quiz core and whatever event loop is
driving it. AsyncioScheduler runs on a real asyncio loop; VirtualScheduler
keeps a simulated clock so countdowns can be stepped through in tests.
"""
import asyncio
import heapq
import itertools
import logging
import time
from typing import Any, Callable, List, Optional, Tuple

logger = logging.getLogger(__name__)


class TimerSchedulingError(RuntimeError):
    """Raised when a callback cannot be scheduled."""
    pass


class ScheduledHandle:
    """Handle for a scheduled callback. Cancelling is idempotent."""

    def __init__(self) -> None:
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class Scheduler:
    """
    Interface for time and deferred callbacks.

    Implementations must never invoke a callback synchronously from
    after() or every().
    """

    def now(self) -> float:
        """Current monotonic time in seconds."""
        raise NotImplementedError

    def after(self, delay: float, callback: Callable[[], Any]) -> ScheduledHandle:
        """Run callback once, delay seconds from now."""
        raise NotImplementedError

    def every(self, interval: float, callback: Callable[[], Any]) -> ScheduledHandle:
        """Run callback every interval seconds, starting one interval from now."""
        raise NotImplementedError

    def clock_resolution(self) -> float:
        """How early a due callback may run, in seconds."""
        return 0.0


class _AsyncioHandle(ScheduledHandle):
    """Wraps the loop's TimerHandle, re-arming it for repeating callbacks."""

    def __init__(self, loop: asyncio.AbstractEventLoop, callback: Callable[[], Any],
                 interval: Optional[float] = None) -> None:
        super().__init__()
        self._loop = loop
        self._callback = callback
        self._interval = interval
        self._timer_handle: Optional[asyncio.TimerHandle] = None

    def _arm(self, when: float) -> None:
        self._timer_handle = self._loop.call_at(when, self._fire, when)

    def _fire(self, when: float) -> None:
        if self._cancelled:
            return
        if self._interval is not None:
            # Fixed cadence: the next slot is computed from the planned time,
            # not from when this callback actually ran.
            self._arm(when + self._interval)
        self._callback()

    def cancel(self) -> None:
        super().cancel()
        if self._timer_handle is not None:
            self._timer_handle.cancel()
            self._timer_handle = None


class AsyncioScheduler(Scheduler):
    """Scheduler backed by an asyncio event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        loop = self._loop
        if loop is None:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError as e:
                raise TimerSchedulingError("No running event loop to schedule on") from e
        if loop.is_closed():
            raise TimerSchedulingError("Event loop is closed")
        return loop

    def now(self) -> float:
        loop = self._loop
        if loop is None:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                return time.monotonic()
        return loop.time()

    def clock_resolution(self) -> float:
        # asyncio runs timer handles due within one monotonic clock resolution
        return time.get_clock_info('monotonic').resolution

    def after(self, delay: float, callback: Callable[[], Any]) -> ScheduledHandle:
        loop = self._get_loop()
        handle = _AsyncioHandle(loop, callback)
        try:
            handle._arm(loop.time() + max(0.0, delay))
        except RuntimeError as e:
            raise TimerSchedulingError(f"Failed to schedule callback: {e}") from e
        return handle

    def every(self, interval: float, callback: Callable[[], Any]) -> ScheduledHandle:
        if interval <= 0:
            raise TimerSchedulingError(f"Repeat interval must be positive, got {interval}")
        loop = self._get_loop()
        handle = _AsyncioHandle(loop, callback, interval)
        try:
            handle._arm(loop.time() + interval)
        except RuntimeError as e:
            raise TimerSchedulingError(f"Failed to schedule repeating callback: {e}") from e
        return handle


class _VirtualEntry:
    __slots__ = ("callback", "interval", "handle")

    def __init__(self, callback: Callable[[], Any], interval: Optional[float],
                 handle: ScheduledHandle) -> None:
        self.callback = callback
        self.interval = interval
        self.handle = handle


class VirtualScheduler(Scheduler):
    """
    Deterministic scheduler with a manually advanced clock.

    Callbacks run only inside advance() or run_pending(), in due-time order
    with ties broken by scheduling order. A callback that raises is logged
    and the clock keeps moving, the way an event loop reports callback
    exceptions without stopping.
    """

    def __init__(self, start: float = 0.0) -> None:
        self._now = float(start)
        self._queue: List[Tuple[float, int, _VirtualEntry]] = []
        self._sequence = itertools.count()

    def now(self) -> float:
        return self._now

    def after(self, delay: float, callback: Callable[[], Any]) -> ScheduledHandle:
        handle = ScheduledHandle()
        self._push(self._now + max(0.0, delay), _VirtualEntry(callback, None, handle))
        return handle

    def every(self, interval: float, callback: Callable[[], Any]) -> ScheduledHandle:
        if interval <= 0:
            raise TimerSchedulingError(f"Repeat interval must be positive, got {interval}")
        handle = ScheduledHandle()
        self._push(self._now + interval, _VirtualEntry(callback, interval, handle))
        return handle

    def _push(self, due: float, entry: _VirtualEntry) -> None:
        heapq.heappush(self._queue, (due, next(self._sequence), entry))

    def advance(self, seconds: float) -> None:
        """Move the clock forward, running everything that falls due."""
        if seconds < 0:
            raise ValueError("Cannot move the virtual clock backwards")
        target = self._now + seconds
        self._run_until(target)
        self._now = target

    def run_pending(self) -> None:
        """Run callbacks already due at the current instant."""
        self._run_until(self._now)

    def pending_count(self) -> int:
        """Number of scheduled callbacks that have not been cancelled."""
        return sum(1 for _, _, entry in self._queue if not entry.handle.cancelled)

    def _run_until(self, target: float) -> None:
        while self._queue and self._queue[0][0] <= target:
            due, _, entry = heapq.heappop(self._queue)
            if entry.handle.cancelled:
                continue
            self._now = due
            if entry.interval is not None:
                self._push(due + entry.interval, entry)
            try:
                entry.callback()
            except Exception:
                logger.error(
                    "Scheduled callback raised",
                    exc_info=True,
                    extra={
                        'event_type': 'scheduled_callback_error',
                        'virtual_time': due,
                        'timestamp': time.time()
                    }
                )
