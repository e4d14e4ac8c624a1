"""
Countdown timer for quiz questions.
Measures elapsed time against the scheduler clock, so late ticks and pauses
never make the countdown drift.
"""
import logging
import math
import time
from typing import Any, Callable, Optional

from .models import TimerState
from .scheduler import ScheduledHandle, Scheduler, TimerSchedulingError

# Set up logger for timer operations
logger = logging.getLogger(__name__)

TICK_INTERVAL = 1.0
# Floor on how early a tick may land; schedulers with a coarser clock
# report their own resolution
CLOCK_TOLERANCE = 0.001


class TimerLifecycleLogger:
    """Structured logging for timer lifecycle events."""

    @staticmethod
    def log_timer_start(timer_id: str, duration: int) -> None:
        """Log timer countdown start."""
        logger.info(
            f"Timer lifecycle: COUNTDOWN_START - Timer {timer_id}, Duration {duration}s",
            extra={
                'event_type': 'timer_countdown_start',
                'timer_id': timer_id,
                'duration': duration,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_timer_update(timer_id: str, remaining_time: int, total_duration: int) -> None:
        """Log timer update events (throttled to avoid spam)."""
        # Log only at specific intervals to avoid log spam
        if remaining_time % 10 == 0 or remaining_time <= 5:
            if total_duration > 0:
                progress_percent = ((total_duration - remaining_time) / total_duration) * 100
            else:
                progress_percent = 100.0
            logger.debug(
                f"Timer lifecycle: UPDATE - Timer {timer_id}, Remaining {remaining_time}s ({progress_percent:.1f}% complete)",
                extra={
                    'event_type': 'timer_update',
                    'timer_id': timer_id,
                    'remaining_time': remaining_time,
                    'total_duration': total_duration,
                    'progress_percent': progress_percent,
                    'timestamp': time.time()
                }
            )

    @staticmethod
    def log_timer_completion(timer_id: str, completion_type: str, total_duration: int) -> None:
        """Log timer completion (natural expiry or failure)."""
        logger.info(
            f"Timer lifecycle: COMPLETED - Timer {timer_id}, Type {completion_type}, Duration {total_duration}s",
            extra={
                'event_type': 'timer_completed',
                'timer_id': timer_id,
                'completion_type': completion_type,
                'total_duration': total_duration,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_timer_state_transition(timer_id: str, from_state: str, to_state: str, reason: str = None) -> None:
        """Log timer state transitions."""
        logger.info(
            f"Timer lifecycle: STATE_TRANSITION - Timer {timer_id}, {from_state} -> {to_state}" +
            (f" ({reason})" if reason else ""),
            extra={
                'event_type': 'timer_state_transition',
                'timer_id': timer_id,
                'from_state': from_state,
                'to_state': to_state,
                'reason': reason,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_timer_error(timer_id: str, error_type: str, error_message: str, operation: str) -> None:
        """Log timer-related errors with context."""
        logger.error(
            f"Timer lifecycle: ERROR - Timer {timer_id}, Operation {operation}, Type {error_type}: {error_message}",
            extra={
                'event_type': 'timer_error',
                'timer_id': timer_id,
                'error_type': error_type,
                'error_message': error_message,
                'operation': operation,
                'timestamp': time.time()
            }
        )


class CountdownTimer:
    """
    Countdown with a once-per-second tick and a single completion callback.

    States are idle/stopped (not running), running, and paused. A stopped
    timer can be started again; each start() discards the callbacks of the
    previous run.
    """

    def __init__(self, scheduler: Scheduler, timer_id: str = "timer"):
        """
        Initialize the timer.

        Args:
            scheduler: Source of time and deferred callbacks
            timer_id: Label used in log records
        """
        self._scheduler = scheduler
        self._timer_id = timer_id
        self._tolerance = max(CLOCK_TOLERANCE, scheduler.clock_resolution())
        self._duration = 0
        self._remaining = 0
        self._running = False
        self._paused = False
        self._start_time: Optional[float] = None
        self._paused_at: Optional[float] = None
        self._tick_handle: Optional[ScheduledHandle] = None
        self._completion_handle: Optional[ScheduledHandle] = None
        self._on_complete: Optional[Callable[[], Any]] = None
        self._on_tick: Optional[Callable[[int], Any]] = None

    def start(
        self,
        duration: int,
        on_complete: Optional[Callable[[], Any]],
        on_tick: Optional[Callable[[int], Any]] = None
    ) -> None:
        """
        Start counting down from duration seconds.

        on_tick receives the remaining seconds immediately and then once per
        second; on_complete runs once when the countdown reaches zero. A zero
        duration completes on the next scheduling opportunity, never inside
        this call.

        Args:
            duration: Countdown length in whole seconds (>= 0)
            on_complete: Called once when the countdown expires
            on_tick: Called with the remaining seconds
        """
        if duration < 0:
            raise ValueError(f"Timer duration cannot be negative, got {duration}")

        if self._running:
            TimerLifecycleLogger.log_timer_state_transition(
                self._timer_id, "running", "stopped", "restarted while running"
            )
            self.stop()

        self._duration = duration
        self._remaining = duration
        self._on_complete = on_complete
        self._on_tick = on_tick
        self._running = True
        self._paused = False
        self._paused_at = None
        self._start_time = self._scheduler.now()

        TimerLifecycleLogger.log_timer_start(self._timer_id, duration)

        # Initial tick so a display never shows a stale value
        self._notify_tick(self._remaining)

        try:
            if duration == 0:
                self._completion_handle = self._scheduler.after(0, self._handle_complete)
            else:
                self._arm()
        except Exception as e:
            self._handle_timer_error(e, "start")

    def stop(self) -> None:
        """Cancel any pending tick and forget the callbacks. Safe to repeat."""
        if self._tick_handle is not None:
            self._tick_handle.cancel()
            self._tick_handle = None
        if self._completion_handle is not None:
            self._completion_handle.cancel()
            self._completion_handle = None

        self._running = False
        self._paused = False
        self._remaining = 0
        self._on_tick = None
        self._on_complete = None

    def pause(self) -> bool:
        """
        Freeze the countdown.

        Returns:
            True if the timer was paused, False if it was not running or
            already paused
        """
        if not self._running or self._paused:
            return False

        self._paused = True
        self._paused_at = self._scheduler.now()
        if self._tick_handle is not None:
            self._tick_handle.cancel()
            self._tick_handle = None

        TimerLifecycleLogger.log_timer_state_transition(
            self._timer_id, "running", "paused", "pause requested"
        )
        return True

    def resume(self) -> bool:
        """
        Continue a paused countdown, discounting the time spent paused.

        Returns:
            True if the timer was resumed, False if it was not paused
        """
        if not self._running or not self._paused:
            return False

        now = self._scheduler.now()
        self._start_time += now - self._paused_at
        self._paused = False
        self._paused_at = None

        TimerLifecycleLogger.log_timer_state_transition(
            self._timer_id, "paused", "running", "resume requested"
        )

        try:
            self._arm()
        except Exception as e:
            self._handle_timer_error(e, "resume")
        return True

    def add_time(self, seconds: int) -> None:
        """Extend a running countdown and publish the new remaining time."""
        if not self._running:
            return

        self._duration += seconds
        self._remaining = max(0, self._duration - self.get_elapsed())
        self._notify_tick(self._remaining)

    def get_remaining(self) -> int:
        return self._remaining

    def is_active(self) -> bool:
        return self._running

    def is_paused(self) -> bool:
        return self._paused

    def get_duration(self) -> int:
        return self._duration

    def get_elapsed(self) -> int:
        """Whole seconds counted so far, excluding time spent paused."""
        if not self._running or self._start_time is None:
            return 0
        current = self._paused_at if self._paused else self._scheduler.now()
        return max(0, math.floor(current - self._start_time + self._tolerance))

    def get_progress_percent(self) -> float:
        if self._duration == 0:
            return 100.0
        return min(100.0, (self.get_elapsed() / self._duration) * 100)

    @property
    def state(self) -> TimerState:
        return TimerState(
            duration_seconds=self._duration,
            remaining_seconds=self._remaining,
            running=self._running,
            paused=self._paused,
            start_epoch=self._start_time,
            paused_epoch=self._paused_at
        )

    def _arm(self) -> None:
        self._tick_handle = self._scheduler.every(TICK_INTERVAL, self._tick)

    def _tick(self) -> None:
        if not self._running or self._paused:
            return

        try:
            elapsed = math.floor(self._scheduler.now() - self._start_time + self._tolerance)
            self._remaining = max(0, self._duration - elapsed)
            TimerLifecycleLogger.log_timer_update(self._timer_id, self._remaining, self._duration)
        except Exception as e:
            self._handle_timer_error(e, "tick")
            return

        self._notify_tick(self._remaining)

        # The tick callback may have stopped or restarted the timer
        if self._running and self._remaining <= 0:
            self._handle_complete()

    def _handle_complete(self) -> None:
        callback = self._on_complete
        self.stop()
        TimerLifecycleLogger.log_timer_completion(self._timer_id, "natural_expiry", self._duration)
        self._invoke_complete(callback)

    def _handle_timer_error(self, error: Exception, operation: str) -> None:
        """Stop the timer and still deliver completion so nobody waits forever."""
        error_type = "scheduling_failure" if isinstance(error, TimerSchedulingError) else type(error).__name__
        TimerLifecycleLogger.log_timer_error(self._timer_id, error_type, str(error), operation)

        callback = self._on_complete
        self.stop()
        TimerLifecycleLogger.log_timer_completion(self._timer_id, "error", self._duration)
        self._invoke_complete(callback)

    def _notify_tick(self, remaining: int) -> None:
        if self._on_tick is None:
            return
        try:
            self._on_tick(remaining)
        except Exception:
            logger.error(
                f"Error in timer tick callback for timer {self._timer_id}",
                exc_info=True,
                extra={
                    'event_type': 'timer_tick_callback_error',
                    'timer_id': self._timer_id,
                    'remaining_time': remaining,
                    'timestamp': time.time()
                }
            )

    def _invoke_complete(self, callback: Optional[Callable[[], Any]]) -> None:
        if callback is None:
            return
        try:
            callback()
        except Exception:
            logger.error(
                f"Error in timer completion callback for timer {self._timer_id}",
                exc_info=True,
                extra={
                    'event_type': 'timer_completion_callback_error',
                    'timer_id': self._timer_id,
                    'timestamp': time.time()
                }
            )
