"""
Rapid-submission throttle for presentation adapters.

QuizController already ignores duplicate submissions for a question; this
guard only protects an input channel from being hammered. It is optional
and the quiz core never calls it.
"""
import logging
import math
import time
from typing import Any, Callable, Dict


class SubmissionGuard:
    """Debounce, burst limit with cooldown, and an in-flight latch."""

    DEBOUNCE_SECONDS = 0.5
    MAX_RAPID_SUBMISSIONS = 5
    RAPID_SUBMISSION_WINDOW = 2.0
    COOLDOWN_SECONDS = 3.0
    PROCESSING_TIMEOUT = 1.0

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self.logger = logging.getLogger(__name__)
        self._clock = clock
        self._last_submission_time = None
        self._submission_count = 0
        self._processing = False

    def check(self) -> Dict[str, Any]:
        """
        Decide whether a submission may go through now.

        Returns:
            Dictionary with 'allowed' and, when refused, 'reason' and an
            optional user-facing 'message'
        """
        now = self._clock()
        since_last = None if self._last_submission_time is None else now - self._last_submission_time

        if since_last is not None and since_last > self.RAPID_SUBMISSION_WINDOW:
            self._submission_count = 0

        if self._submission_count >= self.MAX_RAPID_SUBMISSIONS:
            if since_last is not None and since_last < self.COOLDOWN_SECONDS:
                remaining = math.ceil(self.COOLDOWN_SECONDS - since_last)
                return {
                    'allowed': False,
                    'reason': 'cooldown',
                    'message': f"Too many rapid submissions. Please wait {remaining} seconds."
                }
            self._submission_count = 0

        if since_last is not None and since_last < self.DEBOUNCE_SECONDS:
            self.logger.debug("Submission ignored due to debouncing")
            return {'allowed': False, 'reason': 'debounced', 'message': None}

        if self._processing and since_last is not None and since_last >= self.PROCESSING_TIMEOUT:
            self._processing = False

        if self._processing:
            return {
                'allowed': False,
                'reason': 'processing',
                'message': "Please wait, processing your previous answer..."
            }

        self._last_submission_time = now
        self._submission_count += 1
        self._processing = True
        return {'allowed': True, 'reason': 'allowed', 'message': None}

    def finish_processing(self) -> None:
        """Release the in-flight latch once a submission has been handled."""
        self._processing = False

    def run(self, callback: Callable[[], Any]) -> Dict[str, Any]:
        """
        Run callback if the guard allows it.

        Returns:
            The check() result, with 'result' holding the callback's return
            value, or 'message' describing a callback failure
        """
        decision = self.check()
        if not decision['allowed']:
            return decision

        try:
            decision['result'] = callback()
        except Exception as e:
            self.logger.error(f"Error in submission callback: {e}", exc_info=True)
            decision['message'] = "An error occurred while processing your answer. Please try again."
        finally:
            self.finish_processing()
        return decision

    def reset(self) -> None:
        self._last_submission_time = None
        self._submission_count = 0
        self._processing = False
