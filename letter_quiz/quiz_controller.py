"""
Quiz session controller for the letter/number quiz.
Sequences questions, enforces timeouts, records answers and publishes
session events to a presentation layer through a QuizListener.
"""
import logging
import time
from datetime import datetime
from typing import Any, Dict, List, Optional

from .config_manager import ConfigManager
from .models import ProgressSnapshot, Question, QuizSession, QuizSettings, SessionState
from .progress_store import ProgressStore
from .question_generator import QuestionGenerator
from .scheduler import AsyncioScheduler, ScheduledHandle, Scheduler, TimerSchedulingError
from .score_tracker import InvalidAnswerRecordError, ScoreTracker
from .timer import CountdownTimer


class QuizControllerError(Exception):
    """Base exception for quiz controller errors."""
    pass


class InvalidSessionStateError(QuizControllerError):
    """Raised when session is in an invalid state for the requested operation."""
    pass


class QuizListener:
    """
    Receives session events from a QuizController.

    Every method is a no-op; a presentation layer overrides the ones it
    cares about.
    """

    def on_question(self, question: Question, question_number: int) -> None:
        pass

    def on_tick(self, seconds_remaining: int) -> None:
        pass

    def on_feedback(self, is_correct: bool, correct_answer: str, user_answer: str) -> None:
        pass

    def on_timeout(self, correct_answer: str) -> None:
        pass

    def on_validation_error(self, message: str) -> None:
        pass

    def on_complete(self, results: Dict[str, Any]) -> None:
        pass

    def on_error(self, message: str) -> None:
        pass


class QuizController:
    """
    Drives one quiz session at a time from start to results.

    At most one of a manual answer or a timeout is recorded per question:
    whichever comes first sets the "waiting for next question" latch and
    stops the timer, and both paths check the latch before doing anything.
    """

    def __init__(
        self,
        scheduler: Optional[Scheduler] = None,
        config_manager: Optional[ConfigManager] = None,
        generator: Optional[QuestionGenerator] = None,
        score_tracker: Optional[ScoreTracker] = None,
        listener: Optional[QuizListener] = None,
        progress_store: Optional[ProgressStore] = None
    ):
        """
        Initialize the quiz controller.

        Args:
            scheduler: Source of time and deferred callbacks; an
                AsyncioScheduler on the running loop when omitted
            config_manager: Settings source; defaults apply when omitted
            generator: Question source
            score_tracker: Answer log
            listener: Receiver of session events
            progress_store: Where interrupted sessions are saved; progress
                is not persisted when omitted
        """
        self.logger = logging.getLogger(__name__)
        self.scheduler = scheduler if scheduler is not None else AsyncioScheduler()
        self.config_manager = config_manager if config_manager is not None else ConfigManager()
        self.generator = generator if generator is not None else QuestionGenerator()
        self.score_tracker = score_tracker if score_tracker is not None else ScoreTracker()
        self.listener = listener if listener is not None else QuizListener()
        self.progress_store = progress_store

        self._session = QuizSession()
        self._settings: QuizSettings = self.config_manager.get_quiz_settings()
        self._timer: Optional[CountdownTimer] = None
        self._advance_handle: Optional[ScheduledHandle] = None
        self._waiting_for_next = False
        self._question_started_at: Optional[float] = None

        # Error tracking
        self._errors: List[str] = []
        self._last_error: Optional[Dict[str, Any]] = None

        self.logger.info("QuizController initialized")

    @property
    def state(self) -> SessionState:
        return self._session.status

    @property
    def session(self) -> QuizSession:
        return self._session

    @property
    def timer(self) -> Optional[CountdownTimer]:
        return self._timer

    def is_waiting_for_next(self) -> bool:
        return self._waiting_for_next

    def get_current_question(self) -> Optional[Question]:
        """
        Get the question currently being asked.

        Returns:
            The current Question, or None outside an active session
        """
        session = self._session
        if session.status is not SessionState.ACTIVE:
            return None
        if 0 <= session.current_index < session.total_questions:
            return session.questions[session.current_index]
        return None

    def start(self) -> Dict[str, Any]:
        """
        Begin a brand new session, discarding any previous one.

        Returns:
            Dictionary with success status, message and session info, or an
            error dictionary
        """
        try:
            self._teardown()

            settings = self.config_manager.get_quiz_settings()

            # Nothing from the previous session is discarded until the new
            # question set exists
            questions = self.generator.generate_many(settings.question_count)

            self._settings = settings
            self.score_tracker.reset()
            self.score_tracker.time_limit = settings.timer_duration
            self.score_tracker.initialize(settings.question_count)

            self._session = QuizSession(
                questions=questions,
                current_index=0,
                status=SessionState.ACTIVE,
                started_at=datetime.now()
            )

            self.logger.info(
                f"Quiz started: questions={len(questions)}, timer={settings.timer_duration}s",
                extra={
                    'event_type': 'quiz_started',
                    'question_count': len(questions),
                    'timer_duration': settings.timer_duration,
                    'timestamp': time.time()
                }
            )

            self._advance()

            # The first question can fail without raising, e.g. when its
            # timeout could not schedule the next step
            if self._session.status is SessionState.ERROR and self._last_error is not None:
                return dict(self._last_error)

            return {
                'success': True,
                'message': f"Quiz started with {len(questions)} questions",
                'session_info': self.get_session_progress()
            }

        except Exception as e:
            return self._handle_error(e, "start quiz")

    def restart(self) -> Dict[str, Any]:
        """Stop whatever is in flight and start over."""
        self.logger.info(f"Restarting quiz from state {self._session.status.value}")
        return self.start()

    def submit(self, raw_answer: Optional[str]) -> Dict[str, Any]:
        """
        Submit an answer for the current question.

        Args:
            raw_answer: Answer as typed by the user

        Returns:
            Dictionary with 'accepted' and a 'reason' of accepted,
            not_accepting, timer_expired or invalid_input; accepted answers
            also carry 'is_correct' and 'correct_answer'
        """
        question = self.get_current_question()
        if question is None or self._waiting_for_next:
            self.logger.debug(
                f"Submission ignored: state={self._session.status.value}, "
                f"waiting_for_next={self._waiting_for_next}"
            )
            return {'accepted': False, 'reason': 'not_accepting'}

        timer = self._timer
        if timer is None or not timer.is_active() or timer.get_remaining() <= 0:
            self.logger.debug(f"Submission ignored: timer expired for question {question.id}")
            return {'accepted': False, 'reason': 'timer_expired'}

        try:
            validation = self.generator.validate(raw_answer, question.kind.expected_input)
            if not validation.ok:
                self.logger.debug(f"Submission rejected by validation: {validation.message}")
                self._notify('on_validation_error', validation.message)
                return {
                    'accepted': False,
                    'reason': 'invalid_input',
                    'message': validation.message
                }

            time_used = timer.get_elapsed()
            timer.stop()

            is_correct = self.generator.answers_match(raw_answer, question.correct_answer)
            self.score_tracker.record(question, raw_answer, is_correct, time_used)
            self._waiting_for_next = True

            self.logger.info(
                f"Answer recorded for question {self._session.current_index + 1}: "
                f"{'correct' if is_correct else 'incorrect'} in {time_used}s",
                extra={
                    'event_type': 'answer_recorded',
                    'question_id': question.id,
                    'is_correct': is_correct,
                    'time_used': time_used,
                    'timestamp': time.time()
                }
            )

            self._schedule_advance()
            self._notify('on_feedback', is_correct, question.correct_answer, raw_answer)

            return {
                'accepted': True,
                'reason': 'accepted',
                'is_correct': is_correct,
                'correct_answer': question.correct_answer
            }

        except Exception as e:
            result = self._handle_error(e, "submit answer")
            result.update({'accepted': False, 'reason': 'error'})
            return result

    def pause(self) -> bool:
        """
        Pause the countdown of the current question.

        Returns:
            True if the timer was paused
        """
        if self._session.status is not SessionState.ACTIVE or self._timer is None:
            return False
        paused = self._timer.pause()
        if paused:
            self.logger.info(f"Quiz paused at question {self._session.current_index + 1}")
        return paused

    def resume(self) -> bool:
        """
        Resume a paused countdown.

        Returns:
            True if the timer was resumed
        """
        if self._session.status is not SessionState.ACTIVE or self._timer is None:
            return False
        resumed = self._timer.resume()
        if resumed:
            self.logger.info(f"Quiz resumed at question {self._session.current_index + 1}")
        return resumed

    def is_paused(self) -> bool:
        return self._timer is not None and self._timer.is_paused()

    def current_results(self) -> Dict[str, Any]:
        """
        Final results of the session.

        Returns:
            Dictionary with score, performance_stats and detailed_results

        Raises:
            InvalidSessionStateError: If the session has not completed
        """
        if self._session.status is not SessionState.COMPLETED:
            raise InvalidSessionStateError(
                f"Results are only available once the quiz is completed "
                f"(state: {self._session.status.value})"
            )
        return self._build_results()

    def get_session_progress(self) -> Dict[str, Any]:
        """
        Get progress information for the session.

        Returns:
            Dictionary with progress info
        """
        session = self._session
        return {
            'current_question': min(session.current_index + 1, session.total_questions),
            'total_questions': session.total_questions,
            'answered': len(self.score_tracker.records),
            'state': session.status.value,
            'is_paused': self.is_paused(),
            'waiting_for_next': self._waiting_for_next,
            'time_remaining': self._timer.get_remaining() if self._timer is not None else None,
            'start_time': session.started_at,
            'question_started_at': self._question_started_at,
            'settings': {
                'question_count': self._settings.question_count,
                'timer_duration': self._settings.timer_duration,
                'feedback_delay': self._settings.feedback_delay
            }
        }

    def get_error_summary(self) -> Dict[str, Any]:
        """
        Get the errors this controller has handled.

        Returns:
            Dictionary with error information
        """
        return {
            'errors': list(self._errors),
            'error_count': len(self._errors),
            'has_errors': bool(self._errors)
        }

    def save_progress(self) -> Dict[str, Any]:
        """
        Write a best-effort snapshot of an active session.

        Meant to be called when the hosting process is about to go away.

        Returns:
            Dictionary with success status and error message if applicable
        """
        if self.progress_store is None:
            return {'success': False, 'error': "No progress store configured"}
        if self._session.status is not SessionState.ACTIVE:
            return {'success': False, 'error': "No active quiz to save"}

        started_at = self._session.started_at
        snapshot = ProgressSnapshot(
            current_index=self._session.current_index,
            answers=[record.to_dict() for record in self.score_tracker.records],
            started_at=started_at.isoformat() if started_at else None,
            saved_at=time.time()
        )
        result = self.progress_store.save_snapshot(snapshot)
        if result['success']:
            self.logger.info(f"Saved progress at question {snapshot.current_index + 1}")
        return result

    def recover_progress(self) -> Optional[ProgressSnapshot]:
        """
        Offer back a recently saved snapshot, if any.

        The snapshot is removed from the store either way; deciding whether
        to act on it is up to the caller.
        """
        if self.progress_store is None:
            return None
        return self.progress_store.load_snapshot(self.config_manager.get_snapshot_max_age())

    def _advance(self) -> None:
        """Show the next question, or finish when none are left."""
        session = self._session
        if session.current_index >= session.total_questions:
            self._finalize()
            return

        self._stop_timer()

        question = session.questions[session.current_index]
        question_number = session.current_index + 1
        self._timer = CountdownTimer(self.scheduler, timer_id=f"question-{question_number}")
        self._waiting_for_next = False
        self._question_started_at = self.scheduler.now()

        self.logger.debug(f"Presenting question {question_number}/{session.total_questions}: {question.prompt}")
        self._notify('on_question', question, question_number)

        self._timer.start(self._settings.timer_duration, self._handle_timeout, self._handle_tick)

    def _handle_tick(self, remaining: int) -> None:
        self._notify('on_tick', remaining)

    def _handle_timeout(self) -> None:
        question = self.get_current_question()
        if question is None or self._waiting_for_next:
            self.logger.debug("Timeout ignored: question already resolved")
            return

        try:
            self.score_tracker.record(
                question, "", False, self._settings.timer_duration, timed_out=True
            )
            self._waiting_for_next = True

            self.logger.info(
                f"Question {self._session.current_index + 1} timed out",
                extra={
                    'event_type': 'question_timeout',
                    'question_id': question.id,
                    'timestamp': time.time()
                }
            )

            self._schedule_advance()
            self._notify('on_timeout', question.correct_answer)

        except Exception as e:
            self._handle_error(e, "handle timeout")

    def _schedule_advance(self) -> None:
        # Bound to the session that asked for it; a restart in between makes it a no-op
        session = self._session
        self._advance_handle = self.scheduler.after(
            self._settings.feedback_delay, lambda: self._on_feedback_elapsed(session)
        )

    def _on_feedback_elapsed(self, session: QuizSession) -> None:
        if session is not self._session:
            return
        self._advance_handle = None
        if session.status is not SessionState.ACTIVE:
            return

        try:
            self._session.current_index += 1
            self._advance()
        except Exception as e:
            self._handle_error(e, "advance question")

    def _finalize(self) -> None:
        self._stop_timer()
        self._cancel_pending_advance()
        self._waiting_for_next = False

        self.score_tracker.complete()
        self._session.status = SessionState.COMPLETED
        self._session.ended_at = datetime.now()

        results = self._build_results()
        score = results['score']
        self.logger.info(
            f"Quiz completed: {score['correct']}/{score['total']} correct ({score['percentage']}%)",
            extra={
                'event_type': 'quiz_completed',
                'score': score,
                'timestamp': time.time()
            }
        )

        if self.progress_store is not None:
            self.progress_store.clear()

        self._notify('on_complete', results)

    def _build_results(self) -> Dict[str, Any]:
        return {
            'score': self.score_tracker.score(),
            'performance_stats': self.score_tracker.performance_stats(),
            'detailed_results': self.score_tracker.detailed_results()
        }

    def _teardown(self) -> None:
        self._stop_timer()
        self._cancel_pending_advance()
        self._waiting_for_next = False
        self._question_started_at = None

    def _stop_timer(self) -> None:
        if self._timer is not None:
            self._timer.stop()

    def _cancel_pending_advance(self) -> None:
        if self._advance_handle is not None:
            self._advance_handle.cancel()
            self._advance_handle = None

    def _notify(self, event: str, *args: Any) -> None:
        """Call a listener method, logging and ignoring anything it raises."""
        try:
            getattr(self.listener, event)(*args)
        except Exception:
            self.logger.error(
                f"Error in listener callback {event}",
                exc_info=True,
                extra={
                    'event_type': 'listener_callback_error',
                    'callback': event,
                    'timestamp': time.time()
                }
            )

    def _handle_error(self, error: Exception, operation: str) -> Dict[str, Any]:
        """
        Handle an unexpected failure at the controller boundary.

        Mid-session failures put the session into the error state with the
        timer stopped so nothing keeps counting down.

        Args:
            error: The exception that occurred
            operation: Description of the operation that failed

        Returns:
            Dictionary with error handling results
        """
        self.logger.error(f"Error in {operation}: {error}", exc_info=True)
        self._errors.append(f"{operation}: {error}")

        if self._session.status is SessionState.ACTIVE:
            self._teardown()
            self._session.status = SessionState.ERROR
            self._session.ended_at = datetime.now()
            self.logger.warning(f"Quiz moved to error state after failed {operation}")

        user_message = self._get_user_friendly_error_message(error, operation)
        self._notify('on_error', user_message)

        self._last_error = {
            'success': False,
            'error': str(error),
            'operation': operation,
            'user_message': user_message
        }
        return dict(self._last_error)

    def _get_user_friendly_error_message(self, error: Exception, operation: str) -> str:
        """
        Generate user-friendly error messages.

        Args:
            error: The exception that occurred
            operation: Description of the operation that failed

        Returns:
            User-friendly error message
        """
        if isinstance(error, TimerSchedulingError):
            return "❌ The quiz timer could not be started. Please restart the quiz."

        elif isinstance(error, InvalidSessionStateError):
            return "❌ The quiz is in an invalid state. Please restart the quiz."

        elif isinstance(error, InvalidAnswerRecordError):
            return "❌ Your answer could not be recorded. Please restart the quiz."

        elif "question" in str(error).lower():
            return "❌ Error preparing quiz questions. Please try again."

        else:
            return f"❌ An unexpected error occurred during {operation}. Please try again."
