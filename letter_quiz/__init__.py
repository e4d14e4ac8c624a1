"""
Letter/number conversion quiz core.

Timer, question generation, scoring and session orchestration for a
ten-question drill. Rendering is left to a presentation layer that talks
to QuizController through QuizListener.
"""
from .models import (
    AnswerRecord,
    ProgressSnapshot,
    Question,
    QuestionKind,
    QuizSession,
    QuizSettings,
    SessionState,
    TimerState,
    ValidationResult,
)
from .scheduler import AsyncioScheduler, Scheduler, TimerSchedulingError, VirtualScheduler
from .timer import CountdownTimer
from .question_generator import QuestionGenerator
from .score_tracker import InvalidAnswerRecordError, ScoreTracker
from .quiz_controller import (
    InvalidSessionStateError,
    QuizController,
    QuizControllerError,
    QuizListener,
)
from .config_manager import ConfigManager, setup_logging_from_config
from .progress_store import ProgressStore
from .submission_guard import SubmissionGuard

__version__ = "1.0.0"
