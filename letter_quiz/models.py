"""
Core data models for the letter/number quiz.
"""
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, List, Optional
from datetime import datetime


class QuestionKind(Enum):
    """Direction of a conversion question."""
    LETTER_TO_NUMBER = "letter-to-number"
    NUMBER_TO_LETTER = "number-to-letter"

    @property
    def expected_input(self) -> str:
        """Shape of the answer this kind of question expects."""
        if self is QuestionKind.LETTER_TO_NUMBER:
            return "number"
        return "letter"


class SessionState(Enum):
    """Enumeration of possible quiz session states."""
    NOT_STARTED = "not-started"
    ACTIVE = "active"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass(frozen=True)
class Question:
    """A single generated conversion question."""
    id: str
    kind: QuestionKind
    prompt: str
    correct_answer: str
    display_value: str


@dataclass(frozen=True)
class AnswerRecord:
    """Immutable outcome of one question."""
    ordinal: int
    question_id: str
    question_kind: QuestionKind
    prompt_text: str
    display_value: str
    correct_answer: str
    user_answer: str
    is_correct: bool
    time_used_seconds: int
    timed_out: bool
    recorded_at: datetime = field(default_factory=datetime.now)

    @property
    def status(self) -> str:
        if self.timed_out:
            return "timeout"
        return "correct" if self.is_correct else "incorrect"

    def to_dict(self) -> Dict[str, Any]:
        """Plain dictionary form, suitable for JSON."""
        data = asdict(self)
        data['question_kind'] = self.question_kind.value
        data['recorded_at'] = self.recorded_at.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AnswerRecord":
        return cls(
            ordinal=int(data['ordinal']),
            question_id=data['question_id'],
            question_kind=QuestionKind(data['question_kind']),
            prompt_text=data['prompt_text'],
            display_value=data['display_value'],
            correct_answer=data['correct_answer'],
            user_answer=data.get('user_answer', ''),
            is_correct=bool(data['is_correct']),
            time_used_seconds=int(data['time_used_seconds']),
            timed_out=bool(data['timed_out']),
            recorded_at=datetime.fromisoformat(data['recorded_at'])
        )


@dataclass
class QuizSettings:
    """Configuration settings for a quiz session."""
    question_count: int = 10
    timer_duration: int = 10
    feedback_delay: float = 2.0


@dataclass
class QuizSession:
    """State of one quiz run, replaced wholesale on every start."""
    questions: List[Question] = field(default_factory=list)
    current_index: int = 0
    status: SessionState = SessionState.NOT_STARTED
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None

    @property
    def total_questions(self) -> int:
        return len(self.questions)


@dataclass(frozen=True)
class TimerState:
    """Read-only snapshot of a CountdownTimer."""
    duration_seconds: int
    remaining_seconds: int
    running: bool
    paused: bool
    start_epoch: Optional[float]
    paused_epoch: Optional[float]


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of checking an answer's shape."""
    ok: bool
    message: Optional[str] = None


@dataclass
class ProgressSnapshot:
    """Best-effort record of an interrupted session."""
    current_index: int
    answers: List[Dict[str, Any]]
    started_at: Optional[str]
    saved_at: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProgressSnapshot":
        return cls(
            current_index=int(data['current_index']),
            answers=list(data.get('answers', [])),
            started_at=data.get('started_at'),
            saved_at=float(data['saved_at'])
        )
