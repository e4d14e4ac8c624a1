"""
Answer log and result statistics for a quiz session.
"""
import logging
import math
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from .models import AnswerRecord, Question, QuestionKind

DEFAULT_TIME_LIMIT = 10
FAST_ANSWER_MAX_SECONDS = 3
MEDIUM_ANSWER_MAX_SECONDS = 7


class InvalidAnswerRecordError(ValueError):
    """Raised when an answer cannot be recorded as given."""
    pass


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class ScoreTracker:
    """
    Append-only log of answer outcomes.

    Records are never changed once written; every statistic is derived
    from the log on demand.
    """

    def __init__(self, time_limit: int = DEFAULT_TIME_LIMIT,
                 clock: Callable[[], datetime] = datetime.now):
        """
        Initialize the tracker.

        Args:
            time_limit: Per-question limit in seconds, used to clamp time used
            clock: Source of timestamps
        """
        self.logger = logging.getLogger(__name__)
        self.time_limit = time_limit
        self._clock = clock
        self._records: List[AnswerRecord] = []
        self.start_time: Optional[datetime] = None
        self.end_time: Optional[datetime] = None
        self.total_questions = 0

    def initialize(self, total_questions: int = 10) -> None:
        """Start a fresh log for a quiz of total_questions questions."""
        self._records = []
        self.start_time = self._clock()
        self.end_time = None
        self.total_questions = total_questions
        self.logger.debug(f"Score tracker initialized for {total_questions} questions")

    def record(
        self,
        question: Optional[Question],
        user_answer: Optional[str],
        is_correct: bool,
        time_used: float,
        timed_out: bool = False
    ) -> AnswerRecord:
        """
        Append the outcome of a question.

        Args:
            question: The question that was answered
            user_answer: The submitted answer ('' or None for a timeout)
            is_correct: Whether the answer was correct
            time_used: Seconds taken; clamped to [0, time_limit]
            timed_out: Whether the question expired unanswered

        Returns:
            The stored AnswerRecord

        Raises:
            InvalidAnswerRecordError: If question is missing or a timeout is
                recorded with an answer or as correct
        """
        if question is None:
            raise InvalidAnswerRecordError("Question object is required")

        user_answer = user_answer or ""
        if timed_out and (is_correct or user_answer):
            raise InvalidAnswerRecordError(
                "A timed out question cannot carry an answer or be correct"
            )

        record = AnswerRecord(
            ordinal=len(self._records) + 1,
            question_id=question.id,
            question_kind=question.kind,
            prompt_text=question.prompt,
            display_value=question.display_value,
            correct_answer=question.correct_answer,
            user_answer=user_answer,
            is_correct=bool(is_correct),
            time_used_seconds=self._clamp_time(time_used),
            timed_out=bool(timed_out),
            recorded_at=self._clock()
        )
        self._records.append(record)

        self.logger.debug(
            f"Recorded answer {record.ordinal}: status={record.status}, time={record.time_used_seconds}s"
        )
        return record

    def complete(self) -> None:
        """Mark the quiz finished. Calling again just moves the end time."""
        self.end_time = self._clock()

    def reset(self) -> None:
        """Forget everything, as if newly constructed."""
        self._records = []
        self.start_time = None
        self.end_time = None
        self.total_questions = 0

    @property
    def records(self) -> List[AnswerRecord]:
        return list(self._records)

    def score(self) -> Dict[str, int]:
        """
        Get the current score summary.

        Returns:
            Dictionary with correct, incorrect, timed_out, total and percentage
        """
        correct = sum(1 for r in self._records if r.is_correct)
        incorrect = sum(1 for r in self._records if not r.is_correct and not r.timed_out)
        timed_out = sum(1 for r in self._records if r.timed_out)
        total = len(self._records)

        return {
            'correct': correct,
            'incorrect': incorrect,
            'timed_out': timed_out,
            'total': total,
            'percentage': _round_half_up(correct / total * 100) if total > 0 else 0
        }

    def detailed_results(self) -> List[Dict[str, Any]]:
        """Every record in order, plus its status and share of the time limit."""
        results = []
        for record in self._records:
            entry = record.to_dict()
            entry['status'] = record.status
            entry['time_percentage'] = (
                record.time_used_seconds / self.time_limit * 100 if self.time_limit > 0 else 0.0
            )
            results.append(entry)
        return results

    def performance_stats(self) -> Dict[str, Any]:
        """
        Aggregate statistics for the results screen.

        Timing figures (average, fastest, slowest, distribution) only
        consider questions that were actually answered.
        """
        fastest = self.fastest_answer()
        slowest = self.slowest_answer()
        return {
            'score': self.score(),
            'total_time': self.total_quiz_time(),
            'average_time_per_question': self.average_time_per_question(),
            'fastest_answer': fastest.to_dict() if fastest else None,
            'slowest_answer': slowest.to_dict() if slowest else None,
            'accuracy_by_kind': self.accuracy_by_kind(),
            'time_distribution': self.time_distribution()
        }

    def total_quiz_time(self) -> Optional[int]:
        """Whole seconds from initialize() to complete(), or None if unfinished."""
        if self.start_time is None or self.end_time is None:
            return None
        return int((self.end_time - self.start_time).total_seconds())

    def average_time_per_question(self) -> float:
        answered = self._answered_records()
        if not answered:
            return 0.0
        total = sum(r.time_used_seconds for r in answered)
        return round(total / len(answered), 1)

    def fastest_answer(self) -> Optional[AnswerRecord]:
        fastest = None
        for record in self._answered_records():
            if fastest is None or record.time_used_seconds < fastest.time_used_seconds:
                fastest = record
        return fastest

    def slowest_answer(self) -> Optional[AnswerRecord]:
        slowest = None
        for record in self._answered_records():
            if slowest is None or record.time_used_seconds > slowest.time_used_seconds:
                slowest = record
        return slowest

    def accuracy_by_kind(self) -> Dict[str, Dict[str, int]]:
        stats = {}
        for kind in QuestionKind:
            kind_records = [r for r in self._records if r.question_kind is kind]
            correct = sum(1 for r in kind_records if r.is_correct)
            total = len(kind_records)
            stats[kind.value] = {
                'correct': correct,
                'total': total,
                'percentage': _round_half_up(correct / total * 100) if total > 0 else 0
            }
        return stats

    def time_distribution(self) -> Dict[str, int]:
        distribution = {'fast': 0, 'medium': 0, 'slow': 0}
        for record in self._answered_records():
            if record.time_used_seconds <= FAST_ANSWER_MAX_SECONDS:
                distribution['fast'] += 1
            elif record.time_used_seconds <= MEDIUM_ANSWER_MAX_SECONDS:
                distribution['medium'] += 1
            else:
                distribution['slow'] += 1
        return distribution

    def correct_answers(self) -> List[AnswerRecord]:
        return [r for r in self._records if r.is_correct]

    def incorrect_answers(self) -> List[AnswerRecord]:
        return [r for r in self._records if not r.is_correct and not r.timed_out]

    def timed_out_answers(self) -> List[AnswerRecord]:
        return [r for r in self._records if r.timed_out]

    def is_quiz_complete(self) -> bool:
        return len(self._records) >= self.total_questions

    def current_question_number(self) -> int:
        return len(self._records) + 1

    def export_results(self) -> Dict[str, Any]:
        """Complete results document, JSON-serializable."""
        return {
            'metadata': {
                'start_time': self.start_time.isoformat() if self.start_time else None,
                'end_time': self.end_time.isoformat() if self.end_time else None,
                'total_questions': self.total_questions,
                'completed_questions': len(self._records)
            },
            'score': self.score(),
            'performance_stats': self.performance_stats(),
            'detailed_results': self.detailed_results()
        }

    def _answered_records(self) -> List[AnswerRecord]:
        return [r for r in self._records if not r.timed_out]

    def _clamp_time(self, time_used: float) -> int:
        try:
            seconds = int(math.floor(float(time_used)))
        except (TypeError, ValueError, OverflowError) as e:
            raise InvalidAnswerRecordError(f"Time used must be a number, got {time_used!r}") from e
        return max(0, min(seconds, self.time_limit))
