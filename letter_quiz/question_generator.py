"""
Question generation and answer checking for letter/number conversions.
"""
import random
import re
import string
from typing import List, Optional

from .models import Question, QuestionKind, ValidationResult

ALPHABET = string.ascii_uppercase
MIN_NUMBER = 1
MAX_NUMBER = len(ALPHABET)

EMPTY_ANSWER_MESSAGE = "Please enter an answer"
LETTER_FORMAT_MESSAGE = "Please enter a single letter (A-Z)"
NUMBER_FORMAT_MESSAGE = f"Please enter a number between {MIN_NUMBER} and {MAX_NUMBER}"

_CANONICAL_NUMBER = re.compile(r"[1-9][0-9]*")


class QuestionGenerator:
    """Creates conversion questions and checks answers against them."""

    def __init__(self, rng: Optional[random.Random] = None):
        """
        Initialize the generator.

        Args:
            rng: Source of randomness; a private random.Random when omitted.
                Seed it to make a question set reproducible.
        """
        self._rng = rng if rng is not None else random.Random()

    def generate(self) -> Question:
        """
        Generate a question of a uniformly chosen kind.

        Returns:
            A new immutable Question
        """
        kind = self._rng.choice(self.question_kinds())
        question_id = self._generate_question_id()

        if kind is QuestionKind.LETTER_TO_NUMBER:
            index = self._rng.randrange(len(ALPHABET))
            letter = ALPHABET[index]
            return Question(
                id=question_id,
                kind=kind,
                prompt=f"What number is the letter {letter}?",
                correct_answer=str(index + 1),
                display_value=letter
            )

        number = self._rng.randint(MIN_NUMBER, MAX_NUMBER)
        return Question(
            id=question_id,
            kind=kind,
            prompt=f"What letter is number {number}?",
            correct_answer=ALPHABET[number - 1],
            display_value=str(number)
        )

    def generate_many(self, count: int) -> List[Question]:
        """Generate count independent questions."""
        if count < 0:
            raise ValueError(f"Question count cannot be negative, got {count}")
        return [self.generate() for _ in range(count)]

    @staticmethod
    def question_kinds() -> List[QuestionKind]:
        return list(QuestionKind)

    @staticmethod
    def normalize(answer: str) -> str:
        """Comparison form of an answer: trimmed and upper-cased."""
        return str(answer).strip().upper()

    def answers_match(self, user_answer: Optional[str], correct_answer: Optional[str]) -> bool:
        """
        Compare answers ignoring case and surrounding whitespace.

        Returns:
            False when either side is missing or blank
        """
        if not user_answer or not correct_answer:
            return False

        normalized_user = self.normalize(user_answer)
        normalized_correct = self.normalize(correct_answer)
        if not normalized_user or not normalized_correct:
            return False

        return normalized_user == normalized_correct

    def is_well_formed_letter(self, value: Optional[str]) -> bool:
        if not value or not isinstance(value, str):
            return False
        normalized = self.normalize(value)
        return len(normalized) == 1 and normalized in ALPHABET

    @staticmethod
    def is_well_formed_number(value: Optional[str]) -> bool:
        """True for the canonical decimal form of an integer in 1-26."""
        if not value or not isinstance(value, str):
            return False
        trimmed = value.strip()
        if not _CANONICAL_NUMBER.fullmatch(trimmed):
            return False
        return MIN_NUMBER <= int(trimmed) <= MAX_NUMBER

    def validate(self, value: Optional[str], expected_type: str) -> ValidationResult:
        """
        Check that an answer has the shape the question expects.

        Args:
            value: Raw user input
            expected_type: 'letter' or 'number'

        Returns:
            ValidationResult with a user-facing message when not ok

        Raises:
            ValueError: If expected_type is not 'letter' or 'number'
        """
        if expected_type not in ("letter", "number"):
            raise ValueError(f"Unknown expected answer type: {expected_type!r}")

        if value is None or not str(value).strip():
            return ValidationResult(ok=False, message=EMPTY_ANSWER_MESSAGE)

        if expected_type == "letter":
            if not self.is_well_formed_letter(value):
                return ValidationResult(ok=False, message=LETTER_FORMAT_MESSAGE)
        elif not self.is_well_formed_number(value):
            return ValidationResult(ok=False, message=NUMBER_FORMAT_MESSAGE)

        return ValidationResult(ok=True)

    @staticmethod
    def sanitize(value: Optional[str], expected_type: str) -> str:
        """
        Clean raw input before validation.

        Numbers keep only their digits and must land in 1-26; letters keep
        the first ASCII letter, upper-cased. Anything unusable becomes ''.
        """
        if not value or not isinstance(value, str):
            return ""

        trimmed = value.strip()

        if expected_type == "number":
            digits = "".join(ch for ch in trimmed if ch in string.digits)
            if not digits:
                return ""
            number = int(digits)
            if number < MIN_NUMBER or number > MAX_NUMBER:
                return ""
            return str(number)

        if expected_type == "letter":
            letters = [ch for ch in trimmed if ch in string.ascii_letters]
            return letters[0].upper() if letters else ""

        return trimmed

    def _generate_question_id(self) -> str:
        return f"q_{self._rng.getrandbits(48):012x}"
