"""
Unit tests for QuestionGenerator.
"""
import random
import string
import unittest

from letter_quiz.models import QuestionKind
from letter_quiz.question_generator import (
    EMPTY_ANSWER_MESSAGE,
    LETTER_FORMAT_MESSAGE,
    NUMBER_FORMAT_MESSAGE,
    QuestionGenerator,
)


class TestQuestionGeneration(unittest.TestCase):
    """Test cases for generated questions."""

    def setUp(self):
        self.generator = QuestionGenerator(random.Random(1234))

    def test_letter_to_number_answers_are_alphabet_positions(self):
        for question in self.generator.generate_many(200):
            if question.kind is QuestionKind.LETTER_TO_NUMBER:
                expected = str(string.ascii_uppercase.index(question.display_value) + 1)
                self.assertEqual(question.correct_answer, expected)
                self.assertEqual(question.prompt, f"What number is the letter {question.display_value}?")

    def test_number_to_letter_answers_are_letters(self):
        for question in self.generator.generate_many(200):
            if question.kind is QuestionKind.NUMBER_TO_LETTER:
                number = int(question.display_value)
                self.assertTrue(1 <= number <= 26)
                self.assertEqual(question.correct_answer, string.ascii_uppercase[number - 1])
                self.assertEqual(question.prompt, f"What letter is number {number}?")

    def test_both_kinds_are_generated(self):
        kinds = {q.kind for q in self.generator.generate_many(100)}
        self.assertEqual(kinds, set(QuestionKind))

    def test_ids_are_unique(self):
        questions = self.generator.generate_many(100)
        self.assertEqual(len({q.id for q in questions}), 100)
        self.assertTrue(all(q.id.startswith("q_") for q in questions))

    def test_seeded_generators_are_reproducible(self):
        first = QuestionGenerator(random.Random(7)).generate_many(10)
        second = QuestionGenerator(random.Random(7)).generate_many(10)
        self.assertEqual(first, second)

    def test_generate_many_rejects_negative_count(self):
        with self.assertRaises(ValueError):
            self.generator.generate_many(-1)

    def test_question_kinds(self):
        self.assertEqual(
            QuestionGenerator.question_kinds(),
            [QuestionKind.LETTER_TO_NUMBER, QuestionKind.NUMBER_TO_LETTER]
        )


class TestAnswerChecking(unittest.TestCase):
    """Test cases for normalization and answer matching."""

    def setUp(self):
        self.generator = QuestionGenerator()

    def test_normalize(self):
        self.assertEqual(self.generator.normalize("  m "), "M")
        self.assertEqual(self.generator.normalize("13"), "13")

    def test_answers_match_ignores_case_and_whitespace(self):
        self.assertTrue(self.generator.answers_match("m", "M"))
        self.assertTrue(self.generator.answers_match(" 13 ", "13"))
        self.assertFalse(self.generator.answers_match("N", "M"))

    def test_answers_match_is_stable_under_normalization(self):
        samples = ["a", " A", "b ", "12", " 12 ", "z", "Z", "x y"]
        for a in samples:
            for b in samples:
                self.assertEqual(
                    self.generator.answers_match(a, b),
                    self.generator.answers_match(self.generator.normalize(a), self.generator.normalize(b)),
                    f"{a!r} vs {b!r}"
                )

    def test_answers_match_is_reflexive_for_well_formed_values(self):
        for letter in string.ascii_uppercase:
            self.assertTrue(self.generator.answers_match(letter, letter))
        for number in range(1, 27):
            self.assertTrue(self.generator.answers_match(str(number), str(number)))

    def test_blank_answers_never_match(self):
        self.assertFalse(self.generator.answers_match("", ""))
        self.assertFalse(self.generator.answers_match("   ", "   "))
        self.assertFalse(self.generator.answers_match(None, "A"))
        self.assertFalse(self.generator.answers_match("A", None))


class TestAnswerValidation(unittest.TestCase):
    """Test cases for well-formedness checks and validation messages."""

    def setUp(self):
        self.generator = QuestionGenerator()

    def test_well_formed_letters(self):
        self.assertTrue(self.generator.is_well_formed_letter("a"))
        self.assertTrue(self.generator.is_well_formed_letter(" Z "))
        self.assertFalse(self.generator.is_well_formed_letter("ab"))
        self.assertFalse(self.generator.is_well_formed_letter("1"))
        self.assertFalse(self.generator.is_well_formed_letter("é"))
        self.assertFalse(self.generator.is_well_formed_letter(""))
        self.assertFalse(self.generator.is_well_formed_letter(None))

    def test_well_formed_numbers(self):
        self.assertTrue(self.generator.is_well_formed_number("1"))
        self.assertTrue(self.generator.is_well_formed_number(" 26 "))
        self.assertFalse(self.generator.is_well_formed_number("0"))
        self.assertFalse(self.generator.is_well_formed_number("27"))
        self.assertFalse(self.generator.is_well_formed_number("07"))
        self.assertFalse(self.generator.is_well_formed_number("1.5"))
        self.assertFalse(self.generator.is_well_formed_number("-3"))
        self.assertFalse(self.generator.is_well_formed_number("abc"))
        self.assertFalse(self.generator.is_well_formed_number(None))

    def test_validate_empty_answer(self):
        for value in (None, "", "   "):
            result = self.generator.validate(value, "letter")
            self.assertFalse(result.ok)
            self.assertEqual(result.message, EMPTY_ANSWER_MESSAGE)

    def test_validate_letter(self):
        self.assertTrue(self.generator.validate("m", "letter").ok)
        result = self.generator.validate("13", "letter")
        self.assertFalse(result.ok)
        self.assertEqual(result.message, LETTER_FORMAT_MESSAGE)

    def test_validate_number_out_of_range(self):
        self.assertTrue(self.generator.validate("13", "number").ok)
        result = self.generator.validate("27", "number")
        self.assertFalse(result.ok)
        self.assertEqual(result.message, NUMBER_FORMAT_MESSAGE)
        self.assertIn("between 1 and 26", result.message)

    def test_validate_unknown_type(self):
        with self.assertRaises(ValueError):
            self.generator.validate("A", "colour")


class TestSanitize(unittest.TestCase):
    """Test cases for raw input clean-up."""

    def test_sanitize_number(self):
        self.assertEqual(QuestionGenerator.sanitize(" 1a3 ", "number"), "13")
        self.assertEqual(QuestionGenerator.sanitize("007", "number"), "7")
        self.assertEqual(QuestionGenerator.sanitize("99", "number"), "")
        self.assertEqual(QuestionGenerator.sanitize("0", "number"), "")
        self.assertEqual(QuestionGenerator.sanitize("abc", "number"), "")

    def test_sanitize_letter(self):
        self.assertEqual(QuestionGenerator.sanitize(" 3m ", "letter"), "M")
        self.assertEqual(QuestionGenerator.sanitize("xyz", "letter"), "X")
        self.assertEqual(QuestionGenerator.sanitize("123", "letter"), "")

    def test_sanitize_empty(self):
        self.assertEqual(QuestionGenerator.sanitize(None, "letter"), "")
        self.assertEqual(QuestionGenerator.sanitize("", "number"), "")


if __name__ == '__main__':
    unittest.main()
