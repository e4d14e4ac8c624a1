"""
Configuration manager for quiz settings and logging.
"""
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from .models import QuizSettings


def setup_logging_from_config(config: Dict[str, Any]) -> None:
    """
    Set up logging based on the 'logging' section of a configuration.

    Logs always go to the console; a file handler is added when
    'log_directory' is given.
    """
    log_config = config.get('logging', {})
    log_level = getattr(logging, str(log_config.get('level', 'INFO')).upper(), logging.INFO)

    handlers: List[logging.Handler] = [logging.StreamHandler()]

    log_directory = log_config.get('log_directory')
    if log_directory:
        log_directory = Path(log_directory)
        log_directory.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_directory / "letter_quiz.log", encoding='utf-8'))

    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers
    )


class ConfigManager:
    """Manages quiz configuration settings."""

    # Default configuration values
    DEFAULT_QUESTION_COUNT = 10
    DEFAULT_TIMER_DURATION = 10
    DEFAULT_FEEDBACK_DELAY = 2.0
    DEFAULT_PROGRESS_FILE = "./quiz_progress.json"
    DEFAULT_SNAPSHOT_MAX_AGE = 3600

    # Validation limits
    MIN_QUESTION_COUNT = 1
    MAX_QUESTION_COUNT = 100
    MIN_TIMER_DURATION = 1
    MAX_TIMER_DURATION = 300  # 5 minutes
    MIN_FEEDBACK_DELAY = 0.0
    MAX_FEEDBACK_DELAY = 10.0

    # Environment variables override values from a config file
    ENV_TIMER_DURATION = "LETTER_QUIZ_TIMER_DURATION"
    ENV_QUESTION_COUNT = "LETTER_QUIZ_QUESTION_COUNT"

    def __init__(self):
        """Initialize ConfigManager with default settings."""
        self.logger = logging.getLogger(__name__)
        self._settings = QuizSettings()
        self._progress_file = self.DEFAULT_PROGRESS_FILE
        self._snapshot_max_age = self.DEFAULT_SNAPSHOT_MAX_AGE
        self._logging_config: Dict[str, Any] = {}

    def get_quiz_settings(self) -> QuizSettings:
        """
        Get current quiz settings.

        Returns:
            A copy of the QuizSettings in effect
        """
        return QuizSettings(
            question_count=self._settings.question_count,
            timer_duration=self._settings.timer_duration,
            feedback_delay=self._settings.feedback_delay
        )

    def set_question_count(self, count: int) -> Dict[str, Any]:
        """
        Set the number of questions per quiz.

        Args:
            count: Number of questions

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        error = self._check_int(count, "Question count", self.MIN_QUESTION_COUNT, self.MAX_QUESTION_COUNT)
        if error:
            return error

        self._settings.question_count = count
        self.logger.info(f"Question count set to {count}")
        return {
            'success': True,
            'message': f"Question count set to {count}",
            'user_message': f"✅ Question count set to {count}"
        }

    def get_question_count(self) -> int:
        return self._settings.question_count

    def set_timer_duration(self, duration: int) -> Dict[str, Any]:
        """
        Set the countdown length for each question.

        Args:
            duration: Timer duration in seconds

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        error = self._check_int(duration, "Timer duration", self.MIN_TIMER_DURATION, self.MAX_TIMER_DURATION)
        if error:
            return error

        self._settings.timer_duration = duration
        self.logger.info(f"Timer duration set to {duration} seconds")
        return {
            'success': True,
            'message': f"Timer duration set to {duration} seconds",
            'user_message': f"✅ Timer set to {duration} seconds"
        }

    def get_timer_duration(self) -> int:
        return self._settings.timer_duration

    def set_feedback_delay(self, delay: float) -> Dict[str, Any]:
        """
        Set the pause between answering a question and showing the next one.

        Args:
            delay: Delay in seconds

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if isinstance(delay, bool) or not isinstance(delay, (int, float)):
            error_msg = f"Feedback delay must be a number, got {type(delay).__name__}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Invalid input: Expected a number, got {type(delay).__name__}"
            }

        if delay < self.MIN_FEEDBACK_DELAY or delay > self.MAX_FEEDBACK_DELAY:
            error_msg = (
                f"Feedback delay must be between {self.MIN_FEEDBACK_DELAY} "
                f"and {self.MAX_FEEDBACK_DELAY} seconds"
            )
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ {error_msg}"
            }

        self._settings.feedback_delay = float(delay)
        self.logger.info(f"Feedback delay set to {delay} seconds")
        return {
            'success': True,
            'message': f"Feedback delay set to {delay} seconds",
            'user_message': f"✅ Feedback shown for {delay} seconds"
        }

    def get_feedback_delay(self) -> float:
        return self._settings.feedback_delay

    def set_progress_file(self, path: str) -> Dict[str, Any]:
        """
        Set where progress snapshots are stored.

        Args:
            path: Path of the JSON progress file

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if not isinstance(path, str) or not path.strip():
            error_msg = "Progress file path must be a non-empty string"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': "❌ Progress file path cannot be empty"
            }

        self._progress_file = path
        self.logger.info(f"Progress file set to {path}")
        return {
            'success': True,
            'message': f"Progress file set to {path}",
            'user_message': f"✅ Progress will be saved to {path}"
        }

    def get_progress_file(self) -> str:
        return self._progress_file

    def set_snapshot_max_age(self, seconds: int) -> Dict[str, Any]:
        """Set how old a progress snapshot may be and still be offered back."""
        error = self._check_int(seconds, "Snapshot max age", 1, 7 * 24 * 3600)
        if error:
            return error

        self._snapshot_max_age = seconds
        self.logger.info(f"Snapshot max age set to {seconds} seconds")
        return {
            'success': True,
            'message': f"Snapshot max age set to {seconds} seconds",
            'user_message': f"✅ Saved progress expires after {seconds} seconds"
        }

    def get_snapshot_max_age(self) -> int:
        return self._snapshot_max_age

    def get_logging_config(self) -> Dict[str, Any]:
        """Configuration in the shape setup_logging_from_config expects."""
        return {'logging': dict(self._logging_config)}

    def load_from_file(self, path: str) -> Dict[str, Any]:
        """
        Apply settings from a JSON configuration file.

        Expected structure (every section and key optional):
        {
            "quiz": {"question_count": int, "timer_duration": int, "feedback_delay": float},
            "progress": {"file": str, "max_age": int},
            "logging": {"level": str, "log_directory": str}
        }

        Environment variables take precedence over values from the file.

        Returns:
            Dictionary with success status and the list of problems found
        """
        config_path = Path(path)
        issues: List[str] = []
        config: Dict[str, Any] = {}

        if not config_path.exists():
            issues.append(f"Config file not found: {config_path}")
        else:
            try:
                with open(config_path, 'r', encoding='utf-8') as f:
                    config = json.load(f)
                if not isinstance(config, dict):
                    issues.append("Config file must contain a JSON object")
                    config = {}
            except json.JSONDecodeError as e:
                issues.append(f"Invalid JSON in {config_path}: {e}")
            except OSError as e:
                issues.append(f"Error loading {config_path}: {e}")

        quiz_config = config.get('quiz', {})
        progress_config = config.get('progress', {})
        logging_config = config.get('logging', {})

        setters = [
            (quiz_config, 'question_count', self.set_question_count),
            (quiz_config, 'timer_duration', self.set_timer_duration),
            (quiz_config, 'feedback_delay', self.set_feedback_delay),
            (progress_config, 'file', self.set_progress_file),
            (progress_config, 'max_age', self.set_snapshot_max_age),
        ]
        for section, key, setter in setters:
            if isinstance(section, dict) and key in section:
                result = setter(section[key])
                if not result['success']:
                    issues.append(result['error'])

        if isinstance(logging_config, dict):
            self._logging_config = dict(logging_config)

        issues.extend(self._apply_environment_overrides())

        for issue in issues:
            self.logger.warning(issue)

        return {
            'success': not issues,
            'issues': issues,
            'settings': self.get_quiz_settings()
        }

    def _apply_environment_overrides(self) -> List[str]:
        issues = []
        overrides = [
            (self.ENV_TIMER_DURATION, self.set_timer_duration),
            (self.ENV_QUESTION_COUNT, self.set_question_count),
        ]
        for env_name, setter in overrides:
            raw = os.getenv(env_name)
            if raw is None:
                continue
            try:
                value = int(raw)
            except ValueError:
                issues.append(f"{env_name} must be an integer, got {raw!r}")
                continue
            result = setter(value)
            if not result['success']:
                issues.append(f"{env_name}: {result['error']}")
        return issues

    def reset_to_defaults(self) -> None:
        """Reset all settings to their default values."""
        self._settings = QuizSettings(
            question_count=self.DEFAULT_QUESTION_COUNT,
            timer_duration=self.DEFAULT_TIMER_DURATION,
            feedback_delay=self.DEFAULT_FEEDBACK_DELAY
        )
        self._progress_file = self.DEFAULT_PROGRESS_FILE
        self._snapshot_max_age = self.DEFAULT_SNAPSHOT_MAX_AGE
        self._logging_config = {}
        self.logger.info("All settings reset to default values")

    def validate_settings(self) -> Dict[str, Any]:
        """
        Validate current settings and return validation results.

        Returns:
            Dictionary with validation results and any issues found
        """
        validation_result = {
            "valid": True,
            "issues": []
        }

        count = self._settings.question_count
        if (not isinstance(count, int) or
                count < self.MIN_QUESTION_COUNT or
                count > self.MAX_QUESTION_COUNT):
            validation_result["valid"] = False
            validation_result["issues"].append(f"Invalid question count: {count}")

        duration = self._settings.timer_duration
        if (not isinstance(duration, int) or
                duration < self.MIN_TIMER_DURATION or
                duration > self.MAX_TIMER_DURATION):
            validation_result["valid"] = False
            validation_result["issues"].append(f"Invalid timer duration: {duration}")

        delay = self._settings.feedback_delay
        if (not isinstance(delay, (int, float)) or
                delay < self.MIN_FEEDBACK_DELAY or
                delay > self.MAX_FEEDBACK_DELAY):
            validation_result["valid"] = False
            validation_result["issues"].append(f"Invalid feedback delay: {delay}")

        return validation_result

    def get_settings_summary(self) -> str:
        """
        Get a formatted summary of current settings.

        Returns:
            Human-readable string describing current settings
        """
        return (
            f"Quiz Settings:\n"
            f"• Questions: {self._settings.question_count}\n"
            f"• Timer: {self._settings.timer_duration} seconds\n"
            f"• Feedback delay: {self._settings.feedback_delay} seconds\n"
            f"• Progress file: {self._progress_file}"
        )

    def _check_int(self, value: Any, label: str, minimum: int, maximum: int) -> Optional[Dict[str, Any]]:
        """Return an error result when value is not an int within range."""
        if isinstance(value, bool) or not isinstance(value, int):
            error_msg = f"{label} must be an integer, got {type(value).__name__}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Invalid input: Expected a number, got {type(value).__name__}"
            }

        if value < minimum:
            error_msg = f"{label} must be at least {minimum}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Too small: Minimum is {minimum}"
            }

        if value > maximum:
            error_msg = f"{label} cannot exceed {maximum}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Too large: Maximum is {maximum}"
            }

        return None
