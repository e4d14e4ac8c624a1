"""
Best-effort persistence of an interrupted quiz session.

The store is a small JSON key-value file. Nothing here is required for a
quiz to run correctly, so failures are logged and reported, never raised.
"""
import json
import logging
import os
import time
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from .models import ProgressSnapshot

PROGRESS_KEY = "quiz_progress_backup"
DEFAULT_MAX_AGE_SECONDS = 3600


class ProgressStore:
    """Saves and restores a single progress snapshot."""

    def __init__(self, path: str = "./quiz_progress.json", clock: Callable[[], float] = time.time):
        """
        Initialize the store.

        Args:
            path: JSON file holding the key-value entries
            clock: Source of epoch seconds for snapshot ages
        """
        self.path = Path(path)
        self.logger = logging.getLogger(__name__)
        self._clock = clock

    def save_snapshot(self, snapshot: ProgressSnapshot) -> Dict[str, Any]:
        """
        Write the snapshot under the fixed progress key.

        Returns:
            Dictionary with success status and error message if applicable
        """
        read_result = self._read_entries()
        entries = read_result['entries'] if read_result['success'] else {}
        entries[PROGRESS_KEY] = snapshot.to_dict()
        return self._write_entries(entries)

    def load_snapshot(self, max_age: float = DEFAULT_MAX_AGE_SECONDS) -> Optional[ProgressSnapshot]:
        """
        Take the saved snapshot if it is recent enough.

        The entry is removed whether or not it is returned, so a snapshot is
        offered at most once.

        Args:
            max_age: Oldest acceptable snapshot, in seconds

        Returns:
            The snapshot, or None if absent, stale or unreadable
        """
        read_result = self._read_entries()
        if not read_result['success']:
            self.logger.warning(f"Could not check for saved progress: {read_result['error']}")
            return None

        entries = read_result['entries']
        data = entries.pop(PROGRESS_KEY, None)
        if data is None:
            return None

        self._write_entries(entries)

        try:
            snapshot = ProgressSnapshot.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            self.logger.warning(f"Discarding malformed progress snapshot: {e}")
            return None

        age = self._clock() - snapshot.saved_at
        if age < 0 or age >= max_age:
            self.logger.info(f"Discarding progress snapshot saved {age:.0f}s ago")
            return None

        self.logger.info(f"Found progress snapshot at question {snapshot.current_index + 1}")
        return snapshot

    def clear(self) -> Dict[str, Any]:
        """Remove any saved snapshot."""
        read_result = self._read_entries()
        if not read_result['success']:
            return {'success': False, 'error': read_result['error']}

        entries = read_result['entries']
        if PROGRESS_KEY not in entries:
            return {'success': True}
        del entries[PROGRESS_KEY]
        return self._write_entries(entries)

    def has_snapshot(self) -> bool:
        read_result = self._read_entries()
        return read_result['success'] and PROGRESS_KEY in read_result['entries']

    def _read_entries(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {'success': True, 'entries': {}}

        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            return {'success': False, 'error': f"Invalid JSON in {self.path}: {e}", 'entries': {}}
        except PermissionError:
            return {'success': False, 'error': f"Permission denied: Cannot read {self.path}", 'entries': {}}
        except OSError as e:
            return {'success': False, 'error': f"Failed to read {self.path}: {e}", 'entries': {}}

        if not isinstance(data, dict):
            return {'success': False, 'error': f"{self.path} must contain a JSON object", 'entries': {}}

        return {'success': True, 'entries': data}

    def _write_entries(self, entries: Dict[str, Any]) -> Dict[str, Any]:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            temp_path = self.path.with_suffix(self.path.suffix + ".tmp")
            with open(temp_path, 'w', encoding='utf-8') as f:
                json.dump(entries, f, indent=2, ensure_ascii=False)
            os.replace(temp_path, self.path)
            return {'success': True}
        except PermissionError:
            error_msg = f"Permission denied: Cannot write {self.path}"
        except (OSError, TypeError, ValueError) as e:
            error_msg = f"Failed to write {self.path}: {e}"

        self.logger.warning(f"Could not save progress: {error_msg}")
        return {'success': False, 'error': error_msg}
