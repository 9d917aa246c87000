"""
Key/value state persistence.

Values are opaque strings (callers store JSON documents), mirroring the
browser-style storage the alert pipeline was designed around. The file
backend keeps every key in a single JSON document on disk.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Dict, List, Optional

from ..utils.error_handling import StorageError
from ..utils.logging import get_logger

logger = get_logger("state_storage")


class InMemoryStateStorage:
    """Process-local storage; nothing survives a restart."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._items: Dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def keys(self) -> List[str]:
        return list(self._items)


class FileStateStorage:
    """Storage backed by a JSON document on disk."""

    def __init__(self, state_file: str = "data/state.json"):
        """
        Initialize file storage.

        Args:
            state_file: Path to the JSON document holding all keys
        """
        self.state_file = Path(state_file)
        self._items: Dict[str, str] = {}
        self._load_state()

    def _load_state(self) -> None:
        """Load stored items; an unreadable document starts empty."""
        if not self.state_file.exists():
            return

        try:
            with open(self.state_file, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(
                f"Could not load state from {self.state_file}, starting empty",
                extra={"error": str(e)},
            )
            return

        if not isinstance(data, dict):
            logger.warning(
                f"Ignoring malformed state document {self.state_file}",
                extra={"type": type(data).__name__},
            )
            return

        self._items = {
            key: value
            for key, value in data.items()
            if isinstance(key, str) and isinstance(value, str)
        }
        logger.debug(
            f"Loaded {len(self._items)} stored keys from {self.state_file}"
        )

    def _save_state(self) -> None:
        """Write all items atomically via a temporary file."""
        try:
            self.state_file.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                dir=self.state_file.parent, prefix=".state-", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(self._items, f, indent=2, sort_keys=True)
                os.replace(tmp_path, self.state_file)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        except OSError as e:
            raise StorageError(f"Could not save state to {self.state_file}: {e}") from e

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        """Store value under key, persisting immediately."""
        previous = self._items.get(key)
        self._items[key] = value
        try:
            self._save_state()
        except StorageError:
            if previous is None:
                self._items.pop(key, None)
            else:
                self._items[key] = previous
            raise

    def remove_item(self, key: str) -> None:
        """Delete key, persisting immediately."""
        if key not in self._items:
            return

        previous = self._items.pop(key)
        try:
            self._save_state()
        except StorageError:
            self._items[key] = previous
            raise

    def keys(self) -> List[str]:
        return list(self._items)
