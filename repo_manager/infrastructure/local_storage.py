"""Key-value stores backing the local repository registry."""

import json
import logging
import os
from typing import Dict, Optional

logger = logging.getLogger(__name__)


class InMemoryStorage:
    """Key-value store kept in process memory."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._items: Dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str):
        self._items[key] = value


class JsonFileStorage:
    """Key-value store persisted as a single JSON object on disk."""

    def __init__(self, path: Optional[str] = None):
        """
        Initialize file storage.

        Args:
            path: Path of the JSON file. If None, uses REPO_MANAGER_STORAGE env var
                or ~/.repo_manager/storage.json.
        """
        if path is None:
            path = os.getenv(
                "REPO_MANAGER_STORAGE",
                os.path.join(os.path.expanduser("~"), ".repo_manager", "storage.json"),
            )
        self.path = path

    def _read_all(self) -> Dict[str, str]:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Could not read storage file {self.path}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Ignoring storage file {self.path}: expected a JSON object")
            return {}
        return data

    def get_item(self, key: str) -> Optional[str]:
        value = self._read_all().get(key)
        return value if isinstance(value, str) else None

    def set_item(self, key: str, value: str):
        items = self._read_all()
        items[key] = value

        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        # Atomic replace
        tmp_path = f"{self.path}.tmp"
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(items, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Error writing storage file {self.path}: {e}")
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise
