"""
Small JSON key/value store for auth records that must survive a redirect.
"""

import json
from pathlib import Path
from typing import Any, Dict, Optional

from loguru import logger

AUTH_REDIRECT_KEY = "auth_redirect"
AUTH_STATE_KEY = "auth_state"
SESSION_KEY = "session"


def get_default_store_path() -> Path:
    from smart_playlist.core.config import get_data_dir

    return get_data_dir() / "auth_store.json"


class LocalStore:
    """Key/value records persisted to a single owner-only JSON file."""

    def __init__(self, path: Optional[Path] = None) -> None:
        self.path = path or get_default_store_path()

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Failed to read auth store {self.path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _save(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        self.path.chmod(0o600)

    def get(self, key: str) -> Any:
        return self._load().get(key)

    def set(self, key: str, value: Any) -> None:
        data = self._load()
        data[key] = value
        self._save(data)

    def remove(self, key: str) -> None:
        data = self._load()
        if key in data:
            del data[key]
            self._save(data)
