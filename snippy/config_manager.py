from __future__ import annotations

import json
import os
import threading
from pathlib import Path
from typing import Any, Dict, Optional


DEFAULT_PREFERENCES: Dict[str, Any] = {
    "shell": "",
    "terminal_app": "Terminal",
    "fontScale": 1.0,
    "highContrast": False,
    "reduceMotion": False,
}


def default_base_dir() -> Path:
    override = os.environ.get("SNIPPY_HOME")
    if override:
        return Path(override).expanduser()
    return Path.home() / ".snippy"


class ConfigManager:
    """User preferences and the local key-value storage used by Snippy.

    Everything lives in a single `preferences.json`; the snippet store keeps its
    serialized blob under its own key next to the regular settings. Writers hold
    a lock so concurrent API calls cannot interleave a change with another save.
    """

    def __init__(self, base_dir: Optional[Path] = None) -> None:
        # Allow tests to override where preferences are stored.
        self._base = Path(base_dir) if base_dir is not None else default_base_dir()
        self._base.mkdir(parents=True, exist_ok=True)
        self._preferences_path = self._base / "preferences.json"
        self._lock = threading.RLock()
        self._preferences: Dict[str, Any] = self._load_preferences()

    @property
    def preferences_path(self) -> Path:
        return self._preferences_path

    def _load_preferences(self) -> Dict[str, Any]:
        if not self._preferences_path.exists():
            return {}
        try:
            data = json.loads(self._preferences_path.read_text(encoding="utf-8"))
        except Exception as exc:
            print(f"[WARN] Could not read {self._preferences_path}: {exc}", flush=True)
            return {}
        return data if isinstance(data, dict) else {}

    def _save_preferences(self) -> bool:
        try:
            self._preferences_path.write_text(json.dumps(self._preferences, indent=2), encoding="utf-8")
            return True
        except Exception as exc:
            print(f"[ERROR] Failed to write {self._preferences_path}: {exc}", flush=True)
            return False

    def get_preferences(self) -> Dict[str, Any]:
        merged = dict(DEFAULT_PREFERENCES)
        with self._lock:
            merged.update(self._preferences)
        return merged

    def get_preference(self, key: str, default: Any = None) -> Any:
        with self._lock:
            if key in self._preferences:
                return self._preferences[key]
        if default is None:
            return DEFAULT_PREFERENCES.get(key)
        return default

    def set_preference(self, key: str, value: Any) -> bool:
        """Store a value and write the file; returns False when the write failed.

        The in-memory value is only kept when the write succeeds so the file and
        memory never disagree.
        """
        with self._lock:
            previous = self._preferences.get(key, _MISSING)
            self._preferences[key] = value
            if self._save_preferences():
                return True
            if previous is _MISSING:
                self._preferences.pop(key, None)
            else:
                self._preferences[key] = previous
            return False

    def update_preferences(self, values: Dict[str, Any]) -> bool:
        with self._lock:
            snapshot = dict(self._preferences)
            self._preferences.update(values)
            if self._save_preferences():
                return True
            self._preferences = snapshot
            return False


_MISSING = object()
