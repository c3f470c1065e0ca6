"""Durable per-device key-value storage and the session store built on it."""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional

from loguru import logger

from tastetrail.models import PalateProfile, User

USER_KEY = "tastetrail_user"
PALATE_KEY = "tastetrail_palate"
TOUR_KEY = "tastetrail_tour"


class MemoryStore:
    """In-process store. Values are JSON round-tripped so callers never share objects."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None) -> None:
        self._data: Dict[str, str] = {}
        for key, value in (initial or {}).items():
            self.set(key, value)

    def get(self, key: str) -> Any:
        raw = self._data.get(key)
        return None if raw is None else json.loads(raw)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = json.dumps(value, ensure_ascii=False)

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileStore:
    """One JSON file per key under ``root``; writes go through a temp file and ``os.replace``."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        return self.root / f"{key}.json"

    def get(self, key: str) -> Any:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("store entry {} unreadable, treating as absent: {}", key, exc)
            return None

    def set(self, key: str, value: Any) -> None:
        payload = json.dumps(value, ensure_ascii=False)
        fd, tmp = tempfile.mkstemp(dir=self.root, prefix=f".{key}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(payload)
            os.replace(tmp, self._path(key))
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    def remove(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)


class SessionStore:
    """Typed access to the three persisted entries: user, palate, tour flag.

    Entries are independent; a user without a palate is a normal state.
    """

    def __init__(self, backend: MemoryStore | JsonFileStore) -> None:
        self.backend = backend

    def load_user(self) -> Optional[User]:
        data = self.backend.get(USER_KEY)
        if not isinstance(data, dict):
            return None
        return User.from_dict(data)

    def save_user(self, user: User) -> None:
        self.backend.set(USER_KEY, user.to_dict())

    def clear_user(self) -> None:
        self.backend.remove(USER_KEY)

    def load_palate(self) -> Optional[PalateProfile]:
        data = self.backend.get(PALATE_KEY)
        if not isinstance(data, dict):
            return None
        return PalateProfile.from_dict(data)

    def save_palate(self, palate: PalateProfile) -> None:
        self.backend.set(PALATE_KEY, palate.to_dict())

    def tour_seen(self) -> bool:
        return bool(self.backend.get(TOUR_KEY))

    def mark_tour_seen(self) -> None:
        self.backend.set(TOUR_KEY, True)


def build_store(store_dir: Optional[str]) -> SessionStore:
    if store_dir:
        return SessionStore(JsonFileStore(store_dir))
    return SessionStore(MemoryStore())
