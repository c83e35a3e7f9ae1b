"""
NoteSync - Session Storage
===========================

What:  Durable key/value area holding the persisted credential.
How:   Two string keys, TOKEN_KEY and USER_KEY (the user record as a JSON
       string). Absence of either key means "logged out".
Who:   AuthSession only.

Implementations:
    - JsonFileSessionStorage: one small JSON object on disk (default)
    - MemorySessionStorage:   process-local dict (tests, ephemeral sessions)

The interface is synchronous like a browser's localStorage, which lets
AuthSession.logout() stay synchronous.
"""

import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional, Union

from notesync.exceptions import SessionStorageError

logger = logging.getLogger(__name__)

TOKEN_KEY = "token"
USER_KEY = "user"


class SessionStorage(ABC):
    """
    Contract:
        - get() returns None for a missing key, never raises for it
        - set()/remove() raise SessionStorageError when the write fails
        - remove() of a missing key is a no-op
    """

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    def remove(self, key: str) -> None:
        ...


class MemorySessionStorage(SessionStorage):
    """Dict-backed storage. Contents vanish with the process."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileSessionStorage(SessionStorage):
    """
    Stores all keys in one JSON object on disk.

    Writes go to a temporary file in the same directory followed by
    os.replace(), so a crash never leaves a half-written session file.
    An unreadable or corrupt file reads as empty (logged out).
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path).expanduser()

    def _load(self) -> Dict[str, str]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as e:
            logger.warning("Could not read session file %s: %s", self.path, str(e))
            return {}
        try:
            data = json.loads(raw)
        except ValueError:
            logger.warning("Session file %s is corrupt, ignoring it", self.path)
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _save(self, data: Dict[str, str]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=str(self.path.parent), prefix=".session-", suffix=".tmp"
            )
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(data, handle)
            os.replace(tmp_name, self.path)
        except OSError as e:
            raise SessionStorageError(
                context={"path": str(self.path), "os_error": str(e)},
            ) from e

    def get(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self._save(data)

    def remove(self, key: str) -> None:
        data = self._load()
        if key not in data:
            return
        del data[key]
        if data:
            self._save(data)
            return
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            raise SessionStorageError(
                message="Could not clear the session",
                context={"path": str(self.path), "os_error": str(e)},
            ) from e
