"""
Raffle Client Token Storage

Storage backends for token persistence and the TokenStore that owns the
access/refresh token pair on top of them.
"""

import json
import os
import threading
from pathlib import Path
from typing import Any, Dict, Optional

from .types import StorageBackend


ACCESS_TOKEN_KEY = "access_token"
REFRESH_TOKEN_KEY = "refresh_token"


class MemoryStorage:
    """In-memory storage (default, non-persistent)."""

    def __init__(self) -> None:
        self._items: Dict[str, str] = {}
        self._lock = threading.Lock()

    def get_item(self, key: str) -> Optional[str]:
        with self._lock:
            return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        with self._lock:
            self._items[key] = value

    def remove_item(self, key: str) -> None:
        with self._lock:
            self._items.pop(key, None)


class FileStorage:
    """File-based storage (persistent across restarts)."""

    def __init__(self, file_path: Optional[str] = None) -> None:
        """
        Initialize file storage.

        Args:
            file_path: Path to token file. Defaults to ~/.raffle/tokens.json
        """
        if file_path:
            self._file_path = Path(file_path)
        else:
            self._file_path = Path.home() / ".raffle" / "tokens.json"

        self._lock = threading.Lock()
        self._file_path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def path(self) -> Path:
        return self._file_path

    def _read_data(self) -> Dict[str, Any]:
        """Read stored items; a missing or corrupt file reads as empty."""
        try:
            if self._file_path.exists():
                with open(self._file_path, "r", encoding="utf-8") as f:
                    data = json.load(f)
                    if isinstance(data, dict):
                        return data
        except (json.JSONDecodeError, OSError):
            pass
        return {}

    def _write_data(self, data: Dict[str, Any]) -> None:
        if not data:
            if self._file_path.exists():
                self._file_path.unlink()
            return
        with open(self._file_path, "w", encoding="utf-8") as f:
            json.dump(data, f)
        # Owner read/write only
        os.chmod(self._file_path, 0o600)

    def get_item(self, key: str) -> Optional[str]:
        with self._lock:
            value = self._read_data().get(key)
            return value if isinstance(value, str) else None

    def set_item(self, key: str, value: str) -> None:
        with self._lock:
            data = self._read_data()
            data[key] = value
            self._write_data(data)

    def remove_item(self, key: str) -> None:
        with self._lock:
            data = self._read_data()
            if key in data:
                del data[key]
                self._write_data(data)


class TokenStore:
    """
    Owns the access and refresh tokens.

    Every read goes to the backend, so a token written by another client
    sharing the same storage is seen on the next request. Tokens carry no
    expiry here; an expired access token is only discovered by a 401.
    """

    def __init__(self, backend: Optional[StorageBackend] = None) -> None:
        self._backend: StorageBackend = backend if backend is not None else MemoryStorage()
        self._lock = threading.Lock()

    @property
    def backend(self) -> StorageBackend:
        return self._backend

    def _put(self, key: str, token: Optional[str]) -> None:
        if token:
            self._backend.set_item(key, token)
        else:
            self._backend.remove_item(key)

    def get_access_token(self) -> Optional[str]:
        return self._backend.get_item(ACCESS_TOKEN_KEY)

    def set_access_token(self, token: Optional[str]) -> None:
        """Store the access token; None removes it."""
        with self._lock:
            self._put(ACCESS_TOKEN_KEY, token)

    def get_refresh_token(self) -> Optional[str]:
        return self._backend.get_item(REFRESH_TOKEN_KEY)

    def set_refresh_token(self, token: Optional[str]) -> None:
        """Store the refresh token; None removes it."""
        with self._lock:
            self._put(REFRESH_TOKEN_KEY, token)

    def set_tokens(self, access_token: str, refresh_token: Optional[str] = None) -> None:
        """Store a new access token, and the refresh token when one is given."""
        with self._lock:
            self._put(ACCESS_TOKEN_KEY, access_token)
            if refresh_token:
                self._put(REFRESH_TOKEN_KEY, refresh_token)

    def clear_tokens(self) -> None:
        """Remove both tokens."""
        with self._lock:
            self._backend.remove_item(ACCESS_TOKEN_KEY)
            self._backend.remove_item(REFRESH_TOKEN_KEY)

    def has_tokens(self) -> bool:
        return bool(self.get_access_token() or self.get_refresh_token())
