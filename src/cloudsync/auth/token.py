"""Access tokens and their durable storage."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Optional, Protocol

from cloudsync.errors import AuthError

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class AccessToken:
    """Short-lived bearer credential with an absolute expiration (epoch seconds)."""

    token: str
    expiration: float

    def is_valid(self, now: float) -> bool:
        return bool(self.token) and self.expiration > now


class CredentialStore(Protocol):
    def save(self, provider_name: str, token: str, expiration: float) -> None: ...

    def load(self, provider_name: str) -> Optional[AccessToken]: ...

    def save_refresh_token(self, provider_name: str, refresh_token: str) -> None: ...

    def load_refresh_token(self, provider_name: str) -> Optional[str]: ...


class MemoryCredentialStore:
    """In-process credential store."""

    def __init__(self) -> None:
        self.tokens: dict[str, AccessToken] = {}
        self.refresh_tokens: dict[str, str] = {}

    def save(self, provider_name: str, token: str, expiration: float) -> None:
        self.tokens[provider_name] = AccessToken(token=token, expiration=expiration)

    def load(self, provider_name: str) -> Optional[AccessToken]:
        return self.tokens.get(provider_name)

    def save_refresh_token(self, provider_name: str, refresh_token: str) -> None:
        self.refresh_tokens[provider_name] = refresh_token

    def load_refresh_token(self, provider_name: str) -> Optional[str]:
        return self.refresh_tokens.get(provider_name)


class JsonFileCredentialStore:
    """
    Credential store kept in one JSON file.

    Layout:
        {"<provider>": {"access_token": str, "expiration": float,
                        "refresh_token": str}}
    """

    def __init__(self, path: str) -> None:
        if not path or not isinstance(path, str):
            raise ValueError("path must be a non-empty string")
        self._path = path

    @property
    def path(self) -> str:
        return self._path

    def save(self, provider_name: str, token: str, expiration: float) -> None:
        data = self._read()
        entry = data.setdefault(provider_name, {})
        entry["access_token"] = token
        entry["expiration"] = expiration
        self._write(data)

    def load(self, provider_name: str) -> Optional[AccessToken]:
        entry = self._read().get(provider_name)
        if not isinstance(entry, dict):
            return None
        token = entry.get("access_token")
        expiration = entry.get("expiration")
        if not isinstance(token, str) or not isinstance(expiration, (int, float)):
            return None
        return AccessToken(token=token, expiration=float(expiration))

    def save_refresh_token(self, provider_name: str, refresh_token: str) -> None:
        data = self._read()
        data.setdefault(provider_name, {})["refresh_token"] = refresh_token
        self._write(data)

    def load_refresh_token(self, provider_name: str) -> Optional[str]:
        entry = self._read().get(provider_name)
        if not isinstance(entry, dict):
            return None
        value = entry.get("refresh_token")
        return value if isinstance(value, str) and value else None

    def _read(self) -> dict[str, Any]:
        if not os.path.exists(self._path):
            return {}
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable credential file %s: %s", self._path, exc)
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict[str, Any]) -> None:
        parent_dir = os.path.dirname(self._path)
        try:
            if parent_dir:
                os.makedirs(parent_dir, exist_ok=True)
            with open(self._path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, sort_keys=True)
        except OSError as exc:
            raise AuthError(
                "Failed to save credential file",
                details={"path": self._path},
                cause=exc,
            ) from exc
