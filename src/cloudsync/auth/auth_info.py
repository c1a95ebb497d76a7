"""Provider credential configuration for cloudsync."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

_KINDS = ("oauth", "static")


@dataclass(slots=True, frozen=True)
class AuthInfo:
    """
    Credential configuration passed to a provider at construction.

    kind = "oauth":
        data must include:
            - client_id
        data may include:
            - client_secret, refresh_token, redirect_uri, scopes
    kind = "static":
        data must include:
            - access_token
    """

    kind: str
    data: dict[str, Any]

    def __post_init__(self) -> None:
        if self.kind not in _KINDS:
            raise ValueError(f"AuthInfo.kind must be one of {_KINDS}")

        if not isinstance(self.data, dict):
            raise TypeError("AuthInfo.data must be a dict")

        required = ("client_id",) if self.kind == "oauth" else ("access_token",)
        for key in required:
            value = self.data.get(key)
            if not isinstance(value, str) or not value.strip():
                raise ValueError(f"AuthInfo.data['{key}'] must be a non-empty string")

    @classmethod
    def oauth(
        cls,
        client_id: str,
        *,
        client_secret: Optional[str] = None,
        refresh_token: Optional[str] = None,
        redirect_uri: Optional[str] = None,
    ) -> "AuthInfo":
        data: dict[str, Any] = {"client_id": client_id}
        if client_secret:
            data["client_secret"] = client_secret
        if refresh_token:
            data["refresh_token"] = refresh_token
        if redirect_uri:
            data["redirect_uri"] = redirect_uri
        return cls(kind="oauth", data=data)

    @classmethod
    def static(cls, access_token: str) -> "AuthInfo":
        return cls(kind="static", data={"access_token": access_token})

    @property
    def is_oauth(self) -> bool:
        return self.kind == "oauth"

    @property
    def client_id(self) -> Optional[str]:
        return self._optional("client_id")

    @property
    def client_secret(self) -> Optional[str]:
        return self._optional("client_secret")

    @property
    def refresh_token(self) -> Optional[str]:
        return self._optional("refresh_token")

    @property
    def redirect_uri(self) -> Optional[str]:
        return self._optional("redirect_uri")

    @property
    def access_token(self) -> Optional[str]:
        """Long-lived token for static-credential providers."""
        return self._optional("access_token")

    def _optional(self, key: str) -> Optional[str]:
        value = self.data.get(key)
        if isinstance(value, str) and value.strip():
            return value
        return None
