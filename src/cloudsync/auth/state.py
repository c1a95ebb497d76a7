"""Per-provider credential state."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from .auth_info import AuthInfo
from .token import AccessToken, CredentialStore, MemoryCredentialStore


@dataclass
class ProviderState:
    """
    Credentials and current access token of one provider.

    Notes:
        - `access_token` is only mutated by the AuthManager (or by a
          provider's interactive authorization), between operations.
        - `refresh_token` starts from AuthInfo and falls back to the
          credential store.
    """

    name: str
    auth_info: AuthInfo
    credential_store: CredentialStore = field(default_factory=MemoryCredentialStore)
    clock: Callable[[], float] = time.time

    access_token: Optional[AccessToken] = None
    refresh_token: Optional[str] = None
    provider: Optional[Any] = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if self.refresh_token is None:
            self.refresh_token = (
                self.auth_info.refresh_token
                or self.credential_store.load_refresh_token(self.name)
            )

    def now(self) -> float:
        return self.clock()

    def has_valid_token(self) -> bool:
        return self.access_token is not None and self.access_token.is_valid(self.now())
