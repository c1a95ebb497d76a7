"""Public auth exports for cloudsync."""

from __future__ import annotations

from .auth_info import AuthInfo
from .consent import (
    ConsentFlow,
    ConsentGrant,
    ConsentRunner,
    google_installed_app_flow,
    msal_interactive_flow,
    run_in_background,
)
from .manager import AuthManager, AuthStatus
from .state import ProviderState
from .token import AccessToken, CredentialStore, JsonFileCredentialStore, MemoryCredentialStore

__all__ = [
    "AuthInfo",
    "AuthManager",
    "AuthStatus",
    "ProviderState",
    "AccessToken",
    "CredentialStore",
    "JsonFileCredentialStore",
    "MemoryCredentialStore",
    "ConsentFlow",
    "ConsentGrant",
    "ConsentRunner",
    "google_installed_app_flow",
    "msal_interactive_flow",
    "run_in_background",
]
