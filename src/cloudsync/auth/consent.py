"""Interactive consent flows that yield a refresh token."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from cloudsync.errors import AuthError, InvalidArgumentError
from cloudsync.util.time import seconds_until

from .auth_info import AuthInfo

logger = logging.getLogger(__name__)

GOOGLE_AUTH_URI = "https://accounts.google.com/o/oauth2/auth"
GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"
MICROSOFT_AUTHORITY = "https://login.microsoftonline.com/common"


@dataclass(frozen=True)
class ConsentGrant:
    """Tokens obtained from an interactive authorization."""

    access_token: str
    expires_in: int
    refresh_token: Optional[str] = None


ConsentFlow = Callable[[], ConsentGrant]
ConsentRunner = Callable[[Callable[[], None]], None]


def run_in_background(task: Callable[[], None]) -> None:
    """Default consent runner: the user-driven flow runs on a daemon thread."""
    threading.Thread(target=task, name="cloudsync-consent", daemon=True).start()


def google_installed_app_flow(auth_info: AuthInfo, scopes: Sequence[str]) -> ConsentFlow:
    """
    Build a consent flow using google-auth-oauthlib's installed-app flow.

    Raises (when the returned flow runs):
        AuthError: on library or flow failures.
    """
    if not scopes or not all(isinstance(s, str) and s.strip() for s in scopes):
        raise InvalidArgumentError("scopes must be a non-empty sequence of strings")

    client_config = {
        "installed": {
            "client_id": auth_info.client_id,
            "client_secret": auth_info.client_secret or "",
            "auth_uri": GOOGLE_AUTH_URI,
            "token_uri": GOOGLE_TOKEN_URI,
            "redirect_uris": ["http://localhost"],
        }
    }

    def flow() -> ConsentGrant:
        try:
            from google_auth_oauthlib.flow import InstalledAppFlow
        except Exception as exc:  # pragma: no cover
            raise AuthError(
                "Google auth libraries are not available",
                details={"hint": "Install google-auth and google-auth-oauthlib"},
                cause=exc,
            ) from exc

        try:
            app_flow = InstalledAppFlow.from_client_config(client_config, scopes=list(scopes))
            creds = app_flow.run_local_server(port=0)
        except Exception as exc:
            raise AuthError("OAuth authorization flow failed", cause=exc) from exc

        if not creds.token:
            raise AuthError("OAuth authorization flow returned no access token")
        return ConsentGrant(
            access_token=creds.token,
            expires_in=seconds_until(creds.expiry),
            refresh_token=creds.refresh_token,
        )

    return flow


def msal_interactive_flow(
    auth_info: AuthInfo,
    scopes: Sequence[str],
    *,
    authority: str = MICROSOFT_AUTHORITY,
) -> ConsentFlow:
    """Build a consent flow using MSAL's interactive public-client login."""
    if not scopes:
        raise InvalidArgumentError("scopes must be a non-empty sequence of strings")

    def flow() -> ConsentGrant:
        try:
            import msal
        except Exception as exc:  # pragma: no cover
            raise AuthError(
                "msal is not available",
                details={"hint": "Install msal"},
                cause=exc,
            ) from exc

        try:
            app = msal.PublicClientApplication(auth_info.client_id, authority=authority)
            result = app.acquire_token_interactive(scopes=list(scopes))
        except Exception as exc:
            raise AuthError("OAuth authorization flow failed", cause=exc) from exc

        if "error" in result or not result.get("access_token"):
            raise AuthError(
                "OAuth authorization flow failed",
                details={
                    "error": result.get("error"),
                    "error_description": result.get("error_description"),
                },
            )
        return ConsentGrant(
            access_token=result["access_token"],
            expires_in=int(result.get("expires_in", 3600)),
            refresh_token=result.get("refresh_token") or None,
        )

    return flow
