"""
Environment-based provider configuration.

Variables (PROVIDER is the upper-cased provider name, e.g. GOOGLE):
    CLOUDSYNC_<PROVIDER>_CLIENT_ID
    CLOUDSYNC_<PROVIDER>_CLIENT_SECRET
    CLOUDSYNC_<PROVIDER>_REFRESH_TOKEN
    CLOUDSYNC_<PROVIDER>_REDIRECT_URI
    CLOUDSYNC_<PROVIDER>_ACCESS_TOKEN   (static-credential providers)
    CLOUDSYNC_CREDENTIALS_FILE          (JSON credential store path)
"""

from __future__ import annotations

import os
from typing import Mapping, Optional

from dotenv import find_dotenv, load_dotenv

from cloudsync.auth import AuthInfo, JsonFileCredentialStore
from cloudsync.errors import InvalidArgumentError

DEFAULT_CREDENTIALS_FILE = os.path.join("~", ".config", "cloudsync", "credentials.json")


def load_environment(dotenv_path: Optional[str] = None) -> None:
    """Load a .env file into the process environment without overriding it."""
    load_dotenv(dotenv_path or find_dotenv(usecwd=True), override=False)


def load_auth_info(
    provider: str,
    *,
    env: Optional[Mapping[str, str]] = None,
) -> AuthInfo:
    """
    Build AuthInfo for a provider from environment variables.

    A configured access token selects static credentials; otherwise a client
    id is required for OAuth.

    Raises:
        InvalidArgumentError: if neither a client id nor an access token is set.
    """
    if env is None:
        load_environment()
        env = os.environ

    prefix = f"CLOUDSYNC_{provider.upper()}_"

    def get(key: str) -> Optional[str]:
        value = env.get(prefix + key, "").strip()  # type: ignore[union-attr]
        return value or None

    access_token = get("ACCESS_TOKEN")
    if access_token:
        return AuthInfo.static(access_token)

    client_id = get("CLIENT_ID")
    if not client_id:
        raise InvalidArgumentError(
            "No credentials configured",
            details={"provider": provider, "expected": [prefix + "CLIENT_ID", prefix + "ACCESS_TOKEN"]},
        )
    return AuthInfo.oauth(
        client_id,
        client_secret=get("CLIENT_SECRET"),
        refresh_token=get("REFRESH_TOKEN"),
        redirect_uri=get("REDIRECT_URI"),
    )


def credential_store_from_env(
    *,
    env: Optional[Mapping[str, str]] = None,
) -> JsonFileCredentialStore:
    if env is None:
        load_environment()
        env = os.environ
    path = env.get("CLOUDSYNC_CREDENTIALS_FILE") or DEFAULT_CREDENTIALS_FILE
    return JsonFileCredentialStore(os.path.expanduser(path))
