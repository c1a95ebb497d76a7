"""OAuth refresh-token lifecycle for one provider."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional
from urllib.parse import urlencode

from cloudsync.engine.operation import ContinuationData, OperationState, RestOperation
from cloudsync.errors import AuthError, CloudSyncError, TransportError
from cloudsync.models import ProviderResult
from cloudsync.transport import HttpRequest, HttpResponse, Transport

from .state import ProviderState
from .token import AccessToken

logger = logging.getLogger(__name__)

AuthCallback = Callable[[bool], None]


class AuthStatus(str, Enum):
    NO_TOKEN = "no_token"
    REFRESHING = "refreshing"
    VALID = "valid"


@dataclass
class _RefreshPayload:
    callback: Optional[AuthCallback]


def _release_refresh_payload(payload: _RefreshPayload) -> None:
    payload.callback = None


class AuthManager:
    """
    Keeps a provider's access token usable.

    Refresh procedure:
        - discard the prior token
        - POST the form-encoded refresh grant to the token endpoint
        - 200: store `access_token` / `now + expires_in`, persist, callback(True)
        - otherwise: callback(False)

    A 200 response lacking `access_token` or `expires_in` still reports
    callback(True) but leaves no token stored; callers check
    `ready_for_request()` before using the token.
    """

    def __init__(
        self,
        state: ProviderState,
        transport: Transport,
        *,
        token_url: str,
        redirect_uri: Optional[str] = None,
    ) -> None:
        self._state = state
        self._transport = transport
        self._token_url = token_url
        self._redirect_uri = state.auth_info.redirect_uri or redirect_uri
        self._refreshing = False

        persisted = state.credential_store.load(state.name)
        if state.access_token is None and persisted is not None:
            state.access_token = persisted

    @property
    def provider_name(self) -> str:
        return self._state.name

    @property
    def status(self) -> AuthStatus:
        if self._refreshing:
            return AuthStatus.REFRESHING
        if self._state.has_valid_token():
            return AuthStatus.VALID
        return AuthStatus.NO_TOKEN

    def ready_for_request(self) -> bool:
        return self._state.has_valid_token()

    def apply_authorization(self, request: HttpRequest) -> None:
        """Set the bearer header from the current token."""
        token = self._state.access_token
        if token is not None:
            request.set_header("Authorization", f"Bearer {token.token}")

    def store_token(self, token: str, expires_in: int) -> AccessToken:
        """
        Store and persist a token obtained by refresh or interactive authorization.

        A credential store that cannot be written leaves the token usable in
        memory; the failure is logged, not raised.
        """
        expiration = self._state.now() + expires_in
        access_token = AccessToken(token=token, expiration=expiration)
        self._state.access_token = access_token
        self._persist("access token", self._state.credential_store.save, token, expiration)
        return access_token

    def set_refresh_token(self, refresh_token: str) -> None:
        self._state.refresh_token = refresh_token
        self._persist(
            "refresh token", self._state.credential_store.save_refresh_token, refresh_token
        )

    def _persist(self, what: str, save: Callable[..., None], *args: object) -> None:
        try:
            save(self._state.name, *args)
        except CloudSyncError as exc:
            logger.warning("%s: %s kept in memory only: %s", self.provider_name, what, exc)

    def authenticate(self) -> ProviderResult[None]:
        """Refresh synchronously."""
        if not self._state.refresh_token:
            return ProviderResult.failure(
                AuthError(
                    "No refresh token configured",
                    details={"provider": self.provider_name},
                )
            )

        outcome: list[bool] = []
        result = self._refresh(outcome.append)
        if not result.ok:
            return result
        if not self.ready_for_request():
            return ProviderResult.failure(
                AuthError(
                    "Token endpoint returned no access token",
                    details={"provider": self.provider_name},
                )
            )
        return ProviderResult.success()

    def refresh(self, callback: AuthCallback) -> None:
        """Refresh the access token; `callback(success)` fires exactly once."""
        if not self._state.refresh_token:
            logger.warning("%s: cannot refresh without a refresh token", self.provider_name)
            self._state.access_token = None
            callback(False)
            return
        self._refresh(callback)

    def _refresh(self, callback: AuthCallback) -> ProviderResult[None]:
        self._state.access_token = None
        self._refreshing = True

        request = HttpRequest(url=self._token_url, method="POST", log_body=False)
        request.set_header("Content-Type", "application/x-www-form-urlencoded")
        request.body = self._refresh_request_body()

        state: OperationState[_RefreshPayload] = OperationState(
            ContinuationData(provider_state=self._state),
            _RefreshPayload(callback=callback),
            release=_release_refresh_payload,
        )
        operation = (
            RestOperation(request, state)
            .on(200, self._on_token_response)
            .on(500, self._on_refresh_failure)
            .on_default(self._on_refresh_failure)
            .on_transport_failure(self._on_refresh_transport_failure)
        )
        try:
            return operation.execute(self._transport)
        finally:
            self._refreshing = False

    def _refresh_request_body(self) -> bytes:
        auth_info = self._state.auth_info
        params: list[tuple[str, str]] = [("client_id", auth_info.client_id or "")]
        if auth_info.client_secret:
            params.append(("client_secret", auth_info.client_secret))
        if self._redirect_uri:
            params.append(("redirect_uri", self._redirect_uri))
        params.append(("refresh_token", self._state.refresh_token or ""))
        params.append(("grant_type", "refresh_token"))
        return urlencode(params).encode("ascii")

    def _on_token_response(
        self,
        request: HttpRequest,
        response: HttpResponse,
        state: OperationState[_RefreshPayload],
    ) -> None:
        try:
            payload = response.json()
        except (ValueError, UnicodeDecodeError) as exc:
            logger.warning("%s: unparsable token response: %s", self.provider_name, exc)
            self._resolve(state, False, AuthError("Unparsable token response", cause=exc))
            return

        token = payload.get("access_token") if isinstance(payload, dict) else None
        expires_in = payload.get("expires_in") if isinstance(payload, dict) else None

        if isinstance(token, str) and token and _is_int(expires_in):
            self.store_token(token, int(expires_in))
            # Some servers rotate the refresh token.
            rotated = payload.get("refresh_token")
            if isinstance(rotated, str) and rotated and rotated != self._state.refresh_token:
                self.set_refresh_token(rotated)
            logger.info("%s: access token refreshed", self.provider_name)
        else:
            logger.warning(
                "%s: token response missing access_token or expires_in; no token stored",
                self.provider_name,
            )
        self._resolve(state, True)

    def _on_refresh_failure(
        self,
        request: HttpRequest,
        response: HttpResponse,
        state: OperationState[_RefreshPayload],
    ) -> None:
        logger.warning("%s: token refresh rejected (HTTP %d)", self.provider_name, response.status)
        self._resolve(
            state,
            False,
            AuthError(
                "Token refresh failed",
                details={"status_code": response.status, "provider": self.provider_name},
            ),
        )

    def _on_refresh_transport_failure(
        self,
        request: HttpRequest,
        state: OperationState[_RefreshPayload],
    ) -> None:
        logger.warning("%s: token refresh did not reach the server", self.provider_name)
        self._resolve(
            state,
            False,
            TransportError(
                "No response from token endpoint",
                details={"url": request.url, "provider": self.provider_name},
            ),
        )

    def _resolve(
        self,
        state: OperationState[_RefreshPayload],
        success: bool,
        error: Optional[CloudSyncError] = None,
    ) -> None:
        if not success:
            self._state.access_token = None
        payload = state.extra_state
        callback = payload.callback if payload is not None else None
        if error is None:
            state.succeed()
        else:
            state.fail(error)
        if callback is not None:
            callback(success)


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)
