"""Status-code dispatch around one REST call, with transparent re-authentication."""

from __future__ import annotations

import functools
import json
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Generic, Optional, TypeVar

from cloudsync.errors import (
    AuthError,
    CloudSyncError,
    HttpErrorInfo,
    InvalidStateError,
    TransportError,
    map_http_error,
)
from cloudsync.models import ProviderResult
from cloudsync.transport import HttpRequest, HttpResponse, Transport

if TYPE_CHECKING:
    from cloudsync.auth.manager import AuthManager
    from cloudsync.auth.state import ProviderState

logger = logging.getLogger(__name__)

P = TypeVar("P")

Handler = Callable[[HttpRequest, HttpResponse, "OperationState[Any]"], None]
TransportFailureHandler = Callable[[HttpRequest, "OperationState[Any]"], None]


@dataclass
class ContinuationData:
    """Caller context an operation resumes with."""

    provider_state: "ProviderState"
    data: Any = None


class OperationState(Generic[P]):
    """
    Continuation object for one in-flight REST call.

    The same state (and payload) is reused when the request is resubmitted.
    The payload is released exactly once, when the state completes.
    """

    def __init__(
        self,
        continuation: ContinuationData,
        extra_state: P,
        *,
        release: Optional[Callable[[P], None]] = None,
    ) -> None:
        self.continuation = continuation
        self.extra_state: Optional[P] = extra_state
        self.complete = False
        self.result: Optional[ProviderResult[Any]] = None
        self.attempts = 0
        self.reauthenticated = False
        self._release = release
        self._released = False
        self._resubmit = False

    @property
    def released(self) -> bool:
        return self._released

    def finish(self, result: ProviderResult[Any]) -> None:
        if self.complete:
            raise InvalidStateError("Operation already resolved")
        self.complete = True
        self.result = result
        self._resubmit = False
        self._release_extra_state()

    def succeed(self, value: Any = None) -> None:
        self.finish(ProviderResult.success(value))

    def fail(self, error: CloudSyncError) -> None:
        self.finish(ProviderResult.failure(error))

    def outcome(self) -> ProviderResult[Any]:
        """The resolved result; only available once the state is complete."""
        if self.result is None:
            raise InvalidStateError("Operation has not resolved")
        return self.result

    def resubmit(self) -> None:
        if self.complete:
            raise InvalidStateError("Cannot resubmit a resolved operation")
        self._resubmit = True

    def take_resubmit(self) -> bool:
        requested = self._resubmit
        self._resubmit = False
        return requested

    def _release_extra_state(self) -> None:
        if self._released:
            return
        self._released = True
        payload = self.extra_state
        self.extra_state = None
        if self._release is not None:
            self._release(payload)  # type: ignore[arg-type]


class RestOperation(Generic[P]):
    """
    One REST call plus a dispatch table mapping status codes to handlers.

    A handler either resolves the state (`finish`/`succeed`/`fail`) or asks
    for the same request to be submitted again (`resubmit`).
    """

    def __init__(self, request: HttpRequest, state: OperationState[P]) -> None:
        self.request = request
        self.state = state
        self._handlers: dict[int, Handler] = {}
        self._default_handler: Optional[Handler] = None
        self._transport_failure_handler: Optional[TransportFailureHandler] = None
        self._auth: Optional["AuthManager"] = None

    def on(self, status: int, handler: Handler) -> "RestOperation[P]":
        self._handlers[status] = handler
        return self

    def on_default(self, handler: Handler) -> "RestOperation[P]":
        self._default_handler = handler
        return self

    def on_transport_failure(self, handler: TransportFailureHandler) -> "RestOperation[P]":
        self._transport_failure_handler = handler
        return self

    def retry_on_unauthorized(self, auth_manager: "AuthManager") -> "RestOperation[P]":
        """Map 401 to: refresh the token, re-apply it, and resubmit once."""
        self._auth = auth_manager
        return self

    def execute(self, transport: Transport) -> ProviderResult[Any]:
        state = self.state
        while not state.complete:
            state.attempts += 1
            response = transport.submit(self.request)

            if response is None:
                self._handle_transport_failure()
            else:
                handler = self._select_handler(response.status)
                handler(self.request, response, state)

            if state.complete:
                break
            if not state.take_resubmit():
                state.fail(
                    InvalidStateError(
                        "Response handler neither resolved nor resubmitted",
                        details={"url": self.request.url},
                    )
                )

        return state.outcome()

    def _select_handler(self, status: int) -> Handler:
        handler = self._handlers.get(status)
        if handler is not None:
            return handler
        if status == 401 and self._auth is not None:
            return functools.partial(self._handle_unauthorized, self._auth)
        if self._default_handler is not None:
            return self._default_handler
        return fail_with_status

    def _handle_transport_failure(self) -> None:
        if self._transport_failure_handler is not None:
            self._transport_failure_handler(self.request, self.state)
            if self.state.complete:
                return
        # Transport failures are terminal and never retried.
        self.state.fail(
            TransportError(
                "No response received",
                details={"method": self.request.method, "url": self.request.url},
            )
        )

    def _handle_unauthorized(
        self,
        auth: "AuthManager",
        request: HttpRequest,
        response: HttpResponse,
        state: OperationState[Any],
    ) -> None:
        if state.reauthenticated:
            state.fail(error_from_response(response, message="Unauthorized after token refresh"))
            return
        state.reauthenticated = True

        logger.info("%s: access token rejected, refreshing", auth.provider_name)
        outcome: list[bool] = []
        auth.refresh(outcome.append)

        if not outcome or not outcome[0]:
            state.fail(
                AuthError(
                    "Token refresh failed",
                    details={"status_code": 401, "provider": auth.provider_name},
                )
            )
            return
        if not auth.ready_for_request():
            state.fail(
                AuthError(
                    "Token refresh returned no usable access token",
                    details={"status_code": 401, "provider": auth.provider_name},
                )
            )
            return

        auth.apply_authorization(request)
        state.resubmit()


def fail_with_status(
    request: HttpRequest,
    response: HttpResponse,
    state: OperationState[Any],
) -> None:
    """Generic failure handler: resolve with the error mapped from the status."""
    state.fail(error_from_response(response, details={"url": request.url}))


def error_from_response(
    response: HttpResponse,
    *,
    message: Optional[str] = None,
    details: Optional[dict[str, Any]] = None,
) -> CloudSyncError:
    """Build a cloudsync error from an HTTP response, reading the backend's error body."""
    reason: Optional[str] = None
    body_message: Optional[str] = None
    info_details: dict[str, Any] = dict(details or {})

    try:
        payload = json.loads(response.body.decode("utf-8")) if response.body else None
    except (ValueError, UnicodeDecodeError):
        payload = None

    if isinstance(payload, dict):
        err = payload.get("error")
        if isinstance(err, dict):
            # Google: {"error": {"message", "errors": [{"reason"}]}}
            # Graph:  {"error": {"code", "message"}}
            if isinstance(err.get("message"), str):
                body_message = err["message"]
            if isinstance(err.get("code"), str):
                reason = err["code"]
            errors = err.get("errors")
            if isinstance(errors, list) and errors and isinstance(errors[0], dict):
                if isinstance(errors[0].get("reason"), str):
                    reason = errors[0]["reason"]
        elif isinstance(err, str):
            # OAuth token endpoints: {"error": "invalid_grant", "error_description"}
            reason = err
            if isinstance(payload.get("error_description"), str):
                body_message = payload["error_description"]
        # Dropbox: {"error_summary": "path/not_found/..", "error": {".tag": ...}}
        if isinstance(payload.get("error_summary"), str):
            reason = payload["error_summary"]

    info = HttpErrorInfo(
        status_code=response.status,
        reason=reason,
        message=message or body_message,
        details=info_details or None,
    )
    return map_http_error(info)
