"""Provider interface and the REST glue shared by all backends."""

from __future__ import annotations

import logging
import math
import os
import time
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Callable, ClassVar, Iterable, Optional

from cloudsync.auth import (
    AccessToken,
    AuthInfo,
    AuthManager,
    ConsentFlow,
    ConsentRunner,
    CredentialStore,
    MemoryCredentialStore,
    ProviderState,
    run_in_background,
)
from cloudsync.engine import (
    ContinuationData,
    OperationState,
    Page,
    RestOperation,
    fail_with_status,
    paginate_into,
)
from cloudsync.engine.operation import Handler
from cloudsync.errors import (
    AuthError,
    CloudSyncError,
    InvalidArgumentError,
    NotFoundError,
    ParseError,
)
from cloudsync.models import CloudFile, CloudFolder, CloudItem, ProviderResult
from cloudsync.transport import HttpRequest, HttpResponse, RequestsTransport, Transport

logger = logging.getLogger(__name__)

AuthorizeCallback = Callable[[bool], None]


class AuthorizationStatus(str, Enum):
    PENDING = "pending"
    COMPLETE = "complete"
    FAILED = "failed"


class CloudStorageProvider(ABC):
    """Capability set every cloud storage backend implements."""

    name: ClassVar[str] = ""

    @property
    @abstractmethod
    def need_authorization(self) -> bool:
        """True if the backend needs interactive consent before first use."""

    @abstractmethod
    def have_default_credentials(self) -> bool:
        """True if credentials to obtain an access token are configured."""

    @abstractmethod
    def ready_for_request(self) -> bool:
        """True if a usable, unexpired access token is held."""

    @abstractmethod
    def authenticate(self) -> ProviderResult[None]:
        """Refresh credentials synchronously."""

    @abstractmethod
    def authorize(self, callback: AuthorizeCallback) -> AuthorizationStatus:
        """
        Run interactive consent.

        Returns PENDING when `callback(success)` will be invoked later.
        """

    @abstractmethod
    def list_files(self, folder: CloudFolder) -> ProviderResult[list[CloudItem]]:
        """Append the folder's remote children to `folder.children`."""

    @abstractmethod
    def download_file(self, file: CloudFile, local_path: str) -> ProviderResult[None]:
        ...

    @abstractmethod
    def upload_file(
        self,
        remote_dir: CloudFolder,
        remote_file: Optional[CloudFile],
        local_path: str,
    ) -> ProviderResult[CloudFile]:
        """Upload a new file into `remote_dir`, or replace `remote_file`'s content."""

    @abstractmethod
    def get_folder_metadata(self, name: str) -> ProviderResult[CloudFolder]:
        """Look up a top-level folder of the app storage area by name."""

    @abstractmethod
    def get_file_metadata(self, file: CloudFile) -> ProviderResult[CloudFile]:
        ...

    @abstractmethod
    def get_file_metadata_by_name(
        self,
        folder: CloudFolder,
        name: str,
    ) -> ProviderResult[CloudFile]:
        ...

    @abstractmethod
    def delete_file(self, file: CloudFile) -> ProviderResult[None]:
        ...

    @abstractmethod
    def create_folder(self, name: str) -> ProviderResult[CloudFolder]:
        """Create a top-level folder in the app storage area."""


class RestProvider(CloudStorageProvider):
    """
    Base for REST backends.

    Subclasses supply endpoint URLs and field-name conventions through
    `_list_request`, `_parse_list_page` and the per-operation methods; the
    request engine, token lifecycle and pagination are shared.

    Notes:
        - `auth_info.kind == "oauth"` backends get an AuthManager and a 401
          re-authentication mapping on every request.
        - `auth_info.kind == "static"` backends send the configured token and
          never refresh it.
    """

    token_url: ClassVar[Optional[str]] = None
    default_redirect_uri: ClassVar[Optional[str]] = None
    supported_auth_kinds: ClassVar[tuple[str, ...]] = ("oauth",)

    def __init__(
        self,
        auth_info: AuthInfo,
        *,
        transport: Optional[Transport] = None,
        credential_store: Optional[CredentialStore] = None,
        clock: Callable[[], float] = time.time,
        consent_flow: Optional[ConsentFlow] = None,
        consent_runner: ConsentRunner = run_in_background,
    ) -> None:
        if auth_info.kind not in self.supported_auth_kinds:
            raise InvalidArgumentError(
                f"{self.name} does not support '{auth_info.kind}' credentials",
                details={"supported": list(self.supported_auth_kinds)},
            )

        self._state = ProviderState(
            name=self.name,
            auth_info=auth_info,
            credential_store=credential_store or MemoryCredentialStore(),
            clock=clock,
        )
        self._state.provider = self
        self._transport: Transport = transport or RequestsTransport()
        self._consent_flow = consent_flow
        self._consent_runner = consent_runner

        self._auth: Optional[AuthManager] = None
        if auth_info.is_oauth:
            if not self.token_url:
                raise InvalidArgumentError(f"{self.name} has no token endpoint")
            self._auth = AuthManager(
                self._state,
                self._transport,
                token_url=self.token_url,
                redirect_uri=self.default_redirect_uri,
            )
        else:
            self._state.access_token = AccessToken(
                token=auth_info.access_token or "",
                expiration=math.inf,
            )

    @property
    def state(self) -> ProviderState:
        return self._state

    @property
    def auth_manager(self) -> Optional[AuthManager]:
        return self._auth

    @property
    def need_authorization(self) -> bool:
        return self._auth is not None

    def have_default_credentials(self) -> bool:
        if self._auth is None:
            return bool(self._state.auth_info.access_token)
        return bool(self._state.refresh_token)

    def ready_for_request(self) -> bool:
        return self._state.has_valid_token()

    def authenticate(self) -> ProviderResult[None]:
        if self._auth is None:
            if self.ready_for_request():
                return ProviderResult.success()
            return ProviderResult.failure(
                AuthError("No access token configured", details={"provider": self.name})
            )
        return self._auth.authenticate()

    def authorize(self, callback: AuthorizeCallback) -> AuthorizationStatus:
        if self.ready_for_request():
            return AuthorizationStatus.COMPLETE
        if self.have_default_credentials() and self.authenticate().ok:
            return AuthorizationStatus.COMPLETE
        if self._auth is None or self._consent_flow is None:
            logger.warning("%s: no way to authorize interactively", self.name)
            return AuthorizationStatus.FAILED

        auth = self._auth
        flow = self._consent_flow

        def task() -> None:
            try:
                grant = flow()
            except CloudSyncError as exc:
                logger.warning("%s: authorization failed: %s", self.name, exc)
                callback(False)
                return
            auth.store_token(grant.access_token, grant.expires_in)
            if grant.refresh_token:
                auth.set_refresh_token(grant.refresh_token)
            logger.info("%s: authorization complete", self.name)
            callback(True)

        self._consent_runner(task)
        return AuthorizationStatus.PENDING

    def list_files(self, folder: CloudFolder) -> ProviderResult[list[CloudItem]]:
        if not isinstance(folder, CloudFolder):
            return ProviderResult.failure(
                InvalidArgumentError("list_files requires a folder")
            )

        def fetch_page(token: Optional[str]) -> ProviderResult[Page]:
            return self._execute(
                self._list_request(folder, token),
                json_handler(self._parse_list_page),
            )

        return paginate_into(folder, fetch_page)

    @abstractmethod
    def _list_request(self, folder: CloudFolder, token: Optional[str]) -> HttpRequest:
        ...

    @abstractmethod
    def _parse_list_page(self, payload: Any) -> Optional[Page]:
        ...

    # ----------------------------
    # Internals
    # ----------------------------
    def _execute(
        self,
        request: HttpRequest,
        on_success: Handler,
        *,
        success_statuses: Iterable[int] = (200,),
        handlers: Optional[dict[int, Handler]] = None,
        authorize: bool = True,
        data: Any = None,
    ) -> ProviderResult[Any]:
        """Run one request through the operation engine."""
        if authorize:
            ready = self._ensure_ready()
            if not ready.ok:
                return ready
            self._apply_authorization(request)

        state: OperationState[None] = OperationState(
            ContinuationData(provider_state=self._state, data=data),
            None,
        )
        operation = RestOperation(request, state)
        for status in success_statuses:
            operation.on(status, on_success)
        for status, handler in (handlers or {}).items():
            operation.on(status, handler)
        operation.on_default(fail_with_status)
        if authorize and self._auth is not None:
            operation.retry_on_unauthorized(self._auth)

        result = operation.execute(self._transport)
        if not result.ok:
            logger.info(
                "%s: %s %s failed: %s",
                self.name,
                request.method,
                request.url,
                result.error,
            )
        return result

    def _ensure_ready(self) -> ProviderResult[None]:
        if self.ready_for_request():
            return ProviderResult.success()
        return self.authenticate()

    def _apply_authorization(self, request: HttpRequest) -> None:
        token = self._state.access_token
        if token is not None and token.token:
            request.set_header("Authorization", f"Bearer {token.token}")


def json_handler(parse: Callable[[Any], Any]) -> Handler:
    """Success handler that decodes the JSON body and resolves with `parse(payload)`."""

    def handler(
        request: HttpRequest,
        response: HttpResponse,
        state: OperationState[Any],
    ) -> None:
        decoded, payload = _decode_json(request, response, state)
        if not decoded:
            return

        value = parse(payload)
        if value is None:
            state.fail(
                ParseError(
                    "Unexpected response shape",
                    details={"url": request.url, "status_code": response.status},
                )
            )
            return
        state.succeed(value)

    return handler


def lookup_handler(
    find: Callable[[Any], Optional[CloudItem]],
    details: dict[str, Any],
) -> Handler:
    """
    Success handler for search-style responses.

    `find(payload)` returns the matching item, None when nothing matched, and
    raises ValueError when the payload has an unexpected shape.
    """

    def handler(
        request: HttpRequest,
        response: HttpResponse,
        state: OperationState[Any],
    ) -> None:
        decoded, payload = _decode_json(request, response, state)
        if not decoded:
            return

        try:
            match = find(payload)
        except ValueError as exc:
            state.fail(
                ParseError(
                    "Unexpected response shape",
                    details={"url": request.url, "status_code": response.status},
                    cause=exc,
                )
            )
            return

        if match is None:
            state.fail(NotFoundError("No matching item", details=dict(details)))
            return
        state.succeed(match)

    return handler


def _decode_json(
    request: HttpRequest,
    response: HttpResponse,
    state: OperationState[Any],
) -> tuple[bool, Any]:
    try:
        return True, response.json()
    except (ValueError, UnicodeDecodeError) as exc:
        state.fail(
            ParseError(
                "Malformed JSON response",
                details={"url": request.url, "status_code": response.status},
                cause=exc,
            )
        )
        return False, None


def empty_handler(
    request: HttpRequest,
    response: HttpResponse,
    state: OperationState[Any],
) -> None:
    """Success handler for responses whose body is not needed."""
    state.succeed()


def require_local_file(local_path: str) -> Optional[CloudSyncError]:
    if not local_path or not isinstance(local_path, str):
        return InvalidArgumentError("local_path must be a non-empty string")
    if not os.path.isfile(local_path):
        return InvalidArgumentError(
            "Local file does not exist",
            details={"local_path": local_path},
        )
    return None


def expect_file(item: Optional[CloudItem]) -> Optional[CloudFile]:
    return item if isinstance(item, CloudFile) else None


def expect_folder(item: Optional[CloudItem]) -> Optional[CloudFolder]:
    return item if isinstance(item, CloudFolder) else None
