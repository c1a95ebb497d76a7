"""HTTP request/response types and the requests-based transport."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol

import requests

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 64 * 1024
_PART_SUFFIX = ".part"


@dataclass
class HttpRequest:
    """
    One HTTP request as handed to a Transport.

    Notes:
        - `body` and `body_file` are mutually exclusive; `body_file` is a local
          path whose content is sent as the request body.
        - When `response_file` is set, the response body is streamed to that
          path instead of being kept in memory.
    """

    url: str
    method: str = "GET"
    headers: dict[str, str] = field(default_factory=dict)
    url_params: dict[str, str] = field(default_factory=dict)
    body: Optional[bytes] = None
    body_file: Optional[str] = None
    response_file: Optional[str] = None
    log_body: bool = True

    def set_header(self, name: str, value: str) -> None:
        self.headers[name] = value

    def set_url_param(self, name: str, value: str) -> None:
        self.url_params[name] = value

    def set_json_body(self, payload: Any) -> None:
        self.body = json.dumps(payload).encode("utf-8")
        self.headers["Content-Type"] = "application/json"


@dataclass
class HttpResponse:
    status: int
    body: bytes = b""
    headers: dict[str, str] = field(default_factory=dict)

    def json(self) -> Any:
        """Decode the body as JSON. Raises ValueError on malformed input."""
        return json.loads(self.body.decode("utf-8"))


class Transport(Protocol):
    def submit(self, request: HttpRequest) -> Optional[HttpResponse]:
        """Execute one request. Returns None when no response was received."""
        ...


class RequestsTransport:
    """Transport backed by a `requests.Session`."""

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        *,
        timeout: float = 60.0,
    ) -> None:
        self._session = session or requests.Session()
        self._timeout = timeout

    def submit(self, request: HttpRequest) -> Optional[HttpResponse]:
        logger.debug("%s %s", request.method, request.url)
        if request.log_body and request.body:
            logger.debug("request body: %r", request.body[:512])

        try:
            if request.body_file is not None:
                with open(request.body_file, "rb") as f:
                    resp = self._send(request, f)
            else:
                resp = self._send(request, request.body)

            with resp:
                if request.response_file is not None and 200 <= resp.status_code < 300:
                    _stream_to_file(resp, request.response_file)
                    body = b""
                else:
                    body = resp.content
        except (requests.RequestException, OSError) as exc:
            logger.warning(
                "Transport failure for %s %s: %s", request.method, request.url, exc
            )
            return None

        logger.debug("%s %s -> %d", request.method, request.url, resp.status_code)
        if request.log_body and body:
            logger.debug("response body: %r", body[:512])
        return HttpResponse(
            status=resp.status_code,
            body=body,
            headers=dict(resp.headers),
        )

    def close(self) -> None:
        self._session.close()

    def _send(self, request: HttpRequest, data: Any) -> requests.Response:
        return self._session.request(
            request.method,
            request.url,
            params=request.url_params or None,
            headers=request.headers,
            data=data,
            stream=request.response_file is not None,
            timeout=self._timeout,
        )


def _stream_to_file(resp: requests.Response, path: str) -> None:
    parent_dir = os.path.dirname(path)
    if parent_dir:
        os.makedirs(parent_dir, exist_ok=True)
    part_path = path + _PART_SUFFIX
    try:
        with open(part_path, "wb") as f:
            for chunk in resp.iter_content(chunk_size=_CHUNK_SIZE):
                if chunk:
                    f.write(chunk)
        os.replace(part_path, path)
    except Exception:
        if os.path.exists(part_path):
            os.remove(part_path)
        raise
