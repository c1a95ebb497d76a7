"""HTTP transport used by the request engine."""

from __future__ import annotations

from .http import HttpRequest, HttpResponse, RequestsTransport, Transport

__all__ = ["HttpRequest", "HttpResponse", "Transport", "RequestsTransport"]
