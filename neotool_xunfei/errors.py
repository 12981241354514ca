"""Typed failures raised by the streaming request pipeline.

Every failure is an ``XunfeiError`` carrying a ``kind`` discriminator, so a
caller can catch one type and still render a precise, user-facing message via
``to_dict()``.
"""

from __future__ import annotations

from typing import Any


class XunfeiError(Exception):
    """Base exception for all signing, request and session failures."""

    kind: str = "error"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable description of the failure."""
        return {"kind": self.kind, "message": self.message}


class FormatError(XunfeiError):
    """Raised when the signing timestamp cannot be rendered as RFC-2822."""

    kind = "format"


class UrlError(XunfeiError):
    """Raised when a target URL is malformed or has no host."""

    kind = "url"


class ValidationError(XunfeiError):
    """Raised when a request field is outside its service-imposed bound."""

    kind = "validation"

    def __init__(self, field: str, bound: str, message: str | None = None) -> None:
        self.field = field
        self.bound = bound
        super().__init__(message or f"{field} must satisfy {bound}")

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "field": self.field, "bound": self.bound}


class SerializationError(XunfeiError):
    """Raised when a request or response frame cannot be (de)serialized."""

    kind = "serialization"


class TransportError(XunfeiError):
    """Raised when the websocket connection, handshake or frame I/O fails."""

    kind = "transport"


class ProtocolViolation(XunfeiError):
    """Raised when the remote side breaks the framing or status contract."""

    kind = "protocol"


class ApiError(XunfeiError):
    """Raised when a response frame carries a non-zero status code."""

    kind = "api"

    def __init__(self, code: int, message: str) -> None:
        self.code = code
        self.api_message = message
        super().__init__(f"API response error code: {code}, message: {message}")

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "code": self.code}


class AggregationError(XunfeiError):
    """Raised when response frames cannot be combined into a final result."""

    kind = "aggregation"


__all__ = [
    "AggregationError",
    "ApiError",
    "FormatError",
    "ProtocolViolation",
    "SerializationError",
    "TransportError",
    "UrlError",
    "ValidationError",
    "XunfeiError",
]
