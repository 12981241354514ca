"""Bound checks applied to caller requests before any signing or I/O."""

from __future__ import annotations

from typing import Any

from neotool_xunfei.errors import ValidationError
from neotool_xunfei.types import ChatRequest, ChatText, TtsRequest

MAX_UID_LENGTH = 32
TEMPERATURE_RANGE = (0.0, 1.0)
MAX_TOKENS_RANGE = (1, 8192)
TOP_K_RANGE = (1, 6)
MAX_CHAT_CONTENT_LENGTH = 10_000
SOUND_PROPERTY_RANGE = (0, 100)
MAX_TTS_TEXT_BYTES = 8000


def _require_text(field: str, value: Any, *, allow_empty: bool = False) -> None:
    """Reject a non-string value, or an empty one unless ``allow_empty``."""
    if not isinstance(value, str):
        raise ValidationError(field, "string", f"{field} must be a string, got {type(value).__name__}")
    if not value and not allow_empty:
        raise ValidationError(field, "non-empty", f"{field} is empty")


def _require_credentials(app_id: Any, api_secret: Any, api_key: Any) -> None:
    """Reject empty or non-string app id, secret or key."""
    for field, value in (("app_id", app_id), ("api_secret", api_secret), ("api_key", api_key)):
        _require_text(field, value)


def _check_range(
    field: str,
    value: Any,
    bounds: tuple[float, float],
    *,
    integral: bool = False,
) -> None:
    """Reject a present value of the wrong numeric type or outside the inclusive ``bounds``."""
    if value is None:
        return
    expected: str = "integer" if integral else "number"
    allowed: tuple[type, ...] = (int,) if integral else (int, float)
    if isinstance(value, bool) or not isinstance(value, allowed):
        raise ValidationError(field, expected, f"{field} must be of type {expected}, got {value!r}")
    low, high = bounds
    if not low <= value <= high:
        raise ValidationError(
            field,
            f"[{low}, {high}]",
            f"{field} {value} is less than {low} or greater than {high}",
        )


def validate_chat_request(request: ChatRequest) -> ChatRequest:
    """Return ``request`` unchanged or raise ``ValidationError`` for the first bad field."""
    _require_credentials(request.app_id, request.api_secret, request.api_key)

    if request.uid is not None:
        _require_text("uid", request.uid, allow_empty=True)
        if len(request.uid) > MAX_UID_LENGTH:
            raise ValidationError(
                "uid",
                f"length <= {MAX_UID_LENGTH}",
                f"the length of uid {request.uid} is greater than {MAX_UID_LENGTH}: {len(request.uid)}",
            )

    _check_range("temperature", request.temperature, TEMPERATURE_RANGE)
    _check_range("max_tokens", request.max_tokens, MAX_TOKENS_RANGE, integral=True)
    _check_range("top_k", request.top_k, TOP_K_RANGE, integral=True)
    if request.chat_id is not None:
        _require_text("chat_id", request.chat_id, allow_empty=True)

    for turn in request.history or ():
        if not isinstance(turn, ChatText):
            raise ValidationError("history", "ChatText turns", f"history entry {turn!r} is not a chat turn")
        _require_text("history", turn.content, allow_empty=True)
    _require_text("content", request.content, allow_empty=True)

    total_length: int = sum(len(turn.content) for turn in request.history or ()) + len(request.content)
    if total_length > MAX_CHAT_CONTENT_LENGTH:
        raise ValidationError(
            "content",
            f"history + content length <= {MAX_CHAT_CONTENT_LENGTH}",
            f"the length of contents is too great: {total_length}",
        )
    return request


def validate_tts_request(request: TtsRequest) -> TtsRequest:
    """Return ``request`` unchanged or raise ``ValidationError`` for the first bad field."""
    _require_credentials(request.app_id, request.api_secret, request.api_key)
    _require_text("vcn", request.vcn)

    _check_range("speed", request.speed, SOUND_PROPERTY_RANGE, integral=True)
    _check_range("volume", request.volume, SOUND_PROPERTY_RANGE, integral=True)
    _check_range("pitch", request.pitch, SOUND_PROPERTY_RANGE, integral=True)

    _require_text("text", request.text, allow_empty=True)
    text_bytes: int = len(request.text.encode("utf-8"))
    if text_bytes > MAX_TTS_TEXT_BYTES:
        raise ValidationError(
            "text",
            f"utf-8 length <= {MAX_TTS_TEXT_BYTES} bytes",
            f"the text's length (in bytes) is greater than {MAX_TTS_TEXT_BYTES}: {text_bytes}",
        )
    return request
