"""Wire shapes for the Spark chat and TTS websocket APIs.

Outbound requests are plain dictionaries ready for ``json.dumps``; inbound
frames are decoded into frozen dataclasses so the aggregators never touch raw
JSON.
"""

from __future__ import annotations

import base64
import json
from collections.abc import Mapping
from dataclasses import dataclass
from enum import IntEnum
from typing import Any

from neotool_xunfei.errors import SerializationError
from neotool_xunfei.types import Aue, ChatRequest, ChatText, Role, TokenStatistics, TtsRequest

CHAT_DOMAIN = "generalv3"
TTS_TEXT_ENCODING = "UTF8"
TTS_STREAM_FRAMING = 1
TTS_DATA_STATUS_FINAL = 2


class ChatStatus(IntEnum):
    """Progress marker on chat frames (header and choices)."""

    START = 0
    MIDDLE = 1
    END = 2


class TtsStatus(IntEnum):
    """Progress marker on TTS data units."""

    SYNTHESIS = 1
    END = 2


def _omit_none(values: Mapping[str, Any]) -> dict[str, Any]:
    """Drop keys whose value is None so optional fields are absent on the wire."""
    return {key: value for key, value in values.items() if value is not None}


def build_chat_request(request: ChatRequest) -> dict[str, Any]:
    """Map a validated chat request into the Spark request object."""
    turns: list[ChatText] = [*(request.history or ()), ChatText(role=Role.USER, content=request.content)]
    return {
        "header": _omit_none({"app_id": request.app_id, "uid": request.uid}),
        "parameter": {
            "chat": _omit_none(
                {
                    "domain": CHAT_DOMAIN,
                    "temperature": request.temperature,
                    "max_tokens": request.max_tokens,
                    "top_k": request.top_k,
                    "chat_id": request.chat_id,
                }
            ),
        },
        "payload": {"message": {"text": [turn.to_dict() for turn in turns]}},
    }


def build_tts_request(request: TtsRequest) -> dict[str, Any]:
    """Map a validated TTS request into the single outbound data unit."""
    business: dict[str, Any] = _omit_none(
        {
            "aue": request.aue.value,
            "sfl": TTS_STREAM_FRAMING if request.aue is Aue.LAME else None,
            "auf": request.auf.wire_value if request.auf is not None else None,
            "vcn": request.vcn,
            "speed": request.speed,
            "volume": request.volume,
            "pitch": request.pitch,
            "bgs": int(request.bgs) if request.bgs is not None else None,
            "tte": TTS_TEXT_ENCODING,
            "reg": int(request.reg) if request.reg is not None else None,
            "rdn": int(request.rdn) if request.rdn is not None else None,
        }
    )
    encoded_text: str = base64.b64encode(request.text.encode("utf-8")).decode("ascii")
    return {
        "common": {"app_id": request.app_id},
        "business": business,
        "data": {"text": encoded_text, "status": TTS_DATA_STATUS_FINAL},
    }


def encode_request(request: Mapping[str, Any]) -> str:
    """Serialize an outbound request object to JSON text."""
    try:
        return json.dumps(request, ensure_ascii=False, allow_nan=False)
    except (TypeError, ValueError) as error:
        raise SerializationError(f"Cannot serialize request: {error}") from error


@dataclass(slots=True, frozen=True)
class ChatChoices:
    """Text fragments carried by one chat frame."""

    status: ChatStatus
    seq: int
    texts: tuple[str, ...]

    @property
    def content(self) -> str:
        """Return the frame's fragments joined in order."""
        return "".join(self.texts)


@dataclass(slots=True, frozen=True)
class ChatFrame:
    """One decoded inbound chat frame."""

    code: int
    message: str
    sid: str | None = None
    status: ChatStatus | None = None
    choices: ChatChoices | None = None
    usage: TokenStatistics | None = None


@dataclass(slots=True, frozen=True)
class TtsAudio:
    """Audio payload carried by one TTS frame."""

    audio: str
    status: TtsStatus
    ced: str = ""


@dataclass(slots=True, frozen=True)
class TtsFrame:
    """One decoded inbound TTS frame."""

    code: int
    message: str
    sid: str | None = None
    data: TtsAudio | None = None


def _load_object(text: str) -> dict[str, Any]:
    """Parse text into a JSON object."""
    try:
        value: Any = json.loads(text)
    except ValueError as error:
        raise SerializationError(f"Response frame is not valid JSON: {error}") from error
    if not isinstance(value, dict):
        raise SerializationError("Response frame is not a JSON object.")
    return value


def _require(data: Mapping[str, Any], name: str, kind: type, where: str) -> Any:
    """Return ``data[name]`` checked against ``kind``."""
    if name not in data:
        raise SerializationError(f"Missing field `{where}.{name}` in response frame.")
    value: Any = data[name]
    if not isinstance(value, kind) or (kind is int and isinstance(value, bool)):
        raise SerializationError(f"Field `{where}.{name}` has unexpected type {type(value).__name__}.")
    return value


def _status(enum_type: type[IntEnum], value: int, where: str) -> Any:
    """Convert a numeric status into ``enum_type``."""
    try:
        return enum_type(value)
    except ValueError as error:
        raise SerializationError(f"Unknown status {value} in `{where}`.") from error


def _decode_usage(payload: Mapping[str, Any]) -> TokenStatistics | None:
    usage: Any = payload.get("usage")
    if usage is None:
        return None
    if not isinstance(usage, dict):
        raise SerializationError("Field `payload.usage` is not an object.")
    text: dict[str, Any] = _require(usage, "text", dict, "payload.usage")
    return TokenStatistics(
        prompt_tokens=_require(text, "prompt_tokens", int, "payload.usage.text"),
        completion_tokens=_require(text, "completion_tokens", int, "payload.usage.text"),
        total_tokens=_require(text, "total_tokens", int, "payload.usage.text"),
    )


def decode_chat_frame(text: str) -> ChatFrame:
    """Decode one inbound chat frame.

    Error frames (non-zero ``header.code``) only need `code` and `message`;
    every other frame must carry a status and well-formed choices when a
    payload is present.
    """
    data: dict[str, Any] = _load_object(text)
    header: dict[str, Any] = _require(data, "header", dict, "frame")
    code: int = _require(header, "code", int, "header")
    message: str = _require(header, "message", str, "header")
    sid: str | None = header.get("sid")
    if code != 0:
        return ChatFrame(code=code, message=message, sid=sid)

    status: ChatStatus = _status(ChatStatus, _require(header, "status", int, "header"), "header.status")
    payload: Any = data.get("payload")
    if payload is None:
        return ChatFrame(code=code, message=message, sid=sid, status=status)
    if not isinstance(payload, dict):
        raise SerializationError("Field `frame.payload` is not an object.")

    choices: dict[str, Any] = _require(payload, "choices", dict, "payload")
    fragments: list[Any] = _require(choices, "text", list, "payload.choices")
    texts: list[str] = []
    for fragment in fragments:
        if not isinstance(fragment, dict):
            raise SerializationError("Entry of `payload.choices.text` is not an object.")
        texts.append(_require(fragment, "content", str, "payload.choices.text"))

    return ChatFrame(
        code=code,
        message=message,
        sid=sid,
        status=status,
        choices=ChatChoices(
            status=_status(
                ChatStatus,
                _require(choices, "status", int, "payload.choices"),
                "payload.choices.status",
            ),
            seq=_require(choices, "seq", int, "payload.choices"),
            texts=tuple(texts),
        ),
        usage=_decode_usage(payload),
    )


def decode_tts_frame(text: str) -> TtsFrame:
    """Decode one inbound TTS frame."""
    data: dict[str, Any] = _load_object(text)
    code: int = _require(data, "code", int, "frame")
    message: str = _require(data, "message", str, "frame")
    sid: str | None = data.get("sid")
    if code != 0:
        return TtsFrame(code=code, message=message, sid=sid)

    audio_data: Any = data.get("data")
    if audio_data is None:
        return TtsFrame(code=code, message=message, sid=sid)
    if not isinstance(audio_data, dict):
        raise SerializationError("Field `frame.data` is not an object.")

    return TtsFrame(
        code=code,
        message=message,
        sid=sid,
        data=TtsAudio(
            audio=_require(audio_data, "audio", str, "data"),
            status=_status(TtsStatus, _require(audio_data, "status", int, "data"), "data.status"),
            ced=str(audio_data.get("ced", "")),
        ),
    )
