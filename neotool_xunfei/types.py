"""Domain types shared across the chat and text-to-speech pipelines."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Any, TypeVar

from neotool_xunfei.errors import ValidationError

EnumT = TypeVar("EnumT", bound=Enum)


class Role(str, Enum):
    """Speaker of one chat turn."""

    USER = "user"
    ASSISTANT = "assistant"


class Aue(str, Enum):
    """Audio encoding returned by the TTS service."""

    RAW = "raw"
    LAME = "lame"


class Auf(str, Enum):
    """PCM sample format for raw audio."""

    AUDIO_8K_RATE = "audio8kRate"
    AUDIO_16K_RATE = "audio16kRate"

    @property
    def sample_rate(self) -> int:
        """Return the sample rate in Hz."""
        return 8000 if self is Auf.AUDIO_8K_RATE else 16000

    @property
    def wire_value(self) -> str:
        """Return the MIME-like value the service expects."""
        return f"audio/L16;rate={self.sample_rate}"


class Bgs(IntEnum):
    """Background sound switch."""

    NO_BACKGROUND_SOUND = 0
    HAS_BACKGROUND_SOUND = 1


class Reg(IntEnum):
    """How English words are read."""

    AUTO_WORD = 0
    ALPHABET = 1
    AUTO_ALPHABET = 2


class Rdn(IntEnum):
    """How digits are read."""

    AUTO = 0
    NUMBER = 1
    STRING = 2
    STRING_PRIORITY = 3


def _camel_name(member: Enum) -> str:
    """Render an enum member name as camelCase (`HAS_BACKGROUND_SOUND` -> `hasBackgroundSound`)."""
    head, *tail = member.name.lower().split("_")
    return head + "".join(part.capitalize() for part in tail)


def coerce_enum(enum_type: type[EnumT], value: Any, field: str) -> EnumT:
    """Convert a member, its value or its camelCase name into ``enum_type``."""
    if isinstance(value, enum_type):
        return value
    for member in enum_type:
        if value == member.value or value == _camel_name(member):
            return member
    allowed: str = ", ".join(_camel_name(member) for member in enum_type)
    raise ValidationError(field, f"one of: {allowed}", f"Unknown {field} value {value!r}. Allowed: {allowed}")


def _pick(data: Mapping[str, Any], *names: str, default: Any = None) -> Any:
    """Return the first key present in ``data`` among ``names``."""
    for name in names:
        if name in data:
            return data[name]
    return default


@dataclass(slots=True, frozen=True)
class SignedUrl:
    """Connection target carrying the derived authorization parameters."""

    url: str
    authorization: str
    date: str
    host: str

    def __str__(self) -> str:
        return self.url


@dataclass(slots=True, frozen=True)
class ChatText:
    """One turn of chat history."""

    role: Role
    content: str

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ChatText":
        """Build a turn from a `{role, content}` mapping."""
        return cls(
            role=coerce_enum(Role, data.get("role"), "history.role"),
            content=str(data.get("content", "")),
        )

    def to_dict(self) -> dict[str, str]:
        """Return the wire representation of this turn."""
        return {"role": self.role.value, "content": self.content}


@dataclass(slots=True, frozen=True)
class ChatRequest:
    """Caller input for one Spark chat completion."""

    app_id: str
    api_secret: str
    api_key: str
    content: str
    uid: str | None = None
    temperature: float | None = None
    max_tokens: int | None = None
    top_k: int | None = None
    chat_id: str | None = None
    history: tuple[ChatText, ...] | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ChatRequest":
        """Build a request from a camelCase (or snake_case) mapping."""
        raw_history: Iterable[Mapping[str, Any]] | None = data.get("history")
        history: tuple[ChatText, ...] | None = (
            tuple(ChatText.from_dict(turn) for turn in raw_history)
            if raw_history is not None
            else None
        )
        return cls(
            app_id=_pick(data, "appId", "app_id", default=""),
            api_secret=_pick(data, "apiSecret", "api_secret", default=""),
            api_key=_pick(data, "apiKey", "api_key", default=""),
            content=data.get("content", ""),
            uid=data.get("uid"),
            temperature=data.get("temperature"),
            max_tokens=_pick(data, "maxTokens", "max_tokens"),
            top_k=_pick(data, "topK", "top_k"),
            chat_id=_pick(data, "chatId", "chat_id"),
            history=history,
        )


@dataclass(slots=True, frozen=True)
class TokenStatistics:
    """Token usage reported on the terminal chat frame."""

    prompt_tokens: int
    completion_tokens: int
    total_tokens: int

    def to_dict(self) -> dict[str, int]:
        """Return camelCase counters for presentation layers."""
        return {
            "promptTokens": self.prompt_tokens,
            "completionTokens": self.completion_tokens,
            "totalTokens": self.total_tokens,
        }


@dataclass(slots=True, frozen=True)
class ChatResult:
    """Aggregated chat reply."""

    content: str
    tokens: TokenStatistics

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable view of the result."""
        return {"content": self.content, "tokens": self.tokens.to_dict()}


@dataclass(slots=True, frozen=True)
class TtsRequest:
    """Caller input for one text-to-speech synthesis."""

    app_id: str
    api_secret: str
    api_key: str
    vcn: str
    text: str
    aue: Aue = Aue.LAME
    auf: Auf | None = None
    speed: int | None = None
    volume: int | None = None
    pitch: int | None = None
    bgs: Bgs | None = None
    reg: Reg | None = None
    rdn: Rdn | None = None
    get_all_once: bool = False

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TtsRequest":
        """Build a request from a camelCase (or snake_case) mapping."""

        def optional(enum_type: type[EnumT], name: str) -> EnumT | None:
            value: Any = data.get(name)
            return None if value is None else coerce_enum(enum_type, value, name)

        return cls(
            app_id=_pick(data, "appId", "app_id", default=""),
            api_secret=_pick(data, "apiSecret", "api_secret", default=""),
            api_key=_pick(data, "apiKey", "api_key", default=""),
            vcn=data.get("vcn", ""),
            text=data.get("text", ""),
            aue=coerce_enum(Aue, data.get("aue", Aue.LAME), "aue"),
            auf=optional(Auf, "auf"),
            speed=data.get("speed"),
            volume=data.get("volume"),
            pitch=data.get("pitch"),
            bgs=optional(Bgs, "bgs"),
            reg=optional(Reg, "reg"),
            rdn=optional(Rdn, "rdn"),
            get_all_once=bool(_pick(data, "getAllOnce", "get_all_once", default=False)),
        )
