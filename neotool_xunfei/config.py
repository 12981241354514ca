"""Environment-driven configuration models."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from neotool_xunfei.types import Auf, Aue, coerce_enum

DEFAULT_CHAT_URL = "wss://spark-api.xf-yun.com/v3.1/chat"
DEFAULT_TTS_URL = "wss://tts-api.xfyun.cn/v2/tts"
DEFAULT_CHARACTER_SET = (
    "You are a cute and charming fox girl named Lin Mengxian, "
    "chatting with the viewers of your live stream."
)


def _get_env(name: str, default: str | None = None) -> str | None:
    """Return an environment variable or the provided default value."""
    value: str | None = os.getenv(name)
    if value is None:
        return default
    stripped: str = value.strip()
    return stripped if stripped else default


def _require_env(*names: str) -> str:
    """Return the first set variable among ``names`` or raise a ValueError."""
    for name in names:
        value: str | None = _get_env(name)
        if value is not None:
            return value
    raise ValueError(f"Missing required environment variable: {' or '.join(names)}")


def _get_env_float(name: str, default: float) -> float:
    """Return an environment variable parsed as float."""
    value: str | None = _get_env(name)
    if value is None:
        return default
    return float(value)


def _get_env_int(name: str, default: int) -> int:
    """Return an environment variable parsed as int."""
    value: str | None = _get_env(name)
    if value is None:
        return default
    return int(value)


def _get_env_optional_float(name: str) -> float | None:
    """Return an environment variable parsed as float, or None when unset."""
    value: str | None = _get_env(name)
    return float(value) if value is not None else None


def _get_env_optional_int(name: str) -> int | None:
    """Return an environment variable parsed as int, or None when unset."""
    value: str | None = _get_env(name)
    return int(value) if value is not None else None


def _get_env_bool(name: str, default: bool) -> bool:
    """Return an environment variable parsed as bool."""
    value: str | None = _get_env(name)
    if value is None:
        return default
    return value.lower() in {"1", "true", "yes", "y", "on"}


@dataclass(slots=True, frozen=True)
class XunfeiCredentials:
    """App id, secret and key for one Xunfei service."""

    app_id: str
    api_secret: str
    api_key: str

    @classmethod
    def from_env(cls, prefix: str) -> "XunfeiCredentials":
        """Load `{prefix}_APP_ID` etc., falling back to the shared `XUNFEI_*` values."""
        return cls(
            app_id=_require_env(f"{prefix}_APP_ID", "XUNFEI_APP_ID"),
            api_secret=_require_env(f"{prefix}_API_SECRET", "XUNFEI_API_SECRET"),
            api_key=_require_env(f"{prefix}_API_KEY", "XUNFEI_API_KEY"),
        )


@dataclass(slots=True, frozen=True)
class SparkConfig:
    """Spark chat settings."""

    credentials: XunfeiCredentials
    url: str
    temperature: float | None
    max_tokens: int | None
    top_k: int | None

    @classmethod
    def from_env(cls) -> "SparkConfig":
        """Load Spark chat settings from environment variables."""
        return cls(
            credentials=XunfeiCredentials.from_env("SPARK"),
            url=_get_env("SPARK_CHAT_URL", DEFAULT_CHAT_URL) or DEFAULT_CHAT_URL,
            temperature=_get_env_optional_float("SPARK_TEMPERATURE"),
            max_tokens=_get_env_optional_int("SPARK_MAX_TOKENS"),
            top_k=_get_env_optional_int("SPARK_TOP_K"),
        )


@dataclass(slots=True, frozen=True)
class TtsConfig:
    """Text-to-speech settings."""

    credentials: XunfeiCredentials
    url: str
    voice: str
    encoding: Aue
    sample_format: Auf | None
    speed: int | None
    volume: int | None
    pitch: int | None

    @classmethod
    def from_env(cls) -> "TtsConfig":
        """Load TTS settings from environment variables."""
        sample_format: str | None = _get_env("XUNFEI_TTS_SAMPLE_FORMAT")
        return cls(
            credentials=XunfeiCredentials.from_env("XUNFEI_TTS"),
            url=_get_env("XUNFEI_TTS_URL", DEFAULT_TTS_URL) or DEFAULT_TTS_URL,
            voice=_get_env("XUNFEI_TTS_VOICE", "xiaoyan") or "xiaoyan",
            encoding=coerce_enum(Aue, _get_env("XUNFEI_TTS_ENCODING", "lame"), "aue"),
            sample_format=(
                coerce_enum(Auf, sample_format, "auf") if sample_format is not None else None
            ),
            speed=_get_env_int("XUNFEI_TTS_SPEED", 50),
            volume=_get_env_optional_int("XUNFEI_TTS_VOLUME"),
            pitch=_get_env_optional_int("XUNFEI_TTS_PITCH"),
        )


@dataclass(slots=True, frozen=True)
class AssistantConfig:
    """Runtime settings for the CLI and voice chat orchestration."""

    character_set: str
    history_limit: int
    enable_speech: bool
    artifacts_dir: Path
    session_timeout_seconds: float
    log_level: str

    @classmethod
    def from_env(cls) -> "AssistantConfig":
        """Load assistant runtime settings from environment variables."""
        return cls(
            character_set=_get_env("ASSISTANT_CHARACTER_SET", DEFAULT_CHARACTER_SET)
            or DEFAULT_CHARACTER_SET,
            history_limit=_get_env_int("ASSISTANT_HISTORY_LIMIT", 10),
            enable_speech=_get_env_bool("ASSISTANT_ENABLE_SPEECH", True),
            artifacts_dir=Path(_get_env("ASSISTANT_ARTIFACTS_DIR", "./artifacts") or "./artifacts"),
            session_timeout_seconds=_get_env_float("ASSISTANT_SESSION_TIMEOUT_SECONDS", 60.0),
            log_level=_get_env("ASSISTANT_LOG_LEVEL", "INFO") or "INFO",
        )
