"""Spark chat and Xunfei TTS operations.

Each call validates the request, builds the wire object, signs the endpoint
and runs a fresh ``StreamSession``. Validation and signing failures are raised
before any connection is attempted; nothing is retried.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timezone

from neotool_xunfei.aggregation import ChatAggregator, TtsAggregator
from neotool_xunfei.audio import prepare_playback
from neotool_xunfei.config import DEFAULT_CHAT_URL, DEFAULT_TTS_URL, SparkConfig, TtsConfig
from neotool_xunfei.interfaces import ChunkSink
from neotool_xunfei.session import SessionKind, StreamSession
from neotool_xunfei.signing import sign
from neotool_xunfei.types import ChatRequest, ChatResult, ChatText, SignedUrl, TtsRequest
from neotool_xunfei.validation import validate_chat_request, validate_tts_request
from neotool_xunfei.wire import build_chat_request, build_tts_request

CHAT_URL = DEFAULT_CHAT_URL
TTS_URL = DEFAULT_TTS_URL


def _sign_now(url: str, api_secret: str, api_key: str, now: datetime | None) -> SignedUrl:
    return sign(url, api_secret, api_key, now or datetime.now(timezone.utc))


def open_chat_session(
    request: ChatRequest,
    *,
    incremental: bool = True,
    url: str = CHAT_URL,
    now: datetime | None = None,
) -> StreamSession:
    """Validate, build and sign a chat request into an unstarted session."""
    validated: ChatRequest = validate_chat_request(request)
    wire_request = build_chat_request(validated)
    signed: SignedUrl = _sign_now(url, validated.api_secret, validated.api_key, now)
    return StreamSession(
        kind=SessionKind.CHAT,
        url=signed,
        request=wire_request,
        aggregator=ChatAggregator(incremental=incremental),
    )


def open_tts_session(
    request: TtsRequest,
    *,
    incremental: bool | None = None,
    url: str = TTS_URL,
    now: datetime | None = None,
) -> StreamSession:
    """Validate, build and sign a TTS request into an unstarted session.

    Delivery defaults to the request's ``get_all_once`` flag.
    """
    validated: TtsRequest = validate_tts_request(request)
    wire_request = build_tts_request(validated)
    signed: SignedUrl = _sign_now(url, validated.api_secret, validated.api_key, now)
    if incremental is None:
        incremental = not validated.get_all_once
    return StreamSession(
        kind=SessionKind.TTS,
        url=signed,
        request=wire_request,
        aggregator=TtsAggregator(incremental=incremental),
    )


async def chat(
    request: ChatRequest,
    sink: ChunkSink[str] | None = None,
    *,
    url: str = CHAT_URL,
    now: datetime | None = None,
) -> ChatResult:
    """Stream a chat reply chunk by chunk into ``sink`` and return the full result."""
    return await open_chat_session(request, incremental=True, url=url, now=now).run(sink)


async def chat_full(
    request: ChatRequest,
    *,
    url: str = CHAT_URL,
    now: datetime | None = None,
) -> ChatResult:
    """Return the chat reply once the terminal frame arrives."""
    return await open_chat_session(request, incremental=False, url=url, now=now).run()


async def tts(
    request: TtsRequest,
    sink: ChunkSink[bytes] | None = None,
    *,
    url: str = TTS_URL,
    now: datetime | None = None,
) -> bytes:
    """Synthesize speech, delivering audio to ``sink`` per the request's delivery mode."""
    return await open_tts_session(request, url=url, now=now).run(sink)


async def tts_full(
    request: TtsRequest,
    *,
    url: str = TTS_URL,
    now: datetime | None = None,
) -> bytes:
    """Return all synthesized audio as one buffer."""
    return await open_tts_session(request, incremental=False, url=url, now=now).run()


@dataclass(slots=True)
class SparkChatClient:
    """Chat completer backed by the Spark websocket API."""

    config: SparkConfig
    uid: str | None = None
    chat_id: str | None = None

    def build_request(self, content: str, history: Sequence[ChatText] = ()) -> ChatRequest:
        """Combine configured credentials and generation settings with ``content``."""
        credentials = self.config.credentials
        return ChatRequest(
            app_id=credentials.app_id,
            api_secret=credentials.api_secret,
            api_key=credentials.api_key,
            content=content,
            uid=self.uid,
            temperature=self.config.temperature,
            max_tokens=self.config.max_tokens,
            top_k=self.config.top_k,
            chat_id=self.chat_id,
            history=tuple(history) if history else None,
        )

    async def complete(
        self,
        content: str,
        *,
        history: Sequence[ChatText] = (),
        sink: ChunkSink[str] | None = None,
    ) -> ChatResult:
        """Stream one reply; batched when no sink is given."""
        request: ChatRequest = self.build_request(content, history)
        if sink is None:
            return await chat_full(request, url=self.config.url)
        return await chat(request, sink, url=self.config.url)


@dataclass(slots=True)
class XunfeiSpeechSynthesizer:
    """Speech synthesizer backed by the Xunfei TTS websocket API."""

    config: TtsConfig
    get_all_once: bool = True

    def build_request(self, text: str) -> TtsRequest:
        """Combine configured voice settings with ``text``."""
        credentials = self.config.credentials
        return TtsRequest(
            app_id=credentials.app_id,
            api_secret=credentials.api_secret,
            api_key=credentials.api_key,
            vcn=self.config.voice,
            text=text,
            aue=self.config.encoding,
            auf=self.config.sample_format,
            speed=self.config.speed,
            volume=self.config.volume,
            pitch=self.config.pitch,
            get_all_once=self.get_all_once,
        )

    async def synthesize(self, text: str, *, sink: ChunkSink[bytes] | None = None) -> bytes:
        """Synthesize ``text`` and return the encoded audio."""
        cleaned_text: str = text.strip()
        if not cleaned_text:
            raise ValueError("Cannot synthesize an empty text.")
        return await tts(self.build_request(cleaned_text), sink, url=self.config.url)

    def to_playable(self, audio: bytes) -> tuple[bytes, str]:
        """Wrap raw PCM as WAV; MP3 passes through."""
        return prepare_playback(audio, self.config.encoding, self.config.sample_format)
