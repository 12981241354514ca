"""Authenticated streaming clients for Spark chat and Xunfei TTS."""

from neotool_xunfei.client import chat, chat_full, open_chat_session, open_tts_session, tts, tts_full
from neotool_xunfei.errors import XunfeiError
from neotool_xunfei.session import SessionKind, StreamSession
from neotool_xunfei.signing import sign
from neotool_xunfei.types import ChatRequest, ChatResult, ChatText, TokenStatistics, TtsRequest

__all__ = [
    "ChatRequest",
    "ChatResult",
    "ChatText",
    "SessionKind",
    "StreamSession",
    "TokenStatistics",
    "TtsRequest",
    "XunfeiError",
    "chat",
    "chat_full",
    "open_chat_session",
    "open_tts_session",
    "sign",
    "tts",
    "tts_full",
]
