"""Shared fixtures for request, signing and session tests."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from neotool_xunfei.types import ChatRequest, TtsRequest


@pytest.fixture
def fixed_time() -> datetime:
    """Return the timestamp used by the signing golden vector."""
    return datetime.fromtimestamp(1683254619, tz=timezone.utc)


@pytest.fixture
def chat_request() -> ChatRequest:
    return ChatRequest(
        app_id="app",
        api_secret="SECRET",
        api_key="KEY",
        content="Hello, who are you?",
    )


@pytest.fixture
def tts_request() -> TtsRequest:
    return TtsRequest(
        app_id="app",
        api_secret="SECRET",
        api_key="KEY",
        vcn="xiaoyan",
        text="Hello there",
    )
