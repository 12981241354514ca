"""Frame builders and a scripted websocket used across the test suite."""

from __future__ import annotations

import asyncio
import base64
import json
from typing import Any


def chat_frame(
    seq: int,
    content: str,
    *,
    status: int = 1,
    choice_status: int | None = None,
    usage: tuple[int, int, int] | None = None,
    code: int = 0,
    message: str = "Success",
) -> str:
    """Build one inbound Spark chat frame as JSON text."""
    payload: dict[str, Any] = {
        "choices": {
            "status": status if choice_status is None else choice_status,
            "seq": seq,
            "text": [{"content": content, "role": "assistant", "index": 0}],
        }
    }
    if usage is not None:
        prompt_tokens, completion_tokens, total_tokens = usage
        payload["usage"] = {
            "text": {
                "question_tokens": 4,
                "prompt_tokens": prompt_tokens,
                "completion_tokens": completion_tokens,
                "total_tokens": total_tokens,
            }
        }
    return json.dumps(
        {
            "header": {"code": code, "message": message, "sid": "cht000cb087@dx18793cd421fb894542", "status": status},
            "payload": payload,
        }
    )


def chat_error_frame(code: int, message: str) -> str:
    """Build a Spark error frame (no payload)."""
    return json.dumps({"header": {"code": code, "message": message, "sid": "cht000", "status": 2}})


def tts_frame(audio: bytes, status: int, *, code: int = 0, message: str = "success") -> str:
    """Build one inbound TTS frame carrying base64 audio."""
    return json.dumps(
        {
            "code": code,
            "message": message,
            "sid": "tts000",
            "data": {"audio": base64.b64encode(audio).decode("ascii"), "status": status, "ced": "14"},
        }
    )


class FakeWebSocket:
    """Scripted stand-in for a websockets client connection."""

    def __init__(
        self,
        messages: list[str | bytes],
        *,
        error: BaseException | None = None,
        hang: bool = False,
    ) -> None:
        self.messages = list(messages)
        self.error = error
        self.hang = hang
        self.sent: list[str] = []
        self.received: int = 0
        self.closed: bool = False

    async def send(self, payload: str) -> None:
        self.sent.append(payload)

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for message in self.messages:
            self.received += 1
            yield message
        if self.error is not None:
            raise self.error
        if self.hang:
            await asyncio.sleep(10)

    async def close(self) -> None:
        self.closed = True
