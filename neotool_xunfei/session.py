"""Websocket session driving one signed request through to its terminal frame.

A session sends exactly one text frame, then reads inbound frames strictly in
order until the aggregator reports completion. The connection is opened in a
scoped block, so it is closed on success, on every error path and when the
awaiting task is cancelled.
"""

from __future__ import annotations

import inspect
import logging
import uuid
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import aclosing, asynccontextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import websockets
from websockets.exceptions import WebSocketException

from neotool_xunfei.aggregation import ChatAggregator, TtsAggregator
from neotool_xunfei.errors import (
    AggregationError,
    ApiError,
    ProtocolViolation,
    TransportError,
    XunfeiError,
)
from neotool_xunfei.types import SignedUrl
from neotool_xunfei.wire import decode_chat_frame, decode_tts_frame, encode_request

LOGGER = logging.getLogger(__name__)


class SessionKind(str, Enum):
    """Protocol variant spoken by a session."""

    CHAT = "chat"
    TTS = "tts"


class SessionState(str, Enum):
    """Lifecycle of one session."""

    CONNECTING = "connecting"
    SENT = "sent"
    STREAMING = "streaming"
    DONE = "done"
    FAILED = "failed"


_DECODERS: dict[SessionKind, Callable[[str], Any]] = {
    SessionKind.CHAT: decode_chat_frame,
    SessionKind.TTS: decode_tts_frame,
}


@asynccontextmanager
async def _open_connection(url: str) -> AsyncIterator[Any]:
    """Connect to ``url`` and guarantee the connection is closed afterwards."""
    try:
        websocket: Any = await websockets.connect(url)
    except (OSError, TimeoutError, WebSocketException) as error:
        raise TransportError(f"Websocket connection failed: {error}") from error
    try:
        yield websocket
    finally:
        await websocket.close()


@dataclass(slots=True)
class StreamSession:
    """One request/response exchange over a dedicated websocket."""

    kind: SessionKind
    url: SignedUrl
    request: dict[str, Any]
    aggregator: ChatAggregator | TtsAggregator
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    logger: logging.Logger = LOGGER
    state: SessionState = field(default=SessionState.CONNECTING, init=False)
    _started: bool = field(default=False, init=False, repr=False)

    @property
    def result(self) -> Any:
        """Return the aggregated result once the session is done."""
        if self.state is not SessionState.DONE:
            raise RuntimeError(f"Session {self.session_id} is {self.state.value}, not done.")
        return self.aggregator.result()

    async def iter_chunks(self) -> AsyncIterator[Any]:
        """Yield delivered chunks in arrival order; the session can run only once.

        Use ``contextlib.aclosing`` when the iteration may stop early so the
        connection is released immediately.
        """
        if self._started:
            raise RuntimeError(f"Session {self.session_id} has already been started.")
        self._started = True

        try:
            async with aclosing(self._pump()) as chunks:
                async for chunk in chunks:
                    yield chunk
        except XunfeiError as error:
            self.logger.warning(
                "%s session %s failed (%s): %s",
                self.kind.value,
                self.session_id,
                error.kind,
                error,
            )
            raise
        finally:
            if self.state is not SessionState.DONE:
                self.state = SessionState.FAILED

    async def run(self, sink: Callable[[Any], Awaitable[None] | None] | None = None) -> Any:
        """Drive the session to completion, feeding each chunk to ``sink``."""
        async with aclosing(self.iter_chunks()) as chunks:
            async for chunk in chunks:
                if sink is None:
                    continue
                outcome: Any = sink(chunk)
                if inspect.isawaitable(outcome):
                    await outcome
        return self.result

    async def _pump(self) -> AsyncIterator[Any]:
        payload: str = encode_request(self.request)
        self.logger.info(
            "Opening %s session %s to %s",
            self.kind.value,
            self.session_id,
            self.url.host,
        )

        async with _open_connection(self.url.url) as websocket:
            try:
                await websocket.send(payload)
            except (OSError, WebSocketException) as error:
                raise TransportError(f"Failed to send request: {error}") from error
            self.state = SessionState.SENT

            self.state = SessionState.STREAMING
            try:
                async for message in websocket:
                    for chunk in self._handle(message):
                        yield chunk
                    if self.aggregator.done:
                        self.state = SessionState.DONE
                        self.logger.info("%s session %s done.", self.kind.value, self.session_id)
                        return
            except (OSError, WebSocketException) as error:
                raise TransportError(f"Websocket receive failed: {error}") from error

        raise AggregationError("connection closed before the terminal frame")

    def _handle(self, message: str | bytes) -> list[Any]:
        """Validate one inbound message and pass it to the aggregator."""
        if not isinstance(message, str):
            raise ProtocolViolation(f"{self.kind.value} API response is not a string.")
        frame: Any = _DECODERS[self.kind](message)
        self.logger.debug(
            "%s session %s frame: code=%s sid=%s",
            self.kind.value,
            self.session_id,
            frame.code,
            frame.sid,
        )
        if frame.code != 0:
            raise ApiError(frame.code, frame.message)
        return self.aggregator.accept(frame)
