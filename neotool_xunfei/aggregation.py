"""Completion detection and result assembly for streamed response frames."""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass, field

from neotool_xunfei.errors import AggregationError, ProtocolViolation
from neotool_xunfei.types import ChatResult, TokenStatistics
from neotool_xunfei.wire import ChatFrame, ChatStatus, TtsFrame, TtsStatus


@dataclass(slots=True, frozen=True)
class _ChatPiece:
    seq: int
    content: str


@dataclass(slots=True)
class ChatAggregator:
    """Combines chat frames into text plus token usage.

    Frames are buffered with their sequence number, which must be unique. On
    the terminal frame the buffer is sorted by sequence and the terminal frame
    must end up last. In incremental mode each frame's text is also returned
    from ``accept`` as soon as it arrives.
    """

    incremental: bool = True
    _pieces: list[_ChatPiece] = field(default_factory=list, init=False, repr=False)
    _result: ChatResult | None = field(default=None, init=False, repr=False)

    @property
    def done(self) -> bool:
        """Return True once the terminal frame has been accepted."""
        return self._result is not None

    def accept(self, frame: ChatFrame) -> list[str]:
        """Consume one successful frame and return the chunks to deliver."""
        if self.done:
            raise ProtocolViolation("Received a chat frame after the terminal frame.")
        if frame.choices is None:
            raise AggregationError("missing payload in response")

        outer_end: bool = frame.status is ChatStatus.END
        inner_end: bool = frame.choices.status is ChatStatus.END
        if outer_end and not inner_end:
            raise ProtocolViolation(
                f"Header status is End but choices status is {frame.choices.status.name} "
                f"(seq {frame.choices.seq})."
            )

        if any(item.seq == frame.choices.seq for item in self._pieces):
            raise ProtocolViolation(f"Duplicate chat frame seq {frame.choices.seq}.")

        piece = _ChatPiece(seq=frame.choices.seq, content=frame.choices.content)
        self._pieces.append(piece)
        chunks: list[str] = [piece.content] if self.incremental else []

        if outer_end and inner_end:
            if frame.usage is None:
                raise AggregationError("missing usage in last response")
            self._result = ChatResult(content=self._assemble(piece), tokens=frame.usage)
        return chunks

    def _assemble(self, terminal: _ChatPiece) -> str:
        ordered: list[_ChatPiece] = sorted(self._pieces, key=lambda item: item.seq)
        if ordered[-1] is not terminal:
            raise ProtocolViolation(
                f"Terminal frame seq {terminal.seq} is not the last frame "
                f"(highest seq {ordered[-1].seq})."
            )
        return "".join(item.content for item in ordered)

    def result(self) -> ChatResult:
        """Return the aggregated reply, or raise if the session never completed."""
        if self._result is not None:
            return self._result
        if not self._pieces:
            raise AggregationError("empty response list")
        raise AggregationError("missing usage in responses")


@dataclass(slots=True)
class TtsAggregator:
    """Decodes and combines TTS audio frames.

    In incremental mode every decoded chunk is returned from ``accept``. In
    batched mode the audio is held back and returned once, as one chunk, with
    the terminal frame (nothing is delivered when no audio arrived).
    """

    incremental: bool = True
    _buffer: bytearray = field(default_factory=bytearray, init=False, repr=False)
    _done: bool = field(default=False, init=False, repr=False)

    @property
    def done(self) -> bool:
        """Return True once the terminal frame has been accepted."""
        return self._done

    def accept(self, frame: TtsFrame) -> list[bytes]:
        """Consume one successful frame and return the chunks to deliver."""
        if self._done:
            raise ProtocolViolation("Received a TTS frame after the terminal frame.")
        if frame.data is None:
            raise AggregationError("missing data in response")

        try:
            audio: bytes = base64.b64decode(frame.data.audio, validate=True)
        except (binascii.Error, ValueError) as error:
            raise AggregationError(f"Cannot decode audio payload: {error}") from error

        self._buffer.extend(audio)
        chunks: list[bytes] = [audio] if self.incremental else []

        if frame.data.status is TtsStatus.END:
            self._done = True
            if not self.incremental and self._buffer:
                chunks.append(bytes(self._buffer))
        return chunks

    def result(self) -> bytes:
        """Return every audio byte received so far."""
        if not self._done:
            raise AggregationError("missing terminal audio frame")
        return bytes(self._buffer)
