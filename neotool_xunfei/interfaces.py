"""Protocol interfaces for the collaborators around the streaming core."""

from __future__ import annotations

import json
from collections.abc import Awaitable, Callable, Iterable, Sequence
from pathlib import Path
from typing import Any, Protocol, TypeVar

from neotool_xunfei.types import ChatResult, ChatText

ChunkT_contra = TypeVar("ChunkT_contra", contravariant=True)

AudioSourceId = int


class ChunkSink(Protocol[ChunkT_contra]):
    """Receives each delivered chunk, in arrival order."""

    def __call__(self, chunk: ChunkT_contra) -> Awaitable[None] | None:
        """Handle one chunk; an awaitable result is awaited before the next frame."""


class AudioSink(Protocol):
    """Stores audio blobs and hands back opaque handles."""

    def add(self, audio: bytes) -> AudioSourceId:
        """Store ``audio`` and return its handle."""

    def collect(self, source_ids: Iterable[AudioSourceId]) -> bytes:
        """Concatenate and release the given handles, in order."""


class AudioOutput(Protocol):
    """Stores and optionally plays generated audio."""

    def output(self, audio: bytes, *, suffix: str) -> Path | None:
        """Persist and optionally play audio, returning a saved path when retained."""


class ChatCompleter(Protocol):
    """Produces one chat reply, streaming text chunks to an optional sink."""

    async def complete(
        self,
        content: str,
        *,
        history: Sequence[ChatText] = (),
        sink: ChunkSink[str] | None = None,
    ) -> ChatResult:
        """Return the aggregated reply."""


class SpeechSynthesizer(Protocol):
    """Converts text to encoded audio."""

    async def synthesize(self, text: str, *, sink: ChunkSink[bytes] | None = None) -> bytes:
        """Return the synthesized audio, delivering chunks to ``sink``."""

    def to_playable(self, audio: bytes) -> tuple[bytes, str]:
        """Return audio in a playable container plus its file suffix."""


EventCallback = Callable[[Any], None]


def json_event_callback(write: Callable[[str], Any]) -> EventCallback:
    """Adapt a text writer into a callback forwarding JSON-serialized values."""

    def callback(value: Any) -> None:
        write(json.dumps(value, ensure_ascii=False))

    return callback
