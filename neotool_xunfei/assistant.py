"""Voice chat orchestration: Spark reply, then optional spoken playback."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from neotool_xunfei.errors import XunfeiError
from neotool_xunfei.interfaces import (
    AudioOutput,
    AudioSink,
    AudioSourceId,
    ChatCompleter,
    ChunkSink,
    SpeechSynthesizer,
)
from neotool_xunfei.prompting import build_chat_prompt
from neotool_xunfei.types import ChatResult, ChatText, Role, TokenStatistics


@dataclass(slots=True, frozen=True)
class VoiceChatTurn:
    """Represents one completed voice chat turn."""

    prompt: str
    reply: str
    tokens: TokenStatistics
    audio_path: Path | None
    started_at: datetime
    finished_at: datetime


@dataclass(slots=True)
class VoiceChatAssistant:
    """Replies to viewer comments with Spark and speaks the reply."""

    chat_client: ChatCompleter
    character_set: str
    speech_synthesizer: SpeechSynthesizer | None = None
    audio_store: AudioSink | None = None
    audio_output: AudioOutput | None = None
    history_limit: int = 10
    enable_speech: bool = True
    logger: logging.Logger = logging.getLogger(__name__)
    history: list[ChatText] = field(default_factory=list)

    def recent_history(self) -> tuple[ChatText, ...]:
        """Return the last ``history_limit`` turns sent along with a new prompt."""
        if self.history_limit <= 0:
            return ()
        return tuple(self.history[-self.history_limit :])

    async def run_once(
        self,
        comments: Sequence[str],
        *,
        on_chunk: ChunkSink[str] | None = None,
    ) -> VoiceChatTurn:
        """Execute one full turn; history only grows when the chat succeeds."""
        started_at: datetime = datetime.now(timezone.utc)
        prompt: str = build_chat_prompt(self.character_set, comments)
        result: ChatResult = await self.chat_client.complete(
            prompt,
            history=self.recent_history(),
            sink=on_chunk,
        )

        self.history.extend(
            ChatText(role=Role.USER, content=comment) for comment in comments if comment.strip()
        )
        self.history.append(ChatText(role=Role.ASSISTANT, content=result.content))
        overflow: int = len(self.history) - max(self.history_limit, 0)
        if overflow > 0:
            del self.history[:overflow]

        audio_path: Path | None = None
        synthesizer = self.speech_synthesizer
        store = self.audio_store
        output = self.audio_output
        if (
            self.enable_speech
            and synthesizer is not None
            and store is not None
            and output is not None
            and result.content.strip()
        ):
            audio_path = await self._speak(result.content, synthesizer, store, output)

        return VoiceChatTurn(
            prompt=prompt,
            reply=result.content,
            tokens=result.tokens,
            audio_path=audio_path,
            started_at=started_at,
            finished_at=datetime.now(timezone.utc),
        )

    async def _speak(
        self,
        text: str,
        synthesizer: SpeechSynthesizer,
        store: AudioSink,
        output: AudioOutput,
    ) -> Path | None:
        """Synthesize ``text`` into the audio store, then hand it to the output."""
        source_ids: list[AudioSourceId] = []
        await synthesizer.synthesize(
            text,
            sink=lambda audio: source_ids.append(store.add(audio)),
        )
        audio: bytes = store.collect(source_ids)
        if not audio:
            return None
        playable, suffix = synthesizer.to_playable(audio)
        return output.output(playable, suffix=suffix)

    async def run_loop(
        self,
        next_comment: Callable[[], Awaitable[str | None]],
        *,
        max_turns: int | None = None,
        on_chunk: ChunkSink[str] | None = None,
    ) -> int:
        """Answer comments until the source returns None; returns completed turns.

        A failed turn is logged and the loop waits for the next comment.
        """
        completed_turns: int = 0
        while max_turns is None or completed_turns < max_turns:
            comment: str | None = await next_comment()
            if comment is None:
                break
            if not comment.strip():
                continue

            try:
                turn: VoiceChatTurn = await self.run_once([comment], on_chunk=on_chunk)
            except XunfeiError as error:
                self.logger.error("Voice chat turn failed (%s): %s", error.kind, error)
                continue

            self.logger.info(
                "Reply used %s tokens.",
                turn.tokens.total_tokens,
            )
            if turn.audio_path:
                self.logger.info("Audio saved to %s", turn.audio_path)
            completed_turns += 1
        return completed_turns
