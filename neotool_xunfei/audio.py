"""Audio source storage, local persistence and playback."""

from __future__ import annotations

import io
import itertools
import logging
import platform
import shutil
import subprocess
import wave
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from neotool_xunfei.interfaces import AudioSourceId
from neotool_xunfei.types import Auf, Aue

LOGGER = logging.getLogger(__name__)

DEFAULT_SAMPLE_RATE = 16000


def sample_rate_for(auf: Auf | None) -> int:
    """Return the PCM sample rate selected by ``auf`` (16 kHz when unset)."""
    return auf.sample_rate if auf is not None else DEFAULT_SAMPLE_RATE


def pcm_to_wav_bytes(
    pcm_bytes: bytes,
    *,
    sample_rate: int,
    channels: int = 1,
    sample_width: int = 2,
) -> bytes:
    """Wrap raw PCM bytes into a WAV container."""
    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as wav_file:
        wav_file.setnchannels(channels)
        wav_file.setsampwidth(sample_width)
        wav_file.setframerate(sample_rate)
        wav_file.writeframes(pcm_bytes)
    return buffer.getvalue()


def prepare_playback(audio: bytes, aue: Aue, auf: Auf | None = None) -> tuple[bytes, str]:
    """Return playable bytes and a file suffix for audio in encoding ``aue``."""
    if aue is Aue.RAW:
        return pcm_to_wav_bytes(audio, sample_rate=sample_rate_for(auf)), ".wav"
    return audio, ".mp3"


@dataclass(slots=True)
class AudioSourceStore:
    """Holds synthesized audio blobs behind opaque, per-store handles."""

    _sources: dict[AudioSourceId, bytes] = field(default_factory=dict, init=False, repr=False)
    _ids: Iterator[AudioSourceId] = field(
        default_factory=lambda: itertools.count(1), init=False, repr=False
    )

    def add(self, audio: bytes) -> AudioSourceId:
        """Store ``audio`` and return a new handle."""
        source_id: AudioSourceId = next(self._ids)
        self._sources[source_id] = bytes(audio)
        return source_id

    def get(self, source_id: AudioSourceId) -> bytes | None:
        """Return stored audio without removing it."""
        return self._sources.get(source_id)

    def get_and_remove(self, source_id: AudioSourceId) -> bytes | None:
        """Return stored audio and forget its handle."""
        return self._sources.pop(source_id, None)

    def collect(self, source_ids: Iterable[AudioSourceId]) -> bytes:
        """Concatenate and remove the given sources, in order."""
        chunks: list[bytes] = []
        for source_id in source_ids:
            audio: bytes | None = self.get_and_remove(source_id)
            if audio is None:
                raise KeyError(f"Unknown audio source {source_id}")
            chunks.append(audio)
        return b"".join(chunks)

    def clear(self) -> None:
        """Drop every stored source."""
        self._sources.clear()

    def __len__(self) -> int:
        return len(self._sources)


@dataclass(slots=True)
class LocalAudioOutput:
    """Persists audio files locally and optionally plays them."""

    output_dir: Path
    autoplay: bool = True
    cleanup_after_playback: bool = True

    def output(self, audio: bytes, *, suffix: str = ".mp3") -> Path | None:
        """Persist audio, optionally play it, and optionally clean it up."""
        self.output_dir.mkdir(parents=True, exist_ok=True)
        target_path: Path = self._build_output_path(suffix)
        target_path.write_bytes(audio)

        if self.autoplay:
            self._safe_play(target_path)
            if self.cleanup_after_playback:
                self._safe_delete(target_path)
                return None
        return target_path

    def _build_output_path(self, suffix: str) -> Path:
        """Create a timestamped output path for an audio artifact."""
        timestamp: str = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%fZ")
        return self.output_dir / f"speech_{timestamp}{suffix}"

    def _safe_play(self, path: Path) -> None:
        """Play audio file while swallowing playback errors."""
        try:
            self._play(path)
        except Exception as error:
            LOGGER.warning("Audio playback failed for %s: %s", path, error)

    def _safe_delete(self, path: Path) -> None:
        """Delete generated audio file while swallowing cleanup errors."""
        try:
            path.unlink(missing_ok=True)
        except Exception as error:
            LOGGER.warning("Audio cleanup failed for %s: %s", path, error)

    def _play(self, path: Path) -> None:
        """Play audio file with platform-specific methods."""
        if platform.system() == "Windows":
            self._play_windows(path)
            return

        player_command: list[str] | None = self._resolve_unix_player(path)
        if player_command is None:
            raise RuntimeError(f"No compatible audio player found for {path.suffix} files.")
        subprocess.run(player_command, check=False)

    def _play_windows(self, path: Path) -> None:
        """Play WAV on Windows using the standard library."""
        if path.suffix != ".wav":
            raise RuntimeError("Only WAV playback is supported on Windows.")
        import winsound

        winsound.PlaySound(str(path), winsound.SND_FILENAME)

    def _resolve_unix_player(self, path: Path) -> list[str] | None:
        """Resolve the first available Unix audio player for the file type."""
        candidates: list[list[str]] = [["afplay"]]
        if path.suffix == ".wav":
            candidates += [["aplay"], ["paplay"]]
        else:
            candidates += [["mpg123", "-q"]]
        candidates.append(["ffplay", "-nodisp", "-autoexit", "-loglevel", "quiet"])

        for command in candidates:
            if shutil.which(command[0]):
                return [*command, str(path)]
        return None
