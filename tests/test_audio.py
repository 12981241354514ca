"""Tests for audio storage, conversion and local output."""

from __future__ import annotations

import io
import wave
from pathlib import Path
from unittest.mock import patch

import pytest

from neotool_xunfei.audio import (
    AudioSourceStore,
    LocalAudioOutput,
    pcm_to_wav_bytes,
    prepare_playback,
    sample_rate_for,
)
from neotool_xunfei.types import Auf, Aue


class TestAudioSourceStore:
    """Per-store audio handles."""

    def test_ids_are_issued_per_store(self) -> None:
        first, second = AudioSourceStore(), AudioSourceStore()

        assert [first.add(b"a"), first.add(b"b")] == [1, 2]
        assert second.add(b"c") == 1

    def test_collect_concatenates_in_order_and_removes(self) -> None:
        store = AudioSourceStore()
        ids = [store.add(b"ab"), store.add(b"cd"), store.add(b"ef")]

        assert store.collect([ids[2], ids[0]]) == b"efab"
        assert len(store) == 1
        assert store.get(ids[1]) == b"cd"

    def test_collect_unknown_id_raises(self) -> None:
        with pytest.raises(KeyError):
            AudioSourceStore().collect([42])

    def test_get_and_remove_then_clear(self) -> None:
        store = AudioSourceStore()
        source_id = store.add(b"x")
        store.add(b"y")

        assert store.get_and_remove(source_id) == b"x"
        assert store.get_and_remove(source_id) is None
        store.clear()
        assert len(store) == 0


class TestPlaybackConversion:
    """Raw PCM wrapping."""

    def test_sample_rate_defaults_to_16k(self) -> None:
        assert sample_rate_for(None) == 16000
        assert sample_rate_for(Auf.AUDIO_8K_RATE) == 8000

    def test_pcm_is_wrapped_as_wav(self) -> None:
        wav_bytes = pcm_to_wav_bytes(b"\x00\x01" * 80, sample_rate=8000)

        with wave.open(io.BytesIO(wav_bytes), "rb") as wav_file:
            assert wav_file.getframerate() == 8000
            assert wav_file.getnchannels() == 1
            assert wav_file.getnframes() == 80

    def test_prepare_playback_by_encoding(self) -> None:
        assert prepare_playback(b"ID3", Aue.LAME) == (b"ID3", ".mp3")
        wav_bytes, suffix = prepare_playback(b"\x00\x00", Aue.RAW, Auf.AUDIO_8K_RATE)
        assert suffix == ".wav"
        assert wav_bytes[:4] == b"RIFF"


class TestLocalAudioOutput:
    """File persistence and playback."""

    def test_persists_file_without_autoplay(self, tmp_path: Path) -> None:
        output = LocalAudioOutput(output_dir=tmp_path / "audio", autoplay=False)

        path = output.output(b"ID3data", suffix=".mp3")

        assert path is not None
        assert path.suffix == ".mp3"
        assert path.name.startswith("speech_")
        assert path.read_bytes() == b"ID3data"

    def test_playback_failure_is_logged_and_file_cleaned(self, tmp_path: Path) -> None:
        output = LocalAudioOutput(output_dir=tmp_path, autoplay=True, cleanup_after_playback=True)

        with patch.object(LocalAudioOutput, "_play", side_effect=RuntimeError("no player")):
            path = output.output(b"RIFF", suffix=".wav")

        assert path is None
        assert list(tmp_path.iterdir()) == []

    def test_keeps_file_when_cleanup_disabled(self, tmp_path: Path) -> None:
        output = LocalAudioOutput(output_dir=tmp_path, autoplay=True, cleanup_after_playback=False)

        with patch.object(LocalAudioOutput, "_play") as play:
            path = output.output(b"RIFF", suffix=".wav")

        assert path is not None and path.exists()
        play.assert_called_once_with(path)

    def test_resolves_wav_player(self, tmp_path: Path) -> None:
        output = LocalAudioOutput(output_dir=tmp_path)
        available = {"aplay"}

        with patch("neotool_xunfei.audio.shutil.which", side_effect=lambda name: name if name in available else None):
            command = output._resolve_unix_player(tmp_path / "speech.wav")

        assert command == ["aplay", str(tmp_path / "speech.wav")]

    def test_mp3_player_falls_back_to_ffplay(self, tmp_path: Path) -> None:
        output = LocalAudioOutput(output_dir=tmp_path)

        with patch("neotool_xunfei.audio.shutil.which", side_effect=lambda name: name if name == "ffplay" else None):
            command = output._resolve_unix_player(tmp_path / "speech.mp3")

        assert command is not None
        assert command[0] == "ffplay"
