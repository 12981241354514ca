"""Tests for chat and TTS frame aggregation."""

from __future__ import annotations

import json

import pytest

from neotool_xunfei.aggregation import ChatAggregator, TtsAggregator
from neotool_xunfei.errors import AggregationError, ProtocolViolation
from neotool_xunfei.types import TokenStatistics
from neotool_xunfei.wire import TtsAudio, TtsFrame, TtsStatus, decode_chat_frame, decode_tts_frame
from tests.helpers import chat_frame, tts_frame


def _chat(*args, **kwargs):
    return decode_chat_frame(chat_frame(*args, **kwargs))


def _tts(*args, **kwargs):
    return decode_tts_frame(tts_frame(*args, **kwargs))


class TestChatAggregator:
    """Chat completion detection and reassembly."""

    def test_incremental_mode_returns_each_fragment(self) -> None:
        aggregator = ChatAggregator(incremental=True)

        assert aggregator.accept(_chat(0, "Hel", status=0)) == ["Hel"]
        assert aggregator.accept(_chat(1, "lo", status=1)) == ["lo"]
        assert aggregator.accept(_chat(2, "!", status=2, usage=(1, 2, 3))) == ["!"]
        assert aggregator.done
        assert aggregator.result().content == "Hello!"
        assert aggregator.result().tokens == TokenStatistics(1, 2, 3)

    def test_batched_mode_returns_nothing_until_result(self) -> None:
        aggregator = ChatAggregator(incremental=False)

        assert aggregator.accept(_chat(0, "a", status=0)) == []
        assert aggregator.accept(_chat(1, "b", status=2, usage=(1, 1, 2))) == []
        assert aggregator.result().content == "ab"

    def test_reorders_fragments_by_sequence(self) -> None:
        aggregator = ChatAggregator(incremental=False)

        aggregator.accept(_chat(2, "c", status=1))
        aggregator.accept(_chat(0, "a", status=0))
        aggregator.accept(_chat(1, "b", status=1))
        aggregator.accept(_chat(3, "d", status=2, usage=(1, 1, 2)))

        assert aggregator.result().content == "abcd"

    def test_terminal_frame_must_sort_last(self) -> None:
        aggregator = ChatAggregator()
        aggregator.accept(_chat(5, "late", status=1))

        with pytest.raises(ProtocolViolation):
            aggregator.accept(_chat(4, "end", status=2, usage=(1, 1, 2)))

    def test_duplicate_sequence_is_a_violation(self) -> None:
        aggregator = ChatAggregator(incremental=False)
        aggregator.accept(_chat(0, "a", status=0))
        aggregator.accept(_chat(1, "b", status=1))

        with pytest.raises(ProtocolViolation, match="Duplicate chat frame seq 1"):
            aggregator.accept(_chat(1, "b", status=2, usage=(1, 1, 2)))

        assert not aggregator.done

    def test_header_end_with_choices_not_end_is_a_violation(self) -> None:
        aggregator = ChatAggregator()

        with pytest.raises(ProtocolViolation):
            aggregator.accept(_chat(0, "x", status=2, choice_status=1, usage=(1, 1, 2)))

    def test_choices_end_without_header_end_is_not_terminal(self) -> None:
        aggregator = ChatAggregator()

        aggregator.accept(_chat(0, "x", status=1, choice_status=2))

        assert not aggregator.done

    def test_terminal_frame_without_usage_raises(self) -> None:
        aggregator = ChatAggregator()

        with pytest.raises(AggregationError, match="missing usage in last response"):
            aggregator.accept(_chat(0, "x", status=2))

    def test_frame_without_payload_raises(self) -> None:
        frame = decode_chat_frame(json.dumps({"header": {"code": 0, "message": "ok", "status": 1}}))

        with pytest.raises(AggregationError, match="missing payload"):
            ChatAggregator().accept(frame)

    def test_frame_after_terminal_raises(self) -> None:
        aggregator = ChatAggregator()
        aggregator.accept(_chat(0, "x", status=2, usage=(1, 1, 2)))

        with pytest.raises(ProtocolViolation):
            aggregator.accept(_chat(1, "y", status=1))

    def test_result_without_frames_raises(self) -> None:
        with pytest.raises(AggregationError, match="empty response list"):
            ChatAggregator().result()

    def test_result_before_terminal_frame_raises(self) -> None:
        aggregator = ChatAggregator()
        aggregator.accept(_chat(0, "x", status=0))

        with pytest.raises(AggregationError, match="missing usage in responses"):
            aggregator.result()


class TestTtsAggregator:
    """TTS audio decoding and delivery modes."""

    def test_incremental_mode_returns_every_chunk(self) -> None:
        aggregator = TtsAggregator(incremental=True)

        assert aggregator.accept(_tts(b"ab", 1)) == [b"ab"]
        assert aggregator.accept(_tts(b"cd", 2)) == [b"cd"]
        assert aggregator.result() == b"abcd"

    def test_batched_mode_delivers_once_at_the_end(self) -> None:
        aggregator = TtsAggregator(incremental=False)

        assert aggregator.accept(_tts(b"ab", 1)) == []
        assert aggregator.accept(_tts(b"cd", 1)) == []
        assert aggregator.accept(_tts(b"ef", 2)) == [b"abcdef"]
        assert aggregator.result() == b"abcdef"

    def test_batched_mode_delivers_nothing_for_empty_audio(self) -> None:
        aggregator = TtsAggregator(incremental=False)

        assert aggregator.accept(_tts(b"", 2)) == []
        assert aggregator.result() == b""

    def test_invalid_base64_raises(self) -> None:
        frame = TtsFrame(code=0, message="ok", data=TtsAudio(audio="@@not-base64@@", status=TtsStatus.SYNTHESIS))

        with pytest.raises(AggregationError):
            TtsAggregator().accept(frame)

    def test_frame_without_data_raises(self) -> None:
        with pytest.raises(AggregationError, match="missing data"):
            TtsAggregator().accept(TtsFrame(code=0, message="ok"))

    def test_result_before_terminal_frame_raises(self) -> None:
        aggregator = TtsAggregator()
        aggregator.accept(_tts(b"ab", 1))

        with pytest.raises(AggregationError, match="missing terminal audio frame"):
            aggregator.result()
