"""Command-line interface for Spark chat and Xunfei TTS."""

from __future__ import annotations

import argparse
import asyncio
import logging
from collections.abc import Awaitable, Sequence
from dataclasses import replace
from typing import Any, TypeVar

from dotenv import load_dotenv

from neotool_xunfei.assistant import VoiceChatAssistant
from neotool_xunfei.audio import AudioSourceStore, LocalAudioOutput
from neotool_xunfei.client import SparkChatClient, XunfeiSpeechSynthesizer, chat, chat_full
from neotool_xunfei.config import AssistantConfig, SparkConfig, TtsConfig
from neotool_xunfei.errors import XunfeiError
from neotool_xunfei.interfaces import AudioSourceId, EventCallback, json_event_callback
from neotool_xunfei.types import Auf, Aue, ChatResult, ChatRequest

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

SAMPLE_FORMATS: dict[str, Auf] = {"8k": Auf.AUDIO_8K_RATE, "16k": Auf.AUDIO_16K_RATE}


def build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(description="Spark chat and Xunfei TTS over signed websockets.")
    commands = parser.add_subparsers(dest="command", required=True)

    chat_parser = commands.add_parser("chat", help="Send one message to Spark and stream the reply.")
    chat_parser.add_argument("text", help="Message to send.")
    chat_parser.add_argument("--full", action="store_true", help="Print the reply only once it is complete.")
    chat_parser.add_argument("--json", action="store_true", help="Emit chunks and the result as JSON lines.")
    chat_parser.add_argument("--temperature", type=float, default=None, help="Sampling temperature (0 to 1).")
    chat_parser.add_argument("--max-tokens", type=int, default=None, help="Reply token limit (1 to 8192).")
    chat_parser.add_argument("--top-k", type=int, default=None, help="Top-k sampling (1 to 6).")
    chat_parser.add_argument("--chat-id", type=str, default=None, help="Optional conversation id.")
    chat_parser.add_argument("--uid", type=str, default=None, help="Optional user id (max 32 chars).")
    chat_parser.add_argument("--timeout", type=float, default=None, help="Deadline in seconds (0 disables).")

    tts_parser = commands.add_parser("tts", help="Synthesize speech and save or play it.")
    tts_parser.add_argument("text", help="Text to synthesize (max 8000 UTF-8 bytes).")
    tts_parser.add_argument("--voice", type=str, default=None, help="Voice name (default from env).")
    tts_parser.add_argument("--encoding", choices=[aue.value for aue in Aue], default=None, help="Audio encoding.")
    tts_parser.add_argument("--sample-rate", choices=sorted(SAMPLE_FORMATS), default=None, help="Raw PCM rate.")
    tts_parser.add_argument("--speed", type=int, default=None, help="Speed (0 to 100).")
    tts_parser.add_argument("--volume", type=int, default=None, help="Volume (0 to 100).")
    tts_parser.add_argument("--pitch", type=int, default=None, help="Pitch (0 to 100).")
    tts_parser.add_argument("--all-once", action="store_true", help="Deliver audio once at the end.")
    tts_parser.add_argument("--no-autoplay", action="store_true", help="Store audio file but do not play it.")
    tts_parser.add_argument("--timeout", type=float, default=None, help="Deadline in seconds (0 disables).")

    converse_parser = commands.add_parser("converse", help="Reply to comments typed on stdin and speak replies.")
    converse_parser.add_argument("--note", type=str, default=None, help="Extra character note for this session.")
    converse_parser.add_argument("--no-speech", action="store_true", help="Disable TTS and playback.")
    converse_parser.add_argument("--no-autoplay", action="store_true", help="Store audio files but do not play them.")
    converse_parser.add_argument("--max-turns", type=int, default=None, help="Maximum turns before exit.")
    return parser


def configure_logging(level: str) -> None:
    """Configure process logging."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )


async def _with_deadline(awaitable: Awaitable[T], timeout: float) -> T:
    """Await under an external deadline; a non-positive timeout disables it."""
    if timeout <= 0:
        return await awaitable
    return await asyncio.wait_for(awaitable, timeout=timeout)


def _print_chunk(chunk: str) -> None:
    print(chunk, end="", flush=True)


def build_spark_config(args: argparse.Namespace) -> SparkConfig:
    """Load Spark settings from env and apply CLI overrides."""
    config: SparkConfig = SparkConfig.from_env()
    overrides: dict[str, Any] = {
        "temperature": getattr(args, "temperature", None),
        "max_tokens": getattr(args, "max_tokens", None),
        "top_k": getattr(args, "top_k", None),
    }
    return replace(config, **{key: value for key, value in overrides.items() if value is not None})


def build_tts_config(args: argparse.Namespace) -> TtsConfig:
    """Load TTS settings from env and apply CLI overrides."""
    config: TtsConfig = TtsConfig.from_env()
    overrides: dict[str, Any] = {
        "voice": args.voice,
        "encoding": Aue(args.encoding) if args.encoding else None,
        "sample_format": SAMPLE_FORMATS[args.sample_rate] if args.sample_rate else None,
        "speed": args.speed,
        "volume": args.volume,
        "pitch": args.pitch,
    }
    return replace(config, **{key: value for key, value in overrides.items() if value is not None})


async def run_chat(args: argparse.Namespace, config: AssistantConfig) -> int:
    """Send one chat message and print the reply plus token usage."""
    spark_config: SparkConfig = build_spark_config(args)
    client = SparkChatClient(config=spark_config, uid=args.uid, chat_id=args.chat_id)
    request: ChatRequest = client.build_request(args.text)
    timeout: float = args.timeout if args.timeout is not None else config.session_timeout_seconds

    if args.json:
        emit: EventCallback = json_event_callback(print)
        result: ChatResult = await _with_deadline(
            chat(request, lambda chunk: emit({"type": "chunk", "content": chunk}), url=spark_config.url),
            timeout,
        )
        emit({"type": "result", **result.to_dict()})
        return 0

    if args.full:
        result = await _with_deadline(chat_full(request, url=spark_config.url), timeout)
        print(result.content)
    else:
        result = await _with_deadline(chat(request, _print_chunk, url=spark_config.url), timeout)
        print()

    tokens = result.tokens
    print(
        f"Tokens: prompt={tokens.prompt_tokens} "
        f"completion={tokens.completion_tokens} total={tokens.total_tokens}"
    )
    return 0


async def run_tts(args: argparse.Namespace, config: AssistantConfig) -> int:
    """Synthesize speech into the audio store, then save and optionally play it."""
    tts_config: TtsConfig = build_tts_config(args)
    synthesizer = XunfeiSpeechSynthesizer(config=tts_config, get_all_once=args.all_once)
    store = AudioSourceStore()
    source_ids: list[AudioSourceId] = []
    timeout: float = args.timeout if args.timeout is not None else config.session_timeout_seconds

    audio: bytes = await _with_deadline(
        synthesizer.synthesize(args.text, sink=lambda chunk: source_ids.append(store.add(chunk))),
        timeout,
    )
    LOGGER.info("Received %d audio source(s), %d bytes.", len(source_ids), len(audio))

    playable, suffix = synthesizer.to_playable(store.collect(source_ids))
    output = LocalAudioOutput(
        output_dir=config.artifacts_dir / "audio",
        autoplay=not args.no_autoplay,
        cleanup_after_playback=False,
    )
    path = output.output(playable, suffix=suffix)
    if path is not None:
        print(f"Audio saved: {path}")
    return 0


def build_assistant(args: argparse.Namespace, config: AssistantConfig) -> VoiceChatAssistant:
    """Construct a fully wired voice chat assistant from env config + CLI overrides."""
    chat_client = SparkChatClient(config=build_spark_config(args))
    character_set: str = config.character_set
    if args.note:
        character_set = f"{character_set}\n{args.note.strip()}"

    speech_enabled: bool = config.enable_speech and not args.no_speech
    speech_synthesizer = None
    audio_store = None
    audio_output = None
    if speech_enabled:
        speech_synthesizer = XunfeiSpeechSynthesizer(config=TtsConfig.from_env())
        audio_store = AudioSourceStore()
        audio_output = LocalAudioOutput(
            output_dir=config.artifacts_dir / "audio",
            autoplay=not args.no_autoplay,
        )

    return VoiceChatAssistant(
        chat_client=chat_client,
        character_set=character_set,
        speech_synthesizer=speech_synthesizer,
        audio_store=audio_store,
        audio_output=audio_output,
        history_limit=config.history_limit,
        enable_speech=speech_enabled,
        logger=logging.getLogger("neotool_xunfei.assistant"),
    )


def _read_comment() -> str | None:
    """Read one line from stdin, or None at end of input."""
    try:
        return input("\n> ")
    except EOFError:
        return None


async def run_converse(args: argparse.Namespace, config: AssistantConfig) -> int:
    """Answer comments typed on stdin until end of input."""
    assistant: VoiceChatAssistant = build_assistant(args, config)

    async def next_comment() -> str | None:
        return await asyncio.to_thread(_read_comment)

    await assistant.run_loop(next_comment, max_turns=args.max_turns, on_chunk=_print_chunk)
    return 0


COMMANDS = {"chat": run_chat, "tts": run_tts, "converse": run_converse}


def run(args: argparse.Namespace) -> int:
    """Run the selected command and return exit code."""
    load_dotenv()
    config: AssistantConfig = AssistantConfig.from_env()
    configure_logging(config.log_level)

    try:
        return asyncio.run(COMMANDS[args.command](args, config))
    except XunfeiError as error:
        LOGGER.error("%s failed (%s): %s", args.command, error.kind, error)
    except asyncio.TimeoutError:
        LOGGER.error("%s did not finish before the deadline.", args.command)
    except ValueError as error:
        LOGGER.error("%s", error)
    except KeyboardInterrupt:
        LOGGER.info("Stopped by user.")
        return 0
    return 1


def main(argv: Sequence[str] | None = None) -> int:
    """CLI entrypoint."""
    parser = build_parser()
    args = parser.parse_args(argv)
    return run(args)
