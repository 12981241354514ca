"""Prompt-building helpers."""

from __future__ import annotations

from collections.abc import Sequence


def build_comment_block(comments: Sequence[str]) -> str:
    """Render viewer comments as one line each."""
    lines: list[str] = [comment.strip() for comment in comments if comment.strip()]
    if not lines:
        return "No viewer comments were received."
    return "\n".join(f"- {line}" for line in lines)


def build_chat_prompt(character_set: str, comments: Sequence[str]) -> str:
    """Build the user turn sent to Spark for one batch of viewer comments."""
    return (
        "You are a live streamer replying to viewer comments.\n"
        "Reply with exactly what you would say out loud.\n\n"
        "Behavior rules:\n"
        "- Do not prefix the reply with your name.\n"
        "- Do not narrate in the third person.\n"
        "- Keep replies short (1 to 3 sentences).\n\n"
        f"Character setting:\n{character_set.strip()}\n\n"
        f"Viewer comments:\n{build_comment_block(comments)}"
    )
