"""
Generation collaborator: Raf, the guidance counsellor.

Only the newest message goes to the model unless CHAT_HISTORY_WINDOW asks for
prior turns. Without an OpenAI key a simulated reply is returned instead.
"""

import asyncio
import logging
from typing import Sequence

from openai import AsyncOpenAI, RateLimitError, APITimeoutError, APIError

from src.config import Settings
from src.chat.schemas import Message

logger = logging.getLogger(__name__)

SYSTEM_INSTRUCTION = (
    'You are "Raf", an expert guidance counsellor at the "Raf Advisory" agency. '
    "Your audience is teenagers aged 15 to 20.\n"
    "Your tone must be:\n"
    "1. Empathetic and encouraging (never judgemental).\n"
    "2. Upbeat and modern (a few emojis are fine).\n"
    "3. Structured and expert (steer towards concrete next steps).\n\n"
    "Your mission is to help the user find their path through school and into a career. "
    "If asked to write a cover letter, you may do so."
)

EMPTY_REPLY = "Sorry, I couldn't generate a response."


class GenerationError(Exception):
    """The model could not produce a reply."""


def _demo_reply(new_message: str) -> str:
    return (
        "This is a simulated reply because no OpenAI API key is configured. "
        "In production I would answer this properly: " + new_message
    )


def build_messages(transcript: Sequence[Message], new_message: str, window: int) -> list[dict]:
    messages = [{"role": "system", "content": SYSTEM_INSTRUCTION}]
    if window > 0:
        for msg in list(transcript)[-window:]:
            messages.append({"role": msg.sender, "content": msg.text})
    messages.append({"role": "user", "content": new_message})
    return messages


async def generate_reply(
    transcript: Sequence[Message],
    new_message: str,
    settings: Settings,
) -> str:
    """Ask the model for Raf's answer to new_message."""
    if not settings.openai_api_key:
        logger.warning("No OpenAI API key configured, returning a simulated reply.")
        await asyncio.sleep(settings.demo_latency_seconds)
        return _demo_reply(new_message)

    client = AsyncOpenAI(api_key=settings.openai_api_key, timeout=settings.openai_timeout)
    try:
        completion = await client.chat.completions.create(
            model=settings.openai_model,
            messages=build_messages(transcript, new_message, settings.chat_history_window),
            max_tokens=800,
            temperature=0.7,
        )
    except RateLimitError as e:
        logger.warning("OpenAI rate limit hit during chat")
        raise GenerationError("rate limited") from e
    except (APITimeoutError, APIError) as e:
        logger.warning(f"OpenAI API error during chat: {e}")
        raise GenerationError(str(e)) from e

    return completion.choices[0].message.content or EMPTY_REPLY
