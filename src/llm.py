"""Text-in/text-out completion against the configured LLM provider."""

from __future__ import annotations

from anthropic import Anthropic
from anthropic.types import TextBlock
from openai import OpenAI

from src.config import settings


class LLMResponseError(ValueError):
    """The provider answered, but not with usable text."""


def _complete_anthropic(system: str, prompt: str, max_tokens: int) -> str:
    client = Anthropic(api_key=settings.anthropic_api_key)
    response = client.messages.create(
        model=settings.llm_model,
        max_tokens=max_tokens,
        system=system,
        messages=[{"role": "user", "content": prompt}],
    )

    # response.content[0] is a union of block types; we only ever request text.
    if not response.content:
        raise LLMResponseError("Claude returned an empty response")
    block = response.content[0]
    if not isinstance(block, TextBlock):
        raise LLMResponseError(f"Expected TextBlock from Claude, got {type(block).__name__}")
    return block.text


def _complete_openai(system: str, prompt: str, max_tokens: int) -> str:
    client = OpenAI(api_key=settings.openai_api_key or None)
    response = client.chat.completions.create(
        model=settings.openai_model,
        max_tokens=max_tokens,
        messages=[
            {"role": "system", "content": system},
            {"role": "user", "content": prompt},
        ],
    )
    if not response.choices:
        raise LLMResponseError("OpenAI returned no choices")
    content = response.choices[0].message.content
    if not content:
        raise LLMResponseError("OpenAI returned an empty message")
    return content


def complete(system: str, prompt: str, max_tokens: int = 1024) -> str:
    """Run one completion and return the response text.

    Raises:
        LLMResponseError: If the provider response carries no usable text.
        ValueError: If ``settings.llm_provider`` is not recognized.
    """
    provider = settings.llm_provider.lower()
    if provider == "anthropic":
        return _complete_anthropic(system, prompt, max_tokens)
    if provider == "openai":
        return _complete_openai(system, prompt, max_tokens)
    msg = f"Unknown LLM provider: {settings.llm_provider!r}. Supported: ['anthropic', 'openai']"
    raise ValueError(msg)
