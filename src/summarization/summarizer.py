"""LLM-powered rolling summaries of transcript windows."""

from __future__ import annotations

from collections.abc import Sequence

from src.llm import complete
from src.transcript.models import TranscriptLine

SYSTEM_PROMPT = "You are a helpful assistant that summarizes meeting transcripts."


def format_lines(lines: Sequence[tuple[int, str]]) -> str:
    return "\n".join(f"Speaker {speaker}: {text}" for speaker, text in lines)


def build_summary_prompt(lines: Sequence[tuple[int, str]], past_summaries: Sequence[str]) -> str:
    """Build the summarization prompt for one window.

    Args:
        lines: ``(speaker_id, text)`` pairs in transcript order.
        past_summaries: Earlier summaries, oldest first, used as context only.
    """
    prompt = (
        f"Summarize these {len(lines)} lines of transcribed audio. Look for main ideas, "
        "speakers, and key points. Your response should be 3-4 sentences.\n\n"
        f"Transcript:\n{format_lines(lines)}\n"
    )

    if past_summaries:
        previous = "".join(
            f"Previous Summary {i + 1}:\n{summary}\n" for i, summary in enumerate(past_summaries)
        )
        prompt += (
            f"\nAlso, here are the last {len(past_summaries)} chunk(s) of summary that have "
            "already been produced. Don't re-summarize their content, but use them as "
            f"context:\n{previous}"
        )

    return prompt


def summarize_lines(lines: Sequence[tuple[int, str]], past_summaries: Sequence[str]) -> str:
    """Summarize a window of transcript lines with the configured LLM."""
    return complete(SYSTEM_PROMPT, build_summary_prompt(lines, past_summaries))


def summarize_window(lines: Sequence[TranscriptLine], past_summaries: Sequence[str]) -> str:
    return summarize_lines([(line.speaker_id, line.text) for line in lines], past_summaries)
