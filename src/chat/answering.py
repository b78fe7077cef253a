"""Answer free-text questions against the running meeting transcript."""

from __future__ import annotations

from src.llm import complete

SYSTEM_PROMPT = (
    "You are a meeting assistant that answers questions about live call transcripts.\n\n"
    "Rules:\n"
    "- Only answer based on the provided transcript. If the answer isn't "
    "in the transcript, say so.\n"
    "- Include speaker numbers when relevant.\n"
    "- Be concise and direct."
)


def answer_question(question: str, transcript: str) -> str:
    """Generate an answer to *question* using the transcript as context.

    Args:
        question: The user's question.
        transcript: Newline-joined transcript line texts.

    Returns:
        The answer text.
    """
    prompt = (
        f"Here is a transcript of a call:\n\n{transcript}\n\n"
        f"Here is a user's query: {question}\n\n"
        "Please answer the user's query to the best of your ability."
    )
    return complete(SYSTEM_PROMPT, prompt)
