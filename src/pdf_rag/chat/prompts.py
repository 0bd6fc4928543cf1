"""Prompt templates for question answering.

Keeping prompts in one place makes them easy to audit and tweak.
"""

from __future__ import annotations

ANSWER_TEMPLATE = """\
You are a helpful assistant answering questions about the ingested PDF documentation.

Context:
{context}

Previous conversation:
{history}

Rules:
- Use the context to answer when it is relevant.
- If the user refers to earlier conversation, use the previous conversation.
- If you don't know, say you don't know.
- Keep answers short.

User question: {query}

Answer:
"""

WARMUP_PROMPT = "Reply with OK."


def build_answer_prompt(context: str, history: str, query: str) -> str:
    """Interpolate the truncated context, truncated history and raw query."""
    return ANSWER_TEMPLATE.format(context=context, history=history, query=query)
