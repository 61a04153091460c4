"""
Prompt Assembly

Composes the single prompt sent to the completion service from the user's
message and the retrieval outcome.
"""

from __future__ import annotations

from ..rag.models import RetrievalOutcome

GROUNDED_PROMPT_TEMPLATE = (
    "Use the following context to answer the question.\n\n"
    "Context:\n{context}\n\n"
    "Question: {question}"
)


def build_prompt(message: str, outcome: RetrievalOutcome) -> str:
    """
    Return the grounded prompt when context was retrieved, else the bare message.
    """
    if not outcome.context_used:
        return message
    return GROUNDED_PROMPT_TEMPLATE.format(context=outcome.context_text, question=message)
