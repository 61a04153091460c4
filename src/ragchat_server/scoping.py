"""
Conversation Scoping

Every piece of indexed content belongs to exactly one conversation. The raw
conversation id is externally supplied and opaque, so it is mapped onto the
constrained character set accepted by the vector backend before it is used to
derive an index (collection) name.

Collisions
----------
The mapping is lossy: any character outside ``[A-Za-z0-9_-]`` becomes ``_``,
so ``"a.b"`` and ``"a/b"`` share the index ``rag_a_b``. Such collisions are
accepted.
"""

from __future__ import annotations

import re

from .config import settings


# ---------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------

_DISALLOWED_CHARS = re.compile(r"[^a-zA-Z0-9_-]")


# ---------------------------------------------------------------------
# Sanitization
# ---------------------------------------------------------------------

def sanitize_convo_id(convo_id: str) -> str:
    """
    Map every character outside letters, digits, ``_`` and ``-`` to ``_``.

    Raises
    ------
    ValueError
        If the id is empty.
    """
    if not convo_id:
        raise ValueError("convo_id is required")

    return _DISALLOWED_CHARS.sub("_", convo_id)


def index_name_for(convo_id: str, prefix: str | None = None) -> str:
    """
    Return the index name owned by a conversation.
    """
    if prefix is None:
        prefix = settings.index_name_prefix
    return f"{prefix}{sanitize_convo_id(convo_id)}"
