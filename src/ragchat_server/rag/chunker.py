"""
Word-Window Chunker

Splits extracted document text into consecutive windows of a fixed number of
words. Windows never overlap and the final window may be shorter. The chunker
is deterministic and stateless.
"""

from __future__ import annotations

from typing import List

DEFAULT_CHUNK_SIZE = 500


def chunk_text(text: str, size: int = DEFAULT_CHUNK_SIZE) -> List[str]:
    """
    Split ``text`` on whitespace runs and regroup the words into windows.

    Parameters
    ----------
    text : str
        Plain text extracted from a document.
    size : int
        Number of words per chunk.

    Returns
    -------
    List[str]
        Chunks in document order, each a single-space join of its words.
        Empty when the text contains no words.
    """
    if size <= 0:
        raise ValueError(f"chunk size must be positive, got {size}")

    words = text.split()
    return [
        " ".join(words[start : start + size])
        for start in range(0, len(words), size)
    ]


def count_words(text: str) -> int:
    """Return the number of whitespace-separated words in the original text."""
    return len(text.split())
