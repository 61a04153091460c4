import math

import pytest

from ragchat_server.rag.chunker import chunk_text, count_words


SAMPLES = [
    "one",
    "alpha beta gamma delta",
    "  leading and trailing  whitespace \n\n with\ttabs\r\nand newlines  ",
    " ".join(f"w{i}" for i in range(1234)),
]


@pytest.mark.parametrize("text", SAMPLES)
@pytest.mark.parametrize("size", [1, 3, 500])
def test_chunks_preserve_word_sequence(text, size):
    """Rejoining chunks with single spaces reproduces the word sequence."""
    chunks = chunk_text(text, size)

    assert " ".join(chunks).split() == text.split()
    assert len(chunks) == math.ceil(count_words(text) / size)
    assert all(len(c.split()) <= size for c in chunks)


def test_1200_words_make_three_chunks():
    text = " ".join(f"word{i}" for i in range(1200))

    chunks = chunk_text(text)

    assert [len(c.split()) for c in chunks] == [500, 500, 200]
    assert chunks[0].split()[0] == "word0"
    assert chunks[2].split()[-1] == "word1199"


def test_empty_and_blank_input_yield_no_chunks():
    assert chunk_text("") == []
    assert chunk_text("   \n\t ") == []
    assert count_words("") == 0


def test_whitespace_runs_are_collapsed():
    assert chunk_text("a   b\n\nc", size=2) == ["a b", "c"]


def test_count_words_uses_original_text():
    assert count_words("a  b\nc\t d") == 4


def test_non_positive_size_rejected():
    with pytest.raises(ValueError):
        chunk_text("a b c", 0)
