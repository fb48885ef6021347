"""Find the most common words in a text document."""

from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass
from pathlib import Path

_NON_WORD = re.compile(r"[^0-9a-zA-Z']+")


@dataclass(frozen=True)
class WordCount:
    """How many times a word is observed in a document."""

    word: str
    count: int

    def __str__(self) -> str:
        return f"{self.word}: {self.count}"


def sort_word_counts(word_counts: list[WordCount]) -> list[WordCount]:
    """Sort in place by count, descending, breaking ties by word; return the list."""
    word_counts.sort(key=lambda wc: (-wc.count, wc.word))
    return word_counts


def top_words(path: str | Path, num_words: int, char_threshold: int) -> list[WordCount]:
    """Return the ``num_words`` most common words of at least ``char_threshold`` characters.

    Matching is case insensitive and a word keeps only its alphanumeric
    characters, so "Don't" counts as "dont".
    """
    if num_words < 0:
        raise ValueError(f"num_words must not be negative, got {num_words}")

    text = Path(path).read_text(encoding="utf-8").lower()
    text = _NON_WORD.sub(" ", text).replace("'", "")

    counts = Counter(word for word in text.split() if len(word) >= char_threshold)
    word_counts = sort_word_counts(
        [WordCount(word, count) for word, count in counts.items()]
    )
    return word_counts[:num_words]