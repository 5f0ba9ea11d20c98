from __future__ import annotations

import pytest


class WordTokenizer:
    """Counts whitespace-separated words; stands in for tiktoken offline."""

    def __init__(self, encoding_name: str = "words") -> None:
        self.encoding_name = encoding_name

    def count(self, text: str) -> int:
        return len(text.split())


@pytest.fixture
def word_tokenizer() -> WordTokenizer:
    return WordTokenizer()
