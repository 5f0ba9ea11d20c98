"""
Token-aware splitting of logical chunks.

Oversized chunks are cut on line boundaries so every piece fits the embedding
model's budget. A single line longer than the budget is kept whole.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Protocol

import tiktoken

from ..logger import get_logger

log = get_logger(__name__)

DEFAULT_ENCODING = "cl100k_base"


class TokenCounter(Protocol):
    """Anything able to measure the token length of a string."""

    def count(self, text: str) -> int:
        ...


class Tokenizer:
    """Thin wrapper around a tiktoken encoding; safe to share between threads."""

    def __init__(self, encoding_name: str = DEFAULT_ENCODING) -> None:
        self.encoding_name = encoding_name
        self._encoding = tiktoken.get_encoding(encoding_name)
        log.info("tokenizer_loaded", encoding=encoding_name)

    def count(self, text: str) -> int:
        if not text:
            return 0
        return len(self._encoding.encode(text, allowed_special="all"))


@dataclass(frozen=True)
class SubChunk:
    text: str
    token_count: int
    line_offset: int

    @property
    def line_count(self) -> int:
        return self.text.count("\n") + 1


def split_by_token_limit(
    text: str, tokenizer: TokenCounter, max_tokens: int
) -> List[SubChunk]:
    """
    Partition ``text`` into line-aligned pieces of at most ``max_tokens``.

    Each line is charged its own token count plus one for the newline that
    joins it to the next. Joining the returned pieces with ``"\\n"`` gives
    back ``text`` unchanged.
    """
    if max_tokens < 1:
        raise ValueError(f"max_tokens must be a positive integer, got {max_tokens}")

    total = tokenizer.count(text)
    if total <= max_tokens:
        return [SubChunk(text=text, token_count=total, line_offset=0)]

    pieces: List[SubChunk] = []
    buffer: List[str] = []
    running = 0
    offset = 0

    def flush() -> None:
        piece = "\n".join(buffer)
        pieces.append(
            SubChunk(text=piece, token_count=tokenizer.count(piece), line_offset=offset)
        )

    for line in text.split("\n"):
        cost = tokenizer.count(line) + 1
        if buffer and running + cost > max_tokens:
            flush()
            offset += len(buffer)
            buffer = []
            running = 0
        buffer.append(line)
        running += cost

    if buffer:
        flush()

    log.debug(
        "chunk_split",
        tokens=total,
        max_tokens=max_tokens,
        pieces=len(pieces),
    )
    return pieces
