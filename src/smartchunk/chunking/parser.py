"""
Shared Tree-sitter parser resource.

Parsers are reused across worker threads instead of being built per file. The
default pool holds a single parser, so at most one parse runs at any instant
and every other request queues behind it; traversal and splitting happen
outside the pool and stay parallel.
"""
from __future__ import annotations

import queue
from contextlib import contextmanager
from typing import Iterator

from tree_sitter import Language, Parser, Tree  # type: ignore[import]

from ..errors import ParseError, ParserResourceError
from ..logger import get_logger

log = get_logger(__name__)


class SharedParser:
    """A fixed pool of parsers handed out one caller at a time."""

    def __init__(self, instances: int = 1) -> None:
        if instances < 1:
            raise ValueError("SharedParser requires at least one parser instance")
        self.instances = instances
        self._idle: "queue.Queue[Parser]" = queue.Queue(maxsize=instances)
        for _ in range(instances):
            self._idle.put(Parser())
        log.debug("parser_pool_created", instances=instances)

    @contextmanager
    def _checkout(self) -> Iterator[Parser]:
        parser = self._idle.get()
        try:
            yield parser
        finally:
            self._idle.put(parser)

    def parse(self, language: Language, source: bytes) -> Tree:
        """
        Parse ``source`` with ``language``.

        The parser is switched to the requested grammar and reset before each
        call, so state from the previous file never leaks into the next one.
        """
        with self._checkout() as parser:
            try:
                parser.language = language
            except (TypeError, ValueError) as exc:
                raise ParserResourceError(f"Could not set parser language: {exc}") from exc
            parser.reset()
            try:
                tree = parser.parse(source)
            except (TypeError, ValueError, RuntimeError) as exc:
                raise ParseError(f"Tree-sitter failed to parse input: {exc}") from exc
        if tree is None:
            preview = source[:50].decode("utf-8", errors="replace")
            raise ParseError(f"Tree-sitter returned no tree for: {preview!r}")
        return tree
