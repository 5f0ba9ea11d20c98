"""
Exception hierarchy for smartchunk.

Per-file failures (:class:`ParseError`, :class:`ParserResourceError`) are
caught by the pipeline and logged; :class:`SinkError` and
:class:`DiscoveryError` reach the caller.
"""
from __future__ import annotations


class SmartChunkError(Exception):
    """Base class for every error raised by smartchunk."""


class ParseError(SmartChunkError):
    """The grammar could not produce a syntax tree for a file."""


class ParserResourceError(SmartChunkError):
    """The shared parser could not be configured for a grammar."""


class DiscoveryError(SmartChunkError):
    """Input files could not be enumerated (for example, git failed)."""


class SinkError(SmartChunkError):
    """A chunk record could not be serialized or persisted."""

    def __init__(self, message: str, records_written: int = 0) -> None:
        super().__init__(message)
        self.records_written = records_written
