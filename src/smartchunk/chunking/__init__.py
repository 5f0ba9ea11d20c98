"""
Chunking utilities for semantic code indexing.

Tree-sitter parsing, declaration extraction, token-aware splitting and
content addressing of the resulting chunks.
"""

from .drivers import LanguageDriver, get_driver, supported_extensions
from .extractor import ChunkExtractor
from .parser import SharedParser
from .records import ChunkRecord, LogicalChunk, compute_chunk_id
from .splitter import SubChunk, Tokenizer, split_by_token_limit

__all__ = [
    "ChunkExtractor",
    "ChunkRecord",
    "LanguageDriver",
    "LogicalChunk",
    "SharedParser",
    "SubChunk",
    "Tokenizer",
    "compute_chunk_id",
    "get_driver",
    "split_by_token_limit",
    "supported_extensions",
]
