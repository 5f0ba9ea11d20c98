"""
Chunk data structures and content addressing.
"""
from __future__ import annotations

import hashlib
from dataclasses import asdict, dataclass
from typing import Any, Dict

ROOT_CONTEXT = "root"
ANONYMOUS_NAME = "anonymous"


@dataclass(frozen=True)
class LogicalChunk:
    """One matched declaration before token splitting."""

    kind: str
    name: str
    context: str
    comment: str
    signature: str
    code: str
    start_line: int
    end_line: int

    @property
    def text(self) -> str:
        """Comment block followed by the declaration, as fed to the splitter."""
        if self.comment:
            return f"{self.comment}\n{self.code}"
        return self.code

    @property
    def text_start_line(self) -> int:
        """Source line on which :attr:`text` begins."""
        if self.comment:
            return self.start_line - (self.comment.count("\n") + 1)
        return self.start_line


@dataclass(frozen=True)
class ChunkRecord:
    """Unit of output; one JSON line per record."""

    id: str
    file_path: str
    language: str
    chunk_type: str
    chunk_name: str
    context: str
    signature: str
    comment: str
    code: str
    start_line: int
    end_line: int
    token_count: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def compute_chunk_id(text: str, index: int) -> str:
    """SHA-256 fingerprint of a sub-chunk's text and its position in the split."""
    return hashlib.sha256(f"{text}-{index}".encode("utf-8")).hexdigest()
