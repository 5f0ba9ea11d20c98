"""
JSON Lines output for chunk records.

The file is truncated when the sink opens and every record is flushed as soon
as it is written, so a crashed run leaves a valid prefix of complete lines.
"""

from __future__ import annotations

import json
from pathlib import Path
from types import TracebackType
from typing import IO, Optional, Type

from ..chunking.records import ChunkRecord
from ..errors import SinkError
from ..logger import get_logger

log = get_logger(__name__)


class JsonlSink:
    """Append-only newline-delimited JSON writer."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self.records_written = 0
        self._handle: Optional[IO[str]] = None

    def open(self) -> "JsonlSink":
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._handle = self.path.open("w", encoding="utf-8")
        except OSError as exc:
            raise SinkError(f"Could not create output file {self.path}: {exc}") from exc
        self.records_written = 0
        log.info("output_opened", path=str(self.path))
        return self

    def write(self, record: ChunkRecord) -> None:
        if self._handle is None:
            raise SinkError("Sink is not open", self.records_written)
        try:
            line = json.dumps(record.to_dict(), ensure_ascii=False)
            self._handle.write(line + "\n")
            self._handle.flush()
        except (OSError, TypeError, ValueError) as exc:
            raise SinkError(
                f"Could not write to output file {self.path}: {exc}",
                self.records_written,
            ) from exc
        self.records_written += 1

    def close(self) -> None:
        if self._handle is not None:
            self._handle.close()
            self._handle = None
            log.info("output_closed", path=str(self.path), records=self.records_written)

    def __enter__(self) -> "JsonlSink":
        return self.open()

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        traceback: Optional[TracebackType],
    ) -> None:
        self.close()
