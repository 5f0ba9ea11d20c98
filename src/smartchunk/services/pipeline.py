"""
Concurrent chunking pipeline.

Files are fanned out over a thread pool, one task per file. Workers push
finished records onto a bounded queue that a single writer thread drains into
the output sink. Records of one file keep their source order; records of
different files interleave in whatever order the workers finish, and that
interleaving is not stable between runs.
"""
from __future__ import annotations

import enum
import queue
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, Optional, Sequence

from ..chunking import ChunkExtractor, ChunkRecord, SharedParser, Tokenizer, get_driver
from ..chunking.splitter import TokenCounter
from ..errors import SinkError, SmartChunkError
from ..ingestion import collect_files
from ..logger import get_logger
from ..settings import DEFAULT_MAX_CHUNK_TOKENS, AppSettings, settings
from ..storage import JsonlSink

log = get_logger(__name__)

_END_OF_STREAM = object()
DEFAULT_QUEUE_SIZE = 256


class PipelineState(str, enum.Enum):
    IDLE = "idle"
    DISCOVERING = "discovering"
    DISPATCHING = "dispatching"
    DRAINING = "draining"
    DONE = "done"
    FAILED = "failed"


class FileOutcome(str, enum.Enum):
    CHUNKED = "chunked"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class PipelineCallbacks:
    stage: Optional[Callable[[PipelineState], None]] = None
    files_found: Optional[Callable[[int], None]] = None
    file_done: Optional[Callable[[Path, FileOutcome], None]] = None


@dataclass
class RunSummary:
    files_scanned: int = 0
    files_chunked: int = 0
    files_skipped: int = 0
    files_failed: int = 0
    chunks_emitted: int = 0
    total_tokens: int = 0
    output_path: Optional[Path] = None
    failures: list[str] = field(default_factory=list)


@dataclass
class _WriterStats:
    records: int = 0
    tokens: int = 0
    error: Optional[SinkError] = None


class ChunkPipeline:
    """Runs extraction for many files in parallel and serializes the output."""

    def __init__(
        self,
        sink: JsonlSink,
        tokenizer: TokenCounter,
        max_chunk_tokens: int = DEFAULT_MAX_CHUNK_TOKENS,
        max_workers: Optional[int] = None,
        queue_size: int = DEFAULT_QUEUE_SIZE,
        parser: Optional[SharedParser] = None,
        callbacks: Optional[PipelineCallbacks] = None,
    ) -> None:
        if max_chunk_tokens < 1:
            raise ValueError("max_chunk_tokens must be a positive integer")
        self.sink = sink
        self.tokenizer = tokenizer
        self.max_chunk_tokens = max_chunk_tokens
        self.max_workers = max_workers or settings.resolved_workers()
        self.queue_size = queue_size
        self.extractor = ChunkExtractor(parser or SharedParser())
        self.callbacks = callbacks or PipelineCallbacks()
        self.state = PipelineState.IDLE
        self._queue: "queue.Queue[object]" = queue.Queue(maxsize=queue_size)
        self._abort = threading.Event()

    @classmethod
    def from_settings(
        cls,
        sink: JsonlSink,
        app_settings: AppSettings = settings,
        tokenizer: Optional[TokenCounter] = None,
        callbacks: Optional[PipelineCallbacks] = None,
    ) -> "ChunkPipeline":
        return cls(
            sink=sink,
            tokenizer=tokenizer or Tokenizer(app_settings.encoding_name),
            max_chunk_tokens=app_settings.max_chunk_tokens,
            max_workers=app_settings.resolved_workers(),
            queue_size=app_settings.queue_size,
            parser=SharedParser(app_settings.parser_instances),
            callbacks=callbacks,
        )

    def _set_state(self, state: PipelineState) -> None:
        self.state = state
        log.debug("pipeline_state", state=state.value)
        if self.callbacks.stage:
            self.callbacks.stage(state)

    def _process_file(self, path: Path) -> FileOutcome:
        if self._abort.is_set():
            return FileOutcome.SKIPPED
        driver = get_driver(path.suffix)
        if driver is None:
            log.debug("file_skipped_unsupported", file=str(path))
            return FileOutcome.SKIPPED
        try:
            source = path.read_bytes()
            records = self.extractor.records_for(
                path, source, driver, self.tokenizer, self.max_chunk_tokens
            )
            for record in records:
                if self._abort.is_set():
                    break
                self._queue.put(record)
        except OSError as exc:
            log.warning("file_read_failed", file=str(path), error=str(exc))
            return FileOutcome.FAILED
        except SmartChunkError as exc:
            log.warning("file_parse_failed", file=str(path), error=str(exc))
            return FileOutcome.FAILED
        return FileOutcome.CHUNKED

    def _writer_failed(self, stats: _WriterStats, error: SinkError) -> None:
        stats.error = error
        self._abort.set()
        log.error("sink_write_failed", error=str(error), records=stats.records)

    def _drain(self, stats: _WriterStats) -> None:
        while True:
            item = self._queue.get()
            if item is _END_OF_STREAM:
                break
            if stats.error is not None:
                # Keep consuming so blocked producers can finish.
                continue
            record: ChunkRecord = item  # type: ignore[assignment]
            try:
                self.sink.write(record)
            except SinkError as exc:
                self._writer_failed(stats, exc)
                continue
            except Exception as exc:  # noqa: BLE001 - any sink failure ends the run
                error = SinkError(f"Output write failed: {exc}", stats.records)
                error.__cause__ = exc
                self._writer_failed(stats, error)
                continue
            stats.records += 1
            stats.tokens += record.token_count

    def run(self, files: Sequence[Path]) -> RunSummary:
        """Chunk ``files`` and write every record to the sink."""
        summary = RunSummary(files_scanned=len(files), output_path=self.sink.path)
        stats = _WriterStats()
        self._abort.clear()
        writer = threading.Thread(
            target=self._drain, args=(stats,), name="smartchunk-writer", daemon=True
        )
        writer.start()

        self._set_state(PipelineState.DISPATCHING)
        log.info(
            "pipeline_dispatching",
            files=len(files),
            workers=self.max_workers,
            max_chunk_tokens=self.max_chunk_tokens,
        )
        try:
            with ThreadPoolExecutor(
                max_workers=self.max_workers, thread_name_prefix="smartchunk-worker"
            ) as pool:
                futures = {pool.submit(self._process_file, path): path for path in files}
                for future in as_completed(futures):
                    path = futures[future]
                    try:
                        outcome = future.result()
                    except Exception as exc:  # noqa: BLE001 - scoped to one file
                        log.error(
                            "file_worker_crashed", file=str(path), error=str(exc), exc_info=exc
                        )
                        outcome = FileOutcome.FAILED
                    self._tally(summary, path, outcome)
                    if self.callbacks.file_done:
                        self.callbacks.file_done(path, outcome)
        finally:
            self._set_state(PipelineState.DRAINING)
            self._queue.put(_END_OF_STREAM)
            writer.join()

        summary.chunks_emitted = stats.records
        summary.total_tokens = stats.tokens
        if stats.error is not None:
            self._set_state(PipelineState.FAILED)
            raise SinkError(str(stats.error), records_written=stats.records) from stats.error

        self._set_state(PipelineState.DONE)
        log.info(
            "pipeline_completed",
            files=summary.files_scanned,
            chunked=summary.files_chunked,
            skipped=summary.files_skipped,
            failed=summary.files_failed,
            chunks=summary.chunks_emitted,
            tokens=summary.total_tokens,
        )
        return summary

    def run_path(
        self,
        root: Path,
        since: Optional[str] = None,
        extra_ignore: Iterable[str] = (),
    ) -> RunSummary:
        """Discover the input files under ``root`` and run on them."""
        self._set_state(PipelineState.DISCOVERING)
        files = collect_files(root, since=since, extra_ignore=extra_ignore)
        if self.callbacks.files_found:
            self.callbacks.files_found(len(files))
        return self.run(files)

    @staticmethod
    def _tally(summary: RunSummary, path: Path, outcome: FileOutcome) -> None:
        if outcome is FileOutcome.CHUNKED:
            summary.files_chunked += 1
        elif outcome is FileOutcome.SKIPPED:
            summary.files_skipped += 1
        else:
            summary.files_failed += 1
            summary.failures.append(str(path))
