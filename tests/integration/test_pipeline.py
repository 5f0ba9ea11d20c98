import json
from pathlib import Path
from typing import Dict, List

import pytest

pytest.importorskip("tree_sitter_rust")
pytest.importorskip("tree_sitter_python")

from smartchunk.chunking.records import ChunkRecord
from smartchunk.errors import SinkError
from smartchunk.services import ChunkPipeline, PipelineCallbacks, PipelineState
from smartchunk.storage import JsonlSink

from conftest import WordTokenizer

DOCUMENTED_MODULE = """/// Geometry helpers.
mod shapes {
    /// Area of a square.
    fn area(side: u32) -> u32 {
        side * side
    }
}
"""


def _read(path: Path) -> List[Dict]:
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]


def _run(files: List[Path], output: Path, max_tokens: int = 800, **kwargs):
    with JsonlSink(output) as sink:
        pipeline = ChunkPipeline(
            sink, WordTokenizer(), max_chunk_tokens=max_tokens, max_workers=4, **kwargs
        )
        summary = pipeline.run(files)
    return pipeline, summary


def test_documented_module_yields_two_records(tmp_path: Path) -> None:
    source = tmp_path / "shapes.rs"
    source.write_text(DOCUMENTED_MODULE)
    output = tmp_path / "chunks.jsonl"

    pipeline, summary = _run([source], output)

    records = _read(output)
    assert len(records) == 2
    assert summary.chunks_emitted == 2
    assert pipeline.state is PipelineState.DONE

    module, function = records
    assert module["chunk_type"] == "mod"
    assert module["chunk_name"] == "shapes"
    assert module["context"] == "root"
    assert module["comment"] == "/// Geometry helpers."

    assert function["chunk_type"] == "function"
    assert function["chunk_name"] == "area"
    assert function["context"] == "mod(shapes)"
    assert function["comment"] == "/// Area of a square."
    assert function["signature"] == "fn area(side: u32) -> u32 {"
    assert function["code"].startswith("/// Area of a square.\nfn area")
    assert function["token_count"] == WordTokenizer().count(function["code"])
    assert (function["start_line"], function["end_line"]) == (3, 6)
    assert function["language"] == "Rust"
    assert function["file_path"] == str(source)
    assert summary.total_tokens == module["token_count"] + function["token_count"]


def test_unsupported_files_are_skipped_silently(tmp_path: Path) -> None:
    notes = tmp_path / "notes.md"
    notes.write_text("# Notes\n\nfn not_code() {}\n")
    output = tmp_path / "chunks.jsonl"

    _, summary = _run([notes], output)

    assert _read(output) == []
    assert summary.files_skipped == 1
    assert summary.files_failed == 0
    assert summary.failures == []


def test_unreadable_file_does_not_abort_run(tmp_path: Path) -> None:
    good = tmp_path / "good.py"
    good.write_text("def ok():\n    return 1\n")
    missing = tmp_path / "missing.rs"
    output = tmp_path / "chunks.jsonl"

    _, summary = _run([missing, good], output)

    assert [record["chunk_name"] for record in _read(output)] == ["ok"]
    assert summary.files_failed == 1
    assert summary.files_chunked == 1
    assert summary.failures == [str(missing)]


def test_records_of_one_file_keep_source_order(tmp_path: Path) -> None:
    files = []
    for index in range(6):
        path = tmp_path / f"mod_{index}.rs"
        path.write_text("".join(f"fn f{index}_{n}() {{}}\n\n" for n in range(20)))
        files.append(path)
    output = tmp_path / "chunks.jsonl"

    _, summary = _run(files, output, queue_size=2)

    records = _read(output)
    assert summary.chunks_emitted == 120
    for path in files:
        lines = [r["start_line"] for r in records if r["file_path"] == str(path)]
        assert lines == sorted(lines)
        assert len(lines) == 20


def test_identical_input_produces_identical_ids(tmp_path: Path) -> None:
    source = tmp_path / "shapes.rs"
    source.write_text(DOCUMENTED_MODULE)
    first_out = tmp_path / "first.jsonl"
    second_out = tmp_path / "second.jsonl"

    _run([source], first_out, max_tokens=5)
    _run([source], second_out, max_tokens=5)

    first_ids = sorted(record["id"] for record in _read(first_out))
    second_ids = sorted(record["id"] for record in _read(second_out))
    assert first_ids == second_ids
    assert len(first_ids) > 2


def test_small_budget_splits_records_within_limit(tmp_path: Path) -> None:
    source = tmp_path / "shapes.rs"
    source.write_text(DOCUMENTED_MODULE)
    output = tmp_path / "chunks.jsonl"

    _run([source], output, max_tokens=8)

    for record in _read(output):
        if "\n" in record["code"]:
            assert record["token_count"] <= 8


def test_sink_failure_stops_run_and_reports_count(tmp_path: Path) -> None:
    class FailingSink(JsonlSink):
        def write(self, record: ChunkRecord) -> None:
            if self.records_written >= 1:
                raise SinkError("disk full", self.records_written)
            super().write(record)

    files = []
    for index in range(4):
        path = tmp_path / f"lib_{index}.rs"
        path.write_text(DOCUMENTED_MODULE)
        files.append(path)
    output = tmp_path / "chunks.jsonl"

    with FailingSink(output) as sink:
        pipeline = ChunkPipeline(sink, WordTokenizer(), max_workers=2, queue_size=1)
        with pytest.raises(SinkError) as excinfo:
            pipeline.run(files)

    assert excinfo.value.records_written == 1
    assert pipeline.state is PipelineState.FAILED
    assert len(_read(output)) == 1


def test_run_path_discovers_and_reports_stages(tmp_path: Path) -> None:
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "shapes.rs").write_text(DOCUMENTED_MODULE)
    (tmp_path / "README.md").write_text("docs")
    output = tmp_path / "out" / "chunks.jsonl"
    stages: List[PipelineState] = []
    found: List[int] = []

    with JsonlSink(output) as sink:
        pipeline = ChunkPipeline(
            sink,
            WordTokenizer(),
            callbacks=PipelineCallbacks(stage=stages.append, files_found=found.append),
        )
        summary = pipeline.run_path(tmp_path / "src")

    assert stages == [
        PipelineState.DISCOVERING,
        PipelineState.DISPATCHING,
        PipelineState.DRAINING,
        PipelineState.DONE,
    ]
    assert found == [1]
    assert summary.files_scanned == 1
    assert summary.chunks_emitted == 2


def test_budget_must_be_positive(tmp_path: Path) -> None:
    with JsonlSink(tmp_path / "chunks.jsonl") as sink:
        with pytest.raises(ValueError):
            ChunkPipeline(sink, WordTokenizer(), max_chunk_tokens=0)


def test_unexpected_sink_exception_is_reported_as_sink_error(tmp_path: Path) -> None:
    class BrokenSink(JsonlSink):
        def write(self, record: ChunkRecord) -> None:
            raise TypeError("record is not serializable")

    files = []
    for index in range(6):
        path = tmp_path / f"lib_{index}.rs"
        path.write_text(DOCUMENTED_MODULE)
        files.append(path)

    with BrokenSink(tmp_path / "chunks.jsonl") as sink:
        pipeline = ChunkPipeline(sink, WordTokenizer(), max_workers=3, queue_size=1)
        with pytest.raises(SinkError) as excinfo:
            pipeline.run(files)

    assert excinfo.value.records_written == 0
    assert "record is not serializable" in str(excinfo.value)
    assert pipeline.state is PipelineState.FAILED
