from smartchunk.chunking.records import ChunkRecord, LogicalChunk, compute_chunk_id


def test_chunk_id_is_stable_and_hex() -> None:
    first = compute_chunk_id("fn main() {}", 0)
    assert first == compute_chunk_id("fn main() {}", 0)
    assert len(first) == 64
    int(first, 16)


def test_chunk_id_changes_with_text_or_position() -> None:
    base = compute_chunk_id("fn main() {}", 0)
    assert compute_chunk_id("fn main() {} ", 0) != base
    assert compute_chunk_id("fn main() {}", 1) != base


def test_logical_chunk_text_includes_comment_block() -> None:
    chunk = LogicalChunk(
        kind="function",
        name="area",
        context="root",
        comment="// one\n// two",
        signature="fn area() {",
        code="fn area() {\n}",
        start_line=10,
        end_line=11,
    )
    assert chunk.text == "// one\n// two\nfn area() {\n}"
    assert chunk.text_start_line == 8


def test_logical_chunk_without_comment_starts_at_code() -> None:
    chunk = LogicalChunk(
        kind="function",
        name="area",
        context="root",
        comment="",
        signature="fn area() {",
        code="fn area() {\n}",
        start_line=3,
        end_line=4,
    )
    assert chunk.text == chunk.code
    assert chunk.text_start_line == 3


def test_record_dict_keeps_field_order() -> None:
    record = ChunkRecord(
        id="abc",
        file_path="src/lib.rs",
        language="Rust",
        chunk_type="function",
        chunk_name="area",
        context="root",
        signature="fn area() {",
        comment="",
        code="fn area() {}",
        start_line=1,
        end_line=1,
        token_count=4,
    )
    assert list(record.to_dict()) == [
        "id",
        "file_path",
        "language",
        "chunk_type",
        "chunk_name",
        "context",
        "signature",
        "comment",
        "code",
        "start_line",
        "end_line",
        "token_count",
    ]
