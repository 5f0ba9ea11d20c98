import json
import logging
from pathlib import Path

import pytest

from smartchunk.logger import (
    configure_logging,
    get_logger,
    redirect_logging_to_file,
    resolve_level,
)


@pytest.fixture(autouse=True)
def _quiet_logging():
    yield
    configure_logging(enable_console=False)


def test_resolve_level_accepts_names_and_numbers() -> None:
    assert resolve_level("debug") == logging.DEBUG
    assert resolve_level(" Warning ") == logging.WARNING
    assert resolve_level(logging.ERROR) == logging.ERROR


def test_resolve_level_rejects_unknown_names() -> None:
    with pytest.raises(ValueError):
        resolve_level("chatty")


def test_file_log_records_thread_name(tmp_path: Path) -> None:
    path = tmp_path / "run.log"
    redirect_logging_to_file(path, level="info", json_output=True)

    get_logger("smartchunk.test").info("file_chunked", chunks=3)
    get_logger("smartchunk.test").debug("below_threshold")

    events = [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]
    assert [event["event"] for event in events] == ["file_chunked"]
    assert events[0]["chunks"] == 3
    assert events[0]["level"] == "info"
    assert events[0]["thread_name"] == "MainThread"


def test_stdlib_records_share_the_file(tmp_path: Path) -> None:
    path = tmp_path / "run.log"
    redirect_logging_to_file(path)

    logging.getLogger("third.party").warning("plain %s", "message")

    assert "plain message" in path.read_text(encoding="utf-8")
