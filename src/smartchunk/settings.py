"""
Centralized chunking settings.

Values come from ``SMARTCHUNK_*`` environment variables and an optional TOML
file; CLI options override them per run.
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, List, Optional

try:  # Python 3.11+
    import tomllib  # type: ignore[attr-defined]
except ModuleNotFoundError:  # pragma: no cover - fallback for older interpreters
    import tomli as tomllib  # type: ignore[attr-defined]

from pydantic import PositiveInt
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_MAX_CHUNK_TOKENS = 800


class AppSettings(BaseSettings):
    """Project-wide settings loaded from env or .env files."""

    model_config = SettingsConfigDict(
        env_prefix="SMARTCHUNK_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    max_chunk_tokens: PositiveInt = DEFAULT_MAX_CHUNK_TOKENS
    encoding_name: str = "cl100k_base"
    max_workers: Optional[PositiveInt] = None
    queue_size: PositiveInt = 256
    parser_instances: PositiveInt = 1
    output_path: Path = Path("output.jsonl")
    extra_ignore_patterns: List[str] = []
    log_level: str = "INFO"

    def resolved_workers(self) -> int:
        """Worker pool size, falling back to the available parallelism."""
        return self.max_workers or os.cpu_count() or 1


_CONFIG_ENV_VAR = "SMARTCHUNK_CONFIG_PATH"
_DEFAULT_CONFIG_FILE = Path("smartchunk_settings.toml")


def _load_toml_config() -> Dict[str, Any]:
    """Load configuration from the primary TOML file on disk."""
    candidates: List[Path] = []
    config_override = os.getenv(_CONFIG_ENV_VAR)
    if config_override:
        candidates.append(Path(config_override))
    candidates.append(_DEFAULT_CONFIG_FILE)

    for candidate in candidates:
        if candidate.is_file():
            with candidate.open("rb") as handle:
                return tomllib.load(handle)
    return {}


def _flatten_config(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Translate grouped TOML sections into AppSettings keyword arguments."""
    data: Dict[str, Any] = {}

    chunking = raw.get("chunking", {})
    if "max_tokens" in chunking:
        data["max_chunk_tokens"] = int(chunking["max_tokens"])
    if "encoding" in chunking:
        data["encoding_name"] = chunking["encoding"]

    pipeline = raw.get("pipeline", {})
    if "workers" in pipeline:
        data["max_workers"] = int(pipeline["workers"])
    if "queue_size" in pipeline:
        data["queue_size"] = int(pipeline["queue_size"])
    if "parser_instances" in pipeline:
        data["parser_instances"] = int(pipeline["parser_instances"])

    output = raw.get("output", {})
    if "path" in output:
        data["output_path"] = output["path"]
    if "ignore" in output:
        data["extra_ignore_patterns"] = list(output["ignore"])

    logging_section = raw.get("logging", {})
    if "level" in logging_section:
        data["log_level"] = str(logging_section["level"])

    return data


def load_settings() -> AppSettings:
    raw = _load_toml_config()
    flattened = _flatten_config(raw)
    return AppSettings(**flattened)


settings = load_settings()
