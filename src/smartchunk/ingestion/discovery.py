"""
Input file discovery.

Either walks a directory tree (honouring ``.gitignore`` and a default set of
ignore patterns) or asks git which files changed since a given commit.
"""
from __future__ import annotations

import os
import subprocess
from fnmatch import fnmatch
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

import pathspec

from ..errors import DiscoveryError
from ..logger import get_logger

log = get_logger(__name__)

DEFAULT_IGNORE_PATTERNS: Sequence[str] = (
    ".git",
    ".hg",
    ".svn",
    ".idea",
    ".vscode",
    ".DS_Store",
    "__pycache__",
    ".mypy_cache",
    ".pytest_cache",
    ".ruff_cache",
    ".venv",
    "venv",
    "node_modules",
    "target",
    "dist",
)

GITIGNORE_FILE = ".gitignore"


def _should_ignore(name: str, patterns: Sequence[str]) -> bool:
    return any(fnmatch(name, pattern) for pattern in patterns)


def _load_gitignore(root: Path) -> Optional[pathspec.PathSpec]:
    gitignore = root / GITIGNORE_FILE
    if not gitignore.is_file():
        return None
    lines = gitignore.read_text(encoding="utf-8", errors="ignore").splitlines()
    return pathspec.GitIgnoreSpec.from_lines(lines)


def walk_files(root: Path, extra_ignore: Iterable[str] = ()) -> List[Path]:
    """Regular files under ``root``, sorted, minus ignored names and gitignored paths."""
    if root.is_file():
        return [root]
    patterns = tuple(dict.fromkeys(tuple(DEFAULT_IGNORE_PATTERNS) + tuple(extra_ignore)))
    spec = _load_gitignore(root)

    def ignored(path: Path, is_dir: bool) -> bool:
        if _should_ignore(path.name, patterns):
            return True
        if spec is None:
            return False
        relative = path.relative_to(root).as_posix()
        return spec.match_file(relative + "/" if is_dir else relative)

    files: List[Path] = []
    for current, dirs, filenames in os.walk(root):
        current_path = Path(current)
        dirs[:] = sorted(d for d in dirs if not ignored(current_path / d, True))
        for filename in sorted(filenames):
            candidate = current_path / filename
            if ignored(candidate, False) or not candidate.is_file():
                continue
            files.append(candidate)
    return files


def git_changed_files(root: Path, since: str) -> List[Path]:
    """Files changed between ``since`` and ``HEAD`` that still exist on disk."""
    try:
        result = subprocess.run(
            ["git", "-C", str(root), "diff", "--name-only", since, "HEAD"],
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError as exc:
        raise DiscoveryError(f"Could not run git; is it installed? ({exc})") from exc

    if result.returncode != 0:
        raise DiscoveryError(f"git diff failed: {result.stderr.strip()}")

    files = [root / line for line in result.stdout.splitlines() if line.strip()]
    return [path for path in files if path.is_file()]


def collect_files(
    root: Path,
    since: Optional[str] = None,
    extra_ignore: Iterable[str] = (),
) -> List[Path]:
    """Resolve the input file list for one run."""
    if not root.exists():
        raise DiscoveryError(f"Path not found: {root}")
    if since:
        log.info("discovery_started", mode="git_diff", root=str(root), since=since)
        files = git_changed_files(root, since)
    else:
        log.info("discovery_started", mode="full_scan", root=str(root))
        files = walk_files(root, extra_ignore)
    files = list(dict.fromkeys(files))
    log.info("discovery_completed", files=len(files))
    return files
