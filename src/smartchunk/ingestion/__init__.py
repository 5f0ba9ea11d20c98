"""
Input discovery package.

Builds the list of files handed to the chunking pipeline, either from a
directory walk or from a git diff.
"""
from .discovery import DEFAULT_IGNORE_PATTERNS, collect_files, git_changed_files, walk_files

__all__ = ["DEFAULT_IGNORE_PATTERNS", "collect_files", "git_changed_files", "walk_files"]
