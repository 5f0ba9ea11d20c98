"""
smartchunk: syntax-aware, token-bounded chunking of source repositories.

Source files are parsed with Tree-sitter, split into declaration-level chunks
annotated with scope breadcrumbs and comments, and written as JSON lines ready
for embedding pipelines.
"""

from .version import __version__

__all__ = ["__version__"]
