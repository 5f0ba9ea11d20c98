"""
Declaration-level chunk extraction.

Each file is parsed through the shared parser, the driver's query selects the
declarations worth chunking, and every declaration is annotated with its scope
breadcrumb, the comment block directly above it and its signature. The
resulting logical chunks are then split to the token budget and fingerprinted
as :class:`ChunkRecord` objects.
"""
from __future__ import annotations

import threading
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set, Tuple

from tree_sitter import Node, Query, QueryCursor  # type: ignore[import]

from ..logger import get_logger
from .drivers import LanguageDriver, clean_kind, node_text
from .parser import SharedParser
from .records import (
    ANONYMOUS_NAME,
    ROOT_CONTEXT,
    ChunkRecord,
    LogicalChunk,
    compute_chunk_id,
)
from .splitter import TokenCounter, split_by_token_limit

log = get_logger(__name__)

CONTEXT_SEPARATOR = " > "
UNNAMED_SCOPE = "?"
CHUNK_CAPTURE = "chunk"

# Node kinds that wrap a declaration and own its leading decorators.
_WRAPPER_KINDS = frozenset({"decorated_definition"})
# Sibling kinds that belong to the declaration that follows them.
_PREFIX_KINDS = frozenset({"attribute_item"})
# Body kinds whose leading comments are parsed as children of the owner node.
_BODY_KINDS = frozenset({"block"})


def _is_comment(node: Node) -> bool:
    return "comment" in node.type


def _previous(node: Node) -> Optional[Node]:
    sibling = node.prev_named_sibling
    if sibling is None and node.parent is not None and node.parent.type in _BODY_KINDS:
        # `class A:\n    # note\n    def m` puts the comment before the block.
        sibling = node.parent.prev_named_sibling
    return sibling


def _trails_code(comment: Node) -> bool:
    """True for a comment that ends a line of code, e.g. `x = 1  # note`."""
    before = comment.prev_sibling
    return (
        before is not None
        and not _is_comment(before)
        and before.end_point.row == comment.start_point.row
    )


def _last_row(node: Node, source: bytes) -> int:
    # Some grammars include the trailing newline in line comments.
    return node.start_point.row + node_text(node, source).rstrip().count("\n")


class ChunkExtractor:
    """Turns source files into logical chunks and chunk records."""

    def __init__(self, parser: SharedParser) -> None:
        self.parser = parser
        self._queries: Dict[str, Query] = {}
        self._queries_lock = threading.Lock()

    def _query_for(self, driver: LanguageDriver) -> Query:
        key = driver.label()
        with self._queries_lock:
            query = self._queries.get(key)
            if query is None:
                query = Query(driver.grammar(), driver.query())
                self._queries[key] = query
        return query

    def _declarations(self, root: Node, driver: LanguageDriver) -> List[Node]:
        cursor = QueryCursor(self._query_for(driver))
        seen: Set[Tuple[int, int, str]] = set()
        nodes: List[Node] = []
        for _pattern, captures in cursor.matches(root):
            for node in captures.get(CHUNK_CAPTURE, []):
                span = (node.start_byte, node.end_byte, node.type)
                if span in seen:
                    continue
                seen.add(span)
                nodes.append(node)
        # Source order, enclosing declarations before the ones they contain.
        nodes.sort(key=lambda n: (n.start_byte, -n.end_byte))
        return nodes

    @staticmethod
    def build_context(node: Node, source: bytes, driver: LanguageDriver) -> str:
        """Breadcrumb of the named scopes enclosing ``node``, outermost first."""
        parts: List[str] = []
        parent = node.parent
        while parent is not None:
            if parent.type in driver.scope_kinds:
                name = driver.extract_name(parent, source) or UNNAMED_SCOPE
                parts.append(f"{clean_kind(parent.type)}({name})")
            parent = parent.parent
        if not parts:
            return ROOT_CONTEXT
        parts.reverse()
        return CONTEXT_SEPARATOR.join(parts)

    @staticmethod
    def _anchor(node: Node) -> Node:
        """Outermost node spanning the declaration and anything attached to it."""
        parent = node.parent
        if parent is not None and parent.type in _WRAPPER_KINDS:
            return parent
        return node

    @staticmethod
    def _leading_prefix(anchor: Node) -> Node:
        first = anchor
        sibling = anchor.prev_named_sibling
        while sibling is not None and sibling.type in _PREFIX_KINDS:
            first = sibling
            sibling = sibling.prev_named_sibling
        return first

    @staticmethod
    def preceding_comments(node: Node, source: bytes) -> str:
        """
        Contiguous comment lines directly above ``node``, in source order.

        Collection stops at the first sibling that is not a comment, at a
        blank line between two comments, or at a comment trailing code on
        its own line.
        """
        comments: List[str] = []
        next_row = node.start_point.row
        sibling = _previous(node)
        while sibling is not None and _is_comment(sibling):
            if _last_row(sibling, source) != next_row - 1 or _trails_code(sibling):
                break
            comments.append(node_text(sibling, source).strip())
            next_row = sibling.start_point.row
            sibling = _previous(sibling)
        comments.reverse()
        return "\n".join(comments)

    def extract(self, source: bytes, driver: LanguageDriver) -> List[LogicalChunk]:
        """Parse ``source`` and return one logical chunk per declaration."""
        tree = self.parser.parse(driver.grammar(), source)
        root = tree.root_node
        if root.has_error:
            log.debug("syntax_errors_present", language=driver.label())

        chunks: List[LogicalChunk] = []
        for node in self._declarations(root, driver):
            first = self._leading_prefix(self._anchor(node))
            raw_code = source[first.start_byte : node.end_byte].decode(
                "utf-8", errors="replace"
            )
            declaration = node_text(node, source)
            chunks.append(
                LogicalChunk(
                    kind=clean_kind(node.type),
                    name=driver.extract_name(node, source) or ANONYMOUS_NAME,
                    context=self.build_context(node, source, driver),
                    comment=self.preceding_comments(first, source),
                    signature=declaration.split("\n", 1)[0].rstrip("\r"),
                    code=raw_code,
                    start_line=first.start_point.row + 1,
                    end_line=node.end_point.row + 1,
                )
            )
        return chunks

    def records_for(
        self,
        path: Path,
        source: bytes,
        driver: LanguageDriver,
        tokenizer: TokenCounter,
        max_tokens: int,
    ) -> Iterable[ChunkRecord]:
        """Extract, split and fingerprint every chunk of one file, in source order."""
        file_path = str(path)
        for chunk in self.extract(source, driver):
            base_line = chunk.text_start_line
            pieces = split_by_token_limit(chunk.text, tokenizer, max_tokens)
            for index, piece in enumerate(pieces):
                start_line = base_line + piece.line_offset
                yield ChunkRecord(
                    id=compute_chunk_id(piece.text, index),
                    file_path=file_path,
                    language=driver.label(),
                    chunk_type=chunk.kind,
                    chunk_name=chunk.name,
                    context=chunk.context,
                    signature=chunk.signature,
                    comment=chunk.comment,
                    code=piece.text,
                    start_line=start_line,
                    end_line=start_line + piece.line_count - 1,
                    token_count=piece.token_count,
                )