"""
Language drivers for Tree-sitter assisted chunking.

A driver bundles everything the extractor needs to know about one language:
the grammar, the declaration query, the node kinds that open a named scope,
and how to read a declaration's name. Adding a language means registering one
more :class:`LanguageDriver` subclass.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import ClassVar, Dict, FrozenSet, List, Optional, Tuple, Type

from tree_sitter import Language, Node  # type: ignore[import]

from ..logger import get_logger

log = get_logger(__name__)

_KIND_SUFFIXES: Tuple[str, ...] = ("_item", "_definition")


def clean_kind(kind: str) -> str:
    """Strip grammar-specific suffixes so ``function_item`` reads ``function``."""
    for suffix in _KIND_SUFFIXES:
        kind = kind.replace(suffix, "")
    return kind


def node_text(node: Node, source: bytes) -> str:
    return source[node.start_byte : node.end_byte].decode("utf-8", errors="replace")


class LanguageDriver(ABC):
    """Capability bundle for one language family."""

    extensions: ClassVar[Tuple[str, ...]] = ()
    scope_kinds: ClassVar[FrozenSet[str]] = frozenset()

    def __init__(self) -> None:
        self._language: Optional[Language] = None

    @abstractmethod
    def _load_grammar(self) -> object:
        """Return the raw grammar pointer exposed by the grammar wheel."""

    @abstractmethod
    def query(self) -> str:
        """Tree-sitter query whose ``@chunk`` captures are declarations."""

    @abstractmethod
    def label(self) -> str:
        """Human readable language label written to each record."""

    def grammar(self) -> Language:
        if self._language is None:
            self._language = Language(self._load_grammar())
            log.debug("grammar_loaded", language=self.label())
        return self._language

    def extract_name(self, node: Node, source: bytes) -> Optional[str]:
        name_node = node.child_by_field_name("name")
        if name_node is not None:
            return node_text(name_node, source)
        return None

    def __repr__(self) -> str:
        return f"{type(self).__name__}(label={self.label()!r})"


class RustDriver(LanguageDriver):
    extensions = ("rs",)
    scope_kinds = frozenset(
        {
            "function_item",
            "struct_item",
            "enum_item",
            "impl_item",
            "mod_item",
            "trait_item",
        }
    )

    def _load_grammar(self) -> object:
        import tree_sitter_rust  # type: ignore[import]

        return tree_sitter_rust.language()

    def query(self) -> str:
        return (
            "[ (function_item) (struct_item) (enum_item) (impl_item)"
            " (mod_item) (trait_item) ] @chunk"
        )

    def label(self) -> str:
        return "Rust"

    def extract_name(self, node: Node, source: bytes) -> Optional[str]:
        name = super().extract_name(node, source)
        if name is not None:
            return name
        # impl blocks are anonymous; name them after the implemented type.
        if node.type == "impl_item":
            type_node = node.child_by_field_name("type")
            if type_node is not None:
                return node_text(type_node, source)
        return None


class PythonDriver(LanguageDriver):
    extensions = ("py", "pyi")
    scope_kinds = frozenset({"function_definition", "class_definition"})

    def _load_grammar(self) -> object:
        import tree_sitter_python  # type: ignore[import]

        return tree_sitter_python.language()

    def query(self) -> str:
        return "[ (function_definition) (class_definition) ] @chunk"

    def label(self) -> str:
        return "Python"


_DRIVER_TYPES: Tuple[Type[LanguageDriver], ...] = (RustDriver, PythonDriver)


def _build_registry(
    driver_types: Tuple[Type[LanguageDriver], ...],
) -> Dict[str, LanguageDriver]:
    registry: Dict[str, LanguageDriver] = {}
    for driver_type in driver_types:
        driver = driver_type()
        for extension in driver_type.extensions:
            registry[extension] = driver
    return registry


_REGISTRY = _build_registry(_DRIVER_TYPES)


def normalize_extension(extension: str) -> str:
    return extension.strip().lstrip(".").lower()


def get_driver(extension: str) -> Optional[LanguageDriver]:
    """Return the driver for ``extension`` (``".rs"``, ``"RS"``...) or None."""
    return _REGISTRY.get(normalize_extension(extension))


def supported_extensions() -> List[Tuple[str, str]]:
    """``(extension, label)`` pairs for every registered driver."""
    return sorted(
        (extension, driver.label()) for extension, driver in _REGISTRY.items()
    )
