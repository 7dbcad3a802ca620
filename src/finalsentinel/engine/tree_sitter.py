from __future__ import annotations

import threading
from collections.abc import Callable
from functools import lru_cache
from typing import Any, Protocol, cast


class _ParserLike(Protocol):
    language: Any

    def parse(self, source: bytes) -> Any: ...


_parser_cls: type[_ParserLike] | None
_get_language_func: Callable[[str], object] | None

try:  # pragma: no cover
    from tree_sitter import Parser as _TreeSitterParser
    from tree_sitter_language_pack import get_language as _tree_sitter_get_language
except (ImportError, OSError):  # pragma: no cover
    _parser_cls = None
    _get_language_func = None
else:  # pragma: no cover (depends on installed grammars)
    _parser_cls = cast(type[_ParserLike], _TreeSitterParser)
    _get_language_func = cast(Callable[[str], object], _tree_sitter_get_language)

_TREE_SITTER_AVAILABLE = _parser_cls is not None and _get_language_func is not None

# Exposed for tests to monkeypatch.
Parser: type[_ParserLike] | None = _parser_cls
get_language: Callable[[str], object] | None = _get_language_func

JAVA = "java"
MISSING_DEPS_MESSAGE = (
    "tree-sitter dependencies are not installed. Install `tree-sitter` and "
    "`tree-sitter-language-pack` to parse Java sources."
)


class TreeSitterError(RuntimeError):
    """Raised when tree-sitter cannot load a language or parse source."""


@lru_cache(maxsize=8)
def _get_language(language: str) -> object:
    if not _TREE_SITTER_AVAILABLE:  # pragma: no cover
        raise TreeSitterError(MISSING_DEPS_MESSAGE)
    try:
        assert get_language is not None
        return get_language(language)
    except (AttributeError, KeyError, ValueError, LookupError, RuntimeError) as exc:  # pragma: no cover
        raise TreeSitterError(f"tree-sitter language not available: {language!r}") from exc


_PARSER_LOCAL = threading.local()


def _get_parser(language: str) -> _ParserLike:
    """
    Return a per-thread Parser instance for the requested language.

    tree-sitter Parser objects are not thread-safe, so each worker thread
    building file contexts gets its own.
    """

    if not _TREE_SITTER_AVAILABLE:
        raise TreeSitterError(MISSING_DEPS_MESSAGE)

    parsers: dict[str, _ParserLike] | None = getattr(_PARSER_LOCAL, "parsers", None)
    if parsers is None:
        parsers = {}
        _PARSER_LOCAL.parsers = parsers

    parser = parsers.get(language)
    if parser is not None:
        return parser

    lang = _get_language(language)
    assert Parser is not None
    parser = Parser()
    parser.language = lang
    parsers[language] = parser
    return parser


def parse(source: bytes, *, language: str = JAVA) -> Any:
    """
    Parse source bytes with tree-sitter and return the raw tree.

    Raises TreeSitterError if the grammar cannot be loaded or parsing fails.
    """

    parser = _get_parser(language)
    try:
        return parser.parse(source)
    except (ValueError, TypeError, RuntimeError) as exc:  # pragma: no cover
        raise TreeSitterError(f"tree-sitter failed to parse {language} source: {exc}") from exc


def is_available() -> bool:
    return _TREE_SITTER_AVAILABLE
