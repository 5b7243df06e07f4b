"""TypeScript / TSX / JavaScript parsing via tree-sitter.

:class:`SyntaxParser` selects a grammar from the file extension and hides
every parser failure behind :class:`ParseFailure`.  ``.tsx`` and ``.jsx``
share the markup-aware TSX grammar, which is also the single retry target
when the extension's own grammar fails.
"""

from __future__ import annotations

import logging

import tree_sitter_javascript as tsjavascript
import tree_sitter_typescript as tstypescript
from tree_sitter import Language, Parser

from routegraph.config.languages import FALLBACK_GRAMMAR, SUPPORTED_EXTENSIONS
from routegraph.core.parsers.base import ParseFailure, SyntaxTree

logger = logging.getLogger(__name__)

TS_LANGUAGE = Language(tstypescript.language_typescript())
TSX_LANGUAGE = Language(tstypescript.language_tsx())
JS_LANGUAGE = Language(tsjavascript.language())

_GRAMMARS: dict[str, Language] = {
    "typescript": TS_LANGUAGE,
    "tsx": TSX_LANGUAGE,
    "javascript": JS_LANGUAGE,
}

class SyntaxParser:
    """Parse source text into a :class:`SyntaxTree` or a :class:`ParseFailure`.

    One tree-sitter ``Parser`` is created lazily per grammar and reused.
    Instances are not thread-safe; parse from a single thread.
    """

    def __init__(self) -> None:
        self._parsers: dict[str, Parser] = {}

    def parse(self, content: str, extension: str) -> SyntaxTree | ParseFailure:
        """Parse *content* using the grammar for *extension* (e.g. ``".tsx"``).

        Never raises.  The returned tree may contain error nodes.
        """
        ext = extension.lower() if extension.startswith(".") else f".{extension.lower()}"
        if ext not in SUPPORTED_EXTENSIONS:
            return ParseFailure("unsupported", f"no grammar for {ext!r}")
        grammar = SUPPORTED_EXTENSIONS[ext]
        if grammar is None:
            return ParseFailure("convention-only", ext)
        if "\0" in content:
            return ParseFailure("binary", "content contains a null byte")

        source = content.encode("utf-8", errors="replace")

        try:
            tree = self._parse_with(grammar, source)
        except Exception as exc:  # tree-sitter surfaces ValueError/RuntimeError
            logger.debug("%s grammar raised on %s input: %s", grammar, ext, exc)
            tree = None

        if grammar == FALLBACK_GRAMMAR:
            if tree is None:
                return ParseFailure("parser-error", f"{grammar} grammar failed")
            return tree

        if tree is not None and not tree.has_errors:
            return tree

        try:
            retry = self._parse_with(FALLBACK_GRAMMAR, source)
        except Exception as exc:
            logger.debug("Fallback %s grammar raised: %s", FALLBACK_GRAMMAR, exc)
            retry = None

        if retry is not None and (tree is None or not retry.has_errors):
            return retry
        if tree is not None:
            return tree
        return ParseFailure("parser-error", f"{grammar} and {FALLBACK_GRAMMAR} grammars failed")

    def _parse_with(self, grammar: str, source: bytes) -> SyntaxTree:
        parser = self._parsers.get(grammar)
        if parser is None:
            parser = Parser(_GRAMMARS[grammar])
            self._parsers[grammar] = parser
        ts_tree = parser.parse(source)
        return SyntaxTree(root=ts_tree.root_node, grammar=grammar)
