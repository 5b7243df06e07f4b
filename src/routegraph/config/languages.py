"""Grammar selection based on file extensions."""

from __future__ import annotations

from pathlib import PurePosixPath

# Extension -> tree-sitter grammar.  ``None`` marks convention-only files whose
# routes come from their path alone.
SUPPORTED_EXTENSIONS: dict[str, str | None] = {
    ".ts": "typescript",
    ".tsx": "tsx",
    ".jsx": "tsx",
    ".js": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".vue": None,
    ".svelte": None,
}

# Markup-aware grammar used as the single retry target on parse trouble.
FALLBACK_GRAMMAR = "tsx"

def get_grammar(file_path: str) -> str | None:
    """Return the grammar name for *file_path*, or ``None`` when it has none.

    ``None`` is returned both for convention-only files (``.vue``,
    ``.svelte``) and for unsupported extensions; use :func:`is_supported` to
    tell them apart.
    """
    return SUPPORTED_EXTENSIONS.get(PurePosixPath(file_path).suffix.lower())

def is_supported(file_path: str) -> bool:
    """Return ``True`` if *file_path* has an extension routegraph analyses."""
    return PurePosixPath(file_path).suffix.lower() in SUPPORTED_EXTENSIONS

def is_convention_only(file_path: str) -> bool:
    """Return ``True`` for files analysed by path conventions only."""
    suffix = PurePosixPath(file_path).suffix.lower()
    return suffix in SUPPORTED_EXTENSIONS and SUPPORTED_EXTENSIONS[suffix] is None
