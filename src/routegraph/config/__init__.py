"""routegraph configuration: analyzer settings, ignore patterns, grammars."""

from routegraph.config.ignore import DEFAULT_IGNORE_PATTERNS, load_gitignore, should_ignore
from routegraph.config.languages import SUPPORTED_EXTENSIONS, get_grammar, is_supported
from routegraph.config.settings import AnalyzerConfig
from routegraph.config.tsconfig import load_tsconfig_aliases

__all__ = [
    "DEFAULT_IGNORE_PATTERNS",
    "SUPPORTED_EXTENSIONS",
    "AnalyzerConfig",
    "get_grammar",
    "is_supported",
    "load_gitignore",
    "load_tsconfig_aliases",
    "should_ignore",
]
