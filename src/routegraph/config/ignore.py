"""Paths that file discovery never looks at.

Two layers are applied: a fixed set of build, dependency and tool
directories common to front-end projects, and the project's own
``.gitignore`` (compiled with ``pathspec``).
"""

from __future__ import annotations

import fnmatch
import functools
import re
from pathlib import Path, PurePosixPath

import pathspec

IGNORED_DIRECTORIES: frozenset[str] = frozenset(
    {
        "node_modules",
        ".git",
        ".hg",
        "dist",
        "build",
        "coverage",
        ".next",
        ".nuxt",
        ".svelte-kit",
        "out",
        ".turbo",
        ".cache",
        ".parcel-cache",
        ".routegraph-cache",
        ".idea",
        ".vscode",
        "storybook-static",
    }
)

# Generated or vendored sources that never declare routes.
IGNORED_FILE_GLOBS: tuple[str, ...] = ("*.min.js", "*.bundle.js", "*.d.ts", "*.chunk.js")

DEFAULT_IGNORE_PATTERNS: frozenset[str] = IGNORED_DIRECTORIES | frozenset(IGNORED_FILE_GLOBS)

_FILE_GLOB_RE = re.compile("|".join(fnmatch.translate(glob) for glob in IGNORED_FILE_GLOBS))

@functools.lru_cache(maxsize=32)
def _compile_gitignore(patterns: tuple[str, ...]) -> pathspec.PathSpec:
    return pathspec.PathSpec.from_lines("gitwildmatch", patterns)

def should_ignore(
    path: str | Path,
    gitignore_patterns: list[str] | None = None,
) -> bool:
    """Return ``True`` if *path* should be skipped during file discovery.

    Parameters
    ----------
    path:
        A project-relative path (e.g. ``src/App.tsx`` or
        ``node_modules/react/index.js``).
    gitignore_patterns:
        Patterns returned by :func:`load_gitignore`.
    """
    posix = PurePosixPath(Path(path).as_posix())
    if any(part in IGNORED_DIRECTORIES for part in posix.parts):
        return True
    if _FILE_GLOB_RE.match(posix.name):
        return True
    if gitignore_patterns:
        return _compile_gitignore(tuple(gitignore_patterns)).match_file(str(posix))
    return False

def load_gitignore(repo_path: Path) -> list[str]:
    """Return the non-comment lines of ``<repo_path>/.gitignore``.

    A missing or unreadable file yields an empty list.
    """
    try:
        text = (repo_path / ".gitignore").read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return []
    return [
        line
        for line in (raw.strip() for raw in text.splitlines())
        if line and not line.startswith("#")
    ]
