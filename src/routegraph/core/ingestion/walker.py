"""File system walker for discovering and reading front-end source files."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from routegraph.config.ignore import should_ignore
from routegraph.config.languages import is_supported

logger = logging.getLogger(__name__)

DEFAULT_MAX_FILE_SIZE = 1024 * 1024

def to_relative(repo_path: Path, file_path: str | Path) -> str | None:
    """Return *file_path* as a POSIX path relative to *repo_path*.

    Absolute paths outside the repository yield ``None``; relative paths
    are taken to be relative to the repository already.
    """
    path = Path(file_path)
    if path.is_absolute():
        try:
            path = path.resolve().relative_to(repo_path.resolve())
        except ValueError:
            return None
    rel = path.as_posix()
    while rel.startswith("./"):
        rel = rel[2:]
    return rel

def discover_files(
    repo_path: Path,
    gitignore_patterns: list[str] | None = None,
) -> list[str]:
    """Discover analysable source files without reading their content.

    Parameters
    ----------
    repo_path:
        Root directory of the project to walk.
    gitignore_patterns:
        Optional list of gitignore-style patterns (e.g. from
        :func:`routegraph.config.ignore.load_gitignore`).

    Returns
    -------
    list[str]
        Sorted project-relative POSIX paths.
    """
    repo_path = repo_path.resolve()
    discovered: list[str] = []

    for dirpath, dirnames, filenames in os.walk(repo_path):
        base = Path(dirpath).relative_to(repo_path)
        # Prune ignored directories so node_modules is never descended into.
        dirnames[:] = sorted(
            d for d in dirnames if not should_ignore(base / d, gitignore_patterns)
        )
        for name in filenames:
            relative = base / name
            if not is_supported(name) or should_ignore(relative, gitignore_patterns):
                continue
            discovered.append(relative.as_posix())

    discovered.sort()
    return discovered

def read_source(
    repo_path: Path,
    rel_path: str,
    max_file_size: int = DEFAULT_MAX_FILE_SIZE,
) -> str | None:
    """Read one file, or return ``None`` if it should not be analysed.

    Returns ``None`` for missing, unreadable, oversize and binary files
    (anything that is not UTF-8 or contains a NUL byte).
    """
    path = repo_path / rel_path
    try:
        if path.stat().st_size > max_file_size:
            logger.debug("Skipping %s: larger than %d bytes", rel_path, max_file_size)
            return None
        content = path.read_text(encoding="utf-8")
    except (UnicodeDecodeError, OSError) as exc:
        logger.debug("Cannot read %s: %s", rel_path, exc)
        return None

    if "\0" in content:
        logger.debug("Skipping %s: binary content", rel_path)
        return None
    return content
