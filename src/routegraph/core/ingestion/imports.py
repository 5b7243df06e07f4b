"""Import specifier resolution.

Turns the raw specifier of an ``import`` / ``require`` / ``import()`` into
a project-relative POSIX path, or ``None`` for external packages and
specifiers whose target does not exist.
"""

from __future__ import annotations

import logging
import posixpath
from collections.abc import Iterable, Mapping
from pathlib import Path

from routegraph.config.settings import DEFAULT_ALIASES, DEFAULT_EXTENSIONS

logger = logging.getLogger(__name__)

class ImportResolver:
    """Resolve import specifiers against the files of one project.

    Args:
        root: Project root directory.
        aliases: Prefix substitutions applied before resolution, e.g.
            ``{"@/": "src/"}``.  Longer prefixes are tried first.
        extensions: Extensions appended to extension-less candidates.
        known_files: Optional set of project-relative paths.  When given,
            candidates are checked against it instead of the file system.
    """

    def __init__(
        self,
        root: Path,
        aliases: Mapping[str, str] | None = None,
        extensions: Iterable[str] = DEFAULT_EXTENSIONS,
        known_files: set[str] | None = None,
    ) -> None:
        self.root = root
        alias_map = dict(DEFAULT_ALIASES if aliases is None else aliases)
        self._aliases = sorted(alias_map.items(), key=lambda item: len(item[0]), reverse=True)
        self._extensions = tuple(extensions)
        self._known_files = known_files

    def is_resolvable(self, specifier: str) -> bool:
        """Return ``True`` if *specifier* is relative or uses a known alias."""
        if specifier.startswith(("./", "../")) or specifier in (".", ".."):
            return True
        return any(specifier.startswith(prefix) for prefix, _ in self._aliases)

    def resolve(self, from_file: str, specifier: str) -> str | None:
        """Resolve *specifier* as imported from *from_file*.

        Args:
            from_file: Project-relative path of the importing file
                (e.g. ``"src/a/b.ts"``).
            specifier: The module string as written (e.g. ``"../c"``).

        Returns:
            The project-relative path of the first existing candidate, or
            ``None`` for bare specifiers, misses, and paths outside the root.
        """
        base = self._base_path(from_file, specifier)
        if base is None:
            return None
        return self._try_paths(base)

    def _base_path(self, from_file: str, specifier: str) -> str | None:
        specifier = specifier.split("?", 1)[0]
        if specifier.startswith(("./", "../")) or specifier in (".", ".."):
            joined = posixpath.join(posixpath.dirname(from_file), specifier)
        else:
            for prefix, target in self._aliases:
                if specifier.startswith(prefix):
                    joined = target + specifier[len(prefix):]
                    break
            else:
                return None

        normalized = posixpath.normpath(joined)
        if normalized == ".." or normalized.startswith("../") or posixpath.isabs(normalized):
            logger.debug("Import %r from %s escapes the project root", specifier, from_file)
            return None
        return normalized

    def _try_paths(self, base_path: str) -> str | None:
        """Try common JS/TS file resolution patterns for *base_path*.

        Checks in order:
        1. ``base_path`` as-is (already has extension)
        2. ``base_path`` + each known extension
        3. ``base_path/index`` + each known extension
        """
        if base_path != "." and self._is_file(base_path):
            return base_path

        for ext in self._extensions:
            candidate = f"{base_path}{ext}"
            if self._is_file(candidate):
                return candidate

        index_base = "index" if base_path == "." else f"{base_path}/index"
        for ext in self._extensions:
            candidate = f"{index_base}{ext}"
            if self._is_file(candidate):
                return candidate

        return None

    def _is_file(self, rel_path: str) -> bool:
        if self._known_files is not None:
            return rel_path in self._known_files
        return (self.root / rel_path).is_file()
