"""Analyzer configuration.

All tunables of the engine live on :class:`AnalyzerConfig`.  The CLI builds
one from its options; library callers construct it directly or through
:meth:`AnalyzerConfig.from_env`.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field, replace

from routegraph.errors import ConfigError

DEFAULT_ALIASES: dict[str, str] = {
    "@/": "src/",
    "src/": "src/",
}

DEFAULT_EXTENSIONS: tuple[str, ...] = (".tsx", ".ts", ".jsx", ".js")

_ENV_PREFIX = "ROUTEGRAPH_"
_FALSE_VALUES = frozenset({"", "0", "false", "no", "off"})
_DISABLED_VALUES = frozenset({"none", "off", "disabled", "-1"})

@dataclass(frozen=True)
class AnalyzerConfig:
    """Tunables for parsing, graph construction and impact resolution.

    Attributes:
        max_file_size: Files larger than this many bytes are skipped and
            yield an empty fact.
        batch_size: Number of files read and analysed concurrently during a
            full build.
        early_stop_depth: Once a route has been found, BFS stops at nodes
            deeper than this.  ``None`` disables early termination.
        aliases: Import prefix substitutions, e.g. ``{"@/": "src/"}``.
        extensions: Source extensions tried when resolving an import.
        cache_namespace: First segment of the persisted graph key.
        cache_dir: Directory (relative to the project root) used by the
            local byte store.
        prune_stale_edges: Remove reverse edges left behind when a file
            stops importing something.  Off by default; stale edges are
            corrected on the next full rebuild.
        load_tsconfig_paths: Merge ``compilerOptions.paths`` from
            ``tsconfig.json`` / ``jsconfig.json`` into *aliases*.
    """

    max_file_size: int = 1024 * 1024
    batch_size: int = 50
    early_stop_depth: int | None = 3
    aliases: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_ALIASES))
    extensions: tuple[str, ...] = DEFAULT_EXTENSIONS
    cache_namespace: str = "routegraph-cache"
    cache_dir: str = ".routegraph-cache"
    prune_stale_edges: bool = False
    load_tsconfig_paths: bool = True

    def __post_init__(self) -> None:
        if self.max_file_size <= 0:
            raise ConfigError(f"max_file_size must be positive, got {self.max_file_size}")
        if self.batch_size <= 0:
            raise ConfigError(f"batch_size must be positive, got {self.batch_size}")
        if self.early_stop_depth is not None and self.early_stop_depth < 0:
            raise ConfigError(
                f"early_stop_depth must be >= 0 or None, got {self.early_stop_depth}"
            )
        for ext in self.extensions:
            if not ext.startswith("."):
                raise ConfigError(f"extension {ext!r} must start with '.'")
        if not self.cache_namespace.strip("/"):
            raise ConfigError("cache_namespace must not be empty")

    def with_aliases(self, extra: Mapping[str, str]) -> AnalyzerConfig:
        """Return a copy whose aliases are extended by *extra*.

        Keys set explicitly on this config win over *extra*; built-in
        defaults yield to it, so a project's ``tsconfig.json`` can remap
        ``@/``.
        """
        merged = dict(extra)
        for prefix, target in self.aliases.items():
            if prefix in merged and DEFAULT_ALIASES.get(prefix) == target:
                continue
            merged[prefix] = target
        return replace(self, aliases=merged)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> AnalyzerConfig:
        """Build a config from ``ROUTEGRAPH_*`` environment variables.

        Recognised variables: ``MAX_FILE_SIZE``, ``BATCH_SIZE``,
        ``EARLY_STOP_DEPTH`` (``none`` disables), ``ALIASES``
        (``@/=src/,~/=src/``), ``CACHE_NAMESPACE``, ``CACHE_DIR``,
        ``PRUNE_STALE_EDGES`` and ``TSCONFIG_PATHS``.

        Raises:
            ConfigError: If a numeric variable cannot be parsed.
        """
        env = os.environ if environ is None else environ
        kwargs: dict[str, object] = {}

        def get(name: str) -> str | None:
            value = env.get(_ENV_PREFIX + name)
            return value.strip() if value is not None else None

        for name, attr in (("MAX_FILE_SIZE", "max_file_size"), ("BATCH_SIZE", "batch_size")):
            raw = get(name)
            if raw:
                kwargs[attr] = _parse_int(name, raw)

        depth = get("EARLY_STOP_DEPTH")
        if depth:
            kwargs["early_stop_depth"] = (
                None if depth.lower() in _DISABLED_VALUES else _parse_int("EARLY_STOP_DEPTH", depth)
            )

        aliases = get("ALIASES")
        if aliases:
            kwargs["aliases"] = parse_alias_list(aliases)

        for name, attr in (("CACHE_NAMESPACE", "cache_namespace"), ("CACHE_DIR", "cache_dir")):
            raw = get(name)
            if raw:
                kwargs[attr] = raw

        for name, attr in (
            ("PRUNE_STALE_EDGES", "prune_stale_edges"),
            ("TSCONFIG_PATHS", "load_tsconfig_paths"),
        ):
            raw = get(name)
            if raw is not None:
                kwargs[attr] = raw.lower() not in _FALSE_VALUES

        return cls(**kwargs)  # type: ignore[arg-type]

def parse_alias_list(raw: str) -> dict[str, str]:
    """Parse ``"@/=src/,~/=src/"`` into ``{"@/": "src/", "~/": "src/"}``.

    Raises:
        ConfigError: If an entry has no ``=``.
    """
    aliases: dict[str, str] = {}
    for entry in raw.split(","):
        entry = entry.strip()
        if not entry:
            continue
        prefix, sep, target = entry.partition("=")
        if not sep or not prefix.strip():
            raise ConfigError(f"Invalid alias {entry!r}; expected PREFIX=TARGET")
        aliases[prefix.strip()] = target.strip()
    return aliases

def _parse_int(name: str, raw: str) -> int:
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigError(f"{_ENV_PREFIX}{name} must be an integer, got {raw!r}") from exc
