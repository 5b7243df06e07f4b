"""Alias discovery from ``tsconfig.json`` / ``jsconfig.json``."""

from __future__ import annotations

import json
import logging
import posixpath
from pathlib import Path

logger = logging.getLogger(__name__)

_CONFIG_NAMES = ("tsconfig.json", "jsconfig.json")

def strip_json_comments(text: str) -> str:
    """Remove ``//`` and ``/* */`` comments from JSON-like text."""
    out: list[str] = []
    in_str = False
    escape = False
    idx = 0
    while idx < len(text):
        ch = text[idx]
        if in_str:
            out.append(ch)
            if escape:
                escape = False
            elif ch == "\\":
                escape = True
            elif ch == '"':
                in_str = False
            idx += 1
            continue
        if ch == '"':
            in_str = True
            out.append(ch)
            idx += 1
            continue
        if ch == "/" and idx + 1 < len(text):
            nxt = text[idx + 1]
            if nxt == "/":
                idx = text.find("\n", idx + 2)
                if idx == -1:
                    break
                continue
            if nxt == "*":
                end = text.find("*/", idx + 2)
                if end == -1:
                    break
                idx = end + 2
                continue
        out.append(ch)
        idx += 1
    return "".join(out)

def load_tsconfig_aliases(repo_path: Path) -> dict[str, str]:
    """Return prefix aliases derived from ``compilerOptions.paths``.

    Only wildcard entries (``"@/*": ["./src/*"]``) are prefix substitutions,
    so exact-key entries are ignored.  The first target of each key wins.
    Missing or unparsable config files yield ``{}``.

    ``"@/*": ["./src/*"]`` with ``baseUrl: "."`` becomes ``{"@/": "src/"}``.
    """
    for name in _CONFIG_NAMES:
        config_path = repo_path / name
        if not config_path.is_file():
            continue
        try:
            payload = json.loads(strip_json_comments(config_path.read_text(encoding="utf-8")))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            logger.debug("Failed to parse %s: %s", config_path, exc)
            continue
        if not isinstance(payload, dict):
            continue

        compiler = payload.get("compilerOptions")
        if not isinstance(compiler, dict):
            continue
        base_url = compiler.get("baseUrl") or "."
        paths = compiler.get("paths")
        if not isinstance(base_url, str) or not isinstance(paths, dict):
            continue

        aliases: dict[str, str] = {}
        for key, targets in paths.items():
            if not isinstance(key, str) or not key.endswith("/*") or key == "*":
                continue
            if isinstance(targets, str):
                targets = [targets]
            if not isinstance(targets, list):
                continue
            for target in targets:
                if not isinstance(target, str) or not target.endswith("*"):
                    continue
                prefix = _normalize_target(base_url, target[:-1])
                if prefix is None:
                    continue
                aliases[key[:-1]] = prefix
                break

        if aliases:
            logger.debug("Loaded %d alias(es) from %s", len(aliases), name)
            return aliases
    return {}

def _normalize_target(base_url: str, target: str) -> str | None:
    """Join *base_url* and *target* into a project-relative directory prefix."""
    joined = posixpath.normpath(posixpath.join(base_url, target))
    if joined.startswith("..") or posixpath.isabs(joined):
        return None
    if joined == ".":
        return ""
    return joined.rstrip("/") + "/"
