"""Project framework detection from ``package.json``."""

from __future__ import annotations

import json
import logging
from pathlib import Path

logger = logging.getLogger(__name__)

REACT_ROUTER = "react-router"
NEXTJS = "nextjs"
VUEJS = "vuejs"
SVELTEKIT = "sveltekit"
UNKNOWN = "unknown"

# Checked in order; the first package present wins.
_FRAMEWORK_PACKAGES: tuple[tuple[str, tuple[str, ...]], ...] = (
    (REACT_ROUTER, ("react-router", "react-router-dom")),
    (NEXTJS, ("next",)),
    (VUEJS, ("vue", "vue-router", "nuxt")),
    (SVELTEKIT, ("@sveltejs/kit",)),
)

def detect_framework(repo_path: Path) -> str:
    """Return the routing framework declared in ``package.json``.

    ``dependencies`` and ``devDependencies`` are both considered.  A missing
    or unreadable manifest yields ``"unknown"``.
    """
    manifest = repo_path / "package.json"
    try:
        payload = json.loads(manifest.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return UNKNOWN
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        logger.debug("Could not read %s: %s", manifest, exc)
        return UNKNOWN
    if not isinstance(payload, dict):
        return UNKNOWN

    deps: dict[str, object] = {}
    for section in ("dependencies", "devDependencies"):
        value = payload.get(section)
        if isinstance(value, dict):
            deps.update(value)

    for framework, packages in _FRAMEWORK_PACKAGES:
        if any(pkg in deps for pkg in packages):
            logger.debug("Detected %s project", framework)
            return framework
    return UNKNOWN
