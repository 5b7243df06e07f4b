"""Shared fixtures: small front-end projects written to ``tmp_path``."""

from __future__ import annotations

from pathlib import Path

import pytest


def write_files(root: Path, files: dict[str, str]) -> Path:
    """Write ``{relative_path: content}`` below *root* and return *root*."""
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return root


SAMPLE_APP: dict[str, str] = {
    "package.json": '{"name": "shop", "dependencies": {"react": "^18", "react-router-dom": "^6"}}',
    "src/main.tsx": (
        'import { createRoot } from "react-dom/client";\n'
        'import App from "./App";\n'
        'createRoot(document.getElementById("root")!).render(<App />);\n'
    ),
    "src/App.tsx": (
        'import { AppRoutes } from "./routes";\n'
        "export default function App() {\n"
        "  return <AppRoutes />;\n"
        "}\n"
    ),
    "src/routes.tsx": (
        'import { lazy } from "react";\n'
        'import { Route, Routes } from "react-router-dom";\n'
        'import Home from "./pages/Home";\n'
        'import { About as AboutPage } from "./pages/About";\n'
        'const Users = lazy(() => import("./pages/Users"));\n'
        "\n"
        "export function AppRoutes() {\n"
        "  return (\n"
        "    <Routes>\n"
        '      <Route path="/" element={<Home />} />\n'
        '      <Route path="/about" element={<AboutPage />} />\n'
        '      <Route path="/users" element={<Users />} />\n'
        "    </Routes>\n"
        "  );\n"
        "}\n"
    ),
    "src/pages/Home.tsx": (
        'import { Button } from "../components/Button";\n'
        "export default function Home() {\n"
        "  return <Button />;\n"
        "}\n"
    ),
    "src/pages/About.tsx": (
        "export function About() {\n"
        "  return <div>About</div>;\n"
        "}\n"
    ),
    "src/pages/Users.tsx": (
        'import { Button } from "@/components/Button";\n'
        'import { formatName } from "../utils/format";\n'
        "export default function Users() {\n"
        '  return <Button label={formatName(" ada ")} />;\n'
        "}\n"
    ),
    "src/components/Button.tsx": (
        "export const Button = (props: { label?: string }) => <button>{props.label}</button>;\n"
    ),
    "src/utils/format.ts": (
        "export function formatName(name: string): string {\n"
        "  return name.trim();\n"
        "}\n"
    ),
    "src/orphan.ts": "export const unused = 1;\n",
}

ALL_SAMPLE_ROUTES = ["/", "/about", "/users"]


@pytest.fixture()
def sample_app(tmp_path: Path) -> Path:
    """A React Router project with one route file and a few components.

    Layout::

        src/main.tsx          -> App
        src/App.tsx           -> routes
        src/routes.tsx        routes "/", "/about", "/users"
        src/pages/Home.tsx    -> components/Button
        src/pages/About.tsx
        src/pages/Users.tsx   -> components/Button (via "@/"), utils/format
        src/components/Button.tsx
        src/utils/format.ts
        src/orphan.ts         imported by nothing
    """
    root = tmp_path / "shop"
    root.mkdir()
    return write_files(root, SAMPLE_APP)


@pytest.fixture()
def make_project(tmp_path: Path):
    """Return a factory writing ``{path: content}`` into a fresh project root."""
    counter = 0

    def _make(files: dict[str, str], name: str = "") -> Path:
        nonlocal counter
        counter += 1
        root = tmp_path / (name or f"project{counter}")
        root.mkdir()
        return write_files(root, files)

    return _make
