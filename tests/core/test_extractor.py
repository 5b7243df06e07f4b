"""Tests for per-file fact extraction."""

from __future__ import annotations

from pathlib import Path

import pytest

from routegraph.core.graph.model import FileFact
from routegraph.core.ingestion.extractor import FactExtractor
from routegraph.core.ingestion.imports import ImportResolver
from routegraph.core.ingestion.recognizers import RecognizerContext, RouteRecognizer
from routegraph.core.storage.graph_store import content_hash

KNOWN_FILES = {
    "src/pages/Home.tsx",
    "src/pages/About.tsx",
    "src/pages/Users.tsx",
    "src/components/Button.tsx",
    "src/utils/format.ts",
    "src/legacy/config.js",
}


@pytest.fixture()
def extractor(tmp_path: Path) -> FactExtractor:
    return FactExtractor(ImportResolver(tmp_path, known_files=KNOWN_FILES))


def extract(extractor: FactExtractor, content: str, path: str = "src/routes.tsx") -> FileFact:
    return extractor.extract_source(path, content)


# ---------------------------------------------------------------------------
# Imports
# ---------------------------------------------------------------------------


class TestImports:
    def test_static_imports_are_resolved(self, extractor: FactExtractor) -> None:
        content = (
            'import React from "react";\n'
            'import Home from "./pages/Home";\n'
            'import { Button } from "@/components/Button";\n'
        )
        fact = extract(extractor, content)
        assert [(e.specifier, e.source, e.line) for e in fact.imports] == [
            ("react", None, 1),
            ("./pages/Home", "src/pages/Home.tsx", 2),
            ("@/components/Button", "src/components/Button.tsx", 3),
        ]
        assert fact.resolved_imports == ["src/pages/Home.tsx", "src/components/Button.tsx"]

    def test_side_effect_import(self, extractor: FactExtractor) -> None:
        fact = extract(extractor, 'import "./utils/format";\n')
        assert fact.resolved_imports == ["src/utils/format.ts"]

    def test_type_only_import(self, extractor: FactExtractor) -> None:
        fact = extract(extractor, 'import type { Props } from "./components/Button";\n')
        assert fact.resolved_imports == ["src/components/Button.tsx"]

    def test_dynamic_imports(self, extractor: FactExtractor) -> None:
        content = (
            'const Users = lazy(() => import("./pages/Users"));\n'
            "async function load() {\n"
            '  return await import("./pages/About");\n'
            "}\n"
        )
        fact = extract(extractor, content)
        assert [(e.source, e.kind) for e in fact.imports] == [
            ("src/pages/Users.tsx", "dynamic"),
            ("src/pages/About.tsx", "dynamic"),
        ]

    def test_reexports_are_edges(self, extractor: FactExtractor) -> None:
        content = (
            'export { Button } from "./components/Button";\n'
            'export * from "./utils/format";\n'
        )
        fact = extract(extractor, content, path="src/index.ts")
        assert fact.resolved_imports == ["src/components/Button.tsx", "src/utils/format.ts"]

    def test_require(self, extractor: FactExtractor) -> None:
        content = 'const config = require("./legacy/config");\nconst x = other("./pages/Home");\n'
        fact = extract(extractor, content, path="src/server.js")
        assert fact.resolved_imports == ["src/legacy/config.js"]

    def test_non_literal_dynamic_import_is_ignored(self, extractor: FactExtractor) -> None:
        fact = extract(extractor, "const mod = import(`./pages/${name}`);\n")
        assert fact.imports == []


# ---------------------------------------------------------------------------
# Exports
# ---------------------------------------------------------------------------


class TestExports:
    def test_declarations_and_clauses(self, extractor: FactExtractor) -> None:
        content = (
            "export const a = 1, b = 2;\n"
            "export function Card() { return null; }\n"
            "export class Store {}\n"
            "export interface Props {}\n"
            "export type Id = string;\n"
            "const c = 3;\n"
            "export { c as renamed };\n"
            "export default Card;\n"
        )
        fact = extract(extractor, content, path="src/components/Card.tsx")
        assert fact.exports == ["a", "b", "Card", "Store", "Props", "Id", "renamed", "default"]

    def test_default_function(self, extractor: FactExtractor) -> None:
        fact = extract(extractor, "export default function Home() { return <div />; }\n")
        assert fact.exports == ["default"]


# ---------------------------------------------------------------------------
# Routes and skipped content
# ---------------------------------------------------------------------------


class TestRoutes:
    def test_routes_from_every_recognizer(self, extractor: FactExtractor) -> None:
        content = (
            'const routes = [{ path: "/users", element: <Users /> }];\n'
            'const el = <Route path="/about" element={<About />} />;\n'
        )
        fact = extract(extractor, content, path="app/settings/page.tsx")
        assert sorted(fact.route_paths) == ["/about", "/settings", "/users"]

    def test_convention_only_file(self, extractor: FactExtractor) -> None:
        fact = extract(extractor, "<script>export let data;</script>", path="src/routes/blog/+page.svelte")
        assert fact.route_paths == ["/blog"]
        assert fact.imports == []

    def test_broken_recognizer_does_not_abort(self, tmp_path: Path) -> None:
        class Exploding(RouteRecognizer):
            name = "exploding"

            def recognize(self, ctx: RecognizerContext):
                raise RuntimeError("boom")

        extractor = FactExtractor(
            ImportResolver(tmp_path, known_files=KNOWN_FILES),
            recognizers=[Exploding()],
        )
        fact = extract(extractor, 'import Home from "./pages/Home";\n')
        assert fact.routes == []
        assert fact.resolved_imports == ["src/pages/Home.tsx"]

    def test_content_hash_is_recorded(self, extractor: FactExtractor) -> None:
        content = "export const a = 1;\n"
        assert extract(extractor, content).content_hash == content_hash(content)


class TestSkippedContent:
    def test_null_byte(self, extractor: FactExtractor) -> None:
        fact = extract(extractor, 'import Home from "./pages/Home";\0')
        assert fact.imports == []
        assert fact.routes == []
        assert fact.content_hash == ""

    def test_oversize(self, tmp_path: Path) -> None:
        extractor = FactExtractor(ImportResolver(tmp_path, known_files=KNOWN_FILES), max_file_size=64)
        content = 'import Home from "./pages/Home";\n' + "// padding\n" * 20
        fact = extract(extractor, content)
        assert fact.imports == []
        assert fact.content_hash == ""

    def test_syntax_errors_still_yield_facts(self, extractor: FactExtractor) -> None:
        content = 'import Home from "./pages/Home";\nconst = ;\n'
        fact = extract(extractor, content)
        assert fact.resolved_imports == ["src/pages/Home.tsx"]
