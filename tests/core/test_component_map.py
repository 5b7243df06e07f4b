"""Tests for component-route mapping."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from routegraph.core.analysis.component_map import (
    ComponentRouteMapper,
    RouteComponentMapping,
    collect_import_bindings,
)
from routegraph.core.graph.graph import ImportGraph
from routegraph.core.ingestion.extractor import FactExtractor
from routegraph.core.ingestion.imports import ImportResolver
from routegraph.core.parsers.typescript import SyntaxParser

ALIASES = {"@/": "src/"}

KNOWN_FILES = {
    "src/router.tsx",
    "src/pages/Home.tsx",
    "src/pages/About.tsx",
    "src/pages/Users.tsx",
    "src/pages/Reports.tsx",
    "src/admin/index.ts",
    "src/admin/Dashboard.tsx",
    "src/ui/index.ts",
    "src/ui/Card.tsx",
    "src/components/Button.tsx",
}

ROUTER = (
    'import { lazy } from "react";\n'
    'import Home from "./pages/Home";\n'
    'import { About as AboutPage } from "./pages/About";\n'
    'import * as Admin from "./admin";\n'
    'import { Card } from "@/ui";\n'
    'import Legacy from "./legacy/Legacy";\n'
    'const Users = lazy(() => import("./pages/Users"));\n'
    'const Reports = React.lazy(() => import("@/pages/Reports"));\n'
    "\n"
    "export const routes = [\n"
    '  { path: "/", element: <Home /> },\n'
    '  { path: "/about", element: <AboutPage /> },\n'
    '  { path: "/users", element: <Users /> },\n'
    '  { path: "/reports", element: <Reports /> },\n'
    '  { path: "/admin", element: <Admin.Dashboard /> },\n'
    '  { path: "/cards", element: <Card /> },\n'
    '  { path: "/legacy", element: <Legacy /> },\n'
    '  { path: "/inline", element: <div /> },\n'
    "];\n"
)


class Sources:
    """Mutable stand-in for the file system."""

    def __init__(self, files: dict[str, str]) -> None:
        self.files = dict(files)
        self.reads = 0

    def __call__(self, path: str) -> str | None:
        self.reads += 1
        return self.files.get(path)


@pytest.fixture()
def extractor(tmp_path: Path) -> FactExtractor:
    return FactExtractor(ImportResolver(tmp_path, ALIASES, known_files=KNOWN_FILES))


@pytest.fixture()
def sources() -> Sources:
    return Sources({"src/router.tsx": ROUTER})


@pytest.fixture()
def mapper(extractor: FactExtractor, sources: Sources) -> ComponentRouteMapper:
    graph = ImportGraph()
    graph.upsert("src/router.tsx", extractor.extract_source("src/router.tsx", ROUTER))
    return ComponentRouteMapper(graph, extractor, sources, ALIASES)


# ---------------------------------------------------------------------------
# Import bindings
# ---------------------------------------------------------------------------


class TestCollectImportBindings:
    @pytest.fixture()
    def bindings(self, extractor: FactExtractor):
        tree = SyntaxParser().parse(ROUTER, ".tsx")
        return collect_import_bindings(tree, "src/router.tsx", extractor.resolver.resolve)

    def test_default_import(self, bindings) -> None:
        home = bindings["Home"]
        assert home.import_type == "default"
        assert home.resolved_path == "src/pages/Home.tsx"
        assert home.line == 2

    def test_aliased_named_import(self, bindings) -> None:
        about = bindings["AboutPage"]
        assert about.import_type == "named"
        assert about.imported_name == "About"
        assert about.specifier == "./pages/About"
        assert "About" not in bindings

    def test_namespace_import(self, bindings) -> None:
        admin = bindings["Admin"]
        assert admin.import_type == "namespace"
        assert admin.resolved_path == "src/admin/index.ts"

    def test_lazy_bindings(self, bindings) -> None:
        assert bindings["Users"].import_type == "lazy"
        assert bindings["Users"].resolved_path == "src/pages/Users.tsx"
        assert bindings["Reports"].resolved_path == "src/pages/Reports.tsx"

    def test_dynamic_binding(self, extractor: FactExtractor) -> None:
        source = 'const mod = await import("./pages/Home");\n'
        tree = SyntaxParser().parse(source, ".ts")
        bindings = collect_import_bindings(tree, "src/x.ts", extractor.resolver.resolve)
        assert bindings["mod"].import_type == "dynamic"
        assert bindings["mod"].resolved_path == "src/pages/Home.tsx"

    def test_unresolved_binding_is_kept(self, bindings) -> None:
        assert bindings["Legacy"].resolved_path is None
        assert bindings["lazy"].specifier == "react"


# ---------------------------------------------------------------------------
# Mapper
# ---------------------------------------------------------------------------


class TestLocalNameOf:
    @pytest.mark.parametrize(
        ("component_file", "expected"),
        [
            ("src/pages/Home.tsx", "Home"),
            ("src/pages/About.tsx", "AboutPage"),
            ("src/pages/Users.tsx", "Users"),
            ("src/pages/Reports.tsx", "Reports"),
            ("src/admin/index.ts", "Admin"),
        ],
    )
    def test_exact_resolved_path(
        self, mapper: ComponentRouteMapper, component_file: str, expected: str
    ) -> None:
        assert mapper.local_name_of("src/router.tsx", component_file) == expected

    def test_unresolved_specifier_suffix(self, mapper: ComponentRouteMapper) -> None:
        assert mapper.local_name_of("src/router.tsx", "src/legacy/Legacy.jsx") == "Legacy"

    def test_named_import_through_barrel(self, mapper: ComponentRouteMapper) -> None:
        assert mapper.local_name_of("src/router.tsx", "src/ui/Card.tsx") == "Card"

    def test_not_imported(self, mapper: ComponentRouteMapper) -> None:
        assert mapper.local_name_of("src/router.tsx", "src/components/Button.tsx") is None

    def test_unreadable_route_file(self, mapper: ComponentRouteMapper, sources: Sources) -> None:
        del sources.files["src/router.tsx"]
        assert mapper.local_name_of("src/router.tsx", "src/pages/Home.tsx") is None


class TestMapRouteFile:
    def test_one_mapping_per_route(self, mapper: ComponentRouteMapper) -> None:
        mappings = {m.route_path: m for m in mapper.map_route_file("src/router.tsx")}
        assert mappings["/"] == RouteComponentMapping("/", "Home", "src/pages/Home.tsx", 11)
        assert mappings["/about"].component_path == "src/pages/About.tsx"
        assert mappings["/admin"].component_name == "Admin.Dashboard"
        assert mappings["/admin"].component_path == "src/admin/index.ts"
        assert mappings["/legacy"].component_path is None
        assert mappings["/inline"].component_path is None
        assert len(mappings) == 8

    def test_not_a_route_file(self, mapper: ComponentRouteMapper) -> None:
        assert mapper.map_route_file("src/pages/Home.tsx") == []


class TestImportMapCache:
    def test_cached_while_content_is_unchanged(self, mapper: ComponentRouteMapper) -> None:
        first = mapper.import_map("src/router.tsx")
        assert mapper.import_map("src/router.tsx") is first

    def test_rebuilt_when_fact_changes(self, mapper: ComponentRouteMapper, sources: Sources) -> None:
        mapper.import_map("src/router.tsx")
        edited = 'import Home from "./pages/Home";\n<Route path="/" element={<Home />} />;\n'
        sources.files["src/router.tsx"] = edited
        mapper.graph.upsert("src/router.tsx", mapper.extractor.extract_source("src/router.tsx", edited))
        assert set(mapper.import_map("src/router.tsx")) == {"Home"}

    def test_disk_edit_alone_keeps_cached_map(
        self, mapper: ComponentRouteMapper, sources: Sources
    ) -> None:
        first = mapper.import_map("src/router.tsx")
        sources.files["src/router.tsx"] = 'import Home from "./pages/Home";\n'
        assert mapper.import_map("src/router.tsx") is first
        assert sources.reads == 1

    def test_content_newer_than_fact_is_not_mixed_in(
        self, mapper: ComponentRouteMapper, sources: Sources
    ) -> None:
        sources.files["src/router.tsx"] = ROUTER.replace("./pages/Home", "./pages/About")
        assert mapper.import_map("src/router.tsx") == {}
        assert mapper.map_route_file("src/router.tsx")[0].component_path is None

    def test_invalidate(self, mapper: ComponentRouteMapper) -> None:
        first = mapper.import_map("src/router.tsx")
        mapper.invalidate(["src/router.tsx"])
        assert mapper.import_map("src/router.tsx") is not first


class TestPrepare:
    def test_reads_once_then_serves_from_cache(
        self, mapper: ComponentRouteMapper, sources: Sources
    ) -> None:
        assert asyncio.run(mapper.prepare(["src/router.tsx"])) == []
        assert sources.reads == 1

        assert mapper.local_name_of("src/router.tsx", "src/pages/Home.tsx") == "Home"
        assert len(mapper.map_route_file("src/router.tsx")) == 8
        assert asyncio.run(mapper.prepare(["src/router.tsx"])) == []
        assert sources.reads == 1

    def test_reports_route_files_edited_since_extraction(
        self, mapper: ComponentRouteMapper, sources: Sources
    ) -> None:
        sources.files["src/router.tsx"] = ROUTER + "\n// edited\n"
        assert asyncio.run(mapper.prepare(["src/router.tsx"])) == ["src/router.tsx"]

    def test_unreadable_file_is_not_reported(
        self, mapper: ComponentRouteMapper, sources: Sources
    ) -> None:
        del sources.files["src/router.tsx"]
        assert asyncio.run(mapper.prepare(["src/router.tsx"])) == []
        assert mapper.import_map("src/router.tsx") == {}
