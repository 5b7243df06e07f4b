"""Tests for byte stores and graph persistence."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import pytest

from routegraph.core.graph.graph import ImportGraph
from routegraph.core.graph.model import FileFact, ImportEdge, RouteDecl
from routegraph.core.storage.base import ByteStore
from routegraph.core.storage.graph_store import (
    FORMAT_VERSION,
    GraphStore,
    decode_graph,
    encode_graph,
)
from routegraph.core.storage.local import LocalDirectoryStore, MemoryStore
from routegraph.errors import StorageError


def sample_graph() -> tuple[ImportGraph, list[FileFact]]:
    graph = ImportGraph()
    facts = [
        FileFact(
            path="src/routes.tsx",
            imports=[
                ImportEdge(source="src/pages/Home.tsx", line=1, specifier="./pages/Home"),
                ImportEdge(source=None, line=2, specifier="react-router-dom"),
            ],
            exports=["routes"],
            routes=[RouteDecl("/", "Home", "src/routes.tsx", 4, "object")],
            content_hash="abc",
            last_seen_at=1700000000.5,
        ),
        FileFact(path="src/pages/Home.tsx", exports=["default"], content_hash="def"),
    ]
    for fact in facts:
        graph.upsert(fact.path, fact)
    graph.recompute_entry_points()
    return graph, facts


class FailingStore:
    """A store whose every operation fails."""

    async def upload(self, key: str, data: bytes) -> None:
        raise StorageError("upload", key, "disk full")

    async def download(self, key: str) -> bytes:
        raise StorageError("download", key, "unreachable")

    async def list(self, prefix: str = "") -> list[str]:
        raise StorageError("list", prefix, "unreachable")

    async def delete(self, key: str) -> None:
        raise StorageError("delete", key, "unreachable")


class UnreachableStore:
    """A store whose client library raises its own exceptions."""

    async def upload(self, key: str, data: bytes) -> None:
        raise ConnectionError("bucket unreachable")

    async def download(self, key: str) -> bytes:
        raise ConnectionError("bucket unreachable")

    async def list(self, prefix: str = "") -> list[str]:
        raise ConnectionError("bucket unreachable")

    async def delete(self, key: str) -> None:
        raise TimeoutError("bucket unreachable")


# ---------------------------------------------------------------------------
# Byte stores
# ---------------------------------------------------------------------------


@pytest.fixture(params=["memory", "local"])
def store(request, tmp_path: Path) -> ByteStore:
    if request.param == "memory":
        return MemoryStore()
    return LocalDirectoryStore(tmp_path / "cache")


class TestByteStores:
    def test_satisfies_protocol(self, store: ByteStore) -> None:
        assert isinstance(store, ByteStore)

    def test_upload_download(self, store: ByteStore) -> None:
        async def run() -> bytes:
            await store.upload("ns/app/import-graph.json", b"payload")
            return await store.download("ns/app/import-graph.json")

        assert asyncio.run(run()) == b"payload"

    def test_upload_replaces(self, store: ByteStore) -> None:
        async def run() -> bytes:
            await store.upload("k", b"one")
            await store.upload("k", b"two")
            return await store.download("k")

        assert asyncio.run(run()) == b"two"

    def test_download_missing(self, store: ByteStore) -> None:
        with pytest.raises(StorageError) as exc_info:
            asyncio.run(store.download("missing"))
        assert exc_info.value.operation == "download"
        assert exc_info.value.key == "missing"

    def test_list_by_prefix(self, store: ByteStore) -> None:
        async def run() -> list[str]:
            await store.upload("a/one", b"1")
            await store.upload("a/two", b"2")
            await store.upload("b/three", b"3")
            return await store.list("a/")

        assert asyncio.run(run()) == ["a/one", "a/two"]

    def test_delete_is_idempotent(self, store: ByteStore) -> None:
        async def run() -> list[str]:
            await store.upload("k", b"v")
            await store.delete("k")
            await store.delete("k")
            return await store.list()

        assert asyncio.run(run()) == []

    @pytest.mark.parametrize("key", ["/abs", "../escape", "a/../../b", ""])
    def test_rejects_unsafe_keys(self, store: ByteStore, key: str) -> None:
        with pytest.raises(StorageError):
            asyncio.run(store.upload(key, b"x"))


def test_local_store_writes_below_root(tmp_path: Path) -> None:
    store = LocalDirectoryStore(tmp_path / "cache")
    asyncio.run(store.upload("ns/app/import-graph.json", b"{}"))
    assert (tmp_path / "cache" / "ns" / "app" / "import-graph.json").read_bytes() == b"{}"
    assert list((tmp_path / "cache" / "ns" / "app").glob("*.tmp")) == []


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------


class TestEncoding:
    def test_document_shape(self) -> None:
        graph, facts = sample_graph()
        document = json.loads(encode_graph(graph, facts))
        assert document["version"] == FORMAT_VERSION
        assert isinstance(document["timestamp"], int)
        nodes = {n["file"]: n for n in document["graph"]}
        assert nodes["src/pages/Home.tsx"]["importedBy"] == ["src/routes.tsx"]
        assert nodes["src/routes.tsx"]["isRouteFile"] is True
        cached = {f["path"]: f for f in document["fileCache"]}
        assert cached["src/routes.tsx"]["contentHash"] == "abc"
        assert cached["src/routes.tsx"]["routes"][0]["declaringFile"] == "src/routes.tsx"

    def test_round_trip_preserves_graph_and_facts(self) -> None:
        graph, facts = sample_graph()
        loaded, loaded_facts = decode_graph(encode_graph(graph, facts))

        assert {n.file for n in loaded.iter_nodes()} == {n.file for n in graph.iter_nodes()}
        for node in graph.iter_nodes():
            other = loaded.get_node(node.file)
            assert other.imports == node.imports
            assert other.imported_by == node.imported_by
            assert other.is_route_file == node.is_route_file
            assert other.is_entry_point == node.is_entry_point
        assert loaded_facts == {f.path: f for f in facts}
        loaded.check_invariants()

    def test_version_mismatch(self) -> None:
        graph, facts = sample_graph()
        document = json.loads(encode_graph(graph, facts))
        document["version"] = "0.9"
        with pytest.raises(ValueError, match="unsupported graph version"):
            decode_graph(json.dumps(document).encode())

    def test_malformed_document(self) -> None:
        payload = json.dumps({"version": FORMAT_VERSION, "graph": [{"imports": []}]}).encode()
        with pytest.raises(ValueError, match="malformed"):
            decode_graph(payload)


# ---------------------------------------------------------------------------
# GraphStore
# ---------------------------------------------------------------------------


class TestGraphStore:
    def test_key_layout(self, tmp_path: Path) -> None:
        project = tmp_path / "webapp"
        project.mkdir()
        gs = GraphStore(MemoryStore(), project, namespace="/cache-ns/")
        assert gs.key == "cache-ns/webapp/import-graph.json"

    def test_save_and_load(self, tmp_path: Path) -> None:
        graph, facts = sample_graph()
        gs = GraphStore(MemoryStore(), tmp_path)

        async def run():
            assert await gs.save(graph, facts)
            return await gs.load()

        loaded = asyncio.run(run())
        assert loaded is not None
        loaded_graph, loaded_facts = loaded
        assert loaded_graph.all_route_files() == ["src/routes.tsx"]
        assert set(loaded_facts) == {"src/routes.tsx", "src/pages/Home.tsx"}

    def test_load_missing_is_a_miss(self, tmp_path: Path) -> None:
        assert asyncio.run(GraphStore(MemoryStore(), tmp_path).load()) is None

    def test_corrupt_blob_is_a_miss(self, tmp_path: Path) -> None:
        store = MemoryStore()
        gs = GraphStore(store, tmp_path)
        store.blobs[gs.key] = b"\xff not json"
        assert asyncio.run(gs.load()) is None

    def test_failing_store_never_raises(self, tmp_path: Path) -> None:
        graph, facts = sample_graph()
        gs = GraphStore(FailingStore(), tmp_path)

        async def run():
            saved = await gs.save(graph, facts)
            loaded = await gs.load()
            await gs.delete()
            return saved, loaded

        assert asyncio.run(run()) == (False, None)

    def test_foreign_store_errors_never_raise(self, tmp_path: Path) -> None:
        graph, facts = sample_graph()
        gs = GraphStore(UnreachableStore(), tmp_path)

        async def run():
            saved = await gs.save(graph, facts)
            loaded = await gs.load()
            await gs.delete()
            return saved, loaded

        assert asyncio.run(run()) == (False, None)

    def test_delete(self, tmp_path: Path) -> None:
        graph, facts = sample_graph()
        store = MemoryStore()
        gs = GraphStore(store, tmp_path)

        async def run():
            await gs.save(graph, facts)
            await gs.delete()

        asyncio.run(run())
        assert store.blobs == {}
