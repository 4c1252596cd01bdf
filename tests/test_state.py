"""Unit tests for the state stores (phaseflow.state).

Tests cover:
- JsonStateStore read of absent documents, write/read round trip,
  whole-document replacement and corrupt-file errors
- MemoryStateStore isolation between reads and writes
- Both stores satisfy the StateStore protocol
"""

from __future__ import annotations

from pathlib import Path

import pytest

from phaseflow.errors import PersistenceError
from phaseflow.state import (
    QUALITY_GATES,
    TRANSFORMATIONS,
    JsonStateStore,
    MemoryStateStore,
    StateStore,
)


class TestJsonStateStore:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_absent_document_is_empty(self, tmp_path: Path):
        store = JsonStateStore(tmp_path / "state")
        assert await store.read_state(QUALITY_GATES) == {}

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_round_trip(self, tmp_path: Path):
        store = JsonStateStore(tmp_path / "state")
        document = {"concept": {"completed": ["market_analysis"]}}

        await store.write_state(QUALITY_GATES, document)

        assert store.path_for(QUALITY_GATES) == tmp_path / "state" / "quality-gates.json"
        assert await store.read_state(QUALITY_GATES) == document

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_write_replaces_whole_document(self, tmp_path: Path):
        store = JsonStateStore(tmp_path)
        await store.write_state(TRANSFORMATIONS, {"a": 1, "b": 2})
        await store.write_state(TRANSFORMATIONS, {"c": 3})

        assert await store.read_state(TRANSFORMATIONS) == {"c": 3}

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_corrupt_document_raises_persistence_error(self, tmp_path: Path):
        store = JsonStateStore(tmp_path)
        store.path_for(QUALITY_GATES).write_text("{not json", encoding="utf-8")

        with pytest.raises(PersistenceError) as exc_info:
            await store.read_state(QUALITY_GATES)
        assert exc_info.value.action == "read"
        assert exc_info.value.code == "PersistenceFailed"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_unwritable_location_raises_persistence_error(self, tmp_path: Path):
        blocker = tmp_path / "blocker"
        blocker.write_text("a file, not a directory", encoding="utf-8")
        store = JsonStateStore(blocker)

        with pytest.raises(PersistenceError) as exc_info:
            await store.write_state(QUALITY_GATES, {})
        assert "quality-gates" in exc_info.value.message


class TestMemoryStateStore:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_seeded_documents(self):
        store = MemoryStateStore({QUALITY_GATES: {"concept": {"completed": []}}})
        assert await store.read_state(QUALITY_GATES) == {"concept": {"completed": []}}
        assert store.keys() == [QUALITY_GATES]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_reads_are_copies(self):
        store = MemoryStateStore()
        await store.write_state(QUALITY_GATES, {"concept": {"completed": []}})

        document = await store.read_state(QUALITY_GATES)
        document["concept"]["completed"].append("market_analysis")

        assert await store.read_state(QUALITY_GATES) == {"concept": {"completed": []}}

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_absent_document_is_empty(self):
        assert await MemoryStateStore().read_state("missing") == {}


class TestProtocol:
    @pytest.mark.unit
    def test_stores_satisfy_protocol(self, tmp_path: Path):
        assert isinstance(JsonStateStore(tmp_path), StateStore)
        assert isinstance(MemoryStateStore(), StateStore)
