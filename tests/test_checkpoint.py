"""Tests for checkpoint persistence."""

import json

import pytest

from sqlshuttle.core.checkpoint import CheckpointStore
from sqlshuttle.exceptions import CorruptCheckpointError
from sqlshuttle.models.checkpoint import Checkpoint


@pytest.fixture
def store(tmp_path):
    return CheckpointStore(tmp_path / "run.checkpoint.json")


class TestCheckpointModel:
    """Test checkpoint state transitions."""

    def test_fresh(self):
        state = Checkpoint.fresh("dump.sql")
        assert state.file == "dump.sql"
        assert state.position == 0
        assert state.is_fresh

    def test_record_commit(self):
        state = Checkpoint.fresh()
        state.record_commit(120, 4, "abc")
        assert state.position == 120
        assert state.statements_executed == 4
        assert state.last_statement_hash == "abc"
        assert not state.is_fresh

    def test_position_never_moves_backwards(self):
        state = Checkpoint.fresh()
        state.record_commit(120, 4)
        with pytest.raises(ValueError):
            state.record_commit(100, 5)
        assert state.position == 120

    def test_negative_position_rejected(self):
        with pytest.raises(ValueError):
            Checkpoint(position=-1)


class TestCheckpointStore:
    """Test load/save/clear."""

    def test_load_absent_returns_fresh(self, store):
        state = store.load()
        assert state.is_fresh
        assert not store.exists()

    def test_save_and_load(self, store):
        state = Checkpoint.fresh("/data/shop.sql")
        state.record_commit(4096, 120, "deadbeef")
        state.completed_tables.append("orders")
        store.save(state)

        loaded = store.load()
        assert loaded.file == "/data/shop.sql"
        assert loaded.position == 4096
        assert loaded.statements_executed == 120
        assert loaded.last_statement_hash == "deadbeef"
        assert loaded.completed_tables == ["orders"]

    def test_artifact_is_json(self, store):
        """Test the artifact carries the documented fields."""
        state = Checkpoint.fresh("dump.sql")
        state.record_commit(10, 1)
        store.save(state)
        data = json.loads(store.path.read_text())
        assert {"file", "position", "statements_executed", "last_statement_hash", "started_at", "updated_at"} <= set(data)

    def test_save_overwrites_atomically(self, store):
        """Test no temporary file is left behind and the latest state wins."""
        state = Checkpoint.fresh("dump.sql")
        for position in (10, 20, 30):
            state.record_commit(position, position // 10)
            store.save(state)
        assert store.load().position == 30
        assert [p.name for p in store.path.parent.iterdir()] == [store.path.name]

    def test_save_stamps_updated_at(self, store):
        state = Checkpoint.fresh()
        before = state.updated_at
        store.save(state)
        assert store.load().updated_at >= before

    def test_corrupt_payload(self, store):
        store.path.write_text("{not json")
        with pytest.raises(CorruptCheckpointError):
            store.load()

    def test_invalid_fields(self, store):
        store.path.write_text(json.dumps({"file": "x.sql", "position": -5}))
        with pytest.raises(CorruptCheckpointError):
            store.load()

    def test_unknown_fields(self, store):
        store.path.write_text(json.dumps({"file": "x.sql", "offset": 5}))
        with pytest.raises(CorruptCheckpointError):
            store.load()

    def test_clear(self, store):
        store.save(Checkpoint.fresh())
        assert store.clear()
        assert not store.exists()
        assert not store.clear()

    def test_creates_parent_directory(self, tmp_path):
        store = CheckpointStore(tmp_path / "nested" / "dir" / "cp.json")
        store.save(Checkpoint.fresh())
        assert store.exists()
