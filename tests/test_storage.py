"""Snapshot storage tests"""
import json
import os
import stat

import pytest

from loan_plans.exceptions import StorageError
from loan_plans.storage import JsonFileStorage, SqlSnapshotStorage, create_storage, empty_collection


class TestJsonFileStorage:
    def test_lazy_initialization(self, storage, plans_path):
        assert not plans_path.exists()
        assert storage.read_collection() == {"plans": {}}
        assert plans_path.exists()
        assert json.loads(plans_path.read_text(encoding="utf-8")) == {"plans": {}}

    def test_write_then_read(self, storage):
        collection = {"plans": {"a": {"id": "a", "nombre": "Ana"}, "b": {"id": "b", "nombre": "Beto"}}}
        storage.write_collection(collection)
        assert storage.read_collection() == collection
        assert list(storage.read_collection()["plans"]) == ["a", "b"]

    def test_no_temporary_files_left(self, storage, plans_path):
        storage.write_collection({"plans": {"a": {"id": "a"}}})
        storage.write_collection({"plans": {}})
        assert os.listdir(plans_path.parent) == [plans_path.name]

    def test_failed_write_keeps_previous_snapshot(self, storage, plans_path):
        storage.write_collection({"plans": {"a": {"id": "a"}}})
        with pytest.raises(TypeError):
            storage.write_collection({"plans": {"b": {"id": object()}}})
        assert storage.read_collection() == {"plans": {"a": {"id": "a"}}}
        assert os.listdir(plans_path.parent) == [plans_path.name]

    def test_replace_is_atomic(self, storage, plans_path, monkeypatch):
        storage.write_collection({"plans": {"a": {"id": "a"}}})
        calls = []

        def fake_replace(src, dst):
            calls.append((src, dst))
            # the new snapshot is complete before it is swapped in
            with open(src, encoding="utf-8") as f:
                assert json.load(f) == {"plans": {}}
            raise OSError("disk gone")

        monkeypatch.setattr(os, "replace", fake_replace)
        with pytest.raises(OSError):
            storage.write_collection({"plans": {}})
        assert calls and str(calls[0][1]) == str(plans_path)
        monkeypatch.undo()
        assert storage.read_collection() == {"plans": {"a": {"id": "a"}}}

    def test_corrupt_file(self, storage, plans_path):
        plans_path.parent.mkdir(parents=True)
        plans_path.write_text("{not json", encoding="utf-8")
        with pytest.raises(StorageError):
            storage.read_collection()

    def test_malformed_collection(self, storage, plans_path):
        plans_path.parent.mkdir(parents=True)
        plans_path.write_text('{"plans": []}', encoding="utf-8")
        with pytest.raises(StorageError):
            storage.read_collection()

    def test_unicode_is_preserved(self, storage):
        storage.write_collection({"plans": {"a": {"nombre": "Muñoz"}}})
        assert storage.read_collection()["plans"]["a"]["nombre"] == "Muñoz"

    def test_rewrite_keeps_file_mode(self, storage, plans_path):
        storage.write_collection({"plans": {}})
        os.chmod(plans_path, 0o640)
        storage.write_collection({"plans": {"a": {"id": "a"}}})
        assert stat.S_IMODE(os.stat(plans_path).st_mode) == 0o640

    def test_new_file_follows_umask(self, storage, plans_path):
        umask = os.umask(0o022)
        try:
            storage.read_collection()
        finally:
            os.umask(umask)
        assert stat.S_IMODE(os.stat(plans_path).st_mode) == 0o644


class TestSqlSnapshotStorage:
    @pytest.fixture
    def sql_storage(self, tmp_path):
        return SqlSnapshotStorage(f"sqlite:///{tmp_path / 'plans.sqlite3'}")

    def test_empty_when_absent(self, sql_storage):
        assert sql_storage.read_collection() == empty_collection()

    def test_write_replaces_snapshot(self, sql_storage):
        sql_storage.write_collection({"plans": {"a": {"id": "a"}}})
        sql_storage.write_collection({"plans": {"b": {"id": "b"}}})
        assert sql_storage.read_collection() == {"plans": {"b": {"id": "b"}}}


class TestCreateStorage:
    def test_path_gives_json_storage(self, tmp_path):
        storage = create_storage(tmp_path / "x.json")
        assert isinstance(storage, JsonFileStorage)

    def test_url_gives_sql_storage(self, tmp_path):
        storage = create_storage(f"sqlite:///{tmp_path / 'x.sqlite3'}")
        assert isinstance(storage, SqlSnapshotStorage)
