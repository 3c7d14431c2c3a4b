"""Snapshot persistence for the plan collection.

The plan store never touches files or databases directly. It reads the whole
collection, changes it in memory and hands the complete snapshot back to a
``SnapshotStorage`` backend, which must replace the stored snapshot
atomically: readers see either the previous snapshot or the new one, never a
mix of both.

Two backends are provided. ``JsonFileStorage`` keeps the collection in a
single JSON file and swaps it in with ``os.replace``; it is the default for
local use. ``SqlSnapshotStorage`` accepts any SQLAlchemy-compatible URL (e.g.
SQLite/PostgreSQL) and replaces a single JSON document row inside one
transaction, which suits deployments where the process runs on several hosts.
"""

from __future__ import annotations

import json
import logging
import os
import stat
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Union

from sqlalchemy import Column, DateTime, String, Text, create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from .exceptions import StorageError

logger = logging.getLogger(__name__)

Base = declarative_base()

COLLECTION_KEY = "plans"


def empty_collection() -> Dict[str, Any]:
    return {COLLECTION_KEY: {}}


def _validate(collection: Any, source: str) -> Dict[str, Any]:
    if not isinstance(collection, dict) or not isinstance(collection.get(COLLECTION_KEY), dict):
        raise StorageError(f"Malformed plan collection in {source}")
    return collection


class SnapshotStorage:
    """Interface for whole-collection snapshot storage."""

    def read_collection(self) -> Dict[str, Any]:
        raise NotImplementedError

    def write_collection(self, collection: Dict[str, Any]) -> None:
        raise NotImplementedError


def _target_mode(path: Path) -> int:
    """Permission bits for a rewritten file: the existing ones, else the umask default."""
    try:
        return stat.S_IMODE(os.stat(path).st_mode)
    except FileNotFoundError:
        umask = os.umask(0)
        os.umask(umask)
        return 0o666 & ~umask


class JsonFileStorage(SnapshotStorage):
    """Collection stored as one JSON file, replaced atomically on write."""

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)

    def _ensure(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        if not self.path.exists():
            logger.info("Initializing empty plan collection at %s", self.path)
            self.write_collection(empty_collection())

    def read_collection(self) -> Dict[str, Any]:
        self._ensure()
        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as exc:
            raise StorageError(f"Cannot read plan collection from {self.path}: {exc}") from exc
        return _validate(data, str(self.path))

    def write_collection(self, collection: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        mode = _target_mode(self.path)
        # the temporary file must live on the same filesystem for os.replace
        tmp = tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            dir=self.path.parent,
            prefix=f".{self.path.name}.",
            suffix=".tmp",
            delete=False,
        )
        try:
            with tmp:
                json.dump(collection, tmp, indent=2, ensure_ascii=False)
                tmp.flush()
                os.fsync(tmp.fileno())
            # NamedTemporaryFile is created 0600
            os.chmod(tmp.name, mode)
            os.replace(tmp.name, self.path)
        except BaseException:
            Path(tmp.name).unlink(missing_ok=True)
            raise
        logger.debug("Wrote %d plans to %s", len(collection.get(COLLECTION_KEY, {})), self.path)


class PlanSnapshotModel(Base):
    __tablename__ = "plan_snapshots"

    name = Column(String(64), primary_key=True)
    payload_json = Column(Text, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class SqlSnapshotStorage(SnapshotStorage):
    """Database-backed snapshot storage.

    The collection is a single row keyed by ``name``; each write replaces the
    row's JSON payload in one transaction.
    """

    def __init__(self, url: str, *, name: str = COLLECTION_KEY) -> None:
        self._engine = create_engine(url, future=True)
        Base.metadata.create_all(self._engine)
        self._session_factory = sessionmaker(self._engine, expire_on_commit=False, future=True)
        self._name = name

    def read_collection(self) -> Dict[str, Any]:
        with self._session_factory() as session:
            row = session.get(PlanSnapshotModel, self._name)
            if row is None:
                return empty_collection()
            try:
                data = json.loads(row.payload_json)
            except ValueError as exc:
                raise StorageError(f"Cannot decode plan snapshot '{self._name}': {exc}") from exc
        return _validate(data, f"snapshot '{self._name}'")

    def write_collection(self, collection: Dict[str, Any]) -> None:
        payload = json.dumps(collection, ensure_ascii=False)
        with self._session_factory() as session:
            with session.begin():
                row = session.get(PlanSnapshotModel, self._name)
                if row is None:
                    session.add(PlanSnapshotModel(name=self._name, payload_json=payload))
                else:
                    row.payload_json = payload
                    row.updated_at = datetime.utcnow()
        logger.debug("Wrote %d plans to snapshot '%s'", len(collection.get(COLLECTION_KEY, {})), self._name)


def create_storage(location: Union[str, Path, None]) -> SnapshotStorage:
    """Pick a backend: SQLAlchemy URLs contain ``://``, anything else is a file path."""
    location = str(location or "data/plans.json")
    if "://" in location:
        return SqlSnapshotStorage(location)
    return JsonFileStorage(location)
