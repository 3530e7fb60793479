"""Pytest environment isolation and an in-memory search engine for indexing tests.

These tests must never touch a real Elasticsearch cluster or the runtime database.
"""

from __future__ import annotations

import copy
import fnmatch
import os
import shutil
import tempfile
from pathlib import Path
from typing import Any

import pytest
from sqlalchemy import delete

# Configure an isolated filesystem root before app settings are imported.
_TEST_ROOT = Path(tempfile.mkdtemp(prefix="elementsearch-pytest-")).resolve()
_TEST_DB = _TEST_ROOT / "test.db"

os.environ["ENV"] = "test"
os.environ["DATABASE_URL"] = f"sqlite:///{_TEST_DB}"
os.environ["ELASTICSEARCH_URL"] = "http://elasticsearch.invalid:9200"
os.environ["INDEX_NAME_PREFIX"] = "datahub"
os.environ["INDEX_TASKS_USE_CELERY"] = "false"
os.environ["REBUILD_CHUNK_SIZE"] = "100"
os.environ["ROOT_ELEMENT_ID"] = "1"

from elementsearch.config import get_settings

get_settings.cache_clear()

from elementsearch.services.index_persistence import SearchBackendUnavailable  # noqa: E402
from elementsearch.services.index_resolver import is_physical_name  # noqa: E402

MUTATING_OPERATIONS = {"create_index", "delete_index", "create_alias", "reindex", "upsert", "delete"}


class FakeSearchEngine:
    """In-memory stand-in for ``IndexPersistenceService`` with the same call contract."""

    def __init__(self) -> None:
        self.indices: dict[str, dict[str, Any]] = {}
        self.aliases: dict[str, str] = {}
        self.calls: list[tuple[Any, ...]] = []
        self.acknowledge_create = True
        self.acknowledge_alias = True
        self.refresh_failed_shards = 0
        self.reindex_failures: list[dict[str, Any]] = []
        self.failing_upsert_ids: set[int] = set()
        self.failing_delete_status: int | None = None
        self.failing_index_delete = False

    @property
    def mutations(self) -> list[tuple[Any, ...]]:
        return [call for call in self.calls if call[0] in MUTATING_OPERATIONS]

    def operations(self) -> list[str]:
        return [call[0] for call in self.mutations]

    def docs(self, name: str) -> dict[str, dict[str, Any]]:
        physical = self.aliases.get(name, name)
        return self.indices[physical]["docs"]

    def create_index(self, name: str, mapping: dict[str, Any]) -> dict:
        self.calls.append(("create_index", name))
        if not self.acknowledge_create:
            return {"acknowledged": False}
        if name in self.indices:
            raise SearchBackendUnavailable(f"resource_already_exists_exception: {name}", status_code=400)
        self.indices[name] = {"mappings": copy.deepcopy(mapping), "docs": {}}
        return {"acknowledged": True, "shards_acknowledged": True, "index": name}

    def delete_index(self, name: str) -> dict:
        self.calls.append(("delete_index", name))
        if "*" in name:
            raise SearchBackendUnavailable("Wildcard expressions or all indices are not allowed", status_code=400)
        if self.failing_index_delete:
            raise SearchBackendUnavailable(f"cluster_block_exception: {name}", status_code=503)
        if name in self.indices:
            del self.indices[name]
            for alias, bound in list(self.aliases.items()):
                if bound == name:
                    del self.aliases[alias]
        return {"acknowledged": True}

    def list_indices(self, pattern: str) -> list[str]:
        self.calls.append(("list_indices", pattern))
        return sorted(fnmatch.filter(list(self.indices), pattern))

    def index_exists(self, name: str) -> bool:
        self.calls.append(("index_exists", name))
        return name in self.indices

    def alias_exists(self, alias: str) -> bool:
        self.calls.append(("alias_exists", alias))
        return alias in self.aliases

    def get_alias(self, alias: str) -> dict:
        if alias not in self.aliases:
            return {}
        return {self.aliases[alias]: {"aliases": {alias: {}}}}

    def find_index_name_by_alias(self, alias: str) -> str | None:
        self.calls.append(("find_index_name_by_alias", alias))
        return self.aliases.get(alias)

    def create_alias(self, physical_name: str, alias: str) -> dict:
        self.calls.append(("create_alias", physical_name, alias))
        if not self.acknowledge_alias:
            return {"acknowledged": False}
        if physical_name not in self.indices:
            raise SearchBackendUnavailable(f"index_not_found_exception: {physical_name}", status_code=404)
        self.aliases[alias] = physical_name
        return {"acknowledged": True}

    def get_mapping(self, name: str) -> dict:
        physical = self.aliases.get(name, name)
        if physical not in self.indices:
            raise SearchBackendUnavailable(f"index_not_found_exception: {name}", status_code=404)
        return {physical: {"mappings": copy.deepcopy(self.indices[physical]["mappings"])}}

    def refresh_index(self, name: str) -> dict:
        self.calls.append(("refresh_index", name))
        failed = self.refresh_failed_shards
        return {"_shards": {"total": 2, "successful": 2 - failed, "failed": failed}}

    def reindex(self, source: str, target: str) -> dict:
        self.calls.append(("reindex", source, target))
        documents = copy.deepcopy(self.indices[source]["docs"])
        self.indices[target]["docs"].update(documents)
        return {"total": len(documents), "created": len(documents), "failures": list(self.reindex_failures)}

    def upsert(self, document: dict[str, Any], endpoint_name: str, index_name: str) -> dict:
        self.calls.append(("upsert", index_name, document["id"]))
        if document["id"] in self.failing_upsert_ids:
            raise SearchBackendUnavailable(f"mapper_parsing_exception for {document['id']}", status_code=500)
        physical = self.aliases.get(index_name, index_name)
        if physical not in self.indices:
            if not is_physical_name(index_name):
                # Writes through a logical name require the alias to exist.
                raise SearchBackendUnavailable(f"aliases_not_found_exception: {index_name}", status_code=404)
            # The engine auto-creates a concrete index with a dynamic mapping.
            self.indices[physical] = {"mappings": {}, "docs": {}}
        self.indices[physical]["docs"][str(document["id"])] = copy.deepcopy(document)
        return {"result": "created", "_id": str(document["id"])}

    def delete(self, element_id: int | str, index_name: str) -> dict:
        self.calls.append(("delete", index_name, element_id))
        if self.failing_delete_status is not None:
            raise SearchBackendUnavailable("delete failed", status_code=self.failing_delete_status)
        physical = self.aliases.get(index_name, index_name)
        self.indices.get(physical, {"docs": {}})["docs"].pop(str(element_id), None)
        return {"result": "deleted"}


@pytest.fixture(scope="session", autouse=True)
def _bootstrap_test_environment() -> None:
    """Create the database schema once per test session."""
    import elementsearch.models  # noqa: F401
    from elementsearch.database import Base, engine

    Base.metadata.create_all(bind=engine)
    yield

    Base.metadata.drop_all(bind=engine)
    shutil.rmtree(_TEST_ROOT, ignore_errors=True)


@pytest.fixture(autouse=True)
def _isolate_each_test() -> None:
    """Clear persisted rows before every test."""
    from elementsearch.database import Base, SessionLocal

    with SessionLocal() as db:
        for table in reversed(Base.metadata.sorted_tables):
            db.execute(delete(table))
        db.commit()
    yield


@pytest.fixture
def db():
    from elementsearch.database import SessionLocal

    with SessionLocal() as session:
        yield session


@pytest.fixture
def search_engine() -> FakeSearchEngine:
    return FakeSearchEngine()


@pytest.fixture
def add_asset(db):
    """Factory inserting one asset (or asset folder) row."""
    from elementsearch.models import Asset

    def _add(element_id: int, *, parent_id: int | None = 1, type: str = "image", key: str | None = None, **fields):
        row = Asset(
            id=element_id,
            parent_id=parent_id,
            type=type,
            key=key if key is not None else f"asset-{element_id}",
            path=fields.pop("path", "/"),
            **fields,
        )
        db.add(row)
        db.commit()
        return row

    return _add


@pytest.fixture
def add_object(db):
    """Factory inserting one data object (or object folder) row."""
    from elementsearch.models import DataObject

    def _add(
        element_id: int,
        *,
        parent_id: int | None = 1,
        type: str = "object",
        object_class: str | None = "Product",
        key: str | None = None,
        **fields,
    ):
        row = DataObject(
            id=element_id,
            parent_id=parent_id,
            type=type,
            object_class=None if type == "folder" else object_class,
            key=key if key is not None else f"object-{element_id}",
            path=fields.pop("path", "/"),
            **fields,
        )
        db.add(row)
        db.commit()
        return row

    return _add


@pytest.fixture
def add_endpoint(db):
    """Factory inserting one endpoint configuration row."""
    from elementsearch.models import EndpointConfiguration

    def _add(name: str = "catalog", **fields):
        row = EndpointConfiguration(name=name, **fields)
        db.add(row)
        db.commit()
        return row

    return _add
