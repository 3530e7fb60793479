"""Tests for live element upserts and deletes."""

from __future__ import annotations

import pytest

from elementsearch.schemas.endpoint import EndpointConfig
from elementsearch.services.element_sync import ElementSyncService
from elementsearch.services.index_manager import IndexLifecycleManager
from elementsearch.services.index_resolver import ElementResolver


@pytest.fixture
def resolver(search_engine) -> ElementResolver:
    return ElementResolver(search_engine, prefix="datahub")


@pytest.fixture
def sync(search_engine, resolver) -> ElementSyncService:
    return ElementSyncService(search_engine, resolver=resolver)


@pytest.fixture
def catalog(add_endpoint, search_engine, resolver) -> EndpointConfig:
    add_endpoint(
        "catalog",
        asset_indexing_enabled=True,
        object_indexing_enabled=True,
        object_class_names=["Product"],
    )
    config = EndpointConfig(
        name="catalog",
        asset_indexing_enabled=True,
        object_indexing_enabled=True,
        object_class_names=["Product"],
    )
    IndexLifecycleManager(search_engine, resolver=resolver).sync_endpoint(config)
    search_engine.calls.clear()
    return config


def test_update_writes_element_and_parent_folders_through_aliases(db, add_asset, sync, search_engine, catalog) -> None:
    add_asset(1, parent_id=None, type="folder", key="")
    add_asset(2, parent_id=1, type="folder", key="shoes")
    add_asset(3, parent_id=2, key="boot.jpg")

    assert sync.update_element(db, "asset", 3) == 1

    assert [call[1:] for call in search_engine.calls if call[0] == "upsert"] == [
        ("datahub__catalog__asset", 3),
        ("datahub__catalog__assetfolder", 2),
    ]
    assert search_engine.docs("datahub__catalog__asset")["3"]["key"] == "boot.jpg"


def test_update_skips_endpoints_not_indexing_the_element(db, add_endpoint, add_object, sync, search_engine, catalog) -> None:
    add_endpoint("assets-only", asset_indexing_enabled=True)
    add_object(5, object_class="Product")
    add_object(6, object_class="Category")

    assert sync.update_element(db, "object", 5) == 1
    assert sync.update_element(db, "object", 6) == 0
    assert sync.update_element(db, "object", 404) == 0


def test_update_failure_is_logged_and_skipped(db, add_asset, sync, search_engine, catalog) -> None:
    add_asset(3, parent_id=1)
    search_engine.failing_upsert_ids = {3}

    assert sync.update_element(db, "asset", 3) == 0


def test_update_can_target_one_endpoint(db, add_endpoint, add_asset, sync, search_engine, catalog) -> None:
    add_endpoint("web", asset_indexing_enabled=True)
    add_asset(3, parent_id=1)

    assert sync.update_element(db, "asset", 3, endpoint_name="catalog") == 1
    assert sync.update_element(db, "asset", 3, endpoint_name="unknown") == 0


def test_delete_removes_document_through_alias(db, add_asset, sync, search_engine, catalog) -> None:
    add_asset(3, parent_id=1)
    sync.update_element(db, "asset", 3)

    assert sync.delete_element(db, "asset", 3) == 1
    assert search_engine.docs("datahub__catalog__asset") == {}


def test_delete_object_requires_enabled_class(db, sync, search_engine, catalog) -> None:
    assert sync.delete_element(db, "object", 5, class_name="Product") == 1
    assert sync.delete_element(db, "object", 6, class_name="Category") == 0
    assert sync.delete_element(db, "object", 7) == 0
    assert sync.delete_element(db, "object", 8, is_folder=True) == 1
    assert [call[1] for call in search_engine.calls if call[0] == "delete"] == [
        "datahub__catalog__product",
        "datahub__catalog__objectfolder",
    ]


def test_delete_failure_is_logged_and_skipped(db, sync, search_engine, catalog) -> None:
    search_engine.failing_delete_status = 404

    assert sync.delete_element(db, "asset", 3) == 0


def test_update_before_indices_exist_does_not_create_a_concrete_index(
    db, add_endpoint, add_asset, sync, search_engine, resolver
) -> None:
    add_endpoint("catalog", asset_indexing_enabled=True)
    add_asset(3, parent_id=1)

    assert sync.update_element(db, "asset", 3) == 0
    assert search_engine.indices == {}

    config = EndpointConfig(name="catalog", asset_indexing_enabled=True)
    IndexLifecycleManager(search_engine, resolver=resolver).sync_endpoint(config)

    assert search_engine.aliases["datahub__catalog__asset"] == "datahub__catalog__asset-even"
    assert sync.update_element(db, "asset", 3) == 1
