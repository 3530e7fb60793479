"""
Full rebuild of an endpoint's indices from the element store.

Aliases are not repointed at empty indices up front: every type is written
into a staged sibling and all aliases swap only after the last type is done.
"""

from __future__ import annotations

import math
import time
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

import structlog
from sqlalchemy.orm import Session

from elementsearch.config import Settings, get_settings
from elementsearch.exceptions import EndpointNotFound, IndexingError, RebuildFailed
from elementsearch.models.element import ElementType
from elementsearch.schemas.endpoint import EndpointConfig
from elementsearch.services.document_codec import DocumentCodec, document_codec
from elementsearch.services.element_store import Element, ElementStore
from elementsearch.services.endpoint_config import get_endpoint_config
from elementsearch.services.index_manager import IndexLifecycleManager, index_manager
from elementsearch.services.index_persistence import (
    IndexPersistenceService,
    SearchBackendUnavailable,
    index_persistence_service,
)
from elementsearch.services.index_resolver import NAME_SEPARATOR

logger = structlog.get_logger(__name__)


class RebuildState(Enum):
    """States of one (endpoint, element type) rebuild."""

    PENDING = "pending"
    PAGING = "paging"
    PER_BATCH_UPSERT = "per_batch_upsert"
    DONE = "done"
    FAILED = "failed"


@dataclass
class TypeRebuildProgress:
    """Counters and state of one element type rebuild."""

    element_type: ElementType
    state: RebuildState = RebuildState.PENDING
    total_records: int = 0
    total_batches: int = 0
    batches_completed: int = 0
    indexed: int = 0
    folders_indexed: int = 0
    skipped: int = 0
    failed: int = 0
    failed_ids: list[int] = field(default_factory=list)
    error: str | None = None

    def as_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["element_type"] = self.element_type.value
        payload["state"] = self.state.value
        return payload


def plan_batches(total_records: int, chunk_size: int) -> list[tuple[int, int]]:
    """Return ``(offset, size)`` for each page covering ``total_records`` rows."""
    if chunk_size < 1:
        raise ValueError("chunk_size must be positive")
    total_batches = math.ceil(max(total_records, 0) / chunk_size)
    return [
        (index * chunk_size, min(chunk_size, total_records - index * chunk_size))
        for index in range(total_batches)
    ]


class BatchRebuildEngine:
    """
    Streams every element of an endpoint into freshly staged physical indices.

    Live aliases keep serving the previous indices while the rebuild runs; the
    staged indices are promoted only once every enabled element type is done.
    Element upserts racing with the rebuild still land on the live index and
    are lost at promotion unless the element is paged after its mutation.
    """

    def __init__(
        self,
        persistence: IndexPersistenceService | None = None,
        *,
        manager: IndexLifecycleManager | None = None,
        codec: DocumentCodec | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._persistence = persistence or index_persistence_service
        self._manager = manager or (
            index_manager if persistence is None else IndexLifecycleManager(self._persistence)
        )
        self._codec = codec or document_codec
        self.chunk_size = self._settings.rebuild_chunk_size

    @property
    def resolver(self):
        return self._manager.resolver

    def run(self, db: Session, endpoint_name: str) -> dict[str, Any]:
        """Rebuild every enabled index of ``endpoint_name`` and return a run report."""
        config = get_endpoint_config(db, endpoint_name)
        if config is None:
            raise EndpointNotFound(f'No endpoint configuration named "{endpoint_name}"')

        log = logger.bind(endpoint=endpoint_name)
        log.info("index_rebuild_started", chunk_size=self.chunk_size)
        started_at = time.perf_counter()
        report: dict[str, Any] = {"endpoint": endpoint_name, "types": {}, "indices": {}}

        staged = self._stage_indices(config, report)
        report["indices"] = dict(staged)

        store = ElementStore(db, root_id=self._settings.root_element_id)
        for element_type in self._enabled_types(config):
            progress = self.rebuild_type(store, config, element_type, staged)
            report["types"][element_type.value] = progress.as_dict()
            if progress.state is RebuildState.FAILED:
                log.error("index_rebuild_failed", element_type=element_type.value, error=progress.error)
                raise RebuildFailed(
                    f"Rebuilding {element_type.value} elements failed: {progress.error}",
                    stage=f"rebuild_{element_type.value}",
                    report=report,
                )

        for logical_name, staged_name in staged.items():
            try:
                self._manager.promote_staged_index(logical_name, staged_name)
            except IndexingError as exc:
                raise RebuildFailed(
                    f"Promoting {staged_name} failed: {exc}",
                    stage="swap_aliases",
                    report=report,
                ) from exc

        report["duration_ms"] = int((time.perf_counter() - started_at) * 1000)
        report["timestamp"] = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
        log.info("index_rebuild_completed", duration_ms=report["duration_ms"])
        return report

    def rebuild_type(
        self,
        store: ElementStore,
        config: EndpointConfig,
        element_type: ElementType,
        targets: dict[str, str],
    ) -> TypeRebuildProgress:
        """Page through one element population and upsert it into ``targets``."""
        progress = TypeRebuildProgress(element_type=element_type, state=RebuildState.PAGING)
        log = logger.bind(endpoint=config.name, element_type=element_type.value)

        try:
            progress.total_records = store.count(element_type)
        except Exception as exc:  # noqa: BLE001
            progress.state = RebuildState.FAILED
            progress.error = f"count query failed: {exc}"
            return progress

        batches = plan_batches(progress.total_records, self.chunk_size)
        progress.total_batches = len(batches)
        log.info("type_rebuild_started", total_records=progress.total_records, total_batches=len(batches))

        for batch_number, (offset, size) in enumerate(batches, start=1):
            try:
                ids = store.page_ids(element_type, offset=offset, limit=size)
            except Exception as exc:  # noqa: BLE001
                progress.state = RebuildState.FAILED
                progress.error = f"page query at offset {offset} failed: {exc}"
                return progress

            progress.state = RebuildState.PER_BATCH_UPSERT
            self._upsert_batch(store, config, element_type, ids, targets, progress)
            store.release()
            progress.batches_completed += 1
            progress.state = RebuildState.PAGING
            log.info(
                "rebuild_batch_completed",
                batch=batch_number,
                total_batches=progress.total_batches,
                offset=offset,
                size=len(ids),
                indexed=progress.indexed,
                failed=progress.failed,
            )

        progress.state = RebuildState.DONE
        return progress

    def _stage_indices(self, config: EndpointConfig, report: dict[str, Any]) -> dict[str, str]:
        staged: dict[str, str] = {}
        try:
            for logical_name in self.resolver.all_logical_names(config):
                if not self._persistence.alias_exists(logical_name):
                    type_tag = logical_name.rsplit(NAME_SEPARATOR, 1)[-1]
                    self._manager.ensure_index(logical_name, self._codec.mapping_for(type_tag))
                staged[logical_name] = self._manager.prepare_staged_index(logical_name)
        except (IndexingError, SearchBackendUnavailable) as exc:
            report["indices"] = dict(staged)
            raise RebuildFailed(f"Preparing indices failed: {exc}", stage="prepare_indices", report=report) from exc
        return staged

    @staticmethod
    def _enabled_types(config: EndpointConfig) -> list[ElementType]:
        types: list[ElementType] = []
        if config.asset_indexing_enabled:
            types.append(ElementType.ASSET)
        if config.object_indexing_enabled:
            types.append(ElementType.OBJECT)
        return types

    def _upsert_batch(
        self,
        store: ElementStore,
        config: EndpointConfig,
        element_type: ElementType,
        ids: list[int],
        targets: dict[str, str],
        progress: TypeRebuildProgress,
    ) -> None:
        visited: set[int] = set()
        for element_id in ids:
            try:
                element = store.get(element_type, element_id)
                if element is None:
                    progress.skipped += 1
                    continue
                if not self._upsert(element, config, targets):
                    progress.skipped += 1
                    continue
            except Exception as exc:  # noqa: BLE001
                progress.failed += 1
                progress.failed_ids.append(element_id)
                logger.warning(
                    "element_upsert_failed",
                    endpoint=config.name,
                    element_type=element_type.value,
                    element_id=element_id,
                    error=str(exc),
                )
                continue

            progress.indexed += 1
            if element.is_folder:
                visited.add(element.id)
            self._upsert_ancestors(store, element, config, targets, visited, progress)

    def _upsert_ancestors(
        self,
        store: ElementStore,
        element: Element,
        config: EndpointConfig,
        targets: dict[str, str],
        visited: set[int],
        progress: TypeRebuildProgress,
    ) -> None:
        try:
            for folder in store.iter_ancestor_folders(element, visited=visited):
                try:
                    if self._upsert(folder, config, targets):
                        progress.folders_indexed += 1
                except Exception as exc:  # noqa: BLE001
                    logger.warning(
                        "folder_upsert_failed",
                        endpoint=config.name,
                        element_id=folder.id,
                        error=str(exc),
                    )
        except Exception as exc:  # noqa: BLE001
            logger.warning("ancestor_walk_failed", endpoint=config.name, element_id=element.id, error=str(exc))

    def _upsert(self, element: Element, config: EndpointConfig, targets: dict[str, str]) -> bool:
        """Upsert into the staged index of the element's logical index; False if not indexed here."""
        logical_name = self.resolver.resolve_logical_name(element, config.name)
        target = targets.get(logical_name)
        if target is None:
            return False
        self._persistence.upsert(self._codec.serialize(element), config.name, target)
        return True


rebuild_engine = BatchRebuildEngine()
