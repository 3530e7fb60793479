"""Live index maintenance for single element mutations."""

from __future__ import annotations

import structlog
from sqlalchemy.orm import Session

from elementsearch.config import get_settings
from elementsearch.models.element import ElementKind, ElementType
from elementsearch.schemas.endpoint import EndpointConfig
from elementsearch.services.document_codec import DocumentCodec, document_codec
from elementsearch.services.element_store import Element, ElementStore
from elementsearch.services.endpoint_config import get_endpoint_config, list_endpoint_configs
from elementsearch.services.index_persistence import (
    IndexPersistenceService,
    SearchBackendUnavailable,
    index_persistence_service,
)
from elementsearch.services.index_resolver import ElementResolver

logger = structlog.get_logger(__name__)


def _log_failure(exc: Exception, event: str, **context: object) -> None:
    if isinstance(exc, SearchBackendUnavailable) and exc.is_client_error:
        logger.warning(event, error=str(exc), **context)
    else:
        logger.error(event, error=str(exc), **context)


class ElementSyncService:
    """Upserts and deletes one element through the live aliases of every endpoint."""

    def __init__(
        self,
        persistence: IndexPersistenceService | None = None,
        *,
        resolver: ElementResolver | None = None,
        codec: DocumentCodec | None = None,
    ) -> None:
        self._persistence = persistence or index_persistence_service
        self._resolver = resolver or ElementResolver(self._persistence)
        self._codec = codec or document_codec

    def update_element(
        self,
        db: Session,
        element_type: ElementType | str,
        element_id: int,
        *,
        endpoint_name: str | None = None,
    ) -> int:
        """
        Upsert one element and its ancestor folders into every endpoint indexing it.

        Returns the number of endpoints the element was written to. Missing
        elements are ignored; engine failures are logged and skipped.
        """
        element_type = ElementType(element_type)
        store = ElementStore(db, root_id=get_settings().root_element_id)
        element = store.get(element_type, element_id)
        if element is None:
            logger.debug("element_not_found", element_type=element_type.value, element_id=element_id)
            return 0

        updated = 0
        for config in self._endpoints(db, endpoint_name):
            if not self._is_indexed(config, element):
                continue

            index_name = self._resolver.resolve_logical_name(element, config.name)
            try:
                self._persistence.upsert(self._codec.serialize(element), config.name, index_name)
            except SearchBackendUnavailable as exc:
                _log_failure(exc, "element_update_failed", endpoint=config.name, index=index_name, element_id=element_id)
                continue
            updated += 1
            self._update_parent_folders(store, element, config)
        return updated

    def delete_element(
        self,
        db: Session,
        element_type: ElementType | str,
        element_id: int,
        *,
        class_name: str | None = None,
        is_folder: bool = False,
        endpoint_name: str | None = None,
    ) -> int:
        """
        Remove one element document from every endpoint indexing its type.

        The element row may already be gone, so its kind is passed explicitly.
        """
        element_type = ElementType(element_type)
        if element_type is ElementType.ASSET:
            type_tag = (ElementKind.ASSET_FOLDER if is_folder else ElementKind.ASSET).value
        elif is_folder:
            type_tag = ElementKind.OBJECT_FOLDER.value
        elif class_name:
            type_tag = class_name.lower()
        else:
            logger.warning("element_delete_without_class", element_id=element_id)
            return 0

        deleted = 0
        for config in self._endpoints(db, endpoint_name):
            if element_type is ElementType.ASSET and not config.asset_indexing_enabled:
                continue
            if element_type is ElementType.OBJECT:
                if not config.object_indexing_enabled:
                    continue
                if not is_folder and not config.indexes_object_class(class_name):
                    continue

            index_name = self._resolver.resolve_logical_name(type_tag, config.name)
            logger.debug("element_delete_requested", endpoint=config.name, index=index_name, element_id=element_id)
            try:
                self._persistence.delete(element_id, index_name)
            except SearchBackendUnavailable as exc:
                _log_failure(exc, "element_delete_failed", endpoint=config.name, index=index_name, element_id=element_id)
                continue
            deleted += 1
        return deleted

    def _update_parent_folders(self, store: ElementStore, element: Element, config: EndpointConfig) -> None:
        for folder in store.iter_ancestor_folders(element):
            index_name = self._resolver.resolve_logical_name(folder, config.name)
            try:
                self._persistence.upsert(self._codec.serialize(folder), config.name, index_name)
            except SearchBackendUnavailable as exc:
                _log_failure(exc, "folder_update_failed", endpoint=config.name, index=index_name, element_id=folder.id)

    @staticmethod
    def _endpoints(db: Session, endpoint_name: str | None) -> list[EndpointConfig]:
        if endpoint_name is None:
            return list_endpoint_configs(db)
        config = get_endpoint_config(db, endpoint_name)
        return [config] if config is not None else []

    @staticmethod
    def _is_indexed(config: EndpointConfig, element: Element) -> bool:
        kind = element.kind
        if kind.element_type is ElementType.ASSET:
            return config.asset_indexing_enabled
        if kind is ElementKind.OBJECT_FOLDER:
            return config.object_indexing_enabled
        return config.indexes_object_class(element.class_name)


element_sync_service = ElementSyncService()
