"""Alias-based blue/green lifecycle for logical search indices."""

from __future__ import annotations

from typing import Any

import structlog

from elementsearch.exceptions import (
    AliasNotFound,
    AliasSwapFailed,
    IndexCreateFailed,
    IndexDeleteFailed,
    NoMappingFound,
    ReindexFailed,
)
from elementsearch.schemas.endpoint import EndpointConfig
from elementsearch.services.document_codec import DocumentCodec, document_codec
from elementsearch.services.index_persistence import (
    IndexPersistenceService,
    SearchBackendUnavailable,
    index_persistence_service,
)
from elementsearch.services.index_resolver import (
    NAME_SEPARATOR,
    ElementResolver,
    even_name,
    inactive_sibling,
    is_physical_name,
    odd_name,
)
from elementsearch.utils.diff import diff_assoc_recursive, mapping_diff

logger = structlog.get_logger(__name__)

WORKSPACE_TYPES = ("asset", "object")


def _acknowledged(response: dict[str, Any]) -> bool:
    return response.get("acknowledged") is True


class IndexLifecycleManager:
    """
    Owns creation, mapping migration and alias swaps of physical indices.

    Every logical index name is an alias bound to exactly one of two physical
    indices, ``{logical}-even`` or ``{logical}-odd``. Changing a mapping builds
    the inactive sibling, optionally copies the documents over, rebinds the
    alias in one engine call and finally drops the previously live index.
    """

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

    @property
    def resolver(self) -> ElementResolver:
        return self._resolver

    def ensure_index(self, logical_name: str, mapping: dict[str, Any]) -> None:
        """
        Create the logical index on first use, otherwise reconcile its mapping.

        An existing inactive sibling is left alone here because a running
        rebuild may be filling it; migrations and staging replace it instead.
        """
        if self._persistence.alias_exists(logical_name):
            self.reconcile_mapping(logical_name, mapping)
            return

        self._drop_unaliased(logical_name)
        target = even_name(logical_name)
        self._create(target, mapping)
        self._bind(target, logical_name)
        logger.info("logical_index_created", logical_index=logical_name, physical_index=target)

    def reconcile_mapping(
        self,
        logical_name: str,
        mapping: dict[str, Any],
        *,
        reindex_data: bool = True,
        force: bool = False,
    ) -> bool:
        """
        Migrate ``logical_name`` to ``mapping`` through its inactive sibling.

        Returns False without touching the engine when the live mapping already
        matches and ``force`` is off. Each step must succeed before the next
        one runs; a failure leaves the alias on the previously live index.
        """
        source = self._resolver.resolve_physical_name(logical_name)
        target = inactive_sibling(source)
        log = logger.bind(logical_index=logical_name, source=source, target=target)

        if not force:
            current = self.get_index_mapping(source)
            diff = mapping_diff(mapping, current)
            if not any(diff.values()):
                log.debug("mapping_unchanged")
                return False
            log.info("mapping_changed", diff=diff)

        if self._persistence.index_exists(target):
            log.warning("stale_target_index_dropped")
            self._persistence.delete_index(target)

        self._create(target, mapping)
        if reindex_data:
            self._copy_documents(source, target)
        self._bind(target, logical_name)
        self._drop_previous(source, logical_name)
        log.info("logical_index_migrated", reindexed=reindex_data, forced=force)
        return True

    def clear_index_data(self, logical_name: str) -> None:
        """Swap the alias to an empty index that keeps the current mapping."""
        if not self._persistence.alias_exists(logical_name):
            raise NoMappingFound(f'Could not clear index data. No mapping found for "{logical_name}"')

        mapping = self.get_index_mapping(logical_name)
        if not mapping:
            raise NoMappingFound(f'Could not clear index data. No mapping found for "{logical_name}"')
        self.reconcile_mapping(logical_name, mapping, reindex_data=False, force=True)

    def delete_all_physical_indices(self, endpoint_name: str) -> list[str]:
        """
        Best-effort teardown of every index and alias below one endpoint.

        The pattern is expanded to concrete names first; engines that require
        explicit names for destructive calls reject wildcard deletes.
        """
        pattern = self._resolver.endpoint_pattern(endpoint_name)
        names = self._persistence.list_indices(pattern)
        for physical_name in names:
            self._persistence.delete_index(physical_name)
        logger.info("endpoint_indices_deleted", endpoint=endpoint_name, pattern=pattern, deleted=len(names))
        return names

    def get_index_mapping(self, name: str) -> dict[str, Any]:
        """Return the mapping of a physical index, or of the index behind an alias."""
        if not is_physical_name(name):
            if not self._persistence.alias_exists(name):
                raise AliasNotFound(f'Could not get index mapping. No alias found for "{name}"')
            name = self._resolver.resolve_physical_name(name)

        response = self._persistence.get_mapping(name)
        return (response.get(name) or {}).get("mappings") or {}

    def has_mapping_changed(self, name: str, mapping: dict[str, Any]) -> bool:
        current = self.get_index_mapping(name)
        return any(mapping_diff(mapping, current).values())

    @staticmethod
    def has_workspace_changed(config: EndpointConfig, prior: EndpointConfig) -> bool:
        """Return True when the asset or object workspace differs from the prior configuration."""
        for element_type in WORKSPACE_TYPES:
            current = dict(enumerate(config.get_workspace(element_type)))
            previous = dict(enumerate(prior.get_workspace(element_type)))
            if diff_assoc_recursive(current, previous) or diff_assoc_recursive(previous, current):
                return True
        return False

    def sync_endpoint(self, config: EndpointConfig, prior: EndpointConfig | None = None) -> bool:
        """
        Ensure every logical index of ``config`` exists with its current mapping.

        Returns True when the workspaces changed against ``prior`` and the
        endpoint needs a full rebuild.
        """
        for logical_name in self._resolver.all_logical_names(config):
            type_tag = logical_name.rsplit(NAME_SEPARATOR, 1)[-1]
            self.ensure_index(logical_name, self._codec.mapping_for(type_tag))
        return prior is not None and self.has_workspace_changed(config, prior)

    def prepare_staged_index(self, logical_name: str) -> str:
        """Create an empty inactive sibling that shares the live mapping and return its name."""
        source = self._resolver.resolve_physical_name(logical_name)
        target = inactive_sibling(source)
        mapping = self.get_index_mapping(source)
        if not mapping:
            raise NoMappingFound(f'Could not stage index. No mapping found for "{logical_name}"')

        if self._persistence.index_exists(target):
            self._persistence.delete_index(target)
        self._create(target, mapping)
        logger.info("staged_index_prepared", logical_index=logical_name, live=source, staged=target)
        return target

    def promote_staged_index(self, logical_name: str, staged_name: str) -> None:
        """Point the alias at a fully built staged index and drop the one it replaces."""
        source = self._resolver.resolve_physical_name(logical_name)
        if source == staged_name:
            return
        self._bind(staged_name, logical_name)
        self._drop_previous(source, logical_name)
        logger.info("staged_index_promoted", logical_index=logical_name, live=staged_name, dropped=source)

    def _drop_unaliased(self, logical_name: str) -> None:
        for physical_name in (even_name(logical_name), odd_name(logical_name)):
            if self._persistence.index_exists(physical_name):
                logger.warning("orphan_index_dropped", logical_index=logical_name, physical_index=physical_name)
                self._persistence.delete_index(physical_name)

    def _create(self, physical_name: str, mapping: dict[str, Any]) -> None:
        try:
            response = self._persistence.create_index(physical_name, mapping)
        except SearchBackendUnavailable as exc:
            raise IndexCreateFailed(f'Could not create index "{physical_name}"') from exc
        if not _acknowledged(response):
            raise IndexCreateFailed(f'Could not create index "{physical_name}"')

    def _copy_documents(self, source: str, target: str) -> None:
        try:
            refresh = self._persistence.refresh_index(source)
            shards_failed = (refresh.get("_shards") or {}).get("failed")
            if shards_failed is None or shards_failed > 0:
                raise ReindexFailed(f'Could not refresh index "{source}"')

            response = self._persistence.reindex(source, target)
        except SearchBackendUnavailable as exc:
            raise ReindexFailed(f'Could not reindex data from "{source}" to "{target}"') from exc

        failures = response.get("failures")
        if failures is None or failures:
            raise ReindexFailed(f'Could not reindex data from "{source}" to "{target}"')

    def _bind(self, physical_name: str, logical_name: str) -> None:
        try:
            response = self._persistence.create_alias(physical_name, logical_name)
        except SearchBackendUnavailable as exc:
            raise AliasSwapFailed(f'Could not create alias for "{physical_name}"') from exc
        if not _acknowledged(response):
            raise AliasSwapFailed(f'Could not create alias for "{physical_name}"')

    def _drop_previous(self, physical_name: str, logical_name: str) -> None:
        # The alias already points at the new index; the leftover is replaced by the next migration.
        try:
            self._persistence.delete_index(physical_name)
        except SearchBackendUnavailable as exc:
            logger.error(
                "previous_index_delete_failed",
                logical_index=logical_name,
                physical_index=physical_name,
                error=str(exc),
            )
            raise IndexDeleteFailed(f'Could not delete previous index "{physical_name}"') from exc


index_manager = IndexLifecycleManager()
