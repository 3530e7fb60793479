"""Elasticsearch-backed persistence client for indices, aliases and documents."""

from __future__ import annotations

import threading
from typing import Any

import structlog
from elasticsearch import ApiError, Elasticsearch

from elementsearch.config import Settings, get_settings
from elementsearch.services.index_resolver import is_physical_name

logger = structlog.get_logger(__name__)


class SearchBackendUnavailable(RuntimeError):
    """Raised when Elasticsearch cannot be reached or rejects a request."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code

    @property
    def is_client_error(self) -> bool:
        return self.status_code is not None and 400 <= self.status_code < 500


def _body(response: Any) -> dict:
    """Unwrap an ``ObjectApiResponse`` into a plain dict."""
    body = getattr(response, "body", response)
    return dict(body) if body else {}


def _wrap(message: str, exc: Exception) -> SearchBackendUnavailable:
    status_code = exc.meta.status if isinstance(exc, ApiError) else None
    return SearchBackendUnavailable(f"{message}: {exc}", status_code=status_code)


class IndexPersistenceService:
    """Thin protocol client over the search engine index, alias and document APIs."""

    def __init__(self, settings: Settings | None = None, client: Elasticsearch | None = None) -> None:
        self._settings = settings or get_settings()
        self._client = client
        self._lock = threading.Lock()

    @property
    def settings(self) -> Settings:
        """Expose active runtime settings."""
        return self._settings

    def ping(self) -> bool:
        try:
            return bool(self._get_client().ping())
        except Exception as exc:  # noqa: BLE001
            raise _wrap("Elasticsearch ping failed", exc) from exc

    def create_index(self, name: str, mapping: dict[str, Any]) -> dict:
        """Create a physical index with ``mapping`` and return the acknowledgment."""
        try:
            response = self._get_client().indices.create(index=name, mappings=mapping)
        except Exception as exc:  # noqa: BLE001
            raise _wrap(f"Failed to create index {name}", exc) from exc
        logger.info("index_created", physical_index=name)
        return _body(response)

    def delete_index(self, name: str) -> dict:
        """Delete one concrete index (missing is fine)."""
        try:
            response = self._get_client().options(ignore_status=[404]).indices.delete(index=name)
        except Exception as exc:  # noqa: BLE001
            raise _wrap(f"Failed to delete index {name}", exc) from exc
        logger.info("index_deleted", physical_index=name)
        return _body(response)

    def list_indices(self, pattern: str) -> list[str]:
        """Expand a wildcard pattern into the sorted names of the concrete indices it matches."""
        try:
            response = self._get_client().options(ignore_status=[404]).indices.get(
                index=pattern,
                expand_wildcards="all",
            )
        except Exception as exc:  # noqa: BLE001
            raise _wrap(f"Failed to list indices matching {pattern}", exc) from exc
        body = _body(response)
        return sorted(index for index, entry in body.items() if isinstance(entry, dict) and "mappings" in entry)

    def index_exists(self, name: str) -> bool:
        try:
            return bool(self._get_client().indices.exists(index=name))
        except Exception as exc:  # noqa: BLE001
            raise _wrap(f"Failed to check index {name}", exc) from exc

    def alias_exists(self, alias: str) -> bool:
        try:
            return bool(self._get_client().indices.exists_alias(name=alias))
        except Exception as exc:  # noqa: BLE001
            raise _wrap(f"Failed to check alias {alias}", exc) from exc

    def get_alias(self, alias: str) -> dict:
        """Return ``{index: {"aliases": {alias: {...}}}}`` for every index bound to ``alias``."""
        try:
            response = self._get_client().options(ignore_status=[404]).indices.get_alias(name=alias)
        except Exception as exc:  # noqa: BLE001
            raise _wrap(f"Failed to read alias {alias}", exc) from exc
        body = _body(response)
        # A 404 body carries "error"/"status" keys instead of index entries.
        return {index: entry for index, entry in body.items() if isinstance(entry, dict) and "aliases" in entry}

    def find_index_name_by_alias(self, alias: str) -> str | None:
        """Return the physical index currently bound to ``alias``."""
        for index, entry in self.get_alias(alias).items():
            if alias in (entry.get("aliases") or {}):
                return index
        return None

    def create_alias(self, physical_name: str, alias: str) -> dict:
        """
        Bind ``alias`` to ``physical_name``.

        Every previous binding is removed in the same ``update_aliases`` request,
        so the rebind is atomic on the engine side.
        """
        actions: list[dict[str, Any]] = [
            {"remove": {"index": index, "alias": alias}}
            for index in self.get_alias(alias)
            if index != physical_name
        ]
        actions.append({"add": {"index": physical_name, "alias": alias}})
        try:
            response = self._get_client().indices.update_aliases(actions=actions)
        except Exception as exc:  # noqa: BLE001
            raise _wrap(f"Failed to bind alias {alias} to {physical_name}", exc) from exc
        logger.info("alias_bound", alias=alias, physical_index=physical_name, removed=len(actions) - 1)
        return _body(response)

    def get_mapping(self, name: str) -> dict:
        """Return ``{physical_name: {"mappings": {...}}}``."""
        try:
            response = self._get_client().indices.get_mapping(index=name)
        except Exception as exc:  # noqa: BLE001
            raise _wrap(f"Failed to read mapping of {name}", exc) from exc
        return _body(response)

    def refresh_index(self, name: str) -> dict:
        try:
            response = self._get_client().indices.refresh(index=name)
        except Exception as exc:  # noqa: BLE001
            raise _wrap(f"Failed to refresh index {name}", exc) from exc
        return _body(response)

    def reindex(self, source: str, target: str) -> dict:
        """Copy every document from ``source`` to ``target`` on the server side."""
        try:
            response = self._get_client().reindex(
                source={"index": source},
                dest={"index": target},
                refresh=True,
                wait_for_completion=True,
            )
        except Exception as exc:  # noqa: BLE001
            raise _wrap(f"Failed to reindex {source} into {target}", exc) from exc
        body = _body(response)
        logger.info(
            "index_data_copied",
            source=source,
            target=target,
            total=body.get("total"),
            failures=len(body.get("failures") or []),
        )
        return body

    def upsert(self, document: dict[str, Any], endpoint_name: str, index_name: str) -> dict:
        """
        Write one element document into ``index_name`` (alias or physical).

        Logical names must resolve to an alias; otherwise the engine would
        auto-create a concrete index that squats on the alias name.
        """
        document_id = document["id"]
        try:
            response = self._get_client().index(
                index=index_name,
                id=str(document_id),
                document=document,
                require_alias=not is_physical_name(index_name),
            )
        except Exception as exc:  # noqa: BLE001
            raise _wrap(f"Failed to index element {document_id} into {index_name}", exc) from exc
        logger.debug("document_upserted", endpoint=endpoint_name, index=index_name, element_id=document_id)
        return _body(response)

    def delete(self, element_id: int | str, index_name: str) -> dict:
        """Delete one element document (idempotent when the document is missing)."""
        try:
            response = self._get_client().options(ignore_status=[404]).delete(index=index_name, id=str(element_id))
        except Exception as exc:  # noqa: BLE001
            raise _wrap(f"Failed to delete element {element_id} from {index_name}", exc) from exc
        logger.debug("document_deleted", index=index_name, element_id=element_id)
        return _body(response)

    def _get_client(self) -> Elasticsearch:
        if self._client is None:
            with self._lock:
                if self._client is None:
                    timeout_seconds = max(0.1, self._settings.elasticsearch_timeout_ms / 1000)
                    self._client = Elasticsearch(
                        hosts=[self._settings.elasticsearch_url],
                        request_timeout=timeout_seconds,
                        verify_certs=self._settings.elasticsearch_verify_certs,
                    )
        return self._client


index_persistence_service = IndexPersistenceService()
