"""Exception taxonomy for index resolution, lifecycle and rebuild failures."""

from __future__ import annotations

from typing import Any


class IndexingError(RuntimeError):
    """Base class for every failure raised by the indexing core."""


class InvalidInput(IndexingError, ValueError):
    """Raised when a value cannot be resolved to an index type tag."""


class AliasNotFound(IndexingError):
    """Raised when no physical index currently answers to an alias."""


class NoMappingFound(IndexingError):
    """Raised when an index has never been created and has no mapping to reuse."""


class IndexCreateFailed(IndexingError):
    """Raised when the search engine does not acknowledge an index creation."""


class ReindexFailed(IndexingError):
    """Raised when copying documents between physical indices reports failures."""


class AliasSwapFailed(IndexingError):
    """Raised when the search engine does not acknowledge an alias rebind."""


class IndexDeleteFailed(IndexingError):
    """Raised when a physical index released by an alias swap cannot be deleted."""


class EndpointNotFound(IndexingError):
    """Raised when no endpoint configuration exists for a name."""


class RebuildFailed(IndexingError):
    """Raised when a rebuild run stops on an unrecoverable error."""

    def __init__(self, message: str, *, stage: str, report: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.stage = stage
        self.report = report or {}
