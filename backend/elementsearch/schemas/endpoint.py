"""Pydantic view over endpoint indexing configuration."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class EndpointConfig(BaseModel):
    """Read-only endpoint configuration consumed by the indexing core."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    name: str = Field(min_length=1, max_length=80)
    asset_indexing_enabled: bool = False
    object_indexing_enabled: bool = False
    object_class_names: list[str] = Field(default_factory=list)
    asset_workspace: list[dict[str, Any]] = Field(default_factory=list)
    object_workspace: list[dict[str, Any]] = Field(default_factory=list)

    def indexes_object_class(self, class_name: str | None) -> bool:
        """Return True when objects of this class are indexed by the endpoint."""
        return self.object_indexing_enabled and bool(class_name) and class_name in self.object_class_names

    def get_workspace(self, element_type: str) -> list[dict[str, Any]]:
        if element_type == "asset":
            return self.asset_workspace
        if element_type == "object":
            return self.object_workspace
        return []
