"""Pydantic schema exports."""

from __future__ import annotations

from elementsearch.schemas.endpoint import EndpointConfig

__all__ = ["EndpointConfig"]
