"""SQLAlchemy model exports."""

from __future__ import annotations

from elementsearch.models.asset import Asset
from elementsearch.models.data_object import DataObject
from elementsearch.models.element import FOLDER_TYPE, ElementKind, ElementType
from elementsearch.models.endpoint import EndpointConfiguration

__all__ = ["Asset", "DataObject", "EndpointConfiguration", "ElementKind", "ElementType", "FOLDER_TYPE"]
