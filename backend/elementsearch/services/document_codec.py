"""Serialization of elements into search documents, and the mappings they need."""

from __future__ import annotations

import copy
from datetime import datetime
from typing import Any

from elementsearch.models.element import ElementKind
from elementsearch.services.element_store import Element
from elementsearch.services.index_resolver import INDEX_ASSET, INDEX_ASSET_FOLDER, INDEX_OBJECT_FOLDER

_KEYWORD_TEXT = {
    "type": "text",
    "fields": {
        "keyword": {"type": "keyword", "ignore_above": 256},
    },
}

_SYSTEM_PROPERTIES: dict[str, Any] = {
    "id": {"type": "long"},
    "kind": {"type": "keyword"},
    "type": {"type": "keyword"},
    "key": _KEYWORD_TEXT,
    "path": {"type": "keyword"},
    "full_path": {"type": "keyword"},
    "parent_id": {"type": "long"},
    "created_at": {"type": "date"},
    "updated_at": {"type": "date"},
    "data": {"type": "flattened"},
}

_FOLDER_PROPERTIES: dict[str, Any] = {
    "child_count": {"type": "integer"},
    "has_children": {"type": "boolean"},
}

_ASSET_PROPERTIES: dict[str, Any] = {
    "mimetype": {"type": "keyword"},
    "filesize": {"type": "long"},
}

_OBJECT_PROPERTIES: dict[str, Any] = {
    "class_name": {"type": "keyword"},
    "published": {"type": "boolean"},
}


def _isoformat(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


class DocumentCodec:
    """Builds the document stored for one element and the mapping of each index type."""

    def serialize(self, element: Element) -> dict[str, Any]:
        """Serialize an asset, object or folder into its search document."""
        kind = element.kind
        document: dict[str, Any] = {
            "id": element.id,
            "kind": kind.value,
            "type": element.type,
            "key": element.key,
            "path": element.path,
            "full_path": element.full_path,
            "parent_id": element.parent_id,
            "created_at": _isoformat(element.created_at),
            "updated_at": _isoformat(element.updated_at),
            "data": element.data or {},
        }

        if kind.is_folder:
            child_count = len(element.children)
            document["child_count"] = child_count
            document["has_children"] = child_count > 0
        elif kind is ElementKind.ASSET:
            document["mimetype"] = element.mimetype
            document["filesize"] = element.filesize
        else:
            document["class_name"] = element.class_name
            document["published"] = bool(element.published)
        return document

    @staticmethod
    def mapping_for(type_tag: str) -> dict[str, Any]:
        """Return the mapping a logical index of ``type_tag`` is created with."""
        properties = copy.deepcopy(_SYSTEM_PROPERTIES)
        if type_tag in (INDEX_ASSET_FOLDER, INDEX_OBJECT_FOLDER):
            properties.update(copy.deepcopy(_FOLDER_PROPERTIES))
        elif type_tag == INDEX_ASSET:
            properties.update(copy.deepcopy(_ASSET_PROPERTIES))
        else:
            properties.update(copy.deepcopy(_OBJECT_PROPERTIES))
        return {"properties": properties}


document_codec = DocumentCodec()
