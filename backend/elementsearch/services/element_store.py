"""Read access to the element population: counts, id pages and parent chains."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Union

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from elementsearch.config import get_settings
from elementsearch.models.asset import Asset
from elementsearch.models.data_object import DataObject
from elementsearch.models.element import ElementType

Element = Union[Asset, DataObject]

_MODELS: dict[ElementType, type[Asset] | type[DataObject]] = {
    ElementType.ASSET: Asset,
    ElementType.OBJECT: DataObject,
}


def model_for(element_type: ElementType | str) -> type[Asset] | type[DataObject]:
    """Return the table model backing one element population."""
    return _MODELS[ElementType(element_type)]


class ElementStore:
    """Per-type count/page/load queries over one database session."""

    def __init__(self, db: Session, *, root_id: int | None = None) -> None:
        self._db = db
        self._root_id = get_settings().root_element_id if root_id is None else root_id

    @property
    def root_id(self) -> int:
        return self._root_id

    def count(self, element_type: ElementType | str) -> int:
        model = model_for(element_type)
        return int(self._db.scalar(select(func.count(model.id))) or 0)

    def page_ids(self, element_type: ElementType | str, *, offset: int, limit: int) -> list[int]:
        """Return one page of ids ordered by id ascending."""
        model = model_for(element_type)
        rows = self._db.scalars(select(model.id).order_by(model.id.asc()).offset(offset).limit(limit))
        return [int(row) for row in rows]

    def get(self, element_type: ElementType | str, element_id: int) -> Element | None:
        return self._db.get(model_for(element_type), element_id)

    def iter_ancestor_folders(self, element: Element, *, visited: set[int] | None = None) -> Iterator[Element]:
        """
        Yield the folders above ``element``, nearest first.

        The walk follows ``parent_id`` through the store and stops at the root
        id, at a missing parent, at the first non-folder, or at a folder already
        in ``visited``. Yielded ids are added to ``visited``.
        """
        seen = visited if visited is not None else set()
        model = type(element)
        parent_id = element.parent_id

        while parent_id is not None and parent_id != self._root_id and parent_id not in seen:
            parent = self._db.get(model, parent_id)
            if parent is None or not parent.is_folder:
                return
            seen.add(parent.id)
            yield parent
            parent_id = parent.parent_id

    def release(self) -> None:
        """Drop loaded rows from the session identity map."""
        self._db.expunge_all()
