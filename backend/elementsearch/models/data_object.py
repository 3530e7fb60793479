"""SQLAlchemy model for structured data objects and object folders."""

from __future__ import annotations

from typing import Optional

from sqlalchemy import Boolean, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from elementsearch.database import Base
from elementsearch.models.element import ElementColumns, ElementKind


class DataObject(ElementColumns, Base):
    """Structured object of a configured class, or an object folder."""

    __tablename__ = "objects"

    parent_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("objects.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    object_class: Mapped[Optional[str]] = mapped_column("class_name", String(190), nullable=True, index=True)
    published: Mapped[bool] = mapped_column(Boolean, default=True)

    children = relationship("DataObject", back_populates="parent", cascade="all, delete-orphan")
    parent = relationship("DataObject", back_populates="children", remote_side="DataObject.id")

    @property
    def class_name(self) -> Optional[str]:
        return None if self.is_folder else self.object_class

    @property
    def kind(self) -> ElementKind:
        return ElementKind.OBJECT_FOLDER if self.is_folder else ElementKind.OBJECT
