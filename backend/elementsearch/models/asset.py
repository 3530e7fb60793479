"""SQLAlchemy model for assets and asset folders."""

from __future__ import annotations

from typing import Optional

from sqlalchemy import BigInteger, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from elementsearch.database import Base
from elementsearch.models.element import ElementColumns, ElementKind


class Asset(ElementColumns, Base):
    """Binary asset (or asset folder) in the asset tree."""

    __tablename__ = "assets"

    parent_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("assets.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    mimetype: Mapped[Optional[str]] = mapped_column(String(190), nullable=True)
    filesize: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)

    children = relationship("Asset", back_populates="parent", cascade="all, delete-orphan")
    parent = relationship("Asset", back_populates="children", remote_side="Asset.id")

    @property
    def kind(self) -> ElementKind:
        return ElementKind.ASSET_FOLDER if self.is_folder else ElementKind.ASSET
