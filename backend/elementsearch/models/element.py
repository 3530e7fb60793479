"""Element kinds and columns shared by asset and object tables."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from sqlalchemy import DateTime, Integer, String, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import JSON

JSONType = JSON().with_variant(JSONB, "postgresql")

FOLDER_TYPE = "folder"


class ElementType(str, Enum):
    """Element populations walked by a rebuild."""

    ASSET = "asset"
    OBJECT = "object"


class ElementKind(str, Enum):
    """Closed set of element variants the resolver dispatches on."""

    ASSET = "asset"
    ASSET_FOLDER = "assetfolder"
    OBJECT = "object"
    OBJECT_FOLDER = "objectfolder"

    @property
    def is_folder(self) -> bool:
        return self in (ElementKind.ASSET_FOLDER, ElementKind.OBJECT_FOLDER)

    @property
    def element_type(self) -> ElementType:
        if self in (ElementKind.ASSET, ElementKind.ASSET_FOLDER):
            return ElementType.ASSET
        return ElementType.OBJECT


class ElementColumns:
    """Columns every element table carries."""

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    type: Mapped[str] = mapped_column(String(40), nullable=False, index=True)
    key: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    path: Mapped[str] = mapped_column(String(765), nullable=False, default="/")
    data: Mapped[dict[str, Any]] = mapped_column(JSONType, default=dict)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    @property
    def full_path(self) -> str:
        base = self.path if self.path.endswith("/") else f"{self.path}/"
        return f"{base}{self.key}" if self.key else base

    @property
    def is_folder(self) -> bool:
        return self.type == FOLDER_TYPE

    @property
    def class_name(self) -> Optional[str]:
        return None
