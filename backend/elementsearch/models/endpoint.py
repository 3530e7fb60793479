"""SQLAlchemy model for per-endpoint indexing configuration."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import Boolean, DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column

from elementsearch.database import Base
from elementsearch.models.element import JSONType


class EndpointConfiguration(Base):
    """Named endpoint deciding which element trees and classes are indexed."""

    __tablename__ = "endpoint_configurations"

    name: Mapped[str] = mapped_column(String(80), primary_key=True)
    asset_indexing_enabled: Mapped[bool] = mapped_column(Boolean, default=False)
    object_indexing_enabled: Mapped[bool] = mapped_column(Boolean, default=False)
    object_class_names: Mapped[list[str]] = mapped_column(JSONType, default=list)
    asset_workspace: Mapped[list[dict[str, Any]]] = mapped_column(JSONType, default=list)
    object_workspace: Mapped[list[dict[str, Any]]] = mapped_column(JSONType, default=list)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
