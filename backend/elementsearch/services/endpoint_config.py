"""Lookup of endpoint indexing configuration."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from elementsearch.models.endpoint import EndpointConfiguration
from elementsearch.schemas.endpoint import EndpointConfig


def get_endpoint_config(db: Session, name: str) -> EndpointConfig | None:
    """Return the named endpoint configuration, or None when it does not exist."""
    row = db.get(EndpointConfiguration, name)
    if row is None:
        return None
    return EndpointConfig.model_validate(row)


def list_endpoint_configs(db: Session) -> list[EndpointConfig]:
    """Return every endpoint configuration ordered by name."""
    rows = db.scalars(select(EndpointConfiguration).order_by(EndpointConfiguration.name.asc())).all()
    return [EndpointConfig.model_validate(row) for row in rows]
