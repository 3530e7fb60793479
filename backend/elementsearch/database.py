"""SQLAlchemy engine, session, and declarative base setup."""

from __future__ import annotations

from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from elementsearch.config import get_settings


class Base(DeclarativeBase):
    """Declarative base class for all SQLAlchemy models."""


settings = get_settings()
engine = create_engine(settings.database_url, future=True)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
