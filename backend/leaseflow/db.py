# backend/leaseflow/db.py
from __future__ import annotations

from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase

from .config import settings


class Base(DeclarativeBase):
    pass


def _engine_kwargs(url: str) -> dict[str, Any]:
    kwargs: dict[str, Any] = {"pool_pre_ping": True, "future": True}
    if url.startswith("sqlite"):
        # TestClient and Celery eager mode touch the session from other threads
        kwargs["connect_args"] = {"check_same_thread": False}
    if settings.db_isolation_level:
        kwargs["isolation_level"] = settings.db_isolation_level.strip().upper()
    return kwargs


engine = create_engine(settings.database_url, **_engine_kwargs(settings.database_url))

SessionLocal = sessionmaker(
    bind=engine,
    autoflush=False,
    autocommit=False,
    future=True,
)


def init_db() -> None:
    from . import models  # noqa: F401  (register mappers)

    Base.metadata.create_all(bind=engine)


def get_db():
    """
    Request-scoped session.

    Workflow operations commit/rollback through the UnitOfWork; this guard
    only covers exceptions raised outside of one (auth, validation).
    """
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
