"""
Database connection and session management.
Uses SQLAlchemy; SQLite locally, Postgres in production.
"""
import json
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from petrec.core.config import get_config
from petrec.utils.logger import get_logger

logger = get_logger("data.database")

# Base class for all our database models
Base = declarative_base()

_session_factory: Optional[sessionmaker] = None


def _json_serializer(value) -> str:
    # Keep non-ASCII text readable so LIKE matches Korean ingredient names
    return json.dumps(value, ensure_ascii=False)


def make_engine(database_url: str) -> Engine:
    """Create an engine; in-memory SQLite shares one connection across threads."""
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}, "json_serializer": _json_serializer}
        if ":memory:" in database_url or database_url in ("sqlite://", "sqlite:///"):
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, **kwargs)
    return create_engine(database_url, pool_pre_ping=True, json_serializer=_json_serializer)


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(engine: Engine) -> None:
    """Create all tables that don't exist yet."""
    # Register the models on Base.metadata
    from petrec.data import models  # noqa: F401
    Base.metadata.create_all(bind=engine)


def get_session_factory() -> sessionmaker:
    """Session factory for the configured database, created on first use."""
    global _session_factory
    if _session_factory is None:
        url = get_config().database_url
        logger.info(f"Connecting to catalog database: {url.split('@')[-1]}")
        _session_factory = make_session_factory(make_engine(url))
    return _session_factory
