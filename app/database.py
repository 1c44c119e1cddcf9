"""
Database engine, session factory and FastAPI dependency
"""
from sqlalchemy import create_engine, JSON
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool
import logging

from app.config import settings

logger = logging.getLogger(__name__)


def _engine_kwargs(url: str) -> dict:
    """SQLite needs cross-thread access; in-memory SQLite needs a single shared connection"""
    if not url.startswith("sqlite"):
        return {"pool_pre_ping": True}
    kwargs = {"connect_args": {"check_same_thread": False}}
    if url in ("sqlite://", "sqlite:///:memory:"):
        kwargs["poolclass"] = StaticPool
    return kwargs


engine = create_engine(settings.DATABASE_URL, **_engine_kwargs(settings.DATABASE_URL))
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()

# Embedded documents (questions, answer maps, analytics) live in JSON columns
JSONDocument = JSON().with_variant(JSONB(), "postgresql")


def init_db():
    """Create all tables registered on the declarative base"""
    import app.models  # noqa: F401  (registers models on Base.metadata)

    Base.metadata.create_all(bind=engine)
    logger.info("Database tables ensured")


def get_db():
    """
    Yield a database session for FastAPI dependency injection

    The session is closed when the request scope finishes.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
