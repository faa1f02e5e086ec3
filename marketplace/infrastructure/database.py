"""
Database Connection
"""
import logging
from typing import Any, Dict

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from marketplace.core.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()


def build_engine(url: str, echo: bool = False) -> Engine:
    """Create an engine; sqlite gets a single shared connection, others a bounded pool"""
    kwargs: Dict[str, Any] = {"echo": echo}
    
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
    else:
        kwargs.update(
            pool_pre_ping=True,
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_timeout=settings.DB_POOL_TIMEOUT,
            pool_recycle=settings.DB_POOL_RECYCLE,
        )
    
    return create_engine(url, **kwargs)


# Create engine
engine = build_engine(settings.DATABASE_URL, echo=settings.DEBUG)

# Create session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(bind: Engine = None):
    """Initialize database tables"""
    from marketplace.models import Base
    Base.metadata.create_all(bind=bind or engine)
    logger.info("✅ Database tables created")


def check_db_connection(bind: Engine = None):
    """
    Round-trip to the database

    Raises whatever the driver raises; startup treats that as fatal.
    """
    with (bind or engine).connect() as conn:
        conn.execute(text("SELECT 1"))


def get_db():
    """Get database session (dependency)"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
