from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool
import os
import logging

from secassess.core.settings import settings

logger = logging.getLogger("secassess.database")

Base = declarative_base()


def create_storage_engine(database_url: str, echo: bool = False) -> Engine:
    """Build an engine suited to the URL.

    SQLite is the normal target for a local blob store; an in-memory SQLite
    database must share one connection or every session sees an empty DB.
    """
    if database_url.startswith("sqlite"):
        if ":memory:" in database_url or database_url.rstrip("/") in ("sqlite:", "sqlite+pysqlite:"):
            return create_engine(
                database_url,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
                echo=echo,
            )
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            echo=echo,
        )
    return create_engine(
        database_url,
        poolclass=QueuePool,
        pool_size=int(os.getenv("DB_POOL_SIZE", "5")),
        max_overflow=int(os.getenv("DB_MAX_OVERFLOW", "10")),
        pool_pre_ping=True,  # Validate connections before use
        pool_recycle=int(os.getenv("DB_POOL_RECYCLE", "3600")),
        echo=echo,
    )


engine = create_storage_engine(settings.database_url, echo=settings.sql_debug)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(bind: Engine | None = None) -> None:
    """Create the storage tables if they do not exist yet."""
    # Import models so they register on Base.metadata
    from secassess.models import storage_entry  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)


def check_database_health(bind: Engine | None = None):
    """Check if database is accessible."""
    try:
        with (bind or engine).connect() as conn:
            conn.execute(text("SELECT 1"))
        logger.info("Database health check: PASSED")
        return {"status": "healthy", "database": "connected"}
    except Exception as e:
        logger.error(f"Database health check: FAILED - {str(e)}")
        return {"status": "unhealthy", "database": f"error: {str(e)}"}
