"""
PostgreSQL Connection Utility

PostgreSQL backs the identity accounts (email, password hash, lockout state).
Everything else lives in MongoDB.
"""
import logging
from contextlib import contextmanager

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from fct_admin.core.config import get_settings

logger = logging.getLogger(__name__)

_engine: Engine = None
_SessionLocal: sessionmaker = None


def get_engine() -> Engine:
    """Get or create the engine (created lazily so tests can swap it)."""
    global _engine
    if _engine is None:
        settings = get_settings()
        # pool_size=5: maintain 5 connections ready
        # max_overflow=10: allow 10 extra connections under load
        set_engine(create_engine(
            settings.postgres_url,
            pool_size=5,
            max_overflow=10,
            pool_pre_ping=True,
            echo=settings.debug and settings.log_level == "DEBUG"
        ))
    return _engine


def set_engine(engine: Engine) -> None:
    """Install a different engine (e.g. in-memory SQLite for tests)."""
    global _engine, _SessionLocal
    _engine = engine
    _SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@contextmanager
def get_db_session():
    """
    Context manager for database sessions.
    Usage:
        with get_db_session() as db:
            db.execute(text("SELECT * FROM accounts"))
    """
    get_engine()
    session = _SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


ACCOUNTS_DDL = """
    CREATE TABLE IF NOT EXISTS accounts (
        uid VARCHAR(64) PRIMARY KEY,
        email VARCHAR(255) NOT NULL UNIQUE,
        display_name VARCHAR(200),
        password_hash VARCHAR(255) NOT NULL,
        is_active BOOLEAN NOT NULL DEFAULT TRUE,
        failed_attempts INTEGER NOT NULL DEFAULT 0,
        locked_until TIMESTAMP NULL,
        created_at TIMESTAMP NOT NULL
    )
"""


def init_identity_schema():
    """Create the accounts table if it does not exist yet."""
    with get_db_session() as db:
        db.execute(text(ACCOUNTS_DDL))
    logger.info("Identity schema ready")


def test_postgres_connection() -> bool:
    """
    Test if PostgreSQL is reachable.
    Returns True if connection successful, False otherwise.
    """
    try:
        with get_db_session() as db:
            result = db.execute(text("SELECT 1 as test"))
            row = result.fetchone()
            return row[0] == 1
    except Exception as e:
        logger.warning("PostgreSQL connection failed: %s", e)
        return False
