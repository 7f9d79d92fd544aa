import logging
from contextlib import contextmanager

from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker

from app.core.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)

# pool_recycle keeps MySQL from dropping idle pooled connections (wait_timeout)
engine = create_engine(
    settings.mysql_url,
    pool_size=5,
    max_overflow=10,
    pool_recycle=3600,
    pool_pre_ping=True,
    echo=settings.debug  # Log SQL queries in debug mode
)

# Session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@contextmanager
def get_db_session():
    """
    Context manager for database sessions.
    Usage:
        with get_db_session() as db:
            db.execute(text("SELECT * FROM user"))
    """
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def test_mysql_connection() -> bool:
    """
    Test if MySQL is reachable.
    Returns True if connection successful, False otherwise.
    """
    try:
        with get_db_session() as db:
            result = db.execute(text("SELECT 1 AS test"))
            row = result.fetchone()
            return row[0] == 1
    except Exception as e:
        logger.error("MySQL connection failed: %s", e)
        return False


def execute_raw_sql(sql, params: dict = None) -> list:
    """
    Execute raw SQL and return results as list of dicts.
    Accepts a plain string or a prepared text() clause (for expanding binds).
    """
    statement = text(sql) if isinstance(sql, str) else sql
    with get_db_session() as db:
        result = db.execute(statement, params or {})
        columns = list(result.keys())
        return [dict(zip(columns, row)) for row in result.fetchall()]


def fetch_one(sql, params: dict = None):
    """Like execute_raw_sql but returns only the first row (or None)."""
    rows = execute_raw_sql(sql, params)
    return rows[0] if rows else None
