"""
Database session management (SQLAlchemy)

Three kinds of callers open sessions here:
  - HTTP routes, through the get_db dependency (one session per request)
  - APScheduler jobs in app.application.scheduler (one session per job run)
  - CLI commands in app.cli (one session per command)
All of them share one engine per process.
"""
import psycopg
from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker, Session

from app.config import get_settings


class Base(DeclarativeBase):
    """Declarative base for the reminder tables (see models.py)"""
    pass


_engine = None
_SessionLocal = None


def get_engine():
    """Process-wide engine built from DATABASE_URL (psycopg driver)"""
    global _engine
    if _engine is None:
        url = get_settings().get_sqlalchemy_url()
        _engine = create_engine(url, pool_pre_ping=True)
    return _engine


def get_session_factory():
    """
    Session factory used by jobs and CLI commands.

    Tests replace this with a factory bound to an in-memory SQLite engine.
    """
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(bind=get_engine(), autoflush=False, autocommit=False)
    return _SessionLocal


def get_db() -> Session:
    """
    FastAPI dependency: one session per request, always closed

    Usage:
        @router.get("")
        def index(db: Session = Depends(get_db)):
            ...
    """
    db = get_session_factory()()
    try:
        yield db
    finally:
        db.close()


def check_db_connection() -> None:
    """
    /ready check: a raw psycopg round trip to PostgreSQL

    Raises:
        psycopg.OperationalError: if the database is unavailable
    """
    with psycopg.connect(get_settings().DATABASE_URL, connect_timeout=3) as conn:
        with conn.cursor() as cur:
            cur.execute("SELECT 1;")
            cur.fetchone()
