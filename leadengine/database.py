"""
Database engine + session factory.

Always initializes — defaults to SQLite for local dev, Postgres in production.
get_session() always returns a real session.
"""
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase

from leadengine.config import DATABASE_URL, STORE_TIMEOUT_SECONDS


class Base(DeclarativeBase):
    pass


def build_engine(database_url: str):
    """Create an engine with a bounded wait on every statement."""
    # Railway injects postgres:// but SQLAlchemy 2.x requires postgresql://
    url = database_url.replace('postgres://', 'postgresql://', 1)

    if url.startswith('sqlite'):
        return create_engine(url, connect_args={
            'check_same_thread': False,
            'timeout': STORE_TIMEOUT_SECONDS,
        })
    return create_engine(
        url,
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=10,
        pool_timeout=STORE_TIMEOUT_SECONDS,
        connect_args={'options': f'-c statement_timeout={STORE_TIMEOUT_SECONDS * 1000}'},
    )


engine = build_engine(DATABASE_URL)

SessionLocal = sessionmaker(bind=engine)


def get_session():
    """Return a new DB session."""
    return SessionLocal()
