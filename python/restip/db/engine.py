"""SQLAlchemy engine creation and configuration.

The engine is created once and provides connection pooling for all
queries against the host system's database.
"""

from functools import lru_cache

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

from restip.config import get_settings


def create_db_engine(database_url: str | None = None) -> Engine:
    """Create a SQLAlchemy engine with the given URL.

    Args:
        database_url: Connection string. If None, uses settings.

    Returns:
        Configured SQLAlchemy engine.

    Note:
        The host schema is only ever queried with text() statements, so
        any dialect SQLAlchemy ships works (postgresql+psycopg://,
        mysql+pymysql://, sqlite://).
    """
    if database_url is None:
        settings = get_settings()
        database_url = settings.database_url

    return create_engine(
        database_url,
        pool_pre_ping=True,
        echo=False,
    )


@lru_cache
def get_engine() -> Engine:
    """Get the cached database engine."""
    return create_db_engine()
