"""Database access for the host system's tables.

The schema belongs to the host system; this package only provides the
engine, sessions and the transaction helper used by the services.
"""

from restip.db.engine import create_db_engine, get_engine
from restip.db.session import (
    create_session_factory,
    get_db,
    get_session_factory,
    transaction,
)

__all__ = [
    "create_db_engine",
    "get_engine",
    "create_session_factory",
    "get_db",
    "get_session_factory",
    "transaction",
]
