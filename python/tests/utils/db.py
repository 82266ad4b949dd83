"""Test database utilities.

The API reads and writes tables owned by the host system. Tests recreate
the subset of that schema the API touches in a private in-memory SQLite
database per test, so there is nothing to roll back between tests.
"""

from sqlalchemy import Engine, StaticPool, create_engine, text

HOST_SCHEMA = [
    """
    CREATE TABLE auth_user_md5 (
        user_id VARCHAR(32) NOT NULL PRIMARY KEY,
        username VARCHAR(64) NOT NULL,
        Vorname VARCHAR(64),
        Nachname VARCHAR(64),
        Email VARCHAR(64),
        perms VARCHAR(16) NOT NULL DEFAULT 'autor'
    )
    """,
    """
    CREATE TABLE message (
        message_id VARCHAR(32) NOT NULL PRIMARY KEY,
        autor_id VARCHAR(32) NOT NULL,
        subject VARCHAR(255),
        message TEXT,
        mkdate INTEGER NOT NULL DEFAULT 0,
        priority VARCHAR(16) NOT NULL DEFAULT 'normal'
    )
    """,
    """
    CREATE TABLE message_user (
        user_id VARCHAR(32) NOT NULL,
        message_id VARCHAR(32) NOT NULL,
        readed INTEGER NOT NULL DEFAULT 0,
        deleted INTEGER NOT NULL DEFAULT 0,
        snd_rec VARCHAR(3) NOT NULL,
        dont_delete INTEGER NOT NULL DEFAULT 0,
        folder INTEGER NOT NULL DEFAULT 0,
        mkdate INTEGER NOT NULL DEFAULT 0,
        PRIMARY KEY (user_id, message_id, snd_rec)
    )
    """,
    """
    CREATE TABLE user_data (
        sid VARCHAR(32) NOT NULL PRIMARY KEY,
        val TEXT,
        changed INTEGER NOT NULL DEFAULT 0
    )
    """,
]


def create_test_engine() -> Engine:
    """Create an in-memory SQLite engine holding the host schema.

    All sessions share one connection (StaticPool), so data committed by a
    test is visible to the app under test and to background tasks.
    """
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    with engine.begin() as conn:
        for statement in HOST_SCHEMA:
            conn.execute(text(statement))
    return engine
