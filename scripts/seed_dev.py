#!/usr/bin/env python
"""Seed a development host database with fixture users and messages.

Seeds two users who have written to each other, plus one folder in each of
the first user's boxes, for trying the API locally.

Constraints:
- Refuses to run in staging or prod (RESTIP_ENV check)
- Idempotent: rows that already exist are left alone
- Never runs automatically (manual invocation only)

Usage:
    cd python && DATABASE_URL=sqlite:///dev.db python ../scripts/seed_dev.py --create-schema
"""

import os
import sys

SEED_USERS = [
    ("205f3efb7997a0fc9755da2b535038da", "dev_alice", "Alice", "Developer"),
    ("e7a0a84b161f3e8c09b4a0a2e8a58147", "dev_bob", "Bob", "Developer"),
]

SEED_MESSAGES = [
    # (message_id, sender index, receiver index, subject, body, mkdate)
    (
        "6c4c6ac7d4f0f0b1c1e6f1b7f3d0a001",
        1,
        0,
        "Welcome",
        "Hi Alice,\n\nthe **new** course starts on monday. See https://example.org/course",
        1_700_000_000,
    ),
    (
        "6c4c6ac7d4f0f0b1c1e6f1b7f3d0a002",
        0,
        1,
        "Re: Welcome",
        "Thanks, %%see you there%%!",
        1_700_003_600,
    ),
]

SEED_FOLDERS = [("in", "courses"), ("out", "archive")]


def main():
    # 1. Environment check (hard fail in staging/prod)
    restip_env = os.getenv("RESTIP_ENV", "local")
    if restip_env not in ("local", "test"):
        print(f"ERROR: seed_dev.py refuses to run in RESTIP_ENV={restip_env}")
        sys.exit(1)

    # 2. Check DATABASE_URL
    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        print("ERROR: DATABASE_URL environment variable must be set")
        sys.exit(1)

    from sqlalchemy import text

    from restip.db.engine import create_db_engine
    from restip.db.session import create_session_factory
    from restip.errors import ConflictError
    from restip.services.folders import create_folder

    engine = create_db_engine(database_url)

    # 3. Host schema for throwaway databases (single source of truth)
    if "--create-schema" in sys.argv[1:]:
        from tests.utils.db import HOST_SCHEMA

        with engine.begin() as conn:
            for statement in HOST_SCHEMA:
                conn.execute(text(statement.replace("CREATE TABLE", "CREATE TABLE IF NOT EXISTS")))

    # 4. Idempotent seeding
    created = []
    with engine.begin() as conn:
        for user_id, username, forename, lastname in SEED_USERS:
            exists = conn.execute(
                text("SELECT 1 FROM auth_user_md5 WHERE user_id = :user_id"),
                {"user_id": user_id},
            ).scalar()
            if exists:
                continue
            conn.execute(
                text("""
                    INSERT INTO auth_user_md5 (user_id, username, Vorname, Nachname, Email, perms)
                    VALUES (:user_id, :username, :forename, :lastname, :email, 'autor')
                """),
                {
                    "user_id": user_id,
                    "username": username,
                    "forename": forename,
                    "lastname": lastname,
                    "email": f"{username}@example.org",
                },
            )
            created.append(f"user {username}")

        for message_id, sender, receiver, subject, body, mkdate in SEED_MESSAGES:
            exists = conn.execute(
                text("SELECT 1 FROM message WHERE message_id = :message_id"),
                {"message_id": message_id},
            ).scalar()
            if exists:
                continue
            conn.execute(
                text("""
                    INSERT INTO message (message_id, autor_id, subject, message, mkdate, priority)
                    VALUES (:message_id, :autor_id, :subject, :message, :mkdate, 'normal')
                """),
                {
                    "message_id": message_id,
                    "autor_id": SEED_USERS[sender][0],
                    "subject": subject,
                    "message": body,
                    "mkdate": mkdate,
                },
            )
            for index, snd_rec, readed in ((sender, "snd", 1), (receiver, "rec", 0)):
                conn.execute(
                    text("""
                        INSERT INTO message_user
                            (user_id, message_id, readed, deleted, snd_rec,
                             dont_delete, folder, mkdate)
                        VALUES (:user_id, :message_id, :readed, 0, :snd_rec, 0, 0, :mkdate)
                    """),
                    {
                        "user_id": SEED_USERS[index][0],
                        "message_id": message_id,
                        "readed": readed,
                        "snd_rec": snd_rec,
                        "mkdate": mkdate,
                    },
                )
            created.append(f"message {subject!r}")

    db = create_session_factory(engine)()
    try:
        for box, name in SEED_FOLDERS:
            try:
                create_folder(db, SEED_USERS[0][0], box, name, "en")
            except ConflictError:
                continue
            created.append(f"folder {box}/{name}")
    finally:
        db.close()

    # 5. Report
    db_display = database_url.split("@")[1] if "@" in database_url else database_url
    print(f"Database: {db_display}")
    print(f"RESTIP_ENV: {restip_env}")
    print()
    for item in created:
        print(f"✓ Created: {item}")
    if not created:
        print("• Everything exists already")
    print()
    print(f"Sign tokens with sub={SEED_USERS[0][0]} to act as {SEED_USERS[0][1]}.")


if __name__ == "__main__":
    main()
