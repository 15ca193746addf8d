"""
Create the users and events tables.

Safe to run repeatedly: every statement is IF NOT EXISTS.

Usage:
    python -m backend.database.init_db
"""

import sys

import psycopg2

from backend.config import load_settings
from backend.database.db_connection import get_db

SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS users (
        user_id SERIAL PRIMARY KEY,
        first_name VARCHAR(100) NOT NULL,
        last_name VARCHAR(100) NOT NULL,
        email VARCHAR(255) NOT NULL UNIQUE,
        password_hash TEXT NOT NULL,
        role VARCHAR(20) NOT NULL DEFAULT 'student'
            CHECK (role IN ('student', 'organizer')),
        photo VARCHAR(255),
        created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS events (
        event_id SERIAL PRIMARY KEY,
        owner_id INTEGER NOT NULL REFERENCES users(user_id),
        title VARCHAR(200) NOT NULL,
        description TEXT,
        location VARCHAR(255),
        event_date TIMESTAMPTZ NOT NULL,
        likes INTEGER[] NOT NULL DEFAULT '{}',
        comments JSONB NOT NULL DEFAULT '[]'::jsonb,
        created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_events_owner ON events (owner_id);",
    "CREATE INDEX IF NOT EXISTS idx_events_date ON events (event_date);",
]


def init_schema(dsn: str) -> None:
    """
    Apply every schema statement in a single transaction.
    """
    with get_db(dsn) as conn:
        with conn.cursor() as cur:
            for statement in SCHEMA:
                cur.execute(statement)


def main() -> int:
    settings = load_settings()

    print("--- Initializing database schema ---")
    try:
        init_schema(settings.database_url)
    except psycopg2.Error as e:
        print("\nSchema initialization FAILED:")
        print(f" Error: {e}")
        return 1

    print("Tables 'users' and 'events' are ready.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
