"""
PostgreSQL connection helper.
Provides get_db() for use by services.
"""

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

import psycopg2
from psycopg2.extras import RealDictCursor
from flask import current_app


@contextmanager
def get_db(dsn: Optional[str] = None) -> Iterator["psycopg2.extensions.connection"]:
    """
    Open a psycopg2 connection with dictionary-based row access.

    The connection commits when the block exits cleanly, rolls back when it
    raises, and is always closed.

    Usage:
        with get_db() as conn:
            with conn.cursor() as cur:
                cur.execute(...)

    Args:
        dsn (str, optional): Connection string. Defaults to the running app's
            DATABASE_URL setting.

    Raises:
        psycopg2.Error: If connecting or the enclosed work fails.
    """
    dsn = dsn or current_app.config["DATABASE_URL"]

    try:
        conn = psycopg2.connect(dsn, cursor_factory=RealDictCursor)
    except psycopg2.Error as e:
        logging.error(f"Error connecting to database: {e}")
        raise

    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def ping(dsn: str) -> None:
    """
    Run a trivial query so startup fails fast when storage is unreachable.
    """
    with get_db(dsn) as conn:
        with conn.cursor() as cur:
            cur.execute("SELECT 1;")
