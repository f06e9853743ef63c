# jt/storage/db.py

import os
import sqlite3
from jt.utils.log import get_logger

logger = get_logger(__name__)

# bump together with schema.sql
SCHEMA_VERSION = 1
SCHEMA_PATH = os.path.join(os.path.dirname(__file__), "schema.sql")


def get_connection(db_path: str) -> sqlite3.Connection:
    """
    Open the trip store with rows returned as sqlite3.Row.
    """
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    return conn


def schema_version(conn: sqlite3.Connection) -> int:
    return conn.execute("PRAGMA user_version;").fetchone()[0]


def init_db(db_path: str) -> sqlite3.Connection:
    """
    Return a live connection to the trip store, creating the tables on
    first use. The applied schema is tracked in `PRAGMA user_version`.
    """
    conn = get_connection(db_path)
    current = schema_version(conn)
    if current < SCHEMA_VERSION:
        logger.debug("Applying trip schema v%d (was v%d): %s", SCHEMA_VERSION, current, SCHEMA_PATH)
        with open(SCHEMA_PATH, "r", encoding="utf-8") as f:
            conn.executescript(f.read())
        conn.execute(f"PRAGMA user_version = {SCHEMA_VERSION};")
        conn.commit()
    return conn
