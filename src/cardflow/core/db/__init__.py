"""
Database layer for cardflow.

Provides the SQLite schema, connection management and query helpers backing
boards, lists, the module catalog and cards.

Main components:
- schema.py: SQL schema definitions and migrations
- connection.py: Connection management, transactions and insert helpers
- queries.py: Lookups and guarded updates used by the apply and release flows

Usage:
    from cardflow.core.db import get_connection, init_db

    conn = init_db(db_path)

    with get_connection(db_path) as conn:
        cursor = conn.execute("SELECT * FROM cards WHERE type = ?", ("TASK",))
        tasks = cursor.fetchall()
"""

from cardflow.core.db.connection import get_connection, init_db, transaction
from cardflow.core.db.schema import SCHEMA_VERSION, create_schema

__all__ = [
    "get_connection",
    "init_db",
    "transaction",
    "create_schema",
    "SCHEMA_VERSION",
]
