"""DDL for tables used by SQLite-backed tests."""

USERS_DDL = """
CREATE TABLE users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT,
    email TEXT,
    status TEXT,
    created_at TEXT,
    updated_at TEXT
)
"""
