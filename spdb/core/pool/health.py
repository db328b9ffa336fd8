"""
Connection health check.
"""

from .connection import Connection


def health_check(conn: Connection) -> bool:
    """
    Run the backend's ping (SELECT 1, or Mongo's ping command) and return True if no exception.
    """
    if conn.closed:
        return False
    try:
        return conn.connector.ping(conn.handle)
    except Exception:
        return False
