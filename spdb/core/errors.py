"""
Typed errors for the data-access layer.

Caller mistakes (ConfigurationError, ValidationError) subclass ValueError;
backend failures (ConnectionError, QueryError) carry the driver's native
diagnostic. ``public_message()`` decides what an end user gets to see.
"""

import builtins

from spdb.core.config import settings

DEFAULT_USER_MESSAGE = "An error has occurred. Please try again later."


class DatabaseError(Exception):
    """Base for every error raised by spdb."""

    def __init__(self, message: str, *, user_message: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.user_message = user_message or DEFAULT_USER_MESSAGE

    def public_message(self, debug: bool | None = None) -> str:
        """Full diagnostic in debug mode, generic user message otherwise."""
        if debug is None:
            debug = settings.DEBUG
        if debug:
            return f"{type(self).__name__}: {self.message}"
        return self.user_message


class ConfigurationError(DatabaseError, ValueError):
    """Missing driver, missing backend block, unresolved table binding."""


class ValidationError(DatabaseError, ValueError):
    """Malformed builder input (empty IN-list, bad sort direction, bad identifier)."""


class ConnectionError(DatabaseError, builtins.ConnectionError):
    """Handshake, auth or network failure; message is the backend's own text."""

    def __init__(
        self,
        message: str,
        *,
        driver: str | None = None,
        user_message: str | None = None,
    ) -> None:
        super().__init__(message, user_message=user_message)
        self.driver = driver


class QueryError(DatabaseError):
    """Backend rejected a well-formed statement."""

    def __init__(
        self,
        message: str,
        *,
        sql: str | None = None,
        user_message: str | None = None,
    ) -> None:
        super().__init__(message, user_message=user_message)
        self.sql = sql
