"""
ResultSet: ordered, single-pass sequence of rows.
"""

from collections.abc import Iterator

from spdb.models import NOT_FOUND, Row, _NotFound


class ResultSet:
    """Iterator over fetched rows. Once consumed it is empty; it cannot be restarted."""

    def __init__(self, rows: list[Row]) -> None:
        self._rows = iter(rows)
        self._remaining = len(rows)

    def __iter__(self) -> Iterator[Row]:
        return self

    def __next__(self) -> Row:
        row = next(self._rows)
        self._remaining -= 1
        return row

    def __len__(self) -> int:
        """Rows not yet consumed."""
        return self._remaining

    def all(self) -> list[Row]:
        return list(self)

    def first(self) -> Row | _NotFound:
        return next(self, NOT_FOUND)

    def __repr__(self) -> str:
        return f"<ResultSet remaining={self._remaining}>"
