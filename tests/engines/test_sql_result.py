"""Unit tests for engines.sql.result.ResultSet."""

import pickle

from spdb.engines.sql import ResultSet
from spdb.models import NOT_FOUND


def test_iterates_once_in_order() -> None:
    rs = ResultSet([{"id": 1}, {"id": 2}])
    assert [r["id"] for r in rs] == [1, 2]
    assert list(rs) == []


def test_len_counts_remaining() -> None:
    rs = ResultSet([{"id": 1}, {"id": 2}, {"id": 3}])
    assert len(rs) == 3
    next(rs)
    assert len(rs) == 2
    assert rs.all() == [{"id": 2}, {"id": 3}]
    assert len(rs) == 0


def test_first_on_empty() -> None:
    assert ResultSet([]).first() is NOT_FOUND


def test_not_found_is_a_singleton() -> None:
    assert pickle.loads(pickle.dumps(NOT_FOUND)) is NOT_FOUND
    assert repr(NOT_FOUND) == "NOT_FOUND"
