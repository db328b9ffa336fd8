"""
Tests for engines.record: RecordAccessor CRUD against in-memory SQLite, plus timestamp stamping.
"""

from unittest.mock import MagicMock, patch

import pytest
from sqlmodel import Field, SQLModel

from spdb.core.errors import ConfigurationError, QueryError, ValidationError
from spdb.core.pool import Connection, configure, connect
from spdb.engines.record import RecordAccessor, stamp_created, stamp_updated
from spdb.models import NOT_FOUND, Model
from tests.utils.config import sqlite_config
from tests.utils.tables import USERS_DDL

T0 = "2024-01-01 00:00:00"
T1 = "2024-06-01 12:30:00"


class User(Model):
    __tablename__ = "users"


class Unbound(Model):
    pass


class Account(SQLModel, table=True):
    __tablename__ = "accounts"

    id: int | None = Field(default=None, primary_key=True)
    email: str
    created_at: str | None = None
    updated_at: str | None = None


@pytest.fixture
def users(sqlite_conn: Connection) -> RecordAccessor:
    return RecordAccessor(sqlite_conn, User)


def _seed(users: RecordAccessor) -> None:
    users.save({"name": "ada", "email": "ada@example.com", "status": "active", "created_at": T0})
    users.save({"name": "bob", "email": "bob@example.com", "status": "banned", "created_at": T1})
    users.save(
        {
            "name": "cy",
            "email": "cy@example.com",
            "status": "active",
            "created_at": "2023-03-03 00:00:00",
        }
    )


# --- timestamps ---


class TestTimestamps:
    @patch("spdb.engines.record.timestamps._timestamp", return_value=T1)
    def test_stamp_created_fills_both(self, _mock):
        assert stamp_created({"name": "ada"}) == {
            "name": "ada",
            "created_at": T1,
            "updated_at": T1,
        }

    @patch("spdb.engines.record.timestamps._timestamp", return_value=T1)
    def test_stamp_created_keeps_supplied(self, _mock):
        out = stamp_created({"created_at": T0, "updated_at": None})
        assert out == {"created_at": T0, "updated_at": T1}

    def test_stamp_created_does_not_mutate(self):
        record = {"name": "ada"}
        stamp_created(record)
        assert record == {"name": "ada"}

    @patch("spdb.engines.record.timestamps._timestamp", return_value=T1)
    def test_stamp_updated(self, _mock):
        assert stamp_updated({"name": "ada"}) == {"name": "ada", "updated_at": T1}
        assert stamp_updated({"updated_at": T0}) == {"updated_at": T0}

    def test_timestamp_format(self):
        value = stamp_created({})["created_at"]
        assert len(value) == 19 and value[4] == "-" and value[13] == ":"


# --- create / save ---


def test_save_stamps_equal_timestamps(users: RecordAccessor) -> None:
    assert users.save({"name": "ada"}) is True
    row = users.fetch_one()
    assert row["name"] == "ada"
    assert row["created_at"] is not None
    assert row["created_at"] == row["updated_at"]


def test_save_preserves_supplied_created_at(users: RecordAccessor) -> None:
    users.save({"name": "ada", "created_at": T0})
    row = users.fetch_one()
    assert row["created_at"] == T0
    assert row["updated_at"] is not None


def test_create_then_save(users: RecordAccessor) -> None:
    assert users.create({"name": "ada"}).save() is True
    assert len(users.fetch_all()) == 1
    with pytest.raises(ValidationError, match="Nothing to save"):
        users.save()


def test_insert_into_explicit_table(sqlite_conn: Connection) -> None:
    sqlite_conn.handle.execute(
        "CREATE TABLE audit (id INTEGER PRIMARY KEY, action TEXT, created_at TEXT, updated_at TEXT)"
    )
    accessor = RecordAccessor(sqlite_conn, User)
    assert accessor.insert_into("audit", {"action": "login"}) is True
    rows = RecordAccessor(sqlite_conn, table="audit").fetch_all()
    assert [r["action"] for r in rows] == ["login"]


def test_save_failure_raises_query_error(users: RecordAccessor) -> None:
    with pytest.raises(QueryError, match="no column"):
        users.save({"no_column": 1})


# --- reads ---


def test_fetch_by_id(users: RecordAccessor) -> None:
    _seed(users)
    assert users.fetch_by_id(2)["name"] == "bob"
    assert users.fetch_by_id(999) is NOT_FOUND


def test_fetch_all_orderings(users: RecordAccessor) -> None:
    _seed(users)
    assert [r["name"] for r in users.fetch_all()] == ["ada", "bob", "cy"]
    assert [r["name"] for r in users.fetch_all_ascending()] == ["cy", "ada", "bob"]
    assert [r["name"] for r in users.fetch_all_descending()] == ["bob", "ada", "cy"]


def test_fetch_oldest_and_latest(users: RecordAccessor) -> None:
    _seed(users)
    assert users.fetch_oldest()["name"] == "cy"
    assert users.fetch_latest()["name"] == "bob"


def test_fetch_on_empty_table(users: RecordAccessor) -> None:
    assert users.fetch_all() == []
    assert users.fetch_one() is NOT_FOUND
    assert users.fetch_latest() is NOT_FOUND


def test_fetch_by_condition(users: RecordAccessor) -> None:
    _seed(users)
    assert users.fetch_by_condition({"email": "bob@example.com"})["name"] == "bob"
    assert users.fetch_by_condition({"email": "nobody@example.com"}) is NOT_FOUND
    assert users.exists_by_condition({"name": "ada", "status": "active"}) is True
    assert users.exists_by_condition({"name": "ada", "status": "banned"}) is False


def test_query_by_condition_ignores_empty_fields(users: RecordAccessor) -> None:
    _seed(users)
    rows = users.query_by_condition({"email": "cy@example.com", "name": "", "status": None}).get()
    assert [r["name"] for r in rows] == ["cy"]


def test_fetch_by_condition_binds_empty_values(users: RecordAccessor) -> None:
    """An empty string matches only rows holding an empty string, never the whole table."""
    _seed(users)
    assert users.exists_by_condition({"email": ""}) is False
    assert users.fetch_by_condition({"email": ""}) is NOT_FOUND
    users.save({"name": "dee", "email": ""})
    assert users.fetch_by_condition({"email": ""})["name"] == "dee"


def test_fetch_by_condition_none_matches_null(users: RecordAccessor) -> None:
    _seed(users)
    assert users.exists_by_condition({"status": None}) is False
    users.save({"name": "eve"})
    assert users.fetch_by_condition({"status": None, "email": None})["name"] == "eve"


def test_fetch_by_condition_rejects_empty_predicate(users: RecordAccessor) -> None:
    _seed(users)
    with pytest.raises(ValidationError, match="predicate"):
        users.exists_by_condition({})


def test_query_by_condition_buffers_rows(users: RecordAccessor) -> None:
    _seed(users)
    users.query_by_condition({"status": "active"})
    assert [r["name"] for r in users.get()] == ["ada", "cy"]
    assert users.first()["name"] == "ada"
    assert users.query_by_condition({"status": "gone"}).first() is NOT_FOUND
    assert users.get() == []


def test_buffer_read_before_query(users: RecordAccessor) -> None:
    with pytest.raises(ValidationError, match="query_by_condition"):
        users.get()


# --- update ---


@patch("spdb.engines.record.timestamps._timestamp", return_value=T1)
def test_quick_update_matching_rows(_mock: MagicMock, users: RecordAccessor) -> None:
    _seed(users)
    assert users.quick_update({"status": "archived", "email": ""}, {"status": "active"}) is True
    archived = users.query_by_condition({"status": "archived"}).get()
    assert [r["name"] for r in archived] == ["ada", "cy"]
    assert all(r["updated_at"] == T1 for r in archived)
    assert all(r["email"] for r in archived)
    assert users.fetch_by_id(2)["status"] == "banned"


def test_quick_update_no_match(users: RecordAccessor) -> None:
    _seed(users)
    assert users.quick_update({"status": "x"}, {"email": "nobody@example.com"}) is False


def test_quick_update_empty_predicate_updates_every_row(users: RecordAccessor) -> None:
    _seed(users)
    assert users.quick_update({"status": "reset"}, {}) is True
    assert {r["status"] for r in users.fetch_all()} == {"reset"}


def test_quick_update_all_empty_predicate_rejected(users: RecordAccessor) -> None:
    _seed(users)
    with pytest.raises(ValidationError, match="predicate"):
        users.quick_update({"status": "reset"}, {"email": "", "name": None})
    assert users.fetch_by_id(1)["status"] == "active"


def test_quick_update_requires_predicate(users: RecordAccessor) -> None:
    with pytest.raises(ValidationError, match="predicate"):
        users.quick_update({"status": "reset"})


def test_stage_update_then_quick_update(users: RecordAccessor) -> None:
    _seed(users)
    users.stage_update({"status": "vip"}, {"name": "bob"})
    assert users.quick_update() is True
    assert users.fetch_by_id(2)["status"] == "vip"
    with pytest.raises(ValidationError, match="Nothing to update"):
        users.quick_update()


def test_staged_update_is_not_saved(users: RecordAccessor) -> None:
    _seed(users)
    users.stage_update({"status": "vip"}, {"name": "ada"})
    with pytest.raises(ValidationError, match="Nothing to save"):
        users.save()
    assert len(users.fetch_all()) == 3
    assert users.quick_update() is True
    assert users.fetch_by_id(1)["status"] == "vip"


def test_staged_insert_is_not_used_for_update(users: RecordAccessor) -> None:
    _seed(users)
    users.create({"name": "zed", "status": "new"})
    with pytest.raises(ValidationError, match="Nothing to update"):
        users.quick_update(predicate={})
    assert {r["status"] for r in users.fetch_all()} == {"active", "banned"}
    assert users.save() is True
    assert users.fetch_by_condition({"name": "zed"})["status"] == "new"


# --- delete ---


def test_delete_by_id(users: RecordAccessor) -> None:
    _seed(users)
    assert users.delete_by_id(1) is True
    assert users.fetch_by_id(1) is NOT_FOUND
    assert users.delete_by_id(1) is False
    assert len(users.fetch_all()) == 2


# --- table binding ---


def test_table_prefix_from_backend_block() -> None:
    conn = connect(configure(sqlite_config(prefix="app_")))
    try:
        conn.handle.execute(USERS_DDL.replace("TABLE users", "TABLE app_users"))
        accessor = RecordAccessor(conn, User)
        assert accessor.table == "app_users"
        accessor.save({"name": "ada"})
        assert accessor.fetch_one()["name"] == "ada"
    finally:
        conn.close()


def test_explicit_table_overrides_model(sqlite_conn: Connection) -> None:
    assert RecordAccessor(sqlite_conn, Unbound, table="users").table == "users"


def test_sqlmodel_table_class(sqlite_conn: Connection) -> None:
    sqlite_conn.handle.execute(
        "CREATE TABLE accounts (id INTEGER PRIMARY KEY, email TEXT, created_at TEXT, updated_at TEXT)"
    )
    accounts = RecordAccessor(sqlite_conn, Account)
    accounts.save({"email": "ada@example.com"})
    assert accounts.fetch_by_condition({"email": "ada@example.com"})["id"] == 1


@pytest.mark.parametrize(
    "operation",
    [
        lambda a: a.save({"name": "ada"}),
        lambda a: a.fetch_all(),
        lambda a: a.fetch_by_id(1),
        lambda a: a.query_by_condition({"name": "ada"}),
        lambda a: a.quick_update({"name": "x"}, {}),
        lambda a: a.delete_by_id(1),
    ],
)
def test_unbound_table_fails_before_touching_connection(operation) -> None:
    conn = MagicMock()
    accessor = RecordAccessor(conn, Unbound)
    with pytest.raises(ConfigurationError, match="No table name bound for Unbound"):
        operation(accessor)
    assert conn.mock_calls == []
