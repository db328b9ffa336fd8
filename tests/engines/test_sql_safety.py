"""Unit tests for engines.sql.safety: identifier validation and condition linting."""

import pytest

from spdb.core.errors import ValidationError
from spdb.engines.sql.safety import (
    check_condition_safety,
    validate_bare_column,
    validate_column,
    validate_table,
)


class TestValidateTable:
    @pytest.mark.parametrize(
        "name", ["users", "app.users", "users u", "users AS u", "  users  ", "wp_posts"]
    )
    def test_valid(self, name):
        assert validate_table(name) == name.strip()

    @pytest.mark.parametrize(
        "name", ["", "1users", "users; DROP TABLE x", "users--", "a.b.c", None, 42]
    )
    def test_invalid(self, name):
        with pytest.raises(ValidationError):
            validate_table(name)


class TestValidateColumn:
    @pytest.mark.parametrize("name", ["id", "u.id", "*", "u.*", "email AS mail", "email mail"])
    def test_valid(self, name):
        assert validate_column(name) == name

    @pytest.mark.parametrize("name", ["count(*)", "a, b", "id = 1", ""])
    def test_invalid(self, name):
        with pytest.raises(ValidationError):
            validate_column(name)


class TestValidateBareColumn:
    def test_valid(self):
        assert validate_bare_column("created_at") == "created_at"
        assert validate_bare_column("u.created_at") == "u.created_at"

    @pytest.mark.parametrize("name", ["*", "email AS mail", "a b", "x=1"])
    def test_invalid(self, name):
        with pytest.raises(ValidationError):
            validate_bare_column(name)


class TestCheckConditionSafety:
    def test_placeholder_only(self):
        assert check_condition_safety("status = ?") == []

    def test_numeric_literal_ok(self):
        assert check_condition_safety("age > 18") == []

    def test_string_literal_warns(self):
        warnings = check_condition_safety("email = 'a@b.c'")
        assert len(warnings) == 1
        assert warnings[0]["literal"] == "'a@b.c'"
        assert "placeholder" in warnings[0]["message"]

    def test_escaped_quote_is_one_literal(self):
        warnings = check_condition_safety("name = 'O''Brien' OR name = 'x'")
        assert [w["literal"] for w in warnings] == ["'O''Brien'", "'x'"]

    def test_empty(self):
        assert check_condition_safety("") == []
