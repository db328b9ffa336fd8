"""
Identifier validation and condition linting for the query builder.

Table and column names are spliced into statement text, so they must match a
plain identifier grammar. Values never are: they go through bound parameters.

``check_condition_safety`` scans a WHERE fragment for inline literals that
should have been ``?`` placeholders and returns warnings (not errors)::

    warnings = check_condition_safety("email = 'a@b.c'")
    # [{"literal": "'a@b.c'", "message": "..."}]
"""

import re
from typing import Any

from spdb.core.errors import ValidationError

_IDENT = r"[A-Za-z_][A-Za-z0-9_$]*"

_TABLE_PATTERN = re.compile(
    rf"^{_IDENT}(?:\.{_IDENT})?(?:\s+(?:AS\s+)?{_IDENT})?$",
    re.IGNORECASE,
)
_COLUMN_PATTERN = re.compile(
    rf"^(?:{_IDENT}\.)?(?:{_IDENT}|\*)(?:\s+(?:AS\s+)?{_IDENT})?$",
    re.IGNORECASE,
)
_BARE_COLUMN_PATTERN = re.compile(rf"^(?:{_IDENT}\.)?{_IDENT}$")

_STRING_LITERAL = re.compile(r"'(?:[^']|'')*'")


def validate_table(name: Any) -> str:
    """Table name, optionally schema-qualified and aliased (``users u``)."""
    if not isinstance(name, str) or not _TABLE_PATTERN.match(name.strip()):
        raise ValidationError(f"Invalid table name: {name!r}")
    return name.strip()


def validate_column(name: Any) -> str:
    """Select-list column: ``col``, ``t.col``, ``*``, ``t.*``, optional alias."""
    if not isinstance(name, str) or not _COLUMN_PATTERN.match(name.strip()):
        raise ValidationError(f"Invalid column name: {name!r}")
    return name.strip()


def validate_bare_column(name: Any) -> str:
    """Column used as an assignment or predicate target: ``col`` or ``t.col``."""
    if not isinstance(name, str) or not _BARE_COLUMN_PATTERN.match(name.strip()):
        raise ValidationError(f"Invalid column name: {name!r}")
    return name.strip()


def check_condition_safety(condition: str) -> list[dict[str, Any]]:
    """Return warnings for quoted string literals embedded in *condition*.

    An empty list means no issues detected.
    """
    warnings: list[dict[str, Any]] = []
    for match in _STRING_LITERAL.finditer(condition or ""):
        literal = match.group(0)
        warnings.append(
            {
                "literal": literal,
                "message": (
                    f"Condition embeds the literal {literal}. "
                    f"Use a ? placeholder and pass the value as a parameter."
                ),
            }
        )
    return warnings
