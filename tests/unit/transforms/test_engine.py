"""Unit tests for the transformer engine."""

from __future__ import annotations

import pytest

from core.errors import VaultConfigError, VaultTransformError
from core.types import TransformerRule
from transforms.anonymizers import build_transformer
from transforms.engine import TransformerEngine, apply_rules

_SCHEMAS = {"users": ["id", "name", "email"], "orders": ["id", "total"]}


def test_apply_rules_keeps_columns_and_order() -> None:
    """Only ruled columns change; column order is preserved."""
    row = {"id": 1, "name": "Alice", "email": "alice@corp.io"}

    transformed = apply_rules(row, {"email": build_transformer("email")}, seed=42, ordinal=0)

    assert list(transformed) == ["id", "name", "email"]
    assert transformed["id"] == 1 and transformed["name"] == "Alice"
    assert transformed["email"] != "alice@corp.io"


def test_apply_rules_raises_for_missing_ruled_column() -> None:
    """A row without a ruled column must not pass through unanonymized."""
    with pytest.raises(VaultTransformError):
        apply_rules({"id": 1}, {"email": build_transformer("email")}, seed=42, ordinal=0)


def test_compile_records_applied_rules() -> None:
    """The compiled engine should report the rule set per table."""
    rules = (TransformerRule(table="users", column="email", transformer="email"),)

    engine = TransformerEngine.compile(rules, _SCHEMAS, database="main", seed=42)

    assert engine.applied_rules("users") == {"email": "email"}
    assert engine.applied_rules("orders") == {}


@pytest.mark.parametrize(
    "rule",
    [
        TransformerRule(table="missing", column="id", transformer="random"),
        TransformerRule(table="users", column="ssn", transformer="random"),
        TransformerRule(table="users", column="email", transformer="shuffle"),
        TransformerRule(table="users", column="email", transformer="email", database="other"),
    ],
)
def test_compile_rejects_invalid_rules(rule: TransformerRule) -> None:
    """Unknown tables, columns, transformers, and databases fail fast."""
    with pytest.raises(VaultConfigError):
        TransformerEngine.compile((rule,), _SCHEMAS, database="main", seed=42)


def test_compile_rejects_conflicting_rules() -> None:
    """Two rules for one column are ambiguous."""
    rules = (
        TransformerRule(table="users", column="email", transformer="email"),
        TransformerRule(table="users", column="email", transformer="redacted"),
    )

    with pytest.raises(VaultConfigError):
        TransformerEngine.compile(rules, _SCHEMAS, database="main", seed=42)


def test_transform_row_adds_table_context() -> None:
    """Transform errors should name the table and column."""
    rules = (TransformerRule(table="users", column="name", transformer="phone-number"),)
    engine = TransformerEngine.compile(rules, _SCHEMAS, database=None, seed=42)

    with pytest.raises(VaultTransformError, match="users"):
        engine.transform_row("users", {"id": 1, "name": "Alice", "email": "a@b.c"}, 0)
