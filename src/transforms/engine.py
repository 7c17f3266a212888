"""Row-level transformer engine.

This module validates transformer rules against table schemas once, before
any row is read, and applies the compiled rules to rows while streaming.
"""

from __future__ import annotations

from typing import Mapping, Sequence

from core.errors import VaultConfigError, VaultTransformError
from core.types import Row, TransformerRule
from transforms.anonymizers import Transformer, build_transformer, transform_value


def apply_rules(
    row: Mapping[str, object],
    rules: Mapping[str, Transformer],
    seed: int,
    ordinal: int,
) -> Row:
    """Transform one row, keeping its column set and order.

    Args:
        row: Ordered column to value mapping.
        rules: Transformers keyed by column.
        seed: Dump seed.
        ordinal: Zero-based row ordinal within the table.

    Returns:
        New row with ruled columns replaced.

    Raises:
        VaultTransformError: If a ruled column is missing or a value is rejected.
    """
    missing = [column for column in rules if column not in row]
    if missing:
        raise VaultTransformError(
            f"Row {ordinal} is missing ruled columns {missing}; refusing to emit "
            "a row that would skip anonymization."
        )
    transformed: Row = {}
    for column, value in row.items():
        transformer = rules.get(column)
        if transformer is None:
            transformed[column] = value
            continue
        try:
            transformed[column] = transform_value(transformer, value, seed, ordinal)
        except VaultTransformError as error:
            raise VaultTransformError(f"Column '{column}', row {ordinal}: {error}") from error
    return transformed


class TransformerEngine:
    """Compiled rule set for one dump run."""

    def __init__(self, rules_by_table: Mapping[str, Mapping[str, Transformer]], seed: int) -> None:
        self._rules_by_table = {table: dict(rules) for table, rules in rules_by_table.items()}
        self._seed = seed

    @classmethod
    def compile(
        cls,
        rules: Sequence[TransformerRule],
        schemas: Mapping[str, Sequence[str]],
        database: str | None,
        seed: int,
    ) -> "TransformerEngine":
        """Validate rules against source schemas.

        Args:
            rules: Configured transformer rules.
            schemas: Column names per source table.
            database: Source database name, when the connector knows it.
            seed: Dump seed.

        Returns:
            Compiled engine.

        Raises:
            VaultConfigError: For unknown tables, unknown columns, database
                mismatches, conflicting rules, or invalid transformers.
        """
        rules_by_table: dict[str, dict[str, Transformer]] = {}
        for rule in rules:
            _validate_rule_target(rule, schemas, database)
            table_rules = rules_by_table.setdefault(rule.table, {})
            if rule.column in table_rules:
                raise VaultConfigError(
                    f"Conflicting transformer rules for {rule.table}.{rule.column}: "
                    "define at most one rule per column."
                )
            try:
                table_rules[rule.column] = build_transformer(rule.transformer, rule.options)
            except VaultConfigError as error:
                raise VaultConfigError(f"Rule for {rule.table}.{rule.column}: {error}") from error
        return cls(rules_by_table, seed)

    def rules_for(self, table: str) -> Mapping[str, Transformer]:
        return self._rules_by_table.get(table, {})

    def applied_rules(self, table: str) -> dict[str, str]:
        """Return the rule set of a table as column to transformer name."""
        return {column: rule.name for column, rule in self.rules_for(table).items()}

    def transform_row(self, table: str, row: Mapping[str, object], ordinal: int) -> Row:
        """Transform one row of a table."""
        try:
            return apply_rules(row, self.rules_for(table), self._seed, ordinal)
        except VaultTransformError as error:
            raise VaultTransformError(f"Table '{table}': {error}") from error


def _validate_rule_target(
    rule: TransformerRule,
    schemas: Mapping[str, Sequence[str]],
    database: str | None,
) -> None:
    if rule.database and database and rule.database != database:
        raise VaultConfigError(
            f"Rule for {rule.table}.{rule.column} targets database '{rule.database}', "
            f"but the source database is '{database}'."
        )
    if rule.table not in schemas:
        known = ", ".join(sorted(schemas)) or "none"
        raise VaultConfigError(
            f"Rule references unknown table '{rule.table}'. Known tables: {known}."
        )
    if rule.column not in schemas[rule.table]:
        known = ", ".join(schemas[rule.table]) or "none"
        raise VaultConfigError(
            f"Rule references unknown column '{rule.column}' in table '{rule.table}'. "
            f"Known columns: {known}."
        )
