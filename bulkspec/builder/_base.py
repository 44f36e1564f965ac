"""Column list helpers shared by the statement builders."""

from collections.abc import Iterable

from bulkspec.dialects import SqlType, quote_identifier

__all__ = ("assignments", "comma_separated_columns", "join_conditions")


def comma_separated_columns(columns: "Iterable[str]", dialect: SqlType, prefix: str = "") -> str:
    """Quote columns and join them with commas.

    Args:
        columns: Column names in output order.
        dialect: Dialect used for quoting.
        prefix: Optional qualifier prepended to every column, including its trailing dot.

    Returns:
        The comma separated column list.
    """
    return ", ".join(f"{prefix}{quote_identifier(column, dialect)}" for column in columns)


def assignments(columns: "Iterable[str]", dialect: SqlType, source: str, target_prefix: str = "") -> str:
    """Build ``<target_prefix><col> = <source>.<col>`` assignments."""
    return ", ".join(
        f"{target_prefix}{quote_identifier(column, dialect)} = {source}.{quote_identifier(column, dialect)}"
        for column in columns
    )


def join_conditions(columns: "Iterable[str]", dialect: SqlType, left: str, right: str) -> str:
    """Build ``<left>.<col> = <right>.<col>`` equalities joined with ``AND``."""
    return " AND ".join(
        f"{left}.{quote_identifier(column, dialect)} = {right}.{quote_identifier(column, dialect)}"
        for column in columns
    )
