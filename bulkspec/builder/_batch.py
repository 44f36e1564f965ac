"""Rewriting of ORM batch statements into each engine's multi-table syntax.

The input is the single shape a query layer emits for set-based updates and
deletes::

    UPDATE i SET <assignments> FROM <table> AS i [INNER JOIN <t> AS <a> ON <cond> ...] [WHERE <predicate>]
    DELETE i FROM <table> AS i [INNER JOIN <t> AS <a> ON <cond> ...] [WHERE <predicate>]

The rewrite is a structural text transformation anchored on the alias token;
it is not a SQL parser.
"""

import re
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Final, Optional, Union

from bulkspec.dialects import SqlType
from bulkspec.exceptions import SQLTransformationError
from bulkspec.utils.logging import get_logger, log_statement

__all__ = ("BatchStatement", "parse_batch_statement", "restructure_for_batch")

logger = get_logger("bulkspec.builder.batch")

_IDENTIFIER: Final = r'(?:"[^"]*"|\[[^\]]*\]|`[^`]*`|\w+)'
_TABLE: Final = rf"{_IDENTIFIER}(?:\.{_IDENTIFIER})*"

_UPDATE_HEAD_RE: Final = re.compile(rf"^(?P<lead>\s*)UPDATE (?P<alias>{_IDENTIFIER}) SET ")
_DELETE_HEAD_RE: Final = re.compile(
    rf"^(?P<lead>\s*)DELETE (?P<alias>{_IDENTIFIER}) FROM (?P<table>{_TABLE}) AS (?P=alias)(?=\s|\Z)"
)
_RESTRUCTURED_UPDATE_RE: Final = re.compile(rf"^\s*UPDATE {_TABLE} AS {_IDENTIFIER}\s")
_RESTRUCTURED_DELETE_RE: Final = re.compile(r"^\s*DELETE FROM\s")
_JOIN_RE: Final = re.compile(
    rf"\s*INNER JOIN (?P<table>{_TABLE}) AS (?P<alias>{_IDENTIFIER}) ON (?P<condition>.+?)(?=\s+INNER JOIN\s|\s*\Z)",
    re.DOTALL,
)
_WHERE: Final = " WHERE "


@dataclass(frozen=True)
class JoinClause:
    table: str
    alias: str
    condition: str


@dataclass(frozen=True)
class BatchStatement:
    """Components of an ORM batch UPDATE or DELETE."""

    lead: str
    alias: str
    table: str
    joins: "tuple[JoinClause, ...]"
    predicate: Optional[str]
    set_clause: Optional[str] = None
    join_text: str = ""

    @property
    def is_delete(self) -> bool:
        return self.set_clause is None


def _parse_joins(join_text: str, sql: str) -> "tuple[JoinClause, ...]":
    joins: list[JoinClause] = []
    position = 0
    while join_text[position:].strip():
        match = _JOIN_RE.match(join_text, position)
        if match is None:
            msg = "Expected only INNER JOIN clauses between FROM and WHERE"
            raise SQLTransformationError(msg, sql=sql)
        joins.append(JoinClause(match.group("table"), match.group("alias"), match.group("condition")))
        position = match.end()
    return tuple(joins)


def _split_where(rest: str, sql: str) -> "tuple[str, tuple[JoinClause, ...], Optional[str]]":
    where_index = next((index for index in _top_level_indexes(rest) if rest.startswith(_WHERE, index)), -1)
    if where_index == -1:
        join_text, predicate = rest, None
    else:
        join_text, predicate = rest[:where_index], rest[where_index + len(_WHERE) :]
    return join_text, _parse_joins(join_text, sql), predicate


def parse_batch_statement(sql: str) -> BatchStatement:
    """Split an ORM batch statement into its components.

    Raises:
        SQLTransformationError: If the statement does not have the expected shape.
    """
    delete_match = _DELETE_HEAD_RE.match(sql)
    if delete_match is not None:
        join_text, joins, predicate = _split_where(sql[delete_match.end() :], sql)
        return BatchStatement(
            lead=delete_match.group("lead"),
            alias=delete_match.group("alias"),
            table=delete_match.group("table"),
            joins=joins,
            predicate=predicate,
            join_text=join_text,
        )

    update_match = _UPDATE_HEAD_RE.match(sql)
    if update_match is None:
        msg = "Expected 'UPDATE <alias> SET ...' or 'DELETE <alias> FROM ...'"
        raise SQLTransformationError(msg, sql=sql)
    alias = update_match.group("alias")
    from_re = re.compile(rf" FROM (?P<table>{_TABLE}) AS {re.escape(alias)}(?=\s|\Z)")
    from_match = from_re.search(sql, update_match.end())
    if from_match is None:
        msg = f"No 'FROM <table> AS {alias}' clause found"
        raise SQLTransformationError(msg, sql=sql)
    join_text, joins, predicate = _split_where(sql[from_match.end() :], sql)
    return BatchStatement(
        lead=update_match.group("lead"),
        alias=alias,
        table=from_match.group("table"),
        joins=joins,
        predicate=predicate,
        set_clause=sql[update_match.end() : from_match.start()],
        join_text=join_text,
    )


def _top_level_indexes(text: str) -> "Iterator[int]":
    """Yield positions in ``text`` outside quotes, brackets and parentheses."""
    depth = 0
    closing_quote: Optional[str] = None
    for index, char in enumerate(text):
        if closing_quote is not None:
            if char == closing_quote:
                closing_quote = None
            continue
        if char in "'\"`":
            closing_quote = char
        elif char == "[":
            closing_quote = "]"
        elif char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        elif depth == 0:
            yield index


def _has_top_level_or(condition: str) -> bool:
    upper = condition.upper()
    for index in _top_level_indexes(upper):
        if not upper.startswith("OR", index):
            continue
        before = upper[index - 1] if index > 0 else " "
        after = upper[index + 2] if index + 2 < len(upper) else " "
        if not (before.isalnum() or before == "_") and not (after.isalnum() or after == "_"):
            return True
    return False


def _conjoin(conditions: "list[str]") -> str:
    """Join conditions with AND; a condition with a top-level OR is parenthesized."""
    if len(conditions) > 1:
        conditions = [f"({condition})" if _has_top_level_or(condition) else condition for condition in conditions]
    return " AND ".join(conditions)


def _where_clause(predicate: Optional[str], conditions: "list[str]") -> str:
    parts = list(conditions) if predicate is None else [predicate, *conditions]
    if not parts:
        return ""
    return f"{_WHERE}{_conjoin(parts)}"


def _restructure_update(statement: BatchStatement, sql_type: SqlType) -> str:
    head = f"{statement.lead}UPDATE {statement.table} AS {statement.alias}"
    if sql_type is SqlType.MYSQL:
        joins = statement.join_text.rstrip()
        return f"{head}{joins} SET {statement.set_clause}{_where_clause(statement.predicate, [])}"

    sql = f"{head} SET {statement.set_clause}"
    if statement.joins:
        sql = f"{sql} FROM {', '.join(f'{join.table} AS {join.alias}' for join in statement.joins)}"
    return f"{sql}{_where_clause(statement.predicate, [join.condition for join in statement.joins])}"


def _restructure_delete(statement: BatchStatement, sql_type: SqlType) -> str:
    sql = f"{statement.lead}DELETE FROM {statement.table} AS {statement.alias}"
    if not statement.joins:
        return f"{sql}{_where_clause(statement.predicate, [])}"

    sources = ", ".join(f"{join.table} AS {join.alias}" for join in statement.joins)
    join_conditions = [join.condition for join in statement.joins]
    if sql_type is SqlType.POSTGRESQL:
        return f"{sql} USING {sources}{_where_clause(statement.predicate, join_conditions)}"
    exists = f"EXISTS (SELECT 1 FROM {sources} WHERE {_conjoin(join_conditions)})"
    return f"{sql}{_where_clause(statement.predicate, [exists])}"


def restructure_for_batch(sql: str, dialect: "Union[SqlType, str]", is_delete: bool = False) -> str:
    """Rewrite an ORM batch statement into the engine's accepted syntax.

    - PostgreSQL and SQLite: the aliased source table becomes the UPDATE target,
      joined tables move to ``FROM`` and their ON conditions are conjoined to the
      WHERE clause. Deletes become ``DELETE FROM <table> AS <alias>`` with joined
      tables in ``USING`` (PostgreSQL) or an ``EXISTS`` condition (SQLite).
    - MySQL: the source table and its joins move in front of ``SET``; deletes are
      already valid and are returned unchanged.
    - SQL Server: the input is native syntax and is returned unchanged.

    Statements that are already restructured are returned unchanged.

    Args:
        sql: Statement text emitted by the query layer.
        dialect: Target engine.
        is_delete: Whether the statement is a DELETE.

    Returns:
        The rewritten statement, without a terminator.

    Raises:
        SQLTransformationError: If the statement is outside the supported shape.
    """
    sql_type = SqlType.from_name(dialect)
    if sql_type is SqlType.SQL_SERVER or (sql_type is SqlType.MYSQL and is_delete):
        return sql
    if is_delete and _RESTRUCTURED_DELETE_RE.match(sql):
        return sql
    if not is_delete and _RESTRUCTURED_UPDATE_RE.match(sql):
        return sql

    statement = parse_batch_statement(sql)
    if statement.is_delete != is_delete:
        kind = "DELETE" if is_delete else "UPDATE"
        msg = f"Expected a batch {kind} statement"
        raise SQLTransformationError(msg, sql=sql)

    if is_delete:
        restructured = _restructure_delete(statement, sql_type)
    else:
        restructured = _restructure_update(statement, sql_type)
    log_statement(
        logger,
        sql=restructured,
        dialect=sql_type.value,
        operation="batch_delete" if is_delete else "batch_update",
        table=statement.table,
    )
    return restructured
