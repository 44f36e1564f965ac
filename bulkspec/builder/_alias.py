"""Recovery of table names and aliases from generated SQL text."""

import re
from dataclasses import dataclass
from typing import Final, Union

from bulkspec.dialects import SqlType, get_capabilities
from bulkspec.exceptions import SQLTransformationError

__all__ = ("ExtractedTableAlias", "extract_table_alias", "get_table_alias_and_top")

SELECT_KEYWORD: Final = "SELECT"

_QUOTED_TABLE: Final = r'"[^"]+"(?:\."[^"]+")?'
_ALIAS: Final = r'(?:"[^"]+"|\w+)'
_HOISTED_TABLE_ALIAS_RE: Final = re.compile(rf"^\s*UPDATE (?P<table>{_QUOTED_TABLE})(?P<suffix> AS {_ALIAS})")
_FROM_TABLE_ALIAS_RE: Final = re.compile(rf"FROM (?P<table>{_QUOTED_TABLE})(?P<suffix> AS {_ALIAS})?")


@dataclass(frozen=True)
class ExtractedTableAlias:
    """Quoted table name, its ``AS ...`` suffix and the query text that follows them."""

    table_alias: str
    table_alias_suffix_as: str
    sql: str


def get_table_alias_and_top(sql_query: str, dialect: "Union[SqlType, str]") -> "tuple[str, str]":
    """Split the projection prefix of a SELECT into its table alias and row-limiting fragment.

    ``SELECT TOP(10) [i].[Name] ...`` yields ``("i", "TOP(10) ")`` and
    ``SELECT i."Name" ...`` yields ``("i", "")``. Dialects without an alias
    marker (SQLite) always yield ``("", "")``.

    Raises:
        SQLTransformationError: If the query is not a SELECT with an aliased projection.
    """
    capabilities = get_capabilities(dialect)
    escape_start, escape_end = capabilities.alias_escape_start, capabilities.alias_escape_end
    if escape_start is None or escape_end is None:
        return "", ""

    if sql_query[: len(SELECT_KEYWORD)].upper() != SELECT_KEYWORD:
        msg = "Expected a SELECT statement"
        raise SQLTransformationError(msg, sql=sql_query)
    end_index = sql_query.find(escape_end, len(SELECT_KEYWORD))
    if end_index == -1:
        msg = f"No table alias terminated by {escape_end!r} found"
        raise SQLTransformationError(msg, sql=sql_query)

    alias_end = sql_query[len(SELECT_KEYWORD) : end_index]  # " TOP(10) [i" / " i"
    start_index = alias_end.rfind(escape_start)
    if start_index == -1:
        msg = f"No table alias opened by {escape_start!r} found"
        raise SQLTransformationError(msg, sql=sql_query)
    table_alias = alias_end[start_index + len(escape_start) :]
    top_statement = alias_end[:start_index].lstrip()
    return table_alias, top_statement


def extract_table_alias(
    full_query: str, dialect: "Union[SqlType, str]", table_alias: str = "", table_alias_suffix_as: str = ""
) -> ExtractedTableAlias:
    """Recover the source table and its alias from a query.

    PostgreSQL and SQLite queries are matched against their quoted table
    reference, either the hoisted ``UPDATE "<table>" AS <alias>`` form or
    ``FROM "<table>"[ AS <alias>]``; ``sql`` is the text after the match. When
    nothing matches, alias and suffix are empty and ``sql`` is the full query.
    Other dialects return the supplied alias and suffix unchanged.
    """
    sql_type = SqlType.from_name(dialect)
    if sql_type not in {SqlType.POSTGRESQL, SqlType.SQLITE}:
        return ExtractedTableAlias(table_alias, table_alias_suffix_as, full_query)

    match = _HOISTED_TABLE_ALIAS_RE.search(full_query) or _FROM_TABLE_ALIAS_RE.search(full_query)
    if match is None:
        return ExtractedTableAlias("", "", full_query)
    return ExtractedTableAlias(match.group("table"), match.group("suffix") or "", full_query[match.end() :])
