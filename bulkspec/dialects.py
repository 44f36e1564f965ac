"""Dialect capability descriptors.

Each supported engine is described by a frozen :class:`DialectCapabilities`
record held in a module-level lookup table. Everything that needs to know how
an engine quotes identifiers, limits rows or resolves conflicts reads it from
here.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Final, Optional, Union

from sqlglot import exp

from bulkspec.exceptions import ImproperConfigurationError

__all__ = (
    "DialectCapabilities",
    "SqlType",
    "get_binary_add_operator",
    "get_capabilities",
    "is_string_concat",
    "qualify_table",
    "quote_identifier",
)


class SqlType(str, Enum):
    """Supported database engines."""

    SQL_SERVER = "sqlserver"
    POSTGRESQL = "postgresql"
    MYSQL = "mysql"
    SQLITE = "sqlite"

    @classmethod
    def from_name(cls, name: "Union[str, SqlType]") -> "SqlType":
        """Resolve a dialect tag from its name or a common alias.

        Raises:
            ImproperConfigurationError: If the name is not a known dialect.
        """
        if isinstance(name, SqlType):
            return name
        resolved = _SQL_TYPE_ALIASES.get(name.strip().lower())
        if resolved is None:
            msg = f"Unknown SQL dialect: {name!r}"
            raise ImproperConfigurationError(detail=msg)
        return resolved


_SQL_TYPE_ALIASES: Final["dict[str, SqlType]"] = {
    "sqlserver": SqlType.SQL_SERVER,
    "mssql": SqlType.SQL_SERVER,
    "tsql": SqlType.SQL_SERVER,
    "postgresql": SqlType.POSTGRESQL,
    "postgres": SqlType.POSTGRESQL,
    "pg": SqlType.POSTGRESQL,
    "mysql": SqlType.MYSQL,
    "mariadb": SqlType.MYSQL,
    "sqlite": SqlType.SQLITE,
    "sqlite3": SqlType.SQLITE,
}


@dataclass(frozen=True)
class DialectCapabilities:
    """Static syntax facts about one database engine.

    ``alias_escape_start``/``alias_escape_end`` are the markers surrounding the
    table alias in the projection of a generated SELECT (``[i].[Col]``,
    ``i."Col"``, ```i`.`Col```); they are ``None`` where alias recovery from
    the projection is not used.
    """

    sql_type: SqlType
    escape_start: str
    escape_end: str
    alias_escape_start: Optional[str]
    alias_escape_end: Optional[str]
    uses_top: bool
    supports_merge: bool
    supports_on_conflict: bool
    supports_on_duplicate_key: bool
    supports_insert_ignore: bool
    parenthesized_insert_select: bool
    upsert_requires_where: bool
    untyped_parameters: bool
    string_concat_operator: str
    sqlglot_dialect: str


_CAPABILITIES: Final["dict[SqlType, DialectCapabilities]"] = {
    SqlType.SQL_SERVER: DialectCapabilities(
        sql_type=SqlType.SQL_SERVER,
        escape_start="[",
        escape_end="]",
        alias_escape_start="[",
        alias_escape_end="]",
        uses_top=True,
        supports_merge=True,
        supports_on_conflict=False,
        supports_on_duplicate_key=False,
        supports_insert_ignore=False,
        parenthesized_insert_select=False,
        upsert_requires_where=False,
        untyped_parameters=False,
        string_concat_operator="+",
        sqlglot_dialect="tsql",
    ),
    SqlType.POSTGRESQL: DialectCapabilities(
        sql_type=SqlType.POSTGRESQL,
        escape_start='"',
        escape_end='"',
        alias_escape_start=" ",
        alias_escape_end=".",
        uses_top=False,
        supports_merge=False,
        supports_on_conflict=True,
        supports_on_duplicate_key=False,
        supports_insert_ignore=False,
        parenthesized_insert_select=True,
        upsert_requires_where=False,
        untyped_parameters=False,
        string_concat_operator="||",
        sqlglot_dialect="postgres",
    ),
    SqlType.MYSQL: DialectCapabilities(
        sql_type=SqlType.MYSQL,
        escape_start="`",
        escape_end="`",
        alias_escape_start="`",
        alias_escape_end="`.",
        uses_top=False,
        supports_merge=False,
        supports_on_conflict=False,
        supports_on_duplicate_key=True,
        supports_insert_ignore=True,
        parenthesized_insert_select=False,
        upsert_requires_where=False,
        untyped_parameters=False,
        string_concat_operator="+",
        sqlglot_dialect="mysql",
    ),
    SqlType.SQLITE: DialectCapabilities(
        sql_type=SqlType.SQLITE,
        escape_start='"',
        escape_end='"',
        alias_escape_start=None,
        alias_escape_end=None,
        uses_top=False,
        supports_merge=False,
        supports_on_conflict=True,
        supports_on_duplicate_key=False,
        supports_insert_ignore=False,
        parenthesized_insert_select=False,
        upsert_requires_where=True,
        untyped_parameters=True,
        string_concat_operator="||",
        sqlglot_dialect="sqlite",
    ),
}


def get_capabilities(dialect: "Union[SqlType, str]") -> DialectCapabilities:
    """Look up the capability descriptor for a dialect.

    Raises:
        ImproperConfigurationError: If the dialect is not supported.
    """
    sql_type = SqlType.from_name(dialect)
    try:
        return _CAPABILITIES[sql_type]
    except KeyError:
        msg = f"No capabilities registered for dialect {sql_type.value!r}"
        raise ImproperConfigurationError(detail=msg) from None


def quote_identifier(name: str, dialect: "Union[SqlType, str]") -> str:
    """Quote a SQL identifier, doubling any embedded closing quote.

    Examples:
        >>> quote_identifier("Item", SqlType.POSTGRESQL)
        '"Item"'
        >>> quote_identifier("Item", SqlType.SQL_SERVER)
        '[Item]'
        >>> quote_identifier("Item", SqlType.MYSQL)
        '`Item`'
    """
    capabilities = get_capabilities(dialect)
    end = capabilities.escape_end
    return f"{capabilities.escape_start}{name.replace(end, end * 2)}{end}"


def qualify_table(table: str, schema: Optional[str], dialect: "Union[SqlType, str]") -> str:
    """Create a quoted table reference with an optional quoted schema prefix."""
    quoted_table = quote_identifier(table, dialect)
    if schema:
        return f"{quote_identifier(schema, dialect)}.{quoted_table}"
    return quoted_table


def _is_string_operand(node: exp.Expression) -> bool:
    if isinstance(node, exp.Literal):
        return node.is_string
    if isinstance(node, exp.Cast):
        return node.to.is_type(*exp.DataType.TEXT_TYPES)
    return is_string_concat(node)


def is_string_concat(expression: exp.Expression) -> bool:
    """Check whether a binary expression concatenates strings rather than adding numbers."""
    if isinstance(expression, (exp.DPipe, exp.Concat)):
        return True
    if isinstance(expression, exp.Add):
        return _is_string_operand(expression.left) or _is_string_operand(expression.right)
    return False


def get_binary_add_operator(expression: exp.Expression, dialect: "Union[SqlType, str]") -> str:
    """Return the operator a dialect uses to render a binary addition.

    String concatenation renders as ``||`` on engines that concatenate that
    way; numeric addition is always ``+``.
    """
    if is_string_concat(expression):
        return get_capabilities(dialect).string_concat_operator
    return "+"
