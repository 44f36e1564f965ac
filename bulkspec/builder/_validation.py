"""Optional parse check of generated statements."""

from typing import Union

import sqlglot
from sqlglot.errors import SqlglotError

from bulkspec.dialects import SqlType, get_capabilities
from bulkspec.exceptions import SQLParsingError
from bulkspec.table_info import TableInfo

__all__ = ("finalize_statement", "validate_generated_sql")


def validate_generated_sql(sql: str, dialect: "Union[SqlType, str]") -> str:
    """Parse ``sql`` with sqlglot in the dialect's flavour.

    Returns:
        The unchanged SQL text.

    Raises:
        SQLParsingError: If sqlglot cannot parse the statement.
    """
    capabilities = get_capabilities(dialect)
    statement = sql.rstrip().rstrip(";")
    try:
        sqlglot.parse_one(statement, read=capabilities.sqlglot_dialect)
    except SqlglotError as exc:
        msg = f"Generated SQL is not valid {capabilities.sql_type.value}: {exc}"
        raise SQLParsingError(msg, sql=sql) from exc
    return sql


def finalize_statement(sql: str, table_info: TableInfo, dialect: SqlType) -> str:
    """Terminate a statement and validate it when the table's config asks for it."""
    if not sql.endswith(";"):
        sql = f"{sql};"
    if table_info.bulk_config.validate_sql:
        validate_generated_sql(sql, dialect)
    return sql
