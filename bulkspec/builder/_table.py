"""Staging table statements.

Column lists follow the iteration order of ``TableInfo.property_column_names``
so that positional parameter binding elsewhere lines up with these statements.
"""

from typing import Union

from bulkspec.builder._base import comma_separated_columns
from bulkspec.builder._validation import finalize_statement
from bulkspec.dialects import SqlType, quote_identifier
from bulkspec.exceptions import ImproperConfigurationError
from bulkspec.table_info import TableInfo
from bulkspec.utils.logging import get_logger, log_statement

__all__ = ("create_staging_table", "drop_staging_table", "insert_from_staging", "truncate_table")

logger = get_logger("bulkspec.builder.table")


def create_staging_table(table_info: TableInfo, dialect: "Union[SqlType, str]") -> str:
    """Build the statement creating the staging table.

    With ``column_types`` the columns are declared explicitly. Otherwise the
    target's structure is copied without rows.
    """
    sql_type = SqlType.from_name(dialect)
    target = table_info.full_table_name(sql_type)
    staging = table_info.full_temp_table_name(sql_type)
    columns = table_info.columns

    if table_info.column_types:
        missing = [column for column in columns if column not in table_info.column_types]
        if missing:
            msg = f"Missing column types for {missing} of {table_info.table_name!r}"
            raise ImproperConfigurationError(detail=msg)
        definitions = ", ".join(
            f"{quote_identifier(column, sql_type)} {table_info.column_types[column]}" for column in columns
        )
        sql = f"CREATE TABLE {staging} ({definitions})"
    elif sql_type is SqlType.SQL_SERVER:
        # The always-false self join drops the IDENTITY property from the copy.
        select_columns = comma_separated_columns(columns, sql_type, prefix="T.")
        sql = f"SELECT TOP 0 {select_columns} INTO {staging} FROM {target} AS T LEFT JOIN {target} AS Source ON 1 = 0"
    else:
        sql = f"CREATE TABLE {staging} AS SELECT {comma_separated_columns(columns, sql_type)} FROM {target} LIMIT 0"

    sql = finalize_statement(sql, table_info, sql_type)
    log_statement(logger, sql=sql, dialect=sql_type.value, operation="create_staging", table=table_info.temp_table_name)
    return sql


def drop_staging_table(table_info: TableInfo, dialect: "Union[SqlType, str]", if_exists: bool = False) -> str:
    sql_type = SqlType.from_name(dialect)
    if_exists_clause = "IF EXISTS " if if_exists else ""
    return finalize_statement(
        f"DROP TABLE {if_exists_clause}{table_info.full_temp_table_name(sql_type)}", table_info, sql_type
    )


def insert_from_staging(table_info: TableInfo, dialect: "Union[SqlType, str]") -> str:
    """Copy every staged row into the target table."""
    sql_type = SqlType.from_name(dialect)
    columns = comma_separated_columns(table_info.columns, sql_type)
    sql = (
        f"INSERT INTO {table_info.full_table_name(sql_type)} ({columns}) "
        f"SELECT {columns} FROM {table_info.full_temp_table_name(sql_type)}"
    )
    return finalize_statement(sql, table_info, sql_type)


def truncate_table(table_info: TableInfo, dialect: "Union[SqlType, str]") -> str:
    sql_type = SqlType.from_name(dialect)
    target = table_info.full_table_name(sql_type)
    # SQLite has no TRUNCATE; an unqualified DELETE uses its truncate optimization.
    if sql_type is SqlType.SQLITE:
        return finalize_statement(f"DELETE FROM {target}", table_info, sql_type)
    return finalize_statement(f"TRUNCATE TABLE {target}", table_info, sql_type)
