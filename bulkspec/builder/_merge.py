"""Bulk merge statement generation.

Produces one ``;``-terminated statement that applies the rows of a staging
table to its target table. Each dialect has its own pure builder function and
:func:`merge_table` dispatches on the dialect tag:

- PostgreSQL and SQLite use ``INSERT ... ON CONFLICT``.
- MySQL uses ``INSERT ... ON DUPLICATE KEY UPDATE`` and ``INSERT IGNORE``.
- SQL Server uses ``MERGE``.

An empty update set never produces an empty ``SET`` clause; upserts switch to
their insert-only form instead.
"""

from collections.abc import Callable
from typing import Final, Union

from bulkspec.builder._base import assignments, comma_separated_columns, join_conditions
from bulkspec.builder._table import truncate_table
from bulkspec.builder._validation import finalize_statement
from bulkspec.dialects import SqlType, get_capabilities
from bulkspec.exceptions import SQLBuilderError
from bulkspec.table_info import OperationType, TableInfo
from bulkspec.utils.logging import get_logger, log_statement

__all__ = ("EXCLUDED", "merge_table")

logger = get_logger("bulkspec.builder.merge")

EXCLUDED: Final = "EXCLUDED"
TARGET_ALIAS: Final = "T"
SOURCE_ALIAS: Final = "S"


def _unsupported(operation_type: OperationType, sql_type: SqlType) -> SQLBuilderError:
    return SQLBuilderError(f"Operation {operation_type.value!r} is not supported for {sql_type.value}")


def _require_update_columns(table_info: TableInfo) -> "list[str]":
    columns = table_info.update_columns
    if not columns:
        msg = f"No updatable columns configured for {table_info.table_name!r}"
        raise SQLBuilderError(msg)
    return columns


def _read_statement(table_info: TableInfo, sql_type: SqlType) -> str:
    keys = table_info.require_keys(OperationType.READ)
    columns = comma_separated_columns(table_info.columns, sql_type, prefix=f"{TARGET_ALIAS}.")
    return (
        f"SELECT {columns} FROM {table_info.full_table_name(sql_type)} AS {TARGET_ALIAS} "
        f"INNER JOIN {table_info.full_temp_table_name(sql_type)} AS {SOURCE_ALIAS} "
        f"ON {join_conditions(keys, sql_type, TARGET_ALIAS, SOURCE_ALIAS)}"
    )


def _merge_on_conflict(table_info: TableInfo, operation_type: OperationType, sql_type: SqlType) -> str:
    """PostgreSQL and SQLite statements."""
    capabilities = get_capabilities(sql_type)
    if operation_type is OperationType.INSERT_OR_UPDATE_OR_DELETE:
        raise _unsupported(operation_type, sql_type)
    if operation_type is OperationType.READ:
        return _read_statement(table_info, sql_type)

    keys = table_info.require_keys(operation_type)
    target = table_info.full_table_name(sql_type)
    staging = table_info.full_temp_table_name(sql_type)

    if operation_type is OperationType.UPDATE:
        columns_to_update = _require_update_columns(table_info)
        return (
            f"UPDATE {target} SET {assignments(columns_to_update, sql_type, staging)} "
            f"FROM {staging} WHERE {join_conditions(keys, sql_type, target, staging)}"
        )

    if operation_type is OperationType.DELETE:
        if sql_type is SqlType.SQLITE:
            key_list = comma_separated_columns(keys, sql_type)
            return f"DELETE FROM {target} WHERE ({key_list}) IN (SELECT {key_list} FROM {staging})"
        return f"DELETE FROM {target} USING {staging} WHERE {join_conditions(keys, sql_type, target, staging)}"

    columns = comma_separated_columns(table_info.insert_columns(operation_type), sql_type)
    limit = table_info.bulk_config.apply_subquery_limit
    limit_clause = f" LIMIT {limit}" if limit > 0 else ""
    if capabilities.parenthesized_insert_select:
        source = f"(SELECT {columns} FROM {staging}){limit_clause}"
    else:
        is_upsert = operation_type is OperationType.INSERT_OR_UPDATE
        where_clause = " WHERE true" if capabilities.upsert_requires_where and is_upsert else ""
        source = f"SELECT {columns} FROM {staging}{where_clause}{limit_clause}"
    sql = f"INSERT INTO {target} ({columns}) {source}"

    if operation_type is OperationType.INSERT_OR_UPDATE:
        conflict_target = comma_separated_columns(keys, sql_type)
        columns_to_update = table_info.update_columns
        if not columns_to_update:
            return f"{sql} ON CONFLICT ({conflict_target}) DO NOTHING"
        update_set = assignments(columns_to_update, sql_type, EXCLUDED)
        sql = f"{sql} ON CONFLICT ({conflict_target}) DO UPDATE SET {update_set}"
        if table_info.update_predicate is not None:
            sql = f"{sql} WHERE {table_info.update_predicate(target, EXCLUDED)}"
    return sql


def _merge_mysql(table_info: TableInfo, operation_type: OperationType, sql_type: SqlType) -> str:
    if operation_type is OperationType.INSERT_OR_UPDATE_OR_DELETE:
        raise _unsupported(operation_type, sql_type)
    if operation_type is OperationType.READ:
        return _read_statement(table_info, sql_type)

    keys = table_info.require_keys(operation_type)
    target = table_info.full_table_name(sql_type)
    staging = table_info.full_temp_table_name(sql_type)

    if operation_type is OperationType.UPDATE:
        columns_to_update = _require_update_columns(table_info)
        return (
            f"UPDATE {target} AS A INNER JOIN {staging} AS B ON {join_conditions(keys, sql_type, 'A', 'B')} "
            f"SET {assignments(columns_to_update, sql_type, 'B', target_prefix='A.')}"
        )
    if operation_type is OperationType.DELETE:
        return f"DELETE A FROM {target} AS A INNER JOIN {staging} AS B ON {join_conditions(keys, sql_type, 'A', 'B')}"

    columns = comma_separated_columns(table_info.insert_columns(operation_type), sql_type)
    limit = table_info.bulk_config.apply_subquery_limit
    limit_clause = f" LIMIT {limit}" if limit > 0 else ""
    if operation_type is OperationType.INSERT:
        return f"INSERT INTO {target} ({columns}) SELECT {columns} FROM {staging}{limit_clause}"

    if table_info.update_predicate is not None:
        msg = "A custom update predicate is not supported with ON DUPLICATE KEY UPDATE"
        raise SQLBuilderError(msg)
    columns_to_update = table_info.update_columns
    if not columns_to_update:
        return f"INSERT IGNORE INTO {target} ({columns}) SELECT {columns} FROM {staging}{limit_clause}"
    return (
        f"INSERT INTO {target} ({columns}) SELECT {columns} FROM {staging} AS {EXCLUDED}{limit_clause} "
        f"ON DUPLICATE KEY UPDATE {assignments(columns_to_update, sql_type, EXCLUDED)}"
    )


def _merge_sql_server(table_info: TableInfo, operation_type: OperationType, sql_type: SqlType) -> str:
    if operation_type is OperationType.READ:
        return _read_statement(table_info, sql_type)

    config = table_info.bulk_config
    target = table_info.full_table_name(sql_type)
    staging = table_info.full_temp_table_name(sql_type)
    top_clause = f"TOP({config.apply_subquery_limit}) " if config.apply_subquery_limit > 0 else ""

    if operation_type is OperationType.INSERT:
        columns = comma_separated_columns(table_info.insert_columns(operation_type), sql_type)
        return f"INSERT INTO {target} ({columns}) SELECT {top_clause}{columns} FROM {staging}"

    keys = table_info.require_keys(operation_type)
    holdlock = " WITH (HOLDLOCK)" if config.with_holdlock else ""
    source_columns = comma_separated_columns(table_info.columns, sql_type)
    sql = (
        f"MERGE {target}{holdlock} AS {TARGET_ALIAS} "
        f"USING (SELECT {top_clause}{source_columns} FROM {staging}) AS {SOURCE_ALIAS} "
        f"ON {join_conditions(keys, sql_type, TARGET_ALIAS, SOURCE_ALIAS)}"
    )

    if operation_type in {OperationType.INSERT_OR_UPDATE, OperationType.INSERT_OR_UPDATE_OR_DELETE}:
        insert_columns = table_info.insert_columns(OperationType.INSERT)
        sql = (
            f"{sql} WHEN NOT MATCHED BY TARGET THEN INSERT ({comma_separated_columns(insert_columns, sql_type)}) "
            f"VALUES ({comma_separated_columns(insert_columns, sql_type, prefix=f'{SOURCE_ALIAS}.')})"
        )

    if operation_type is OperationType.UPDATE:
        columns_to_update = _require_update_columns(table_info)
    elif operation_type is OperationType.DELETE:
        columns_to_update = []
    else:
        columns_to_update = table_info.update_columns
    if columns_to_update:
        matched = " WHEN MATCHED"
        compare_columns = table_info.compare_columns
        if compare_columns and not config.omit_clause_exists_except:
            matched = (
                f"{matched} AND EXISTS ("
                f"SELECT {comma_separated_columns(compare_columns, sql_type, prefix=f'{SOURCE_ALIAS}.')} "
                f"EXCEPT SELECT {comma_separated_columns(compare_columns, sql_type, prefix=f'{TARGET_ALIAS}.')})"
            )
        if table_info.update_predicate is not None:
            matched = f"{matched} AND ({table_info.update_predicate(TARGET_ALIAS, SOURCE_ALIAS)})"
        update_set = assignments(columns_to_update, sql_type, SOURCE_ALIAS, target_prefix=f"{TARGET_ALIAS}.")
        sql = f"{sql}{matched} THEN UPDATE SET {update_set}"

    if operation_type is OperationType.INSERT_OR_UPDATE_OR_DELETE:
        sql = f"{sql} WHEN NOT MATCHED BY SOURCE THEN DELETE"
    elif operation_type is OperationType.DELETE:
        sql = f"{sql} WHEN MATCHED THEN DELETE"
    return sql


_MERGE_BUILDERS: Final["dict[SqlType, Callable[[TableInfo, OperationType, SqlType], str]]"] = {
    SqlType.SQL_SERVER: _merge_sql_server,
    SqlType.POSTGRESQL: _merge_on_conflict,
    SqlType.MYSQL: _merge_mysql,
    SqlType.SQLITE: _merge_on_conflict,
}


def merge_table(table_info: TableInfo, operation_type: OperationType, dialect: "Union[SqlType, str]") -> str:
    """Generate the statement applying staged rows to the target table.

    Args:
        table_info: Target and staging table description.
        operation_type: Operation to generate.
        dialect: Target engine.

    Returns:
        One ``;``-terminated SQL statement.

    Raises:
        ImproperConfigurationError: If the operation needs key columns and none are
            configured, or the dialect is unknown.
        SQLBuilderError: If the operation is not supported for the dialect or there
            is nothing to update.
        SQLParsingError: If ``bulk_config.validate_sql`` is set and the statement
            does not parse.
    """
    sql_type = SqlType.from_name(dialect)
    operation_type = OperationType(operation_type)
    if operation_type is OperationType.TRUNCATE:
        return truncate_table(table_info, sql_type)

    sql = finalize_statement(_MERGE_BUILDERS[sql_type](table_info, operation_type, sql_type), table_info, sql_type)
    log_statement(logger, sql=sql, dialect=sql_type.value, operation=operation_type.value, table=table_info.table_name)
    return sql
