"""Bulk statement builders.

Generates staging table DDL, merge/upsert statements and batch rewrites for
SQL Server, PostgreSQL, MySQL and SQLite.
"""

from bulkspec.builder._alias import ExtractedTableAlias, extract_table_alias, get_table_alias_and_top
from bulkspec.builder._batch import BatchStatement, parse_batch_statement, restructure_for_batch
from bulkspec.builder._merge import EXCLUDED, merge_table
from bulkspec.builder._table import create_staging_table, drop_staging_table, insert_from_staging, truncate_table
from bulkspec.builder._validation import validate_generated_sql

__all__ = (
    "EXCLUDED",
    "BatchStatement",
    "ExtractedTableAlias",
    "create_staging_table",
    "drop_staging_table",
    "extract_table_alias",
    "get_table_alias_and_top",
    "insert_from_staging",
    "merge_table",
    "parse_batch_statement",
    "restructure_for_batch",
    "truncate_table",
    "validate_generated_sql",
)
