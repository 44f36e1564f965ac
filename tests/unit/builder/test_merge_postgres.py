"""Unit tests for PostgreSQL merge statement generation."""

from dataclasses import replace

import pytest
import sqlglot

from bulkspec import BulkConfig, OperationType, SqlType, merge_table
from bulkspec.exceptions import ImproperConfigurationError, SQLBuilderError, SQLParsingError


def test_insert_or_update_without_update_predicate(item_table_info) -> None:
    actual = merge_table(item_table_info, OperationType.INSERT_OR_UPDATE, SqlType.POSTGRESQL)

    expected = (
        'INSERT INTO "dbo"."Item" ("ItemId", "Name") '
        '(SELECT "ItemId", "Name" FROM "dbo"."ItemTemp1234") '
        'ON CONFLICT ("ItemId") DO UPDATE SET "Name" = EXCLUDED."Name";'
    )
    assert actual == expected


def test_insert_or_update_with_update_predicate(make_table_info) -> None:
    table_info = make_table_info(
        update_predicate=lambda existing, inserted: f"{inserted}.ItemTimestamp > {existing}.ItemTimestamp"
    )

    actual = merge_table(table_info, OperationType.INSERT_OR_UPDATE, SqlType.POSTGRESQL)

    expected = (
        'INSERT INTO "dbo"."Item" ("ItemId", "Name") '
        '(SELECT "ItemId", "Name" FROM "dbo"."ItemTemp1234") '
        'ON CONFLICT ("ItemId") DO UPDATE SET "Name" = EXCLUDED."Name" '
        'WHERE EXCLUDED.ItemTimestamp > "dbo"."Item".ItemTimestamp;'
    )
    assert actual == expected


def test_insert_or_update_with_empty_update_set_does_nothing(make_table_info) -> None:
    table_info = make_table_info(property_column_names_update={})

    actual = merge_table(table_info, OperationType.INSERT_OR_UPDATE, SqlType.POSTGRESQL)

    expected = (
        'INSERT INTO "dbo"."Item" ("ItemId", "Name") '
        '(SELECT "ItemId", "Name" FROM "dbo"."ItemTemp1234") '
        'ON CONFLICT ("ItemId") DO NOTHING;'
    )
    assert actual == expected


def test_insert_only_with_subquery_limit(make_table_info) -> None:
    table_info = make_table_info(property_column_names_update={}, bulk_config=BulkConfig(apply_subquery_limit=1))

    actual = merge_table(table_info, OperationType.INSERT_OR_UPDATE, SqlType.POSTGRESQL)

    expected = (
        'INSERT INTO "dbo"."Item" ("ItemId", "Name") '
        '(SELECT "ItemId", "Name" FROM "dbo"."ItemTemp1234") LIMIT 1 '
        'ON CONFLICT ("ItemId") DO NOTHING;'
    )
    assert actual == expected


def test_update_only(item_table_info) -> None:
    actual = merge_table(item_table_info, OperationType.UPDATE, SqlType.POSTGRESQL)

    expected = (
        'UPDATE "dbo"."Item" SET "Name" = "dbo"."ItemTemp1234"."Name" '
        'FROM "dbo"."ItemTemp1234" '
        'WHERE "dbo"."Item"."ItemId" = "dbo"."ItemTemp1234"."ItemId";'
    )
    assert actual == expected


def test_update_with_composite_key(make_table_info) -> None:
    table_info = make_table_info(
        property_column_names={"TenantId": "tenant_id", "ItemId": "ItemId", "Name": "Name"},
        primary_keys={"TenantId": "tenant_id", "ItemId": "ItemId"},
    )

    actual = merge_table(table_info, OperationType.UPDATE, SqlType.POSTGRESQL)

    assert actual.endswith(
        'WHERE "dbo"."Item"."tenant_id" = "dbo"."ItemTemp1234"."tenant_id" '
        'AND "dbo"."Item"."ItemId" = "dbo"."ItemTemp1234"."ItemId";'
    )
    assert 'SET "Name" = "dbo"."ItemTemp1234"."Name" FROM' in actual


def test_insert_skips_identity_column(item_table_info) -> None:
    actual = merge_table(item_table_info, OperationType.INSERT, SqlType.POSTGRESQL)

    assert actual == 'INSERT INTO "dbo"."Item" ("Name") (SELECT "Name" FROM "dbo"."ItemTemp1234");'


def test_insert_keeps_identity_column_when_configured(make_table_info) -> None:
    table_info = make_table_info(bulk_config=BulkConfig(keep_identity=True))

    actual = merge_table(table_info, OperationType.INSERT, SqlType.POSTGRESQL)

    assert actual == 'INSERT INTO "dbo"."Item" ("ItemId", "Name") (SELECT "ItemId", "Name" FROM "dbo"."ItemTemp1234");'


def test_delete(item_table_info) -> None:
    actual = merge_table(item_table_info, OperationType.DELETE, SqlType.POSTGRESQL)

    assert actual == (
        'DELETE FROM "dbo"."Item" USING "dbo"."ItemTemp1234" '
        'WHERE "dbo"."Item"."ItemId" = "dbo"."ItemTemp1234"."ItemId";'
    )


def test_read(item_table_info) -> None:
    actual = merge_table(item_table_info, OperationType.READ, SqlType.POSTGRESQL)

    assert actual == (
        'SELECT T."ItemId", T."Name" FROM "dbo"."Item" AS T '
        'INNER JOIN "dbo"."ItemTemp1234" AS S ON T."ItemId" = S."ItemId";'
    )


def test_truncate(item_table_info) -> None:
    assert merge_table(item_table_info, OperationType.TRUNCATE, SqlType.POSTGRESQL) == 'TRUNCATE TABLE "dbo"."Item";'


def test_accepts_string_tags(item_table_info) -> None:
    expected = merge_table(item_table_info, OperationType.INSERT_OR_UPDATE, SqlType.POSTGRESQL)

    assert merge_table(item_table_info, "insert_or_update", "postgres") == expected


def test_insert_or_update_or_delete_is_not_supported(item_table_info) -> None:
    with pytest.raises(SQLBuilderError):
        merge_table(item_table_info, OperationType.INSERT_OR_UPDATE_OR_DELETE, SqlType.POSTGRESQL)


@pytest.mark.parametrize(
    "operation_type",
    [OperationType.INSERT_OR_UPDATE, OperationType.UPDATE, OperationType.DELETE, OperationType.READ],
)
def test_missing_keys_is_a_configuration_error(make_table_info, operation_type) -> None:
    table_info = make_table_info(primary_keys={}, identity_column_name=None)

    with pytest.raises(ImproperConfigurationError):
        merge_table(table_info, operation_type, SqlType.POSTGRESQL)


def test_insert_without_keys_is_allowed(make_table_info) -> None:
    table_info = make_table_info(primary_keys={}, identity_column_name=None)

    actual = merge_table(table_info, OperationType.INSERT, SqlType.POSTGRESQL)

    assert actual.startswith('INSERT INTO "dbo"."Item" ("ItemId", "Name")')


def test_update_with_nothing_to_update_is_rejected(make_table_info) -> None:
    table_info = make_table_info(property_column_names_update={"ItemId": "ItemId"})

    with pytest.raises(SQLBuilderError):
        merge_table(table_info, OperationType.UPDATE, SqlType.POSTGRESQL)


def test_excluded_is_never_quoted(item_table_info) -> None:
    actual = merge_table(item_table_info, OperationType.INSERT_OR_UPDATE, SqlType.POSTGRESQL)

    assert '"EXCLUDED"' not in actual
    assert "EXCLUDED." in actual


@pytest.mark.parametrize("operation_type", [OperationType.INSERT_OR_UPDATE, OperationType.UPDATE])
def test_generated_sql_parses(item_table_info, operation_type) -> None:
    sql = merge_table(item_table_info, operation_type, SqlType.POSTGRESQL)

    parsed = sqlglot.parse_one(sql.rstrip(";"), read="postgres")

    assert parsed is not None


def test_validation_passes_well_formed_sql(item_table_info) -> None:
    table_info = replace(item_table_info, bulk_config=BulkConfig(validate_sql=True))

    actual = merge_table(table_info, OperationType.UPDATE, SqlType.POSTGRESQL)

    assert actual == merge_table(item_table_info, OperationType.UPDATE, SqlType.POSTGRESQL)


def test_validation_rejects_malformed_predicate(make_table_info) -> None:
    table_info = make_table_info(
        update_predicate=lambda existing, inserted: f"{inserted}.ItemTimestamp > (",
        bulk_config=BulkConfig(validate_sql=True),
    )

    with pytest.raises(SQLParsingError) as exc_info:
        merge_table(table_info, OperationType.INSERT_OR_UPDATE, SqlType.POSTGRESQL)

    assert exc_info.value.sql is not None
    assert "EXCLUDED.ItemTimestamp > (" in exc_info.value.sql


def test_malformed_predicate_is_emitted_verbatim_without_validation(make_table_info) -> None:
    table_info = make_table_info(update_predicate=lambda existing, inserted: f"{inserted}.ItemTimestamp > (")

    actual = merge_table(table_info, OperationType.INSERT_OR_UPDATE, SqlType.POSTGRESQL)

    assert actual.endswith("WHERE EXCLUDED.ItemTimestamp > (;")
