"""Table metadata consumed by the statement builders."""

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Optional, Union

from bulkspec.config import BulkConfig
from bulkspec.dialects import SqlType, qualify_table
from bulkspec.exceptions import ImproperConfigurationError

__all__ = ("OperationType", "TableInfo", "UpdatePredicate")

UpdatePredicate = Callable[[str, str], str]
"""Builds a condition from ``(existing_alias, inserted_alias)``."""


class OperationType(str, Enum):
    """Bulk operation a statement is generated for."""

    INSERT = "insert"
    INSERT_OR_UPDATE = "insert_or_update"
    INSERT_OR_UPDATE_OR_DELETE = "insert_or_update_or_delete"
    UPDATE = "update"
    DELETE = "delete"
    READ = "read"
    TRUNCATE = "truncate"

    @property
    def requires_keys(self) -> bool:
        return self not in {OperationType.INSERT, OperationType.TRUNCATE}


def _freeze(mapping: "Optional[Mapping[str, str]]") -> "Optional[Mapping[str, str]]":
    if mapping is None:
        return None
    return MappingProxyType(dict(mapping))


@dataclass(frozen=True)
class TableInfo:
    """Description of a target table and its staging table.

    Column mappings go from entity property name to column name and keep
    insertion order; that order is the column order of every generated
    statement. ``property_column_names_compare`` and
    ``property_column_names_update`` default to the full mapping.
    """

    table_name: str
    property_column_names: "Mapping[str, str]"
    primary_keys: "Mapping[str, str]" = field(default_factory=dict)
    schema: Optional[str] = None
    temp_table_suffix: str = "Temp"
    temp_table_name: str = ""
    temp_schema: Optional[str] = None
    property_column_names_compare: "Optional[Mapping[str, str]]" = None
    property_column_names_update: "Optional[Mapping[str, str]]" = None
    identity_column_name: Optional[str] = None
    column_types: "Optional[Mapping[str, str]]" = None
    update_predicate: Optional[UpdatePredicate] = None
    bulk_config: BulkConfig = field(default_factory=BulkConfig)

    def __post_init__(self) -> None:
        object.__setattr__(self, "property_column_names", _freeze(self.property_column_names))
        object.__setattr__(self, "primary_keys", _freeze(self.primary_keys))
        object.__setattr__(self, "column_types", _freeze(self.column_types))
        compare = self.property_column_names_compare
        update = self.property_column_names_update
        columns = self.property_column_names
        object.__setattr__(self, "property_column_names_compare", _freeze(compare if compare is not None else columns))
        object.__setattr__(self, "property_column_names_update", _freeze(update if update is not None else columns))
        if not self.temp_table_name:
            object.__setattr__(self, "temp_table_name", f"{self.table_name}{self.temp_table_suffix}")
        if self.temp_schema is None:
            object.__setattr__(self, "temp_schema", self.schema)
        self._validate()

    def _validate(self) -> None:
        if not self.property_column_names:
            msg = f"Table {self.table_name!r} has no columns"
            raise ImproperConfigurationError(detail=msg)
        for label, subset in (
            ("compare", self.property_column_names_compare),
            ("update", self.property_column_names_update),
            ("primary key", self.primary_keys),
        ):
            unknown = [name for name in subset or {} if name not in self.property_column_names]
            if unknown:
                msg = f"{label.capitalize()} properties {unknown} are not columns of {self.table_name!r}"
                raise ImproperConfigurationError(detail=msg)
        if self.identity_column_name and self.identity_column_name not in self.columns:
            msg = f"Identity column {self.identity_column_name!r} is not a column of {self.table_name!r}"
            raise ImproperConfigurationError(detail=msg)

    @property
    def columns(self) -> "list[str]":
        return list(self.property_column_names.values())

    @property
    def key_columns(self) -> "list[str]":
        return [self.property_column_names[name] for name in self.primary_keys]

    @property
    def compare_columns(self) -> "list[str]":
        compare = self.property_column_names_compare or {}
        return [column for column in self.columns if column in compare.values()]

    @property
    def update_columns(self) -> "list[str]":
        """Columns assigned on update: the update set without key and identity columns."""
        update = self.property_column_names_update or {}
        excluded = set(self.key_columns)
        if self.identity_column_name:
            excluded.add(self.identity_column_name)
        return [column for column in self.columns if column in update.values() and column not in excluded]

    def insert_columns(self, operation_type: OperationType) -> "list[str]":
        """Columns written by an INSERT for the given operation.

        Plain inserts let the database generate identity values unless
        ``bulk_config.keep_identity`` is set.
        """
        if (
            operation_type is OperationType.INSERT
            and self.identity_column_name
            and not self.bulk_config.keep_identity
        ):
            return [column for column in self.columns if column != self.identity_column_name]
        return self.columns

    def require_keys(self, operation_type: OperationType) -> "list[str]":
        """Return the key columns, failing if the operation needs keys and none are configured."""
        keys = self.key_columns
        if operation_type.requires_keys and not keys:
            msg = f"Operation {operation_type.value!r} on {self.table_name!r} requires primary key columns"
            raise ImproperConfigurationError(detail=msg)
        return keys

    def full_table_name(self, dialect: "Union[SqlType, str]") -> str:
        return qualify_table(self.table_name, self.schema, dialect)

    def full_temp_table_name(self, dialect: "Union[SqlType, str]") -> str:
        return qualify_table(self.temp_table_name, self.temp_schema, dialect)
