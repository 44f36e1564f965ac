"""Driver parameter normalization.

Before a batch statement is executed its parameters are adjusted so that no
precision is lost on the wire:

- Generic ``DATETIME`` parameters are widened to ``DATETIME2``.
- On engines whose driver infers types itself (SQLite), parameters are rebuilt
  without a declared type.

Array and JSON shaped values have no scalar type mapping. Reading their type
raises :class:`~bulkspec.exceptions.TypeMappingError`; those known shapes are
passed through untouched, anything else propagates.
"""

import datetime
import decimal
import logging
import uuid
from collections.abc import Mapping, Sequence
from enum import Enum
from typing import Any, Final, Optional, Union

from mypy_extensions import mypyc_attr

from bulkspec.dialects import SqlType, get_capabilities
from bulkspec.exceptions import MappingFailureKind, TypeMappingError
from bulkspec.utils.logging import get_logger, log_with_context

__all__ = (
    "RECOVERABLE_MAPPING_FAILURES",
    "DbParameter",
    "DbType",
    "infer_db_type",
    "is_recoverable_mapping_failure",
    "normalize_parameters",
)

logger = get_logger("bulkspec.parameters")


class DbType(str, Enum):
    """Declared database types of driver parameters."""

    STRING = "string"
    BOOLEAN = "boolean"
    INT64 = "int64"
    DOUBLE = "double"
    DECIMAL = "decimal"
    DATE = "date"
    TIME = "time"
    DATETIME = "datetime"
    DATETIME2 = "datetime2"
    DATETIME_OFFSET = "datetime_offset"
    GUID = "guid"
    BINARY = "binary"


RECOVERABLE_MAPPING_FAILURES: Final[frozenset[MappingFailureKind]] = frozenset(MappingFailureKind)

_SCALAR_TYPES: Final["tuple[tuple[type, DbType], ...]"] = (
    # bool before int, datetime before date: both are subclasses.
    (bool, DbType.BOOLEAN),
    (int, DbType.INT64),
    (float, DbType.DOUBLE),
    (decimal.Decimal, DbType.DECIMAL),
    (str, DbType.STRING),
    (bytes, DbType.BINARY),
    (bytearray, DbType.BINARY),
    (uuid.UUID, DbType.GUID),
    (datetime.datetime, DbType.DATETIME),
    (datetime.date, DbType.DATE),
    (datetime.time, DbType.TIME),
)


def _sequence_failure_kind(value: "Sequence[Any]") -> MappingFailureKind:
    if value and all(isinstance(item, Mapping) for item in value):
        return MappingFailureKind.JSON_ELEMENT
    if value and all(isinstance(item, int) and not isinstance(item, bool) for item in value):
        return MappingFailureKind.INTEGER_ARRAY
    if value and all(isinstance(item, uuid.UUID) for item in value):
        return MappingFailureKind.UUID_ARRAY
    return MappingFailureKind.PRIMITIVE_SEQUENCE


def infer_db_type(value: Any) -> Optional[DbType]:
    """Infer the database type for a parameter value.

    Returns:
        The inferred type, or ``None`` for ``None`` values.

    Raises:
        TypeMappingError: If the value has no scalar type mapping.
    """
    if value is None:
        return None
    for python_type, db_type in _SCALAR_TYPES:
        if isinstance(value, python_type):
            if db_type is DbType.DATETIME and value.tzinfo is not None:
                return DbType.DATETIME_OFFSET
            return db_type

    kind: Optional[MappingFailureKind] = None
    if isinstance(value, Mapping):
        kind = MappingFailureKind.JSON_DOCUMENT
    elif isinstance(value, (list, tuple, set, frozenset)):
        kind = _sequence_failure_kind(list(value))
    msg = f"No mapping exists from object type {type(value).__module__}.{type(value).__qualname__} to a known db type"
    raise TypeMappingError(msg, kind=kind, value_type=type(value))


@mypyc_attr(allow_interpreted_subclasses=False)
class DbParameter:
    """A named driver parameter with an optional declared type.

    When no type is declared, ``db_type`` is inferred from the value on access.
    """

    __slots__ = ("_db_type", "name", "value")

    def __init__(self, name: str, value: Any, db_type: Optional[DbType] = None) -> None:
        self.name = name
        self.value = value
        self._db_type = db_type

    @property
    def db_type(self) -> Optional[DbType]:
        if self._db_type is not None:
            return self._db_type
        return infer_db_type(self.value)

    @db_type.setter
    def db_type(self, db_type: Optional[DbType]) -> None:
        self._db_type = db_type

    @property
    def is_type_declared(self) -> bool:
        return self._db_type is not None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DbParameter):
            return False
        return self.name == other.name and self.value == other.value and self._db_type == other._db_type

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        type_part = f", db_type={self._db_type.value}" if self._db_type is not None else ""
        return f"DbParameter({self.name!r}, {self.value!r}{type_part})"


def is_recoverable_mapping_failure(error: TypeMappingError) -> bool:
    """Check whether a mapping failure comes from a value shape that passes through unchanged."""
    return error.kind is not None and error.kind in RECOVERABLE_MAPPING_FAILURES


def normalize_parameters(parameters: "Sequence[DbParameter]", dialect: "Union[SqlType, str]") -> "list[DbParameter]":
    """Adjust parameter types for a dialect before execution.

    Args:
        parameters: Parameters in binding order.
        dialect: Target engine.

    Returns:
        A new list with the same length and order as ``parameters``.

    Raises:
        TypeMappingError: If a parameter's type cannot be mapped and the value
            shape is not one of the recoverable shapes.
    """
    capabilities = get_capabilities(dialect)
    if capabilities.untyped_parameters:
        return [DbParameter(parameter.name, parameter.value) for parameter in parameters]

    normalized: list[DbParameter] = []
    for parameter in parameters:
        try:
            if parameter.db_type is DbType.DATETIME:
                parameter.db_type = DbType.DATETIME2
        except TypeMappingError as error:
            if not is_recoverable_mapping_failure(error):
                raise
            log_with_context(
                logger,
                logging.DEBUG,
                "Passing parameter through unchanged",
                parameter=parameter.name,
                failure_kind=error.kind,
                dialect=capabilities.sql_type.value,
            )
        normalized.append(parameter)
    return normalized
