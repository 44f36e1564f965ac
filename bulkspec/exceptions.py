from enum import Enum
from typing import Any, Optional

__all__ = (
    "BulkSpecError",
    "ImproperConfigurationError",
    "MappingFailureKind",
    "ParameterError",
    "SQLBuilderError",
    "SQLParsingError",
    "SQLTransformationError",
    "TypeMappingError",
)


class BulkSpecError(Exception):
    """Base exception class from which all bulkspec exceptions inherit."""

    detail: str

    def __init__(self, *args: Any, detail: str = "") -> None:
        """Initialize ``BulkSpecError``.

        Args:
            *args: args are converted to :class:`str` before passing to :class:`Exception`
            detail: detail of the exception.
        """
        str_args = [str(arg) for arg in args if arg]
        if not detail:
            if str_args:
                detail, *str_args = str_args
            elif hasattr(self, "detail"):
                detail = self.detail
        self.detail = detail
        super().__init__(*str_args)

    def __repr__(self) -> str:
        if self.detail:
            return f"{self.__class__.__name__} - {self.detail}"
        return self.__class__.__name__

    def __str__(self) -> str:
        return " ".join((*self.args, self.detail)).strip()


class ImproperConfigurationError(BulkSpecError):
    """Improper configuration error.

    Raised for table metadata or dialect selections that can never produce valid SQL,
    such as missing key columns or an unknown dialect tag.
    """


class SQLBuilderError(BulkSpecError):
    """Issues building or generating SQL statements."""

    def __init__(self, message: Optional[str] = None) -> None:
        if message is None:
            message = "Issues building SQL statement."
        super().__init__(message)


class SQLParsingError(BulkSpecError):
    """Issues parsing SQL statements."""

    sql: Optional[str]

    def __init__(self, message: Optional[str] = None, sql: Optional[str] = None) -> None:
        if message is None:
            message = "Issues parsing SQL statement."
        detail_message = message
        if sql:
            detail_message = f"{message}\nSQL: {sql}"
        super().__init__(detail=detail_message)
        self.sql = sql


class SQLTransformationError(BulkSpecError):
    """Raised when SQL text does not have the shape a rewrite expects."""

    sql: Optional[str]

    def __init__(self, message: str, sql: Optional[str] = None) -> None:
        """Initialize with SQL context."""
        detail_message = message
        if sql:
            detail_message = f"{message}\nSQL: {sql}"
        super().__init__(detail=detail_message)
        self.sql = sql


# -- SQL Parameter Errors --
class ParameterError(BulkSpecError):
    """Base class for parameter-related errors."""


class MappingFailureKind(str, Enum):
    """Value shapes a driver cannot map onto a scalar database type."""

    PRIMITIVE_SEQUENCE = "primitive_sequence"
    INTEGER_ARRAY = "integer_array"
    UUID_ARRAY = "uuid_array"
    JSON_ELEMENT = "json_element"
    JSON_DOCUMENT = "json_document"


class TypeMappingError(ParameterError):
    """No database type mapping exists for a parameter value.

    ``kind`` is ``None`` when the value shape is not one of the known
    :class:`MappingFailureKind` shapes.
    """

    kind: Optional[MappingFailureKind]
    value_type: Optional[type]

    def __init__(
        self, message: str, kind: Optional[MappingFailureKind] = None, value_type: Optional[type] = None
    ) -> None:
        super().__init__(detail=message)
        self.kind = kind
        self.value_type = value_type
