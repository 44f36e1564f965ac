"""bulkspec: multi-dialect bulk SQL generation and batch query rewriting."""

from bulkspec import builder, config, dialects, exceptions, parameters, table_info, utils
from bulkspec.__metadata__ import __version__
from bulkspec.builder import (
    ExtractedTableAlias,
    create_staging_table,
    drop_staging_table,
    extract_table_alias,
    get_table_alias_and_top,
    insert_from_staging,
    merge_table,
    restructure_for_batch,
    truncate_table,
)
from bulkspec.config import BulkConfig, load_config_from_env
from bulkspec.dialects import DialectCapabilities, SqlType, get_capabilities, quote_identifier
from bulkspec.exceptions import (
    BulkSpecError,
    ImproperConfigurationError,
    MappingFailureKind,
    ParameterError,
    SQLBuilderError,
    SQLParsingError,
    SQLTransformationError,
    TypeMappingError,
)
from bulkspec.parameters import DbParameter, DbType, normalize_parameters
from bulkspec.table_info import OperationType, TableInfo

__all__ = (
    "BulkConfig",
    "BulkSpecError",
    "DbParameter",
    "DbType",
    "DialectCapabilities",
    "ExtractedTableAlias",
    "ImproperConfigurationError",
    "MappingFailureKind",
    "OperationType",
    "ParameterError",
    "SQLBuilderError",
    "SQLParsingError",
    "SQLTransformationError",
    "SqlType",
    "TableInfo",
    "TypeMappingError",
    "__version__",
    "builder",
    "config",
    "create_staging_table",
    "dialects",
    "drop_staging_table",
    "exceptions",
    "extract_table_alias",
    "get_capabilities",
    "get_table_alias_and_top",
    "insert_from_staging",
    "load_config_from_env",
    "merge_table",
    "normalize_parameters",
    "parameters",
    "quote_identifier",
    "restructure_for_batch",
    "table_info",
    "truncate_table",
    "utils",
)
