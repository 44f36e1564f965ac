"""Configuration for bulk SQL generation.

``BulkConfig`` carries the per-call options that change the shape of the
generated statements. Instances are immutable; derive variants with
``dataclasses.replace``. Defaults can be read from the environment with
:func:`load_config_from_env`.
"""

import os
from dataclasses import dataclass

from bulkspec.exceptions import ImproperConfigurationError
from bulkspec.utils.logging import get_logger

__all__ = ("BulkConfig", "create_default_config", "load_config_from_env", "validate_config")

logger = get_logger("bulkspec.config")


@dataclass(frozen=True)
class BulkConfig:
    """Options controlling generated bulk statements.

    Attributes:
        apply_subquery_limit: When positive, limit the staging SELECT to this many rows
            (``LIMIT n`` or ``TOP(n)`` depending on the dialect).
        keep_identity: Include the identity column in plain INSERT column lists.
        with_holdlock: Emit ``WITH (HOLDLOCK)`` on T-SQL MERGE targets.
        omit_clause_exists_except: Skip the T-SQL ``EXISTS (... EXCEPT ...)`` change
            detection on ``WHEN MATCHED``.
        validate_sql: Parse every generated statement with sqlglot and raise on failure.
    """

    apply_subquery_limit: int = 0
    keep_identity: bool = False
    with_holdlock: bool = True
    omit_clause_exists_except: bool = False
    validate_sql: bool = False

    def validate(self) -> "list[str]":
        """Return a list of problems with this configuration."""
        errors: list[str] = []
        if self.apply_subquery_limit < 0:
            errors.append(f"apply_subquery_limit must be >= 0, got {self.apply_subquery_limit}")
        return errors

    def __post_init__(self) -> None:
        errors = self.validate()
        if errors:
            raise ImproperConfigurationError(detail="; ".join(errors))


def load_config_from_env() -> BulkConfig:
    """Load configuration from environment variables.

    Environment Variables Supported:
    - BULKSPEC_APPLY_SUBQUERY_LIMIT: Row limit applied to the staging SELECT (integer)
    - BULKSPEC_KEEP_IDENTITY: Insert explicit identity values (true/false)
    - BULKSPEC_WITH_HOLDLOCK: Use WITH (HOLDLOCK) on MERGE targets (true/false)
    - BULKSPEC_OMIT_CLAUSE_EXISTS_EXCEPT: Skip MERGE change detection (true/false)
    - BULKSPEC_VALIDATE_SQL: Validate generated SQL with sqlglot (true/false)

    Returns:
        BulkConfig loaded from environment variables
    """
    defaults = BulkConfig()
    return BulkConfig(
        apply_subquery_limit=_env_int("BULKSPEC_APPLY_SUBQUERY_LIMIT", defaults.apply_subquery_limit),
        keep_identity=_env_bool("BULKSPEC_KEEP_IDENTITY", defaults.keep_identity),
        with_holdlock=_env_bool("BULKSPEC_WITH_HOLDLOCK", defaults.with_holdlock),
        omit_clause_exists_except=_env_bool("BULKSPEC_OMIT_CLAUSE_EXISTS_EXCEPT", defaults.omit_clause_exists_except),
        validate_sql=_env_bool("BULKSPEC_VALIDATE_SQL", defaults.validate_sql),
    )


def validate_config(config: BulkConfig) -> "list[str]":
    """Validate configuration consistency.

    Args:
        config: Configuration to validate

    Returns:
        List of validation errors (empty if valid)
    """
    return config.validate()


def create_default_config() -> BulkConfig:
    return BulkConfig()


def _env_bool(key: str, default: bool) -> bool:
    """Get boolean value from environment variable."""
    value = os.getenv(key)
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes", "on", "enabled")


def _env_int(key: str, default: int) -> int:
    """Get integer value from environment variable."""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning("Invalid integer value for %s: %s, using default %d", key, value, default)
        return default
