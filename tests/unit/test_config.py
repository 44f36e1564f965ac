"""Unit tests for bulk configuration."""

import logging
from dataclasses import replace

import pytest

from bulkspec.config import BulkConfig, create_default_config, load_config_from_env, validate_config
from bulkspec.exceptions import ImproperConfigurationError

ENV_VARS = (
    "BULKSPEC_APPLY_SUBQUERY_LIMIT",
    "BULKSPEC_KEEP_IDENTITY",
    "BULKSPEC_WITH_HOLDLOCK",
    "BULKSPEC_OMIT_CLAUSE_EXISTS_EXCEPT",
    "BULKSPEC_VALIDATE_SQL",
)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults() -> None:
    config = create_default_config()

    assert config == BulkConfig()
    assert config.apply_subquery_limit == 0
    assert not config.keep_identity
    assert config.with_holdlock
    assert not config.omit_clause_exists_except
    assert not config.validate_sql


def test_negative_limit_is_rejected() -> None:
    with pytest.raises(ImproperConfigurationError, match="apply_subquery_limit"):
        BulkConfig(apply_subquery_limit=-1)


def test_replace_revalidates() -> None:
    with pytest.raises(ImproperConfigurationError):
        replace(BulkConfig(), apply_subquery_limit=-5)


def test_validate_config() -> None:
    assert validate_config(BulkConfig(apply_subquery_limit=10)) == []


def test_load_from_environment_without_variables() -> None:
    assert load_config_from_env() == BulkConfig()


def test_load_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BULKSPEC_APPLY_SUBQUERY_LIMIT", "25")
    monkeypatch.setenv("BULKSPEC_KEEP_IDENTITY", "yes")
    monkeypatch.setenv("BULKSPEC_WITH_HOLDLOCK", "false")
    monkeypatch.setenv("BULKSPEC_OMIT_CLAUSE_EXISTS_EXCEPT", "1")
    monkeypatch.setenv("BULKSPEC_VALIDATE_SQL", "TRUE")

    config = load_config_from_env()

    assert config == BulkConfig(
        apply_subquery_limit=25,
        keep_identity=True,
        with_holdlock=False,
        omit_clause_exists_except=True,
        validate_sql=True,
    )


def test_invalid_integer_falls_back_to_default(
    monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
) -> None:
    monkeypatch.setenv("BULKSPEC_APPLY_SUBQUERY_LIMIT", "many")

    with caplog.at_level(logging.WARNING, logger="bulkspec.config"):
        config = load_config_from_env()

    assert config.apply_subquery_limit == 0
    assert "BULKSPEC_APPLY_SUBQUERY_LIMIT" in caplog.text


def test_negative_integer_from_environment_is_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BULKSPEC_APPLY_SUBQUERY_LIMIT", "-1")

    with pytest.raises(ImproperConfigurationError):
        load_config_from_env()
