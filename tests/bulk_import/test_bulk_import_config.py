"""Tests for BulkImportConfig."""

import pytest

from src.fleet.bulk_import.config import BulkImportConfig, ProfileUpgradePolicy
from src.fleet.core.exceptions import ConfigurationError

ENV_VARS = [
    "BULK_IMPORT_MAX_WORKERS",
    "BULK_IMPORT_ACCESS_TOKEN_LENGTH",
    "BULK_IMPORT_PROFILE_UPGRADE_POLICY",
    "BULK_IMPORT_MAX_UPLOAD_MB",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    config = BulkImportConfig.from_env()

    assert config.max_workers == 10
    assert config.access_token_length == 20
    assert config.profile_upgrade_policy == ProfileUpgradePolicy.UPGRADE
    assert config.max_upload_size_bytes == 10 * 1024 * 1024


def test_reads_environment(monkeypatch):
    monkeypatch.setenv("BULK_IMPORT_MAX_WORKERS", "4")
    monkeypatch.setenv("BULK_IMPORT_ACCESS_TOKEN_LENGTH", "32")
    monkeypatch.setenv("BULK_IMPORT_PROFILE_UPGRADE_POLICY", " Reject ")
    monkeypatch.setenv("BULK_IMPORT_MAX_UPLOAD_MB", "2")

    config = BulkImportConfig.from_env()

    assert config.max_workers == 4
    assert config.access_token_length == 32
    assert config.profile_upgrade_policy == ProfileUpgradePolicy.REJECT
    assert config.max_upload_size_mb == 2


@pytest.mark.parametrize(
    "name,value",
    [
        ("BULK_IMPORT_MAX_WORKERS", "many"),
        ("BULK_IMPORT_MAX_WORKERS", "0"),
        ("BULK_IMPORT_ACCESS_TOKEN_LENGTH", "-1"),
        ("BULK_IMPORT_PROFILE_UPGRADE_POLICY", "ignore"),
    ],
)
def test_invalid_values(monkeypatch, name, value):
    monkeypatch.setenv(name, value)

    with pytest.raises(ConfigurationError):
        BulkImportConfig.from_env()
