"""Shared pytest fixtures for all tests."""

from pathlib import Path

import pytest

from cli.config import Config
from claimsync.config import Settings
from claimsync.database import init_database
from claimsync.repositories.claim_repository import ClaimRepository
from claimsync.storage import StorageService


@pytest.fixture
def db_path(tmp_path) -> str:
    """
    Create a temporary, initialized instance database.

    Returns:
        Path to the SQLite file
    """
    path = tmp_path / "instance.db"
    init_database(str(path))
    return str(path)


@pytest.fixture
def storage(tmp_path) -> StorageService:
    """Object store for the source instance."""
    return StorageService(str(tmp_path / "storage"), "http://source.test", "source-signing-key")


@pytest.fixture
def seed_claim(db_path):
    """
    Factory inserting a claim directly through the repository.

    Returns:
        Callable(workspace_id, **fields) -> claim id
    """
    repo = ClaimRepository(db_path)

    def _seed(workspace_id: str = "ws-source", **fields) -> str:
        data = {"claim_number": "CLM-001", "policyholder_name": "Dana Reyes", "loss_type": "hail"}
        data.update(fields)
        return repo.create_claim(workspace_id, data)

    return _seed


@pytest.fixture
def make_settings(tmp_path):
    """
    Factory building Settings for an instance living under tmp_path/<name>.

    Every instance shares the same claim sync secret so two of them can be
    linked to each other in tests.
    """
    def _make(name: str = "source", public_url: str = "http://source.test", **overrides) -> Settings:
        base = tmp_path / name
        settings = Settings(
            database_path=str(base / "claimsync.db"),
            storage_path=str(base / "storage"),
            public_url=public_url,
            instance_name=f"{name.title()} CRM",
            claim_sync_secret="shared-secret",
            cron_secret="cron-secret",
            service_role_key="service-key",
            storage_signing_key=f"{name}-signing-key",
        )
        return settings.with_overrides(**overrides)

    return _make


@pytest.fixture
def temp_config_dir(tmp_path) -> Path:
    """
    Create temporary config directory.

    Returns:
        Path to temporary .claimsync directory
    """
    config_dir = tmp_path / '.claimsync'
    config_dir.mkdir()
    return config_dir


@pytest.fixture
def temp_config(temp_config_dir) -> Config:
    """
    Create temporary config instance that ignores the process environment.
    """
    return Config(temp_config_dir / 'config.json', environ={})
