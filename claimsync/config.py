"""Configuration settings for a ClaimSync instance."""

import os
from dataclasses import dataclass, replace
from typing import Optional

from common.constants import DEFAULT_INSTANCE_PORT, DEFAULT_PEER_TIMEOUT_SECONDS


@dataclass(frozen=True)
class Settings:
    """
    Process-wide configuration, loaded once at startup and injected
    into the application, the services and the routes.
    """
    database_path: str = "/app/data/claimsync.db"
    storage_path: str = "/app/data/storage"
    public_url: str = "http://localhost:8000"
    instance_name: str = "ClaimSync"
    claim_sync_secret: Optional[str] = None
    cron_secret: Optional[str] = None
    service_role_key: Optional[str] = None
    storage_signing_key: str = "change-me"
    peer_timeout_seconds: float = DEFAULT_PEER_TIMEOUT_SECONDS
    sync_concurrency: int = 1
    auto_sync_interval_seconds: int = 0
    host: str = "0.0.0.0"
    port: int = DEFAULT_INSTANCE_PORT
    log_level: str = "INFO"

    def with_overrides(self, **changes) -> "Settings":
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)


def _optional(name: str) -> Optional[str]:
    value = os.environ.get(name)
    return value if value else None


def load_settings() -> Settings:
    """
    Build Settings from process environment variables.

    Returns:
        Settings instance
    """
    defaults = Settings()
    return Settings(
        database_path=os.environ.get("CLAIMSYNC_DATABASE_PATH", defaults.database_path),
        storage_path=os.environ.get("CLAIMSYNC_STORAGE_PATH", defaults.storage_path),
        public_url=os.environ.get("CLAIMSYNC_PUBLIC_URL", defaults.public_url).rstrip("/"),
        instance_name=os.environ.get("CLAIMSYNC_INSTANCE_NAME", defaults.instance_name),
        claim_sync_secret=_optional("CLAIM_SYNC_SECRET"),
        cron_secret=_optional("CRON_SECRET"),
        service_role_key=_optional("SERVICE_ROLE_KEY"),
        storage_signing_key=os.environ.get("STORAGE_SIGNING_KEY", defaults.storage_signing_key),
        peer_timeout_seconds=float(os.environ.get("CLAIMSYNC_PEER_TIMEOUT", defaults.peer_timeout_seconds)),
        sync_concurrency=max(1, int(os.environ.get("CLAIMSYNC_SYNC_CONCURRENCY", defaults.sync_concurrency))),
        auto_sync_interval_seconds=int(
            os.environ.get("CLAIMSYNC_AUTO_SYNC_INTERVAL", defaults.auto_sync_interval_seconds)
        ),
        host=os.environ.get("CLAIMSYNC_HOST", defaults.host),
        port=int(os.environ.get("CLAIMSYNC_PORT", defaults.port)),
        log_level=os.environ.get("LOG_LEVEL", defaults.log_level),
    )
