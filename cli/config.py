"""Configuration management for the ClaimSync CLI."""

import json
import os
import shutil
from pathlib import Path
from typing import Any, Dict, Optional

from common.logging_config import get_logger
from cli.constants import ENV_OVERRIDES

logger = get_logger(__name__)


class Config:
    """Manages CLI configuration stored in a JSON file, with environment overrides."""

    DEFAULT_CONFIG = {
        "instance_url": "http://localhost:8000",
        "timeout": 60,
        "service_role_key": None,
        "cron_secret": None,
        "claim_sync_secret": None,
    }

    def __init__(self, config_path: Path, environ: Optional[Dict[str, str]] = None):
        """
        Initialize configuration manager.

        Args:
            config_path: Path to config JSON file (typically ~/.claimsync/config.json)
            environ: Environment mapping consulted for overrides (defaults to os.environ)
        """
        self.config_path = config_path
        self.environ = os.environ if environ is None else environ
        self.data = self._load()
        self.overrides = {
            key: self.environ[env_name]
            for env_name, key in ENV_OVERRIDES.items()
            if self.environ.get(env_name)
        }

    def _load(self) -> dict:
        """
        Load configuration from file, creating defaults if necessary.

        Returns:
            Configuration dictionary
        """
        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
        except PermissionError:
            import tempfile
            self.config_path = Path(tempfile.gettempdir()) / '.claimsync' / 'config.json'
            self.config_path.parent.mkdir(parents=True, exist_ok=True)

        if self.config_path.exists():
            try:
                with open(self.config_path, 'r') as f:
                    data = json.load(f)
                config = self.DEFAULT_CONFIG.copy()
                config.update(data)
                return config
            except (json.JSONDecodeError, IOError) as e:
                logger.warning(f"Unreadable config at {self.config_path}, using defaults: {e}")
                backup_path = self.config_path.with_suffix('.json.bak')
                try:
                    shutil.copy(self.config_path, backup_path)
                except OSError:
                    pass
                return self.DEFAULT_CONFIG.copy()

        config = self.DEFAULT_CONFIG.copy()
        try:
            with open(self.config_path, 'w') as f:
                json.dump(config, f, indent=2)
        except IOError:
            pass
        return config

    def get(self, key: str) -> Any:
        """Environment overrides win over the file."""
        if key in self.overrides:
            return self.overrides[key]
        return self.data.get(key)

    def save(self) -> None:
        """Save current configuration to file."""
        try:
            with open(self.config_path, 'w') as f:
                json.dump(self.data, f, indent=2)
        except IOError as e:
            logger.warning(f"Failed to save config to {self.config_path}: {e}")

    def set(self, key: str, value: Any) -> None:
        """
        Set a configuration value and save to file.

        Raises:
            KeyError: If the key is not a known setting
        """
        if key not in self.DEFAULT_CONFIG:
            raise KeyError(key)
        self.data[key] = value
        self.save()

    def get_base_url(self) -> str:
        """
        Get instance base URL.

        Returns:
            Base URL string (e.g., "http://localhost:8000")
        """
        return str(self.get('instance_url') or self.DEFAULT_CONFIG['instance_url']).rstrip('/')

    def get_timeout(self) -> float:
        return float(self.get('timeout') or 60)

    def get_service_role_key(self) -> Optional[str]:
        return self.get('service_role_key')

    def get_cron_secret(self) -> Optional[str]:
        return self.get('cron_secret')

    def get_claim_sync_secret(self) -> Optional[str]:
        return self.get('claim_sync_secret')
