"""Settings loader for protected-config."""
import os
import logging
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional, Dict, Any

import yaml

from .errors import ConfigError
from .preferences import get_preference

logger = logging.getLogger(__name__)

DEFAULT_SECRETS_PATH = "appsettings.secrets.json"
SECRETS_PATH_ENV = "PROTECTED_CONFIG_SECRETS_PATH"


@dataclass(frozen=True)
class Settings:
    """Resolved tool settings."""
    secrets_path: Path = Path(DEFAULT_SECRETS_PATH)
    machine_id_path: Optional[Path] = None
    key_secret_name: Optional[str] = None
    key_secret_project_id: Optional[str] = None
    source: Optional[Path] = None


def default_config_path() -> Path:
    return Path.home() / ".config" / "protected-config" / "config.yml"


def _get_config_path() -> Optional[Path]:
    """
    Locate the settings file.

    Priority order:
    1. User preference (stored in ~/.config/protected-config/preferences.json)
    2. Default location: ~/.config/protected-config/config.yml

    Returns:
        Path to the settings file, or None when neither exists
    """
    config_path_pref = get_preference("config_path")
    if config_path_pref:
        config_path = Path(config_path_pref)
        if config_path.exists():
            logger.info(f"Using settings from preference: {config_path}")
            return config_path
        logger.warning(f"Settings path from preference doesn't exist: {config_path}")

    default_config = default_config_path()
    if default_config.exists():
        logger.info(f"Using default settings location: {default_config}")
        return default_config

    logger.debug("No settings file found, using defaults")
    return None


def _optional_str(section: Dict[str, Any], key: str, where: str, config_path: Path) -> Optional[str]:
    value = section.get(key)
    if value is None:
        return None
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"'{where}.{key}' in {config_path} must be a non-empty string")
    return value


def _section(config: Dict[str, Any], key: str, config_path: Path) -> Dict[str, Any]:
    section = config.get(key) or {}
    if not isinstance(section, dict):
        raise ConfigError(
            f"'{key}' section in {config_path} must be a mapping\n"
            f"Required format:\n"
            f"secrets:\n"
            f"  path: appsettings.secrets.json\n"
            f"protection:\n"
            f"  machine_id_path: /etc/machine-id\n"
            f"  key_secret:\n"
            f"    name: CONFIG_PROTECTION_PEPPER"
        )
    return section


def _parse_settings(config: Dict[str, Any], config_path: Path) -> Settings:
    secrets = _section(config, "secrets", config_path)
    protection = _section(config, "protection", config_path)
    key_secret = _section(protection, "key_secret", config_path)

    secrets_path = _optional_str(secrets, "path", "secrets", config_path) or DEFAULT_SECRETS_PATH
    machine_id_path = _optional_str(protection, "machine_id_path", "protection", config_path)
    key_secret_name = _optional_str(key_secret, "name", "protection.key_secret", config_path)
    key_secret_project_id = _optional_str(key_secret, "project_id", "protection.key_secret", config_path)

    if key_secret_project_id and not key_secret_name:
        raise ConfigError(f"'protection.key_secret.name' is required in {config_path} when project_id is set")

    return Settings(
        secrets_path=Path(secrets_path),
        machine_id_path=Path(machine_id_path) if machine_id_path else None,
        key_secret_name=key_secret_name,
        key_secret_project_id=key_secret_project_id,
        source=config_path,
    )


def load_settings() -> Settings:
    """
    Load and validate tool settings.

    The settings file is optional: without one every default applies.
    PROTECTED_CONFIG_SECRETS_PATH overrides the secrets file location.

    Returns:
        Settings

    Raises:
        ConfigError: If the settings file exists but is unreadable or invalid
    """
    # Resolved on every call so preference changes apply without a restart
    config_path = _get_config_path()

    settings = Settings()
    if config_path is not None:
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Failed to parse YAML settings at {config_path}: {e}") from e
        except OSError as e:
            raise ConfigError(f"Failed to read settings file at {config_path}: {e}") from e

        if config is None:
            config = {}
        if not isinstance(config, dict):
            raise ConfigError(f"Settings file at {config_path} must contain a YAML mapping")

        settings = _parse_settings(config, config_path)
        logger.info(f"Settings loaded successfully from {config_path}")

    secrets_path_env = os.getenv(SECRETS_PATH_ENV)
    if secrets_path_env:
        logger.debug(f"Using {SECRETS_PATH_ENV} from environment: {secrets_path_env}")
        settings = replace(settings, secrets_path=Path(secrets_path_env))

    logger.debug(f"Using secrets file: {settings.secrets_path}")
    return settings
