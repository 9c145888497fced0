"""Configuration loader for the Secret Manager parameter store."""
import logging
import os
from pathlib import Path
from typing import Any, Dict

import yaml

from .preferences import default_config_path, get_preference

logger = logging.getLogger(__name__)

SUPPORTED_AUTH_TYPES = ("service_account",)


class ConfigError(Exception):
    """Configuration error exception."""
    pass


def _get_config_path() -> str:
    """
    Resolve the config file path.

    Priority order:
    1. ``config_path`` preference (~/.config/secret-param/preferences.json)
    2. Default location: ~/.config/secret-param/config.yml

    Returns:
        Absolute path to config file

    Raises:
        FileNotFoundError: If no config file exists in either location
    """
    config_path_pref = get_preference("config_path")
    if config_path_pref:
        config_path = Path(config_path_pref)
        if config_path.exists():
            logger.info(f"Using config from preference: {config_path}")
            return str(config_path)
        logger.warning(f"Config path from preference doesn't exist: {config_path}")

    default_config = default_config_path()
    if default_config.exists():
        logger.info(f"Using default config location: {default_config}")
        return str(default_config)

    raise FileNotFoundError(
        "Configuration file not found. Set up your config file using one of these methods:\n\n"
        "1. Use the default location:\n"
        f"   mkdir -p {default_config.parent}\n"
        f"   cp /path/to/your/config.yml {default_config}\n\n"
        "2. Point to an existing config file:\n"
        "   secret-param config set-path /path/to/your/config.yml\n\n"
        "3. Run interactive setup:\n"
        "   secret-param config init\n"
    )


def _validate_authentication(config: Dict[str, Any], config_path: str) -> None:
    auth = config.get('authentication')
    if not isinstance(auth, dict):
        raise ConfigError(
            f"Missing 'authentication' section in config at {config_path}\n"
            f"Required format:\n"
            f"authentication:\n"
            f"  type: service_account\n"
            f"  service_account_path: /path/to/service-account.json"
        )

    if 'type' not in auth:
        raise ConfigError("Missing 'authentication.type' in config")

    if auth['type'] not in SUPPORTED_AUTH_TYPES:
        raise ConfigError(
            f"Unsupported authentication type: {auth['type']}\n"
            f"Only 'service_account' is supported."
        )

    service_account_path = auth.get('service_account_path')
    if not service_account_path:
        raise ConfigError(
            "Missing 'authentication.service_account_path' in config\n"
            "Specify the absolute path to your service account JSON file."
        )

    if not os.path.exists(service_account_path):
        raise ConfigError(
            f"Service account file not found at: {service_account_path}\n"
            f"Ensure the file exists or update the path in {config_path}"
        )

    if not os.path.isfile(service_account_path):
        raise ConfigError(f"Service account path is not a file: {service_account_path}")


def load_config() -> Dict[str, Any]:
    """
    Load and validate configuration from YAML.

    The path is resolved on every call so preference changes apply without
    restarting the process.

    Returns:
        Dict with keys:
        - authentication: type and service_account_path
        - gcp: project_id

    Raises:
        FileNotFoundError: If no config file can be located
        ConfigError: If the file is unreadable, empty, or fails validation
    """
    config_path = _get_config_path()

    try:
        with open(config_path, 'r') as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse YAML config at {config_path}: {e}")
    except OSError as e:
        raise ConfigError(f"Failed to read config file at {config_path}: {e}")

    if not config:
        raise ConfigError(f"Config file at {config_path} is empty")

    if not isinstance(config, dict):
        raise ConfigError(f"Config file at {config_path} must contain a mapping")

    _validate_authentication(config, config_path)

    gcp = config.get('gcp')
    if not isinstance(gcp, dict):
        raise ConfigError(
            f"Missing 'gcp' section in config at {config_path}\n"
            f"Required format:\n"
            f"gcp:\n"
            f"  project_id: your-project-id"
        )

    if not gcp.get('project_id'):
        raise ConfigError("Missing 'gcp.project_id' in config")

    logger.info(f"Configuration loaded from {config_path}")
    logger.debug(f"Using project ID: {gcp['project_id']}")
    return config
