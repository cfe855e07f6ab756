"""
Configuration loading utilities for the YAML form app.

Loads config.yaml, merges it over built-in defaults and falls back to the
defaults whenever the file is missing or unreadable.
"""

import yaml
from pathlib import Path
from typing import Dict, Any, Optional
import logging
from copy import deepcopy

from .form_settings import FormSettings

logger = logging.getLogger(__name__)

CONFIG_FILE = Path("config.yaml")

VALID_LOG_LEVELS = {'DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'}


def deep_merge(base_dict: Dict[str, Any], update_dict: Dict[str, Any]) -> Dict[str, Any]:
    """
    Deep merge two dictionaries, with update_dict taking precedence.

    Args:
        base_dict: Base dictionary (defaults)
        update_dict: Dictionary to merge in (user config)

    Returns:
        Merged dictionary
    """
    result = deepcopy(base_dict)

    for key, value in update_dict.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = deepcopy(value)

    return result


def get_default_config() -> Dict[str, Any]:
    """
    Get default configuration.

    Returns:
        Dictionary with default configuration
    """
    return {
        'app': {
            'name': 'YAML Form',
            'version': '1.0.0',
            'debug': False
        },
        'vault': {
            'root': 'vault',
            'form_key': 'form',
            'create_sample': True
        },
        'forms': {
            'default_autosave': False,
            'label_column_ratio': [1, 3]
        },
        'ui': {
            'page_title': 'YAML Form',
            'sidebar_title': 'Notes'
        },
        'logging': {
            'level': 'INFO',
            'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        }
    }


def load_config(config_path: Optional[Path] = None) -> Dict[str, Any]:
    """
    Load application configuration.

    Args:
        config_path: Optional path to config file (defaults to config.yaml)

    Returns:
        Complete configuration dictionary
    """
    if config_path is None:
        config_path = CONFIG_FILE

    default_config = get_default_config()

    if not config_path.exists():
        logger.warning(f"Configuration file not found: {config_path}")
        logger.info("Using default configuration")
        return default_config

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            user_config = yaml.safe_load(f)

        if user_config is None:
            logger.warning(f"Configuration file is empty: {config_path}")
            return default_config

        if not isinstance(user_config, dict):
            logger.error(f"Configuration file is not a valid dictionary: {config_path}")
            logger.info("Using default configuration")
            return default_config

        config = deep_merge(default_config, user_config)

        logger.info(f"Successfully loaded configuration from {config_path}")
        return config

    except yaml.YAMLError as e:
        logger.error(f"YAML parsing error in {config_path}: {e}")
        logger.info("Using default configuration")
        return default_config

    except (IOError, OSError) as e:
        logger.error(f"Failed to read configuration file {config_path}: {e}")
        logger.info("Using default configuration")
        return default_config


def validate_config(config: Dict[str, Any]) -> bool:
    """
    Validate configuration structure and required fields.

    Args:
        config: Configuration dictionary to validate

    Returns:
        True if configuration is valid, False otherwise
    """
    required_sections = ['app', 'vault', 'forms', 'logging']

    for section in required_sections:
        if not isinstance(config.get(section), dict):
            logger.warning(f"Missing required configuration section: {section}")
            return False

    vault = config['vault']
    if not isinstance(vault.get('root'), str) or not vault['root']:
        logger.warning("vault.root must be a non-empty string")
        return False

    if not isinstance(vault.get('form_key', 'form'), str):
        logger.warning("vault.form_key must be a string")
        return False

    forms = config['forms']
    if not isinstance(forms.get('default_autosave', False), bool):
        logger.warning("forms.default_autosave must be true or false")
        return False

    ratio = forms.get('label_column_ratio', [1, 3])
    if not (isinstance(ratio, list) and len(ratio) == 2
            and all(isinstance(part, (int, float)) and part > 0 for part in ratio)):
        logger.warning("forms.label_column_ratio must be two positive numbers")
        return False

    level = str(config['logging'].get('level', 'INFO')).upper()
    if level not in VALID_LOG_LEVELS:
        logger.warning(f"Unknown logging level: {level}")
        return False

    return True


def get_form_settings(config: Dict[str, Any]) -> FormSettings:
    """
    Extract form settings from complete config.

    Args:
        config: Complete configuration dictionary

    Returns:
        FormSettings instance
    """
    try:
        return FormSettings.from_config(config)
    except (TypeError, ValueError) as e:
        logger.error(f"Failed to create FormSettings: {e}")
        logger.info("Using default form settings")
        return FormSettings.from_config(get_default_config())


def save_config(config: Dict[str, Any], config_path: Optional[Path] = None) -> bool:
    """
    Save configuration to YAML file.

    Args:
        config: Configuration dictionary to save
        config_path: Optional path to save to (defaults to config.yaml)

    Returns:
        True if save was successful, False otherwise
    """
    if config_path is None:
        config_path = CONFIG_FILE

    try:
        with open(config_path, 'w', encoding='utf-8') as f:
            yaml.dump(config, f, default_flow_style=False, indent=2, sort_keys=False)

        logger.info(f"Configuration saved to {config_path}")
        return True

    except (IOError, OSError, yaml.YAMLError) as e:
        logger.error(f"Failed to save configuration to {config_path}: {e}")
        return False


def save_form_settings(config: Dict[str, Any], settings: FormSettings,
                       config_path: Optional[Path] = None) -> Dict[str, Any]:
    """Merge settings into the config and persist it. Returns the merged config."""
    merged = deep_merge(config, settings.to_config())
    save_config(merged, config_path)
    return merged


def get_config_summary(config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Get a summary of the current configuration.

    Args:
        config: Configuration dictionary

    Returns:
        Dictionary with configuration summary
    """
    return {
        'app_name': config.get('app', {}).get('name', 'Unknown'),
        'app_version': config.get('app', {}).get('version', 'Unknown'),
        'debug_mode': config.get('app', {}).get('debug', False),
        'vault_root': str(config.get('vault', {}).get('root', 'vault')),
        'form_key': config.get('vault', {}).get('form_key', 'form'),
        'default_autosave': config.get('forms', {}).get('default_autosave', False),
        'log_level': config.get('logging', {}).get('level', 'INFO')
    }
