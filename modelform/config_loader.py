"""
Configuration loading utilities for modelform.

This module loads layout, widget and form defaults from a YAML file with
fallback to built-in defaults, and configures logging from the result.
"""

import yaml
from pathlib import Path
from typing import Dict, Any, Optional
import logging
from copy import deepcopy

from .exceptions import ConfigurationLoadError

logger = logging.getLogger(__name__)

CONFIG_FILE = Path("modelform.yaml")

# Zero-width space shown for the "unset" state of choice widgets in filter rows
ZERO_WIDTH_SPACE = "\u200b"

_config_cache: Optional[Dict[str, Any]] = None


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
    Get the default configuration.

    Returns:
        Dictionary with default configuration
    """
    return {
        'layout': {
            'total_span': 12,
            'row_class': 'm-form-row',
            'multiple_class': 'multiple-forms-in-row',
            'cell_class_prefix': 'form-group col-',
            'label_class': 'col-sm-12 col-form-label',
            'input_wrapper_class': 'col-sm-12'
        },
        'widgets': {
            'css_class': 'm-form-control',
            'null_description': ZERO_WIDTH_SPACE,
            'table_cell_style_key': 'td-style'
        },
        'form': {
            'enable_validation': True,
            'validation_class': 'm-form-validation',
            'validation_error_message': 'Please check the values. There is at least one validation error!'
        },
        'logging': {
            'level': 'INFO'
        }
    }


def load_config(config_path: Optional[Path] = None, strict: bool = False) -> Dict[str, Any]:
    """
    Load configuration, merging the YAML file over the defaults.

    The result for the default path is cached; use reload_config() to re-read.

    Args:
        config_path: Optional path to config file (defaults to modelform.yaml)
        strict: Raise ConfigurationLoadError instead of falling back to defaults

    Returns:
        Complete configuration dictionary

    Raises:
        ConfigurationLoadError: If strict and the file cannot be loaded
    """
    global _config_cache

    use_cache = config_path is None
    if use_cache and _config_cache is not None:
        return _config_cache

    config_path = Path(config_path) if config_path is not None else CONFIG_FILE

    default_config = get_default_config()
    config = default_config

    if not config_path.exists():
        if strict:
            raise ConfigurationLoadError(config_path, FileNotFoundError(str(config_path)))
        logger.debug(f"Configuration file not found: {config_path}, using defaults")
    else:
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                user_config = yaml.safe_load(f)

            if user_config is None:
                logger.warning(f"Configuration file is empty: {config_path}")
            elif not isinstance(user_config, dict):
                logger.error(f"Configuration file is not a valid dictionary: {config_path}")
                if strict:
                    raise ConfigurationLoadError(
                        config_path, TypeError("top-level YAML value must be a mapping")
                    )
            else:
                config = deep_merge(default_config, user_config)
                logger.info(f"Successfully loaded configuration from {config_path}")

        except yaml.YAMLError as e:
            logger.error(f"YAML parsing error in {config_path}: {e}")
            if strict:
                raise ConfigurationLoadError(config_path, e)
            logger.info("Using default configuration")

        except (IOError, OSError) as e:
            logger.error(f"Failed to read configuration file {config_path}: {e}")
            if strict:
                raise ConfigurationLoadError(config_path, e)
            logger.info("Using default configuration")

    if use_cache:
        _config_cache = config
    return config


def reload_config() -> Dict[str, Any]:
    """
    Force reload of configuration from file.
    Useful for testing or when configuration changes.
    """
    global _config_cache
    _config_cache = None
    return load_config()


def get_config_value(section: str, key: str, default: Any = None,
                     config: Optional[Dict[str, Any]] = None) -> Any:
    """
    Get a specific configuration value.

    Args:
        section: Configuration section (e.g., 'layout', 'widgets')
        key: Configuration key within section
        default: Default value if not found
        config: Configuration to read from (defaults to the loaded config)

    Returns:
        Configuration value or default
    """
    if config is None:
        config = load_config()
    return config.get(section, {}).get(key, default)


def get_logging_level(level_str: str) -> int:
    """Map string logging level to logging constant."""
    level_map = {
        'DEBUG': logging.DEBUG,
        'INFO': logging.INFO,
        'WARNING': logging.WARNING,
        'ERROR': logging.ERROR,
        'CRITICAL': logging.CRITICAL
    }
    return level_map.get(str(level_str).upper(), logging.INFO)


def configure_logging(config: Optional[Dict[str, Any]] = None) -> int:
    """
    Configure root logging from the 'logging' section of the configuration.

    Args:
        config: Configuration dictionary (defaults to the loaded config)

    Returns:
        The logging level that was applied
    """
    level_str = get_config_value('logging', 'level', 'INFO', config=config)
    level = get_logging_level(level_str)
    logging.basicConfig(level=level)
    logger.info(f"Logging configured to level: {level_str}")
    return level
