# labstack/config_loader.py
# -*- coding: utf-8 -*-
"""
Configuration loader for the bootstrapper.

Settings are resolved with the following order of precedence:
1. Pydantic Model Defaults
2. Environment Variables (via Pydantic's BaseSettings)
3. YAML Configuration File (`--config`, or `<project_root>/stack.yaml`)
4. Command-Line Arguments
"""

import argparse
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import ValidationError

from labstack.config_models import AppSettings, _default_project_root
from labstack.errors import ConfigurationError

module_logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE_NAME = "stack.yaml"

# argparse destination -> AppSettings field
CLI_FIELD_MAP: Dict[str, str] = {
    "project_root": "project_root",
    "fresh": "fresh",
    "debug": "debug",
}


def _deep_update(
    source: Dict[str, Any], overrides: Dict[str, Any]
) -> Dict[str, Any]:
    """
    Recursively updates `source` with the non-None values of `overrides`.

    Nested dictionaries are merged key by key; any other value replaces the
    one in `source`.
    """
    for key, value in overrides.items():
        if (
            isinstance(value, dict)
            and key in source
            and isinstance(source[key], dict)
        ):
            source[key] = _deep_update(source[key], value)
        elif value is not None:
            source[key] = value
    return source


def _format_validation_error(error: ValidationError) -> str:
    problems = []
    for item in error.errors():
        location = ".".join(str(part) for part in item.get("loc", ())).upper() or "SETTINGS"
        problems.append(f"{location}: {item.get('msg')}")
    return "; ".join(problems)


def load_yaml_settings(
    config_path: Path, current_logger: Optional[logging.Logger] = None
) -> Dict[str, Any]:
    """
    Read a YAML settings file. Keys are matched to settings case-insensitively.

    Raises:
        ConfigurationError: The file cannot be read or is not a YAML mapping.
    """
    logger_to_use = current_logger if current_logger else module_logger
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            yaml_data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Could not parse YAML config file '{config_path}': {e}") from e
    except OSError as e:
        raise ConfigurationError(f"Could not read config file '{config_path}': {e}") from e

    if yaml_data is None:
        return {}
    if not isinstance(yaml_data, dict):
        raise ConfigurationError(
            f"Config file '{config_path}' does not contain a YAML mapping."
        )
    logger_to_use.info(f"Loaded configuration from {config_path}")
    return {str(key).lower(): value for key, value in yaml_data.items()}


def resolve_project_root(cli_args: Optional[argparse.Namespace] = None) -> Path:
    """
    Project root without full validation: CLI, then PROJECT_ROOT, then the default.

    Used to place the run log when the settings themselves are invalid.
    """
    cli_root = getattr(cli_args, "project_root", None) if cli_args is not None else None
    raw_root = cli_root or os.environ.get("PROJECT_ROOT")
    root = Path(raw_root) if raw_root else _default_project_root()
    return root.expanduser().absolute()


def load_app_settings(
    cli_args: Optional[argparse.Namespace] = None,
    current_logger: Optional[logging.Logger] = None,
) -> AppSettings:
    """
    Build the frozen settings object for this run.

    Args:
        cli_args: Parsed command-line arguments (from argparse).
        current_logger: Optional logger to use instead of the module logger.

    Returns:
        An instance of AppSettings with the fully resolved configuration.

    Raises:
        ConfigurationError: A value failed validation (for example an invalid
            port) or the YAML file was unusable.
    """
    logger_to_use = current_logger if current_logger else module_logger

    try:
        env_settings = AppSettings()
    except ValidationError as e:
        raise ConfigurationError(
            f"Invalid configuration: {_format_validation_error(e)}"
        ) from e
    current_values = env_settings.model_dump()

    cli_values: Dict[str, Any] = {}
    config_file: Optional[str] = None
    if cli_args is not None:
        for cli_key, field_name in CLI_FIELD_MAP.items():
            cli_value = getattr(cli_args, cli_key, None)
            if cli_value is not None:
                cli_values[field_name] = cli_value
        config_file = getattr(cli_args, "config_file", None)

    if config_file:
        config_path = Path(config_file)
        if not config_path.is_file():
            raise ConfigurationError(f"Config file '{config_path}' not found.")
    else:
        project_root = Path(cli_values.get("project_root") or current_values["project_root"])
        config_path = project_root / DEFAULT_CONFIG_FILE_NAME

    if config_path.is_file():
        current_values = _deep_update(
            current_values, load_yaml_settings(config_path, logger_to_use)
        )
    else:
        logger_to_use.debug(
            f"Configuration file '{config_path}' not found. Using defaults, environment variables, and CLI args."
        )

    current_values = _deep_update(current_values, cli_values)

    try:
        final_settings = AppSettings(**current_values)
    except ValidationError as e:
        raise ConfigurationError(
            f"Invalid configuration: {_format_validation_error(e)}"
        ) from e

    logger_to_use.debug("Successfully loaded and validated application settings")
    return final_settings
