"""YAML utilities for tapsql.

This module loads tap configuration and resume state files, and writes
the resume state back after a run.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError as PydanticValidationError

from tapsql.exceptions import ValidationError
from tapsql.models.payload import TapConfig, TapState


def substitute_env_vars(data: Any) -> Any:
    """Recursively substitute environment variables in data structure.

    Supports ${VAR_NAME} and ${VAR_NAME:-default} syntax.

    Args:
        data: Data structure (dict, list, str, etc.)

    Returns:
        Data with environment variables substituted

    Examples:
        >>> os.environ['DB_HOST'] = 'localhost'
        >>> substitute_env_vars('host=${DB_HOST} port=5432')
        'host=localhost port=5432'
        >>> substitute_env_vars('${MISSING:-default_value}')
        'default_value'
    """
    if isinstance(data, dict):
        return {k: substitute_env_vars(v) for k, v in data.items()}
    elif isinstance(data, list):
        return [substitute_env_vars(item) for item in data]
    elif isinstance(data, str):
        # Pattern matches ${VAR_NAME} or ${VAR_NAME:-default}
        pattern = r'\$\{([^}:]+)(?::-([^}]*))?\}'

        def replace_var(match: re.Match) -> str:
            var_name = match.group(1)
            default_value = match.group(2)

            value = os.environ.get(var_name)
            if value is not None:
                return value
            if default_value is None:
                raise ValidationError(
                    f"Environment variable '{var_name}' not found and no default provided"
                )
            return default_value

        return re.sub(pattern, replace_var, data)
    else:
        return data


def parse_yaml(content: str | bytes, source: str = "<string>") -> Any:
    """Parse YAML text with environment variable substitution.

    Raises:
        ValidationError: If the text is not valid YAML
    """
    try:
        return substitute_env_vars(yaml.safe_load(content))
    except yaml.YAMLError as e:
        raise ValidationError(f"Invalid YAML in {source}: {e}") from e


def load_yaml(path: Path) -> Any:
    """Load a YAML file.

    Args:
        path: Path to YAML file

    Returns:
        Parsed contents (None for an empty file)

    Raises:
        ValidationError: If file cannot be read or parsed
    """
    try:
        with open(path, "r") as f:
            content = f.read()
    except FileNotFoundError:
        raise ValidationError(f"File not found: {path}") from None
    except OSError as e:
        raise ValidationError(f"Failed to read {path}: {e}") from e
    return parse_yaml(content, str(path))


def tap_config_from_data(data: Any, source: str = "<string>") -> TapConfig:
    """Validate parsed YAML as a TapConfig.

    Raises:
        ValidationError: If required fields are missing or malformed
    """
    if not isinstance(data, dict):
        raise ValidationError(f"Invalid tap config in {source}: expected a mapping")
    try:
        return TapConfig.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid tap config in {source}: {e}") from e


def load_tap_config(path: Path) -> TapConfig:
    """Load and validate a tap configuration file."""
    return tap_config_from_data(load_yaml(path), str(path))


def load_state(path: Path) -> TapState:
    """Load resume state.

    A missing or empty file is a first run and gives an empty state.

    Raises:
        ValidationError: If the file exists but is malformed
    """
    if not path.exists():
        return TapState()
    data = load_yaml(path)
    if data is None:
        return TapState()
    if not isinstance(data, dict):
        raise ValidationError(f"Invalid state in {path}: expected a mapping")
    try:
        return TapState.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid state in {path}: {e}") from e


def save_yaml(data: dict[str, Any], path: Path) -> None:
    """Save dictionary to YAML file.

    Args:
        data: Dictionary to save
        path: Path to save to

    Raises:
        ValidationError: If save fails
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w") as f:
            yaml.safe_dump(
                data,
                f,
                default_flow_style=False,
                sort_keys=False,
                allow_unicode=True,
            )
    except OSError as e:
        raise ValidationError(f"Failed to save YAML to {path}: {e}") from e


def save_state(state: TapState, path: Path) -> None:
    save_yaml(state.model_dump(by_alias=True), path)
