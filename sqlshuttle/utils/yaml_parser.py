"""YAML parsing utilities for sqlshuttle.

This module loads transfer profiles: a connection URL plus TransferConfig
options, with environment variable substitution.

Profile layout::

    connection: mysql+pymysql://${DB_USER}:${DB_PASSWORD}@${DB_HOST:-localhost}/shop
    options:
      chunk_size: 5000
      exclude_patterns: [cache_%, "%_tmp"]
      stop_on_error: false
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import ValidationError as PydanticValidationError

from sqlshuttle.exceptions import ValidationError
from sqlshuttle.models.transfer import TransferConfig

PROFILE_KEYS = {"connection", "options"}


def substitute_env_vars(data: Any) -> Any:
    """Recursively substitute environment variables in data structure.

    Supports ${VAR_NAME} and ${VAR_NAME:-default} syntax.

    Args:
        data: Data structure (dict, list, str, etc.)

    Returns:
        Data with environment variables substituted

    Examples:
        >>> os.environ['DB_HOST'] = 'localhost'
        >>> substitute_env_vars('mysql+pymysql://${DB_HOST}:3306/shop')
        'mysql+pymysql://localhost:3306/shop'
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
            has_default = match.group(2) is not None

            value = os.environ.get(var_name)
            if value is not None:
                return value
            if has_default:
                return match.group(2)
            raise ValidationError(
                f"Environment variable '{var_name}' not found and no default provided"
            )

        return re.sub(pattern, replace_var, data)
    else:
        return data


def load_yaml(path: Path) -> dict[str, Any]:
    """Load YAML file into a dictionary with environment variable substitution.

    Args:
        path: Path to YAML file

    Returns:
        Dictionary with YAML contents and environment variables substituted

    Raises:
        ValidationError: If file cannot be read or parsed, or required env vars are missing
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValidationError(f"Invalid YAML in {path}: {e}") from e
    except FileNotFoundError:
        raise ValidationError(f"File not found: {path}")
    except OSError as e:
        raise ValidationError(f"Failed to load {path}: {e}") from e

    if data is None:
        raise ValidationError(f"Empty YAML file: {path}")
    if not isinstance(data, dict):
        raise ValidationError(f"Expected a mapping at the top of {path}")
    return substitute_env_vars(data)


def load_profile(path: Path, overrides: Optional[dict[str, Any]] = None) -> tuple[Optional[str], TransferConfig]:
    """Load a transfer profile.

    Args:
        path: Profile YAML path
        overrides: Option values that take precedence over the profile
            (typically command-line flags)

    Returns:
        Tuple of (connection URL or None, validated TransferConfig)

    Raises:
        ValidationError: If the profile or its options are invalid
    """
    data = load_yaml(path)

    unknown = set(data) - PROFILE_KEYS
    if unknown:
        raise ValidationError(f"Unknown profile keys in {path}: {', '.join(sorted(unknown))}")

    options = data.get("options") or {}
    if not isinstance(options, dict):
        raise ValidationError(f"'options' must be a mapping in {path}")

    connection = data.get("connection")
    if connection is not None and not isinstance(connection, str):
        raise ValidationError(f"'connection' must be a URL string in {path}")

    return connection, build_config(options, overrides, source=str(path))


def build_config(
    options: Optional[dict[str, Any]] = None,
    overrides: Optional[dict[str, Any]] = None,
    source: str = "options",
) -> TransferConfig:
    """Validate merged options into a TransferConfig.

    Raises:
        ValidationError: If any option is invalid
    """
    merged = {**(options or {}), **(overrides or {})}
    try:
        return TransferConfig(**merged)
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid transfer options in {source}: {e}") from e


def save_yaml(data: dict[str, Any], path: Path) -> None:
    """Save dictionary to YAML file.

    Args:
        data: Dictionary to save
        path: Path to save to

    Raises:
        ValidationError: If save fails
    """
    try:
        # Ensure parent directory exists
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w", encoding="utf-8") as f:
            yaml.safe_dump(
                data,
                f,
                default_flow_style=False,
                sort_keys=False,
                allow_unicode=True,
            )
    except (OSError, yaml.YAMLError) as e:
        raise ValidationError(f"Failed to save YAML to {path}: {e}") from e
