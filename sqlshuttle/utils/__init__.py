"""sqlshuttle utilities package.

This package contains SQL text rendering, YAML profile loading and
logging setup.
"""

from sqlshuttle.utils.sql import (
    build_insert_statements,
    escape_string,
    quote_value,
    render_row,
    statement_fingerprint,
)
from sqlshuttle.utils.yaml_parser import build_config, load_profile, load_yaml, save_yaml, substitute_env_vars

__all__ = [
    "build_config",
    "build_insert_statements",
    "escape_string",
    "load_profile",
    "load_yaml",
    "quote_value",
    "render_row",
    "save_yaml",
    "statement_fingerprint",
    "substitute_env_vars",
]
