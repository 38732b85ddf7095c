"""tapsql configuration management.

This module centralizes all configuration loading from environment variables
and provides sensible defaults. All modules should import configuration
values from here rather than reading environment variables directly.

Environment Variables:
    TAPSQL_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
                      Default: INFO

    TAPSQL_LOG_FORMAT: Log output format (text, json)
                       Default: text

    TAPSQL_MAX_IDLE_CONNS: Idle connections kept per pooled database handle
                           Default: 10

    TAPSQL_CONN_MAX_LIFETIME: Seconds before a pooled connection is replaced
                              Default: 600

    TAPSQL_DEFAULT_ENCODING: Output encoding when none is requested
                             Options: json, jsonld, csv
                             Default: jsonld

    TAPSQL_HOST: Bind host for server mode
                 Default: localhost

    TAPSQL_PORT: Bind port for server mode
                 Default: 5000
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field


def _get_int(key: str, default: int) -> int:
    """Get integer from environment variable."""
    value = os.environ.get(key, "")
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _get_str(key: str, default: str) -> str:
    """Get string from environment variable."""
    return os.environ.get(key, default)


@dataclass
class TapSQLConfig:
    """tapsql configuration container.

    Usage:
        from tapsql.core.config import config

        idle = config.max_idle_conns
    """

    # Logging Configuration
    log_level: str = field(default_factory=lambda: _get_str("TAPSQL_LOG_LEVEL", "INFO").upper())
    log_format: str = field(default_factory=lambda: _get_str("TAPSQL_LOG_FORMAT", "text"))

    # Connection Pool Configuration
    max_idle_conns: int = field(default_factory=lambda: _get_int("TAPSQL_MAX_IDLE_CONNS", 10))
    conn_max_lifetime: int = field(default_factory=lambda: _get_int("TAPSQL_CONN_MAX_LIFETIME", 600))

    # Output Configuration
    default_encoding: str = field(
        default_factory=lambda: _get_str("TAPSQL_DEFAULT_ENCODING", "jsonld").lower()
    )

    # Server Configuration
    host: str = field(default_factory=lambda: _get_str("TAPSQL_HOST", "localhost"))
    port: int = field(default_factory=lambda: _get_int("TAPSQL_PORT", 5000))

    def __post_init__(self):
        """Validate configuration after initialization."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if self.log_level not in valid_levels:
            raise ValueError(
                f"Invalid TAPSQL_LOG_LEVEL: {self.log_level}. "
                f"Must be one of: {valid_levels}"
            )

        valid_formats = {"text", "json"}
        if self.log_format not in valid_formats:
            raise ValueError(
                f"Invalid TAPSQL_LOG_FORMAT: {self.log_format}. "
                f"Must be one of: {valid_formats}"
            )

        valid_encodings = {"json", "jsonld", "csv"}
        if self.default_encoding not in valid_encodings:
            raise ValueError(
                f"Invalid TAPSQL_DEFAULT_ENCODING: {self.default_encoding}. "
                f"Must be one of: {valid_encodings}"
            )

        if self.max_idle_conns < 1:
            raise ValueError(f"TAPSQL_MAX_IDLE_CONNS must be >= 1, got {self.max_idle_conns}")

        if self.conn_max_lifetime < 1:
            raise ValueError(
                f"TAPSQL_CONN_MAX_LIFETIME must be >= 1, got {self.conn_max_lifetime}"
            )

        if not 0 < self.port < 65536:
            raise ValueError(f"TAPSQL_PORT must be between 1 and 65535, got {self.port}")

    def as_dict(self) -> dict:
        """Export configuration as dictionary.

        Returns:
            Dictionary of all configuration values
        """
        return {
            "log_level": self.log_level,
            "log_format": self.log_format,
            "max_idle_conns": self.max_idle_conns,
            "conn_max_lifetime": self.conn_max_lifetime,
            "default_encoding": self.default_encoding,
            "host": self.host,
            "port": self.port,
        }


def load_config() -> TapSQLConfig:
    """Load configuration from environment.

    Call this to refresh config if environment has changed.

    Returns:
        New TapSQLConfig instance
    """
    return TapSQLConfig()


# Global configuration instance - loaded once at import time
# Use load_config() to refresh if needed
config = load_config()
