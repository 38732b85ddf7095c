"""tapsql core package.

Runtime configuration and logging setup shared by the CLI and server.
"""

from tapsql.core.config import TapSQLConfig, config, load_config
from tapsql.core.logging import configure_logging

__all__ = [
    "TapSQLConfig",
    "config",
    "configure_logging",
    "load_config",
]
