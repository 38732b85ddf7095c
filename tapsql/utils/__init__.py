"""tapsql utilities package.

YAML loading and saving for tap configuration and resume state.
"""

from tapsql.utils.yaml_utils import (
    load_state,
    load_tap_config,
    load_yaml,
    parse_yaml,
    save_state,
    save_yaml,
    substitute_env_vars,
    tap_config_from_data,
)

__all__ = [
    "load_state",
    "load_tap_config",
    "load_yaml",
    "parse_yaml",
    "save_state",
    "save_yaml",
    "substitute_env_vars",
    "tap_config_from_data",
]
