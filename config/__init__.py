"""Run configuration: model and file loading."""

from .model import KeycheckConfig
from .loader import CONFIG_FILE_NAME, find_config, load_config, parse_config

__all__ = [
    "KeycheckConfig",
    "CONFIG_FILE_NAME",
    "find_config",
    "load_config",
    "parse_config",
]
