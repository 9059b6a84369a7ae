"""Locating and loading ``.keycheck.yaml``."""

import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import ValidationError

from keymap.errors import ConfigurationError
from .model import KeycheckConfig, format_validation_error

logger = logging.getLogger(__name__)


CONFIG_FILE_NAME = ".keycheck.yaml"
PATH_FIELDS = ("keys", "path", "baseline", "cache_dir")


def find_config(directory: Path) -> Optional[Path]:
    """Return the config file in ``directory`` if there is one."""
    candidate = Path(directory) / CONFIG_FILE_NAME
    return candidate if candidate.is_file() else None


def parse_config(data: Any, source: str = CONFIG_FILE_NAME, base: Optional[Path] = None) -> KeycheckConfig:
    """
    Validate decoded YAML into a ``KeycheckConfig``.

    Relative paths in the file are resolved against ``base``.

    Raises:
        ConfigurationError: If the data is not a mapping or fails validation.
    """
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"{source}: top level must be a mapping")
    values: Dict[str, Any] = dict(data)
    try:
        config = KeycheckConfig.model_validate(values)
    except ValidationError as e:
        raise ConfigurationError(format_validation_error(e, source)) from e

    if base is not None:
        updates = {
            name: config.resolve_path(getattr(config, name), base)
            for name in PATH_FIELDS
            if name in values
        }
        config = config.model_copy(update=updates)
    return config


def load_config(path: Optional[Path] = None, directory: Optional[Path] = None) -> KeycheckConfig:
    """
    Load configuration from an explicit file or from ``directory``.

    A missing explicit file is an error; a directory without a config file
    yields the defaults.

    Args:
        path: Config file given on the command line.
        directory: Directory to search for ``.keycheck.yaml`` (default: cwd).

    Raises:
        ConfigurationError: If the file cannot be read or is invalid.
    """
    if path is None:
        path = find_config(directory or Path.cwd())
        if path is None:
            logger.debug("No %s found; using defaults", CONFIG_FILE_NAME)
            return KeycheckConfig()
    elif not Path(path).is_file():
        raise ConfigurationError(f"Config file not found: {path}")

    path = Path(path)
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigurationError(f"Cannot read config file {path}: {e}") from e
    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e

    config = parse_config(data, str(path), base=path.parent)
    logger.info("Loaded config from %s", path)
    return config
