"""Loading and writing expected-key lists."""

import logging
from pathlib import Path
from typing import Any, Iterable, List, Set

import yaml

from keymap.errors import ConfigurationError

logger = logging.getLogger(__name__)


def parse_expected_keys(data: Any, source: str = "<expected keys>") -> Set[str]:
    """
    Extract the expected key set from parsed YAML data.

    The document must have a top-level ``keys`` entry holding either a list
    or a mapping of category name -> list. Categories are cosmetic and are
    flattened away. List items may be strings or ``{name: ...}`` mappings.

    Raises:
        ConfigurationError: If the structure is not recognized.
    """
    if not isinstance(data, dict) or "keys" not in data:
        raise ConfigurationError(f"{source}: missing top-level 'keys' list")

    section = data["keys"]
    if section is None:
        return set()
    if isinstance(section, dict):
        groups: List[Any] = []
        for category, items in section.items():
            if items is None:
                continue
            if not isinstance(items, list):
                raise ConfigurationError(
                    f"{source}: category '{category}' must hold a list of keys"
                )
            groups.extend(items)
        items = groups
    elif isinstance(section, list):
        items = section
    else:
        raise ConfigurationError(f"{source}: 'keys' must be a list or a mapping of lists")

    keys: Set[str] = set()
    for item in items:
        if isinstance(item, dict):
            name = item.get("name")
            if name is None:
                raise ConfigurationError(f"{source}: key entry {item!r} has no 'name'")
            keys.add(str(name))
        elif isinstance(item, (str, int, float)) and not isinstance(item, bool):
            keys.add(str(item))
        else:
            raise ConfigurationError(f"{source}: invalid key entry {item!r}")
    return keys


def load_expected_keys(path: Path) -> Set[str]:
    """
    Load expected keys from a YAML file.

    Example format::

        keys:
          - login_button
          - password_field

    Raises:
        ConfigurationError: If the file is missing, unreadable or malformed.
    """
    path = Path(path)
    if not path.is_file():
        raise ConfigurationError(f"Keys file not found: {path}")
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigurationError(f"Cannot read keys file {path}: {e}") from e
    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in keys file {path}: {e}") from e

    keys = parse_expected_keys(data, str(path))
    logger.debug("Loaded %d expected keys from %s", len(keys), path)
    return keys


def dump_expected_keys(keys: Iterable[str]) -> str:
    """Render keys as an expected-key YAML document, sorted."""
    return yaml.safe_dump({"keys": sorted(set(keys))}, default_flow_style=False, sort_keys=False)


def write_expected_keys(keys: Iterable[str], path: Path) -> None:
    Path(path).write_text(dump_expected_keys(keys), encoding="utf-8")
