"""Baseline snapshots for progressive validation."""

import json
import logging
import os
import tempfile
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Set

from keymap.errors import ConfigurationError

logger = logging.getLogger(__name__)


BASELINE_FORMAT_VERSION = 1


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_time(value: Any, source: str) -> Optional[datetime]:
    if value is None:
        return None
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError as e:
        raise ConfigurationError(f"{source}: invalid timestamp {value!r}") from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _format_time(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


@dataclass(frozen=True)
class BaselineEntry:
    """When a key was first and most recently seen."""

    first_seen: Optional[datetime] = None
    last_seen: Optional[datetime] = None


class Baseline:
    """
    A snapshot of previously found keys.

    Progressive validation compares a scan against this snapshot: keys may
    be added freely, and a key that disappears is judged by how long ago it
    was last seen.
    """

    def __init__(self, entries: Optional[Dict[str, BaselineEntry]] = None, created_at: Optional[datetime] = None):
        self._entries: Dict[str, BaselineEntry] = dict(entries or {})
        self.created_at = created_at

    @classmethod
    def from_keys(cls, keys: Iterable[str], now: Optional[datetime] = None) -> "Baseline":
        now = now or utcnow()
        return cls({key: BaselineEntry(now, now) for key in keys}, created_at=now)

    @property
    def keys(self) -> Set[str]:
        return set(self._entries)

    def get(self, key: str) -> Optional[BaselineEntry]:
        return self._entries.get(key)

    def updated(self, found_keys: Iterable[str], now: Optional[datetime] = None) -> "Baseline":
        """
        Return the next snapshot after a scan that found ``found_keys``.

        Found keys get ``last_seen = now``; baseline keys that were not found
        keep their previous ``last_seen`` so the grace window keeps counting.
        """
        now = now or utcnow()
        found = set(found_keys)
        entries = dict(self._entries)
        for key in found:
            previous = entries.get(key)
            first_seen = previous.first_seen if previous and previous.first_seen else now
            entries[key] = BaselineEntry(first_seen, now)
        return Baseline(entries, created_at=self.created_at or now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": BASELINE_FORMAT_VERSION,
            "created_at": _format_time(self.created_at),
            "keys": {
                key: {
                    "first_seen": _format_time(entry.first_seen),
                    "last_seen": _format_time(entry.last_seen),
                }
                for key, entry in sorted(self._entries.items())
            },
        }

    @classmethod
    def from_dict(cls, data: Any, source: str = "<baseline>") -> "Baseline":
        """
        Build a baseline from decoded JSON.

        ``keys`` may be a mapping of key -> timestamps, or a plain list of
        keys (no timestamps; removals of those keys are never tolerated).
        """
        if not isinstance(data, dict) or "keys" not in data:
            raise ConfigurationError(f"{source}: baseline must be an object with 'keys'")
        created_at = _parse_time(data.get("created_at"), source)
        raw_keys = data["keys"]
        entries: Dict[str, BaselineEntry] = {}
        if isinstance(raw_keys, list):
            for key in raw_keys:
                entries[str(key)] = BaselineEntry()
        elif isinstance(raw_keys, dict):
            for key, info in raw_keys.items():
                info = info or {}
                if not isinstance(info, dict):
                    raise ConfigurationError(f"{source}: invalid entry for key {key!r}")
                entries[str(key)] = BaselineEntry(
                    first_seen=_parse_time(info.get("first_seen"), source),
                    last_seen=_parse_time(info.get("last_seen"), source),
                )
        else:
            raise ConfigurationError(f"{source}: 'keys' must be a list or an object")
        return cls(entries, created_at=created_at)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __repr__(self) -> str:
        return f"Baseline(keys={len(self._entries)}, created_at={_format_time(self.created_at)})"


def load_baseline(path: Path) -> Baseline:
    """
    Load a baseline JSON file.

    Raises:
        ConfigurationError: If the file is missing or malformed.
    """
    path = Path(path)
    if not path.is_file():
        raise ConfigurationError(f"Baseline file not found: {path}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Cannot read baseline {path}: {e}") from e
    baseline = Baseline.from_dict(data, str(path))
    logger.debug("Loaded %r from %s", baseline, path)
    return baseline


def save_baseline(baseline: Baseline, path: Path) -> None:
    """Write a baseline atomically (temp file + rename)."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".baseline-", suffix=".json")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            json.dump(baseline.to_dict(), handle, indent=2)
            handle.write("\n")
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except OSError:
            pass
        raise
