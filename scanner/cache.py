"""Per-file scan cache keyed by file fingerprint."""

import hashlib
import json
import logging
import os
import tempfile
import threading
import time
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Callable, Dict, List, Optional

from keymap.errors import CacheError
from .patterns import RawMatch

logger = logging.getLogger(__name__)


CACHE_FORMAT_VERSION = 2
DEFAULT_CACHE_DIR = Path(".keycheck") / "cache"
DEFAULT_MAX_AGE = timedelta(hours=24)


def file_fingerprint(path: Path, salt: str = "") -> str:
    """
    Fingerprint a file from its resolved path, mtime and size.

    Args:
        path: File to fingerprint.
        salt: Extra text mixed in, e.g. the scanner configuration, so that
              entries written under a different configuration never match.

    Raises:
        OSError: If the file cannot be stat'ed.
    """
    stat = path.stat()
    token = f"{path.resolve()}|{stat.st_mtime_ns}|{stat.st_size}|{salt}|{CACHE_FORMAT_VERSION}"
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


@dataclass
class CacheEntry:
    """A cached scan of one file."""

    fingerprint: str
    timestamp: float
    matches: List[RawMatch]
    declares_registry: bool = False

    def to_dict(self) -> Dict:
        return {
            "version": CACHE_FORMAT_VERSION,
            "fingerprint": self.fingerprint,
            "timestamp": self.timestamp,
            "matches": [m.to_dict() for m in self.matches],
            "declares_registry": self.declares_registry,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "CacheEntry":
        try:
            if data.get("version") != CACHE_FORMAT_VERSION:
                raise CacheError(f"unsupported cache version {data.get('version')!r}")
            return cls(
                fingerprint=str(data["fingerprint"]),
                timestamp=float(data["timestamp"]),
                matches=[RawMatch.from_dict(m) for m in data["matches"]],
                declares_registry=bool(data["declares_registry"]),
            )
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise CacheError(f"malformed cache entry: {e}") from e


class ScanCache:
    """
    Cache of raw (pre-resolution) matches per file fingerprint.

    Entries live in memory and, when ``cache_dir`` is set, as one JSON file
    per fingerprint. Each file is written to a temporary name and renamed
    into place, so an interrupted run never leaves a half-written entry.
    Unreadable, mismatched or expired entries are misses.
    """

    def __init__(
        self,
        cache_dir: Optional[Path] = None,
        max_age: timedelta = DEFAULT_MAX_AGE,
        enabled: bool = True,
        clock: Callable[[], float] = time.time,
    ):
        self.cache_dir = Path(cache_dir) if cache_dir is not None else None
        self.max_age = max_age
        self.enabled = enabled
        self._clock = clock
        self._memory: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0
        self.writes = 0

    def get(self, fingerprint: str) -> Optional[CacheEntry]:
        """Return the fresh entry for ``fingerprint``, or None."""
        if not self.enabled:
            return None

        with self._lock:
            entry = self._memory.get(fingerprint)
        if entry is None and self.cache_dir is not None:
            try:
                entry = self._read(fingerprint)
            except CacheError as e:
                logger.debug("Discarding cache entry %s: %s", fingerprint[:12], e)
                entry = None

        if entry is None or entry.fingerprint != fingerprint or self._is_expired(entry):
            self._count(hit=False)
            return None

        with self._lock:
            self._memory[fingerprint] = entry
        self._count(hit=True)
        return entry

    def put(
        self,
        fingerprint: str,
        matches: List[RawMatch],
        declares_registry: bool = False,
    ) -> CacheEntry:
        """Store matches for ``fingerprint``, replacing any previous entry."""
        entry = CacheEntry(
            fingerprint=fingerprint,
            timestamp=self._clock(),
            matches=list(matches),
            declares_registry=declares_registry,
        )
        if not self.enabled:
            return entry

        with self._lock:
            self._memory[fingerprint] = entry
            self.writes += 1
        if self.cache_dir is not None:
            try:
                self._write(entry)
            except OSError as e:
                logger.warning("Could not write cache entry to %s: %s", self.cache_dir, e)
        return entry

    def invalidate(self, fingerprint: Optional[str] = None) -> None:
        """Drop one entry, or every entry when ``fingerprint`` is None."""
        with self._lock:
            if fingerprint is None:
                self._memory.clear()
            else:
                self._memory.pop(fingerprint, None)

        if self.cache_dir is None or not self.cache_dir.is_dir():
            return
        targets = (
            list(self.cache_dir.glob("*.json"))
            if fingerprint is None
            else [self._entry_path(fingerprint)]
        )
        for target in targets:
            try:
                target.unlink()
            except FileNotFoundError:
                pass

    def stats(self) -> Dict[str, int]:
        with self._lock:
            return {
                "entries": len(self._memory),
                "hits": self.hits,
                "misses": self.misses,
                "writes": self.writes,
            }

    def _count(self, hit: bool) -> None:
        with self._lock:
            if hit:
                self.hits += 1
            else:
                self.misses += 1

    def _is_expired(self, entry: CacheEntry) -> bool:
        return self._clock() - entry.timestamp > self.max_age.total_seconds()

    def _entry_path(self, fingerprint: str) -> Path:
        return self.cache_dir / f"{fingerprint}.json"

    def _read(self, fingerprint: str) -> Optional[CacheEntry]:
        path = self._entry_path(fingerprint)
        if not path.is_file():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise CacheError(str(e)) from e
        if not isinstance(data, dict):
            raise CacheError("cache entry is not an object")
        return CacheEntry.from_dict(data)

    def _write(self, entry: CacheEntry) -> None:
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.cache_dir, prefix=".tmp-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(entry.to_dict(), handle)
            os.replace(tmp_name, self._entry_path(entry.fingerprint))
        except BaseException:
            try:
                os.unlink(tmp_name)
            except OSError:
                pass
            raise
