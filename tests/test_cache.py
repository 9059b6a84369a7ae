"""Tests for the scan cache service."""

import json
import tempfile
from datetime import timedelta
from pathlib import Path

import pytest

from keymap.errors import CacheError
from scanner.cache import CACHE_FORMAT_VERSION, CacheEntry, ScanCache, file_fingerprint
from scanner.patterns import RawMatch, ShapeKind


MATCHES = [
    RawMatch(ShapeKind.LITERAL_KEY, "login_button", 3, 9, "Key('login_button')"),
    RawMatch(ShapeKind.CONSTANT_REFERENCE, "emailField", 7, 5, "Key(KeyConstants.emailField)"),
]


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestFingerprint:
    """Tests for file fingerprints."""

    def test_changes_with_content_size(self):
        """Test a size change produces a new fingerprint."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "a.dart"
            path.write_text("Key('a')", encoding="utf-8")
            before = file_fingerprint(path)
            path.write_text("Key('ab')", encoding="utf-8")

            assert file_fingerprint(path) != before

    def test_salt_changes_fingerprint(self):
        """Test scanner configuration is part of the fingerprint."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "a.dart"
            path.write_text("Key('a')", encoding="utf-8")

            assert file_fingerprint(path, "KeyConstants") != file_fingerprint(path, "AppKeys")

    def test_missing_file_raises(self):
        with pytest.raises(OSError):
            file_fingerprint(Path("/nonexistent/file.dart"))


class TestScanCache:
    """Tests for cache lookups and storage."""

    def test_memory_round_trip(self):
        """Test a stored entry is returned on the next lookup."""
        cache = ScanCache()

        assert cache.get("abc") is None
        cache.put("abc", MATCHES)
        entry = cache.get("abc")

        assert entry is not None
        assert entry.matches == MATCHES
        assert cache.stats() == {"entries": 1, "hits": 1, "misses": 1, "writes": 1}

    def test_entries_persist_on_disk(self):
        """Test a new cache instance reads entries written by another."""
        with tempfile.TemporaryDirectory() as tmpdir:
            cache_dir = Path(tmpdir) / "cache"
            ScanCache(cache_dir).put("abc", MATCHES)

            entry = ScanCache(cache_dir).get("abc")

            assert entry is not None
            assert entry.matches == MATCHES
            assert [p.name for p in cache_dir.iterdir()] == ["abc.json"]

    def test_registry_flag_persists(self):
        """Test whether a file declares the registry survives a disk round trip."""
        with tempfile.TemporaryDirectory() as tmpdir:
            cache_dir = Path(tmpdir)
            ScanCache(cache_dir).put("abc", MATCHES, declares_registry=True)
            ScanCache(cache_dir).put("def", MATCHES)

            cache = ScanCache(cache_dir)

            assert cache.get("abc").declares_registry is True
            assert cache.get("def").declares_registry is False

    def test_expired_entry_is_a_miss(self):
        """Test entries older than max_age are ignored."""
        clock = FakeClock()
        cache = ScanCache(max_age=timedelta(hours=1), clock=clock)
        cache.put("abc", MATCHES)

        clock.now += 3601

        assert cache.get("abc") is None
        assert cache.misses == 1

    def test_corrupt_entry_is_a_miss(self):
        """Test unreadable entries are treated as misses, never errors."""
        with tempfile.TemporaryDirectory() as tmpdir:
            cache_dir = Path(tmpdir)
            (cache_dir / "abc.json").write_text("{not json", encoding="utf-8")
            (cache_dir / "def.json").write_text(json.dumps({"version": 1}), encoding="utf-8")

            cache = ScanCache(cache_dir)

            assert cache.get("abc") is None
            assert cache.get("def") is None
            assert cache.misses == 2

    def test_invalidate_single_and_all(self):
        """Test invalidation removes memory and disk entries."""
        with tempfile.TemporaryDirectory() as tmpdir:
            cache_dir = Path(tmpdir)
            cache = ScanCache(cache_dir)
            cache.put("abc", MATCHES)
            cache.put("def", MATCHES)

            cache.invalidate("abc")
            assert cache.get("abc") is None
            assert cache.get("def") is not None

            cache.invalidate()
            assert cache.get("def") is None
            assert list(cache_dir.glob("*.json")) == []

    def test_disabled_cache_never_hits(self):
        cache = ScanCache(enabled=False)
        cache.put("abc", MATCHES)

        assert cache.get("abc") is None


class TestCacheEntry:
    """Tests for entry decoding."""

    def test_wrong_version_rejected(self):
        with pytest.raises(CacheError):
            CacheEntry.from_dict({"version": 99, "fingerprint": "x", "timestamp": 0, "matches": []})

    def test_malformed_match_rejected(self):
        with pytest.raises(CacheError):
            CacheEntry.from_dict({
                "version": CACHE_FORMAT_VERSION, "fingerprint": "x", "timestamp": 0,
                "matches": [{"shape": "bogus"}], "declares_registry": False,
            })
