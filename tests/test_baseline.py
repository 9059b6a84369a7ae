"""Tests for baseline snapshots."""

import json
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from keymap.errors import ConfigurationError
from validation.baseline import Baseline, load_baseline, save_baseline


T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)
T1 = T0 + timedelta(days=5)


class TestBaseline:
    """Tests for snapshot updates."""

    def test_from_keys(self):
        baseline = Baseline.from_keys(["a", "b"], now=T0)

        assert baseline.keys == {"a", "b"}
        assert baseline.get("a").first_seen == T0
        assert baseline.created_at == T0

    def test_updated_refreshes_found_keys_only(self):
        """Test missing keys keep their old last_seen so the grace window counts."""
        baseline = Baseline.from_keys(["a", "b"], now=T0)

        updated = baseline.updated(["a", "c"], now=T1)

        assert updated.keys == {"a", "b", "c"}
        assert updated.get("a").first_seen == T0
        assert updated.get("a").last_seen == T1
        assert updated.get("b").last_seen == T0
        assert updated.get("c").first_seen == T1
        assert baseline.get("a").last_seen == T0

    def test_dict_round_trip(self):
        baseline = Baseline.from_keys(["a"], now=T0).updated(["b"], now=T1)

        restored = Baseline.from_dict(baseline.to_dict())

        assert restored.keys == {"a", "b"}
        assert restored.get("b").last_seen == T1
        assert restored.created_at == T0

    def test_plain_key_list(self):
        """Test a list of keys is accepted without timestamps."""
        baseline = Baseline.from_dict({"keys": ["a", "b"]})

        assert baseline.keys == {"a", "b"}
        assert baseline.get("a").last_seen is None

    @pytest.mark.parametrize("data", [
        [],
        {"created_at": None},
        {"keys": "a"},
        {"keys": {"a": "yesterday"}},
        {"keys": {"a": {"last_seen": "not a date"}}},
    ])
    def test_malformed(self, data):
        with pytest.raises(ConfigurationError):
            Baseline.from_dict(data)


class TestBaselineFiles:
    """Tests for loading and saving."""

    def test_save_and_load(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "nested" / "baseline.json"
            save_baseline(Baseline.from_keys(["a"], now=T0), path)

            loaded = load_baseline(path)

            assert loaded.keys == {"a"}
            assert json.loads(path.read_text(encoding="utf-8"))["version"] == 1
            assert [p.name for p in path.parent.iterdir()] == ["baseline.json"]

    def test_missing_file(self):
        with pytest.raises(ConfigurationError):
            load_baseline(Path("/nonexistent/baseline.json"))

    def test_invalid_json(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "baseline.json"
            path.write_text("{", encoding="utf-8")

            with pytest.raises(ConfigurationError):
                load_baseline(path)
