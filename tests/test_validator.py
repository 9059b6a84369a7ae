"""Tests for key validation and policy evaluation."""

from datetime import datetime, timedelta, timezone

import pytest

from keymap.errors import ConfigurationError
from keymap.model import FoundKeysMap
from validation.baseline import Baseline, BaselineEntry
from validation.validator import PolicyMode, ValidationOptions, validate


NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def _found(*keys):
    return FoundKeysMap.from_paths({key: ["lib/main.dart"] for key in keys})


class TestKeyDiff:
    """Tests for missing, extra and matched keys."""

    def test_untracked_diff(self):
        result = validate(_found("A", "C", "D"), {"A", "B", "C"})

        assert result.missing_keys == {"B"}
        assert result.extra_keys == {"D"}
        assert result.matched_keys == {"A", "C"}
        assert not result.tracked

    def test_tracked_mode_measures_extras_against_tracked_keys(self):
        """Test tracked mode differs from untracked mode for extras."""
        found = _found("A", "C")
        expected = {"A", "B", "C"}

        tracked = validate(found, expected, ValidationOptions(tracked_keys={"A", "B"}))
        untracked = validate(found, expected)

        assert tracked.missing_keys == {"B"}
        assert tracked.extra_keys == {"C"}
        assert tracked.expected_count == 2
        assert untracked.extra_keys == set()

    def test_duplicates(self):
        """Test keys with more than one usage are reported with counts."""
        found = FoundKeysMap.from_paths({"A": ["a.dart", "b.dart"], "B": ["a.dart"]})

        result = validate(found, {"A", "B"})

        assert result.duplicate_usages == {"A": 2}


class TestCoverage:
    """Tests for the coverage ratio."""

    def test_partial_coverage(self):
        result = validate(_found("A"), {"A", "B", "C", "D"})

        assert result.coverage_ratio == pytest.approx(0.25)

    def test_empty_expected_is_full_coverage(self):
        """Test an empty expected set gives coverage 1.0."""
        assert validate(_found("A"), set()).coverage_ratio == 1.0
        assert validate(_found(), set()).coverage_ratio == 1.0

    def test_no_matches(self):
        assert validate(_found(), {"A"}).coverage_ratio == 0.0


class TestStrictPolicy:
    """Tests for the strict policy toggles."""

    def test_fails_on_missing_by_default(self):
        result = validate(_found("A"), {"A", "B"})

        assert not result.key_diff_passed
        assert not result.passed
        assert result.failure_reasons() == ["1 expected key(s) missing"]

    def test_extras_allowed_by_default(self):
        assert validate(_found("A", "X"), {"A"}).passed

    def test_fail_on_extra(self):
        result = validate(_found("A", "X"), {"A"}, ValidationOptions(fail_on_extra=True))

        assert not result.passed
        assert result.extra_failed
        assert result.failure_reasons() == ["1 extra key(s) found"]

    def test_missing_allowed_when_disabled(self):
        result = validate(_found("A"), {"A", "B"}, ValidationOptions(fail_on_missing=False))

        assert result.passed
        assert result.missing_keys == {"B"}


class TestLenientPolicy:
    def test_never_fails_on_keys(self):
        options = ValidationOptions(policy_mode=PolicyMode.LENIENT, fail_on_extra=True)

        result = validate(_found("X"), {"A", "B"}, options)

        assert result.key_diff_passed
        assert result.missing_keys == {"A", "B"}


class TestProgressivePolicy:
    """Tests for baseline comparison with a grace window."""

    def _baseline(self, last_seen_days_ago):
        seen = NOW - timedelta(days=last_seen_days_ago)
        return Baseline({"A": BaselineEntry(seen, NOW), "B": BaselineEntry(seen, seen)})

    def _options(self, baseline, grace_days):
        return ValidationOptions(
            policy_mode=PolicyMode.PROGRESSIVE,
            baseline=baseline,
            grace_period=timedelta(days=grace_days),
            now=NOW,
        )

    def test_additions_never_fail(self):
        result = validate(_found("A", "B", "C"), set(), self._options(self._baseline(0), 0))

        assert result.passed
        assert result.added_keys == {"C"}

    def test_removal_within_grace_is_tolerated(self):
        result = validate(_found("A"), set(), self._options(self._baseline(2), 3))

        assert result.passed
        assert result.tolerated_removals == {"B"}
        assert result.removed_keys == set()

    def test_removal_at_grace_boundary_is_tolerated(self):
        result = validate(_found("A"), set(), self._options(self._baseline(3), 3))

        assert result.tolerated_removals == {"B"}

    def test_removal_beyond_grace_fails(self):
        result = validate(_found("A"), set(), self._options(self._baseline(4), 3))

        assert not result.passed
        assert result.removed_keys == {"B"}
        assert result.failure_reasons() == ["1 baseline key(s) removed"]

    def test_zero_grace_fails_every_removal(self):
        result = validate(_found("A"), set(), self._options(self._baseline(0), 0))

        assert result.removed_keys == {"B"}

    def test_removal_without_timestamp_fails(self):
        baseline = Baseline({"A": BaselineEntry(), "B": BaselineEntry()})

        result = validate(_found("A"), set(), self._options(baseline, 30))

        assert result.removed_keys == {"B"}

    def test_requires_baseline(self):
        with pytest.raises(ConfigurationError):
            validate(_found("A"), set(), ValidationOptions(policy_mode=PolicyMode.PROGRESSIVE))


class TestVerdict:
    """Tests for the combined pass/fail verdict."""

    def test_predicates_fail_the_run(self):
        options = ValidationOptions(has_dependencies=False)

        result = validate(_found("A"), {"A"}, options)

        assert result.key_diff_passed
        assert not result.passed
        assert result.failure_reasons() == ["required test dependencies missing"]

    def test_missing_test_setup(self):
        result = validate(_found("A"), {"A"}, ValidationOptions(has_test_setup=False))

        assert not result.passed

    def test_invalid_policy_name(self):
        with pytest.raises(ConfigurationError):
            PolicyMode.parse("relaxed")

    def test_negative_grace_period(self):
        with pytest.raises(ConfigurationError):
            validate(_found(), set(), ValidationOptions(grace_period=timedelta(days=-1)))

    def test_to_dict(self):
        result = validate(_found("A", "X"), {"A", "B"})

        data = result.to_dict()

        assert data["passed"] is False
        assert data["missing_keys"] == ["B"]
        assert data["extra_keys"] == ["X"]
        assert data["coverage"] == 0.5
        assert "progressive" not in data
