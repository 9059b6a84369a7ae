"""Diff found keys against expected keys and evaluate the validation policy."""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set, Union

from keymap.errors import ConfigurationError
from keymap.model import FoundKeysMap, ScanWarning, UsageKind
from .baseline import Baseline, utcnow

logger = logging.getLogger(__name__)


class PolicyMode(str, Enum):
    """How key differences affect the pass/fail verdict."""

    STRICT = "strict"
    LENIENT = "lenient"
    PROGRESSIVE = "progressive"

    @classmethod
    def parse(cls, value: Union[str, "PolicyMode"]) -> "PolicyMode":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            choices = ", ".join(m.value for m in cls)
            raise ConfigurationError(f"Invalid policy mode {value!r} (expected one of: {choices})") from None


@dataclass
class ValidationOptions:
    """
    Inputs to ``validate`` besides the key sets.

    Attributes:
        tracked_keys: Narrow validation to this subset when non-empty.
        policy_mode: strict, lenient or progressive.
        fail_on_missing: Strict mode fails when expected keys are missing.
        fail_on_extra: Strict mode fails when unexpected keys are found.
        baseline: Previous snapshot; required for progressive mode.
        grace_period: How long a removed baseline key is tolerated.
        has_dependencies: Outcome of the dependency check.
        has_test_setup: Outcome of the integration test setup check.
        now: Reference time for the grace window (default: current UTC time).
    """

    tracked_keys: Optional[Set[str]] = None
    policy_mode: PolicyMode = PolicyMode.STRICT
    fail_on_missing: bool = True
    fail_on_extra: bool = False
    baseline: Optional[Baseline] = None
    grace_period: timedelta = timedelta(0)
    has_dependencies: bool = True
    has_test_setup: bool = True
    now: Optional[datetime] = None


@dataclass
class ValidationResult:
    """Outcome of one validation run."""

    missing_keys: Set[str]
    extra_keys: Set[str]
    matched_keys: Set[str]
    duplicate_usages: Dict[str, int]
    coverage_ratio: float
    policy_mode: PolicyMode
    key_diff_passed: bool
    missing_failed: bool = False
    extra_failed: bool = False
    has_dependencies: bool = True
    has_test_setup: bool = True
    tracked: bool = False
    expected_count: int = 0
    added_keys: Set[str] = field(default_factory=set)
    removed_keys: Set[str] = field(default_factory=set)
    tolerated_removals: Set[str] = field(default_factory=set)
    unresolved_symbols: List[str] = field(default_factory=list)
    warnings: List[ScanWarning] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return self.key_diff_passed and self.has_dependencies and self.has_test_setup

    def failure_reasons(self) -> List[str]:
        reasons: List[str] = []
        if not self.key_diff_passed:
            if self.policy_mode is PolicyMode.PROGRESSIVE:
                reasons.append(f"{len(self.removed_keys)} baseline key(s) removed")
            else:
                if self.missing_failed:
                    reasons.append(f"{len(self.missing_keys)} expected key(s) missing")
                if self.extra_failed:
                    reasons.append(f"{len(self.extra_keys)} extra key(s) found")
        if not self.has_dependencies:
            reasons.append("required test dependencies missing")
        if not self.has_test_setup:
            reasons.append("integration test setup missing")
        return reasons

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "passed": self.passed,
            "policy": self.policy_mode.value,
            "tracked": self.tracked,
            "checks": {
                "keys": self.key_diff_passed,
                "dependencies": self.has_dependencies,
                "test_setup": self.has_test_setup,
            },
            "expected_count": self.expected_count,
            "coverage": round(self.coverage_ratio, 4),
            "missing_keys": sorted(self.missing_keys),
            "extra_keys": sorted(self.extra_keys),
            "matched_keys": sorted(self.matched_keys),
            "duplicate_usages": dict(sorted(self.duplicate_usages.items())),
            "unresolved_symbols": list(self.unresolved_symbols),
            "warnings": [
                {"file": str(w.path).replace("\\", "/"), "message": w.message}
                for w in self.warnings
            ],
        }
        if self.policy_mode is PolicyMode.PROGRESSIVE:
            data["progressive"] = {
                "added_keys": sorted(self.added_keys),
                "removed_keys": sorted(self.removed_keys),
                "tolerated_removals": sorted(self.tolerated_removals),
            }
        return data


def _coverage(expected: Set[str], found: Set[str]) -> float:
    if not expected:
        return 1.0
    return len(expected & found) / len(expected)


def _progressive_diff(
    found: Set[str],
    baseline: Baseline,
    grace_period: timedelta,
    now: datetime,
) -> Dict[str, Set[str]]:
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    added = found - baseline.keys
    removed: Set[str] = set()
    tolerated: Set[str] = set()
    for key in baseline.keys - found:
        entry = baseline.get(key)
        last_seen = entry.last_seen if entry is not None else None
        if grace_period and last_seen is not None and now - last_seen <= grace_period:
            tolerated.add(key)
        else:
            removed.add(key)
    return {"added": added, "removed": removed, "tolerated": tolerated}


def validate(
    found: FoundKeysMap,
    expected_keys: Iterable[str],
    options: Optional[ValidationOptions] = None,
    warnings: Sequence[ScanWarning] = (),
) -> ValidationResult:
    """
    Compute missing, extra and duplicate keys and the policy verdict.

    With tracked keys, the expected set is narrowed to the tracked subset
    and extras are measured against the tracked keys, not the expected
    keys. Without them, both sides use the full expected set.

    Args:
        found: Aggregated key usages (already include/exclude filtered).
        expected_keys: Keys declared in the expected-key source.
        options: Policy and predicate inputs.
        warnings: Scan warnings to carry into the result.

    Returns:
        ValidationResult for this run.

    Raises:
        ConfigurationError: If the options are inconsistent, e.g.
            progressive mode without a baseline.
    """
    options = options or ValidationOptions()
    mode = PolicyMode.parse(options.policy_mode)
    if options.grace_period < timedelta(0):
        raise ConfigurationError("Grace period must not be negative")
    if mode is PolicyMode.PROGRESSIVE and options.baseline is None:
        raise ConfigurationError("Progressive policy requires a baseline")

    expected = set(expected_keys)
    found_keys = found.keys
    tracked = set(options.tracked_keys or ())

    if tracked:
        expected_for_diff = expected & tracked
        extra_keys = found_keys - tracked
    else:
        expected_for_diff = expected
        extra_keys = found_keys - expected

    missing_keys = expected_for_diff - found_keys
    duplicates = {key: count for key, count in found.usage_counts().items() if count > 1}
    unresolved = sorted({u.value for u in found.iter_usages() if u.kind is UsageKind.UNRESOLVED})

    result = ValidationResult(
        missing_keys=missing_keys,
        extra_keys=extra_keys,
        matched_keys=expected_for_diff & found_keys,
        duplicate_usages=duplicates,
        coverage_ratio=_coverage(expected_for_diff, found_keys),
        policy_mode=mode,
        key_diff_passed=True,
        has_dependencies=options.has_dependencies,
        has_test_setup=options.has_test_setup,
        tracked=bool(tracked),
        expected_count=len(expected_for_diff),
        unresolved_symbols=unresolved,
        warnings=list(warnings),
    )

    if mode is PolicyMode.STRICT:
        result.missing_failed = options.fail_on_missing and bool(missing_keys)
        result.extra_failed = options.fail_on_extra and bool(extra_keys)
        result.key_diff_passed = not (result.missing_failed or result.extra_failed)
    elif mode is PolicyMode.PROGRESSIVE:
        diff = _progressive_diff(found_keys, options.baseline, options.grace_period, options.now or utcnow())
        result.added_keys = diff["added"]
        result.removed_keys = diff["removed"]
        result.tolerated_removals = diff["tolerated"]
        result.key_diff_passed = not diff["removed"]
        for key in sorted(diff["tolerated"]):
            logger.warning("Key '%s' is missing but within the grace period", key)

    logger.debug(
        "Validation (%s): %d missing, %d extra, coverage %.2f",
        mode.value, len(missing_keys), len(extra_keys), result.coverage_ratio,
    )
    return result
