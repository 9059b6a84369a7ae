"""End-to-end check: load inputs, scan the project, filter, validate."""

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional, Set

from config.model import KeycheckConfig
from keymap.errors import ConfigurationError
from keymap.model import FoundKeysMap, ScanResult
from scanner.builder import build_key_map
from scanner.cache import DEFAULT_CACHE_DIR, ScanCache
from scanner.discovery import DEFAULT_EXCLUDE_DIRS
from .baseline import Baseline, load_baseline, save_baseline, utcnow
from .expected import load_expected_keys
from .filters import filter_keys
from .predicates import check_dependencies, check_test_setup
from .validator import PolicyMode, ValidationOptions, ValidationResult, validate

logger = logging.getLogger(__name__)


@dataclass
class CheckOutcome:
    """Everything a ``check_project`` run produced."""

    scan: ScanResult
    found: FoundKeysMap
    result: ValidationResult
    expected_keys: Set[str]
    baseline: Optional[Baseline] = None


def load_expected(config: KeycheckConfig) -> Set[str]:
    """
    Load the expected keys named by ``config``.

    Progressive runs may omit the file and validate against the baseline
    alone.

    Raises:
        ConfigurationError: If no file is configured outside progressive
            mode, or the file is missing or malformed.
    """
    if config.keys is None:
        if config.policy is PolicyMode.PROGRESSIVE:
            return set()
        raise ConfigurationError(
            "No expected-key file given (use --keys or 'keys' in .keycheck.yaml)"
        )
    return load_expected_keys(config.keys)


def make_cache(config: KeycheckConfig) -> Optional[ScanCache]:
    if not config.cache:
        return None
    cache_dir = config.cache_dir or (config.path / DEFAULT_CACHE_DIR)
    return ScanCache(cache_dir, max_age=config.cache_max_age)


def scan_project(config: KeycheckConfig, cache: Optional[ScanCache] = None) -> ScanResult:
    """Scan the configured project root with the configured scanner options."""
    root = Path(config.path)
    if not root.is_dir():
        raise ConfigurationError(f"'{root}' is not a directory")
    return build_key_map(
        root=root,
        include_ext=set(config.extensions),
        exclude_dirs=DEFAULT_EXCLUDE_DIRS | set(config.exclude_dirs),
        max_depth=config.max_depth,
        include_generated=config.include_generated,
        registry_class=config.registry_class,
        wrappers=config.key_wrappers,
        cache=cache,
        workers=config.workers,
    )


def check_project(config: KeycheckConfig, now: Optional[datetime] = None) -> CheckOutcome:
    """
    Run a full scan-and-validate pass.

    Configuration problems (expected keys, baseline, policy options) are
    raised before any file is scanned.

    Include/exclude patterns always narrow the found keys. Expected keys are
    narrowed too, except in tracked mode where the tracked list already
    defines the scope.

    Args:
        config: Run configuration.
        now: Reference time for progressive grace windows.

    Returns:
        CheckOutcome with the scan, the validation result and the inputs used.

    Raises:
        ConfigurationError: If the run cannot start.
    """
    expected = load_expected(config)
    baseline = None
    if config.policy is PolicyMode.PROGRESSIVE:
        if config.baseline is None:
            raise ConfigurationError("Progressive policy requires a baseline (use --baseline)")
        if Path(config.baseline).is_file():
            baseline = load_baseline(config.baseline)
        else:
            logger.warning("Baseline %s does not exist yet; starting from an empty baseline", config.baseline)
            baseline = Baseline()

    scan = scan_project(config, make_cache(config))

    include_only = config.include_only
    exclude = config.exclude
    tracked = set(config.tracked_keys)
    kept = filter_keys(scan.found.keys, include_only, exclude)
    found = scan.found.restrict(kept)
    if not tracked:
        expected = filter_keys(expected, include_only, exclude)

    project = Path(config.path)
    has_dependencies = check_dependencies(project).ok if config.check_dependencies else True
    has_test_setup = check_test_setup(project) if config.check_test_setup else True

    options = ValidationOptions(
        tracked_keys=tracked,
        policy_mode=config.policy,
        fail_on_missing=config.fail_on_missing,
        fail_on_extra=config.fail_on_extra,
        baseline=baseline,
        grace_period=config.grace_period,
        has_dependencies=has_dependencies,
        has_test_setup=has_test_setup,
        now=now,
    )
    result = validate(found, expected, options, warnings=scan.warnings)
    logger.info(
        "Checked %d files: %d keys found, %d missing, %d extra",
        len(scan.scanned_files), len(found), len(result.missing_keys), len(result.extra_keys),
    )
    return CheckOutcome(scan=scan, found=found, result=result, expected_keys=expected, baseline=baseline)


def update_baseline(outcome: CheckOutcome, path: Path, now: Optional[datetime] = None) -> Baseline:
    """Fold the filtered found keys into the baseline and write it to ``path``."""
    now = now or utcnow()
    previous = outcome.baseline
    if previous is None:
        previous = load_baseline(path) if Path(path).is_file() else Baseline()
    baseline = previous.updated(outcome.found.keys, now)
    save_baseline(baseline, path)
    logger.info("Baseline written to %s (%d keys)", path, len(baseline))
    return baseline
