"""Filtering, expected-key loading and validation of scanned keys.

``validation.pipeline`` ties these together with the scanner and config and
is imported directly.
"""

from .baseline import Baseline, BaselineEntry, load_baseline, save_baseline
from .expected import dump_expected_keys, load_expected_keys, parse_expected_keys, write_expected_keys
from .filters import filter_key_map, filter_keys, pattern_matches
from .insights import RegistryReport, registry_report
from .predicates import DependencyStatus, check_dependencies, check_test_setup
from .validator import PolicyMode, ValidationOptions, ValidationResult, validate

__all__ = [
    "Baseline",
    "BaselineEntry",
    "load_baseline",
    "save_baseline",
    "dump_expected_keys",
    "load_expected_keys",
    "parse_expected_keys",
    "write_expected_keys",
    "filter_key_map",
    "filter_keys",
    "pattern_matches",
    "RegistryReport",
    "registry_report",
    "DependencyStatus",
    "check_dependencies",
    "check_test_setup",
    "PolicyMode",
    "ValidationOptions",
    "ValidationResult",
    "validate",
]
