"""Helpers shared by the report exporters."""

from pathlib import Path
from typing import Any, Dict, List, Optional

from keymap.model import KeyUsage
from validation.pipeline import CheckOutcome
from validation.validator import ValidationResult


def display_path(path: Path, root: Path, base: Optional[Path] = None) -> str:
    """Return ``path`` relative to ``base`` (or ``root``), with forward slashes."""
    for anchor in (base, root):
        if anchor is None:
            continue
        try:
            return Path(path).resolve().relative_to(Path(anchor).resolve()).as_posix()
        except ValueError:
            continue
    return str(path).replace("\\", "/")


def usage_location(usage: KeyUsage, root: Path, base: Optional[Path] = None) -> str:
    location = display_path(usage.path, root, base)
    if usage.line:
        location += f":{usage.line}:{usage.column}"
    return location


def usage_dict(usage: KeyUsage, root: Path, base: Optional[Path] = None) -> Dict[str, Any]:
    data = usage.to_dict()
    data["file"] = display_path(usage.path, root, base)
    return data


def status_label(result: ValidationResult) -> str:
    return "PASSED" if result.passed else "FAILED"


def summary_lines(outcome: CheckOutcome) -> List[str]:
    """Plain summary lines used by the text-based exporters."""
    result = outcome.result
    lines = [
        f"Status: {status_label(result)} ({result.policy_mode.value} policy)",
        f"Files scanned: {len(outcome.scan.scanned_files)}",
        f"Keys found: {len(outcome.found)}",
        f"Expected keys: {result.expected_count}",
        f"Coverage: {result.coverage_ratio:.1%}",
    ]
    if result.tracked:
        lines.append("Tracked mode: extras measured against the tracked keys")
    for reason in result.failure_reasons():
        lines.append(f"Failure: {reason}")
    return lines
