"""Markdown report, suitable for pull request comments and job summaries."""

from pathlib import Path
from typing import Iterable, List, Optional

from validation.pipeline import CheckOutcome
from .common import display_path, status_label, usage_location


def _escape(text: str) -> str:
    return text.replace("|", "\\|")


def _key_list(title: str, keys: Iterable[str], lines: List[str]) -> None:
    keys = sorted(keys)
    if not keys:
        return
    lines.append(f"### {title} ({len(keys)})")
    lines.append("")
    lines.extend(f"- `{key}`" for key in keys)
    lines.append("")


def to_markdown(outcome: CheckOutcome, base: Optional[Path] = None, show_locations: bool = True) -> str:
    """
    Render a check outcome as Markdown.

    Args:
        outcome: Result of a ``check_project`` run.
        base: Optional base path for relative path display.
        show_locations: If False, omit the per-key location table.
    """
    result = outcome.result
    root = outcome.scan.root
    found = outcome.found

    lines = [
        f"## Key check: {status_label(result)}",
        "",
        "| Metric | Value |",
        "| --- | --- |",
        f"| Policy | {result.policy_mode.value} |",
        f"| Files scanned | {len(outcome.scan.scanned_files)} |",
        f"| Keys found | {len(found)} |",
        f"| Expected keys | {result.expected_count} |",
        f"| Coverage | {result.coverage_ratio:.1%} |",
        f"| Dependencies | {'ok' if result.has_dependencies else 'missing'} |",
        f"| Integration test setup | {'ok' if result.has_test_setup else 'missing'} |",
        "",
    ]
    reasons = result.failure_reasons()
    if reasons:
        lines.extend(f"> {reason}" for reason in reasons)
        lines.append("")

    _key_list("Missing keys", result.missing_keys, lines)
    _key_list("Extra keys", result.extra_keys, lines)
    _key_list("Removed since baseline", result.removed_keys, lines)
    _key_list("Removed within grace period", result.tolerated_removals, lines)
    _key_list("Unresolved symbols", result.unresolved_symbols, lines)

    if show_locations and len(found):
        lines.append("### Key locations")
        lines.append("")
        lines.append("| Key | Kind | Location |")
        lines.append("| --- | --- | --- |")
        for key in sorted(found):
            for usage in found.usages(key):
                lines.append(
                    f"| `{_escape(key)}` | {usage.kind.value} | {usage_location(usage, root, base)} |"
                )
        lines.append("")

    if result.warnings:
        lines.append("### Warnings")
        lines.append("")
        lines.extend(
            f"- {display_path(w.path, root, base)}: {_escape(w.message)}" for w in result.warnings
        )
        lines.append("")

    return "\n".join(lines).rstrip() + "\n"
