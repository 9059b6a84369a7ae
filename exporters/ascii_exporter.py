"""ASCII tree-style report of found keys and validation results."""

from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from validation.insights import RegistryReport
from validation.pipeline import CheckOutcome
from .common import display_path, summary_lines, usage_location


# Unicode tree characters
UNICODE_BRANCH = "├── "
UNICODE_LAST = "└── "
UNICODE_VERTICAL = "│   "
UNICODE_SPACE = "    "

# ASCII fallback characters
ASCII_BRANCH = "|-- "
ASCII_LAST = "\\-- "
ASCII_VERTICAL = "|   "
ASCII_SPACE = "    "


def to_ascii(
    outcome: CheckOutcome,
    base: Optional[Path] = None,
    style: str = "tree",
    show_locations: bool = True,
) -> str:
    """
    Render a check outcome as a text tree.

    Found keys are listed with their usage locations underneath, followed
    by missing, extra and tolerated keys and any scan warnings.

    Args:
        outcome: Result of a ``check_project`` run.
        base: Optional base path for relative path display.
        style: Output style - "tree" (Unicode) or "ascii" (pure ASCII).
        show_locations: If False, list keys without their locations.

    Returns:
        Report text.
    """
    if style == "ascii":
        chars = (ASCII_BRANCH, ASCII_LAST, ASCII_VERTICAL, ASCII_SPACE)
    else:
        chars = (UNICODE_BRANCH, UNICODE_LAST, UNICODE_VERTICAL, UNICODE_SPACE)

    root = outcome.scan.root
    result = outcome.result
    found = outcome.found
    lines: List[str] = list(summary_lines(outcome))

    key_items: List[Tuple[str, List[str]]] = []
    for key in sorted(found):
        label = key
        count = found.count(key)
        if count > 1:
            label += f" (x{count})"
        children: List[str] = []
        if show_locations:
            children = [
                f"{usage_location(u, root, base)} [{u.kind.value}]"
                for u in found.usages(key)
            ]
        key_items.append((label, children))
    _render_section(lines, f"Found keys ({len(found)})", key_items, chars)

    _render_section(lines, "Missing keys", [(f"{k} [MISSING]", []) for k in sorted(result.missing_keys)], chars)
    _render_section(lines, "Extra keys", [(f"{k} [EXTRA]", []) for k in sorted(result.extra_keys)], chars)
    if result.removed_keys or result.tolerated_removals:
        removed = [(f"{k} [REMOVED]", []) for k in sorted(result.removed_keys)]
        removed += [(f"{k} [GRACE]", []) for k in sorted(result.tolerated_removals)]
        _render_section(lines, "Baseline removals", removed, chars)
    if result.unresolved_symbols:
        _render_section(lines, "Unresolved symbols", [(s, []) for s in result.unresolved_symbols], chars)
    if result.warnings:
        warnings = [(f"{w.path}: {w.message}", []) for w in result.warnings]
        _render_section(lines, "Warnings", warnings, chars)

    return "\n".join(lines)


def _render_section(
    lines: List[str],
    title: str,
    items: Sequence[Tuple[str, List[str]]],
    chars: Tuple[str, str, str, str],
) -> None:
    """Append a titled tree with one level of children per item."""
    if not items:
        return
    branch, last, vertical, space = chars
    lines.append("")
    lines.append(title)
    for i, (label, children) in enumerate(items):
        is_last = i == len(items) - 1
        lines.append(f"{last if is_last else branch}{label}")
        prefix = space if is_last else vertical
        for j, child in enumerate(children):
            connector = last if j == len(children) - 1 else branch
            lines.append(f"{prefix}{connector}{child}")


def registry_to_ascii(report: RegistryReport, root: Path, style: str = "tree") -> str:
    """Render a constants registry report as a text tree."""
    if style == "ascii":
        chars = (ASCII_BRANCH, ASCII_LAST, ASCII_VERTICAL, ASCII_SPACE)
    else:
        chars = (UNICODE_BRANCH, UNICODE_LAST, UNICODE_VERTICAL, UNICODE_SPACE)

    name = report.registry_class
    if report.has_registry:
        lines = [f"{name}: {display_path(report.file_path, root)}"]
    else:
        lines = [f"{name}: not found"]
    lines.append(f"Total keys found: {report.total_keys}")

    _render_section(lines, f"Static constants ({len(report.constants_found)})",
                    [(c, []) for c in report.constants_found], chars)
    _render_section(lines, f"Dynamic methods ({len(report.methods_found)})",
                    [(m, []) for m in report.methods_found], chars)
    _render_section(lines, f"Traditional string-based keys ({len(report.literal_keys)})",
                    [(k, []) for k in report.literal_keys], chars)
    _render_section(lines, f"Constant keys ({len(report.constant_keys)})",
                    [(k, []) for k in report.constant_keys], chars)
    _render_section(lines, f"Dynamic keys ({len(report.dynamic_keys)})",
                    [(k, []) for k in report.dynamic_keys], chars)
    _render_section(lines, f"Unresolved symbols ({len(report.unresolved_symbols)})",
                    [(s, []) for s in report.unresolved_symbols], chars)
    _render_section(lines, "Recommendations", [(r, []) for r in report.recommendations], chars)
    return "\n".join(lines)
