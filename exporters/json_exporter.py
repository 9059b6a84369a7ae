"""JSON exporter for check outcomes (machine-friendly format)."""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

from scanner.constants import DEFAULT_REGISTRY_CLASS
from validation.insights import registry_report
from validation.pipeline import CheckOutcome
from .common import display_path, usage_dict


def to_dict(outcome: CheckOutcome, base: Optional[Path] = None, registry_class: Optional[str] = None) -> Dict[str, Any]:
    """
    Build the JSON-ready report structure.

    Top-level sections: ``result`` (validation verdict and key diff),
    ``keys`` (key -> usage list), ``registry`` and ``scan`` statistics.
    """
    root = outcome.scan.root
    keys: Dict[str, List[Dict[str, Any]]] = {
        key: [usage_dict(u, root, base) for u in outcome.found.usages(key)]
        for key in sorted(outcome.found)
    }
    report = registry_report(outcome.scan, registry_class or DEFAULT_REGISTRY_CLASS)
    registry = report.to_dict()
    if report.file_path is not None:
        registry["file_path"] = display_path(report.file_path, root, base)
    return {
        "result": outcome.result.to_dict(),
        "keys": keys,
        "registry": registry,
        "scan": {
            "root": str(root).replace("\\", "/"),
            "files_scanned": len(outcome.scan.scanned_files),
            "cache_hits": outcome.scan.cache_hits,
            "extra_registries": [display_path(p, root, base) for p in outcome.scan.extra_registries],
        },
    }


def to_json(
    outcome: CheckOutcome,
    base: Optional[Path] = None,
    indent: int = 2,
    registry_class: Optional[str] = None,
) -> str:
    """
    Convert a check outcome to JSON.

    Args:
        outcome: Result of a ``check_project`` run.
        base: Optional base path for relative path display.
        indent: JSON indentation level.
        registry_class: Registry class name shown in the registry section.

    Returns:
        JSON string.
    """
    return json.dumps(to_dict(outcome, base, registry_class), indent=indent)
