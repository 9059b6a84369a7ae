"""Constants registry report: what the registry holds and how keys are declared."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from keymap.model import ScanResult, UsageKind
from scanner.constants import DEFAULT_REGISTRY_CLASS


@dataclass
class RegistryReport:
    """
    Summary of the constants registry and of key declaration styles.

    Attributes:
        registry_class: Name of the registry class looked for.
        has_registry: Whether a registry file was found.
        file_path: Registry file, if found.
        constants_found: Static constant names declared in the registry.
        methods_found: Dynamic key generator names declared in the registry.
        literal_keys: Keys declared with a string literal.
        constant_keys: Keys reached through a resolved registry constant.
        dynamic_keys: Keys reached through a resolved dynamic generator.
        unresolved_symbols: Registry references with no registry entry.
        total_keys: Number of distinct keys found.
        recommendations: Suggestions derived from the counts above.
    """

    registry_class: str
    has_registry: bool
    file_path: Optional[Path] = None
    constants_found: List[str] = field(default_factory=list)
    methods_found: List[str] = field(default_factory=list)
    literal_keys: List[str] = field(default_factory=list)
    constant_keys: List[str] = field(default_factory=list)
    dynamic_keys: List[str] = field(default_factory=list)
    unresolved_symbols: List[str] = field(default_factory=list)
    total_keys: int = 0
    recommendations: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "registry_class": self.registry_class,
            "has_registry": self.has_registry,
            "file_path": str(self.file_path).replace("\\", "/") if self.file_path else None,
            "constants_found": self.constants_found,
            "methods_found": self.methods_found,
            "literal_keys": self.literal_keys,
            "constant_keys": self.constant_keys,
            "dynamic_keys": self.dynamic_keys,
            "unresolved_symbols": self.unresolved_symbols,
            "total_keys": self.total_keys,
            "recommendations": self.recommendations,
        }


def _recommend(report: RegistryReport) -> List[str]:
    tips: List[str] = []
    name = report.registry_class
    if not report.has_registry:
        tips.append(f"Consider creating a {name} class for better key management")
    elif not report.constants_found and not report.methods_found:
        tips.append(f"{name} class is empty; move shared keys into it")
    if report.has_registry and report.literal_keys:
        tips.append(
            f"Consider migrating {len(report.literal_keys)} traditional string-based "
            f"key(s) to {name}"
        )
    if report.unresolved_symbols:
        tips.append(
            f"Declare {len(report.unresolved_symbols)} unresolved symbol(s) in {name}: "
            + ", ".join(report.unresolved_symbols)
        )
    return tips


def registry_report(scan: ScanResult, registry_class: str = DEFAULT_REGISTRY_CLASS) -> RegistryReport:
    """
    Build the registry report for a finished scan.

    A key appears in every category it has at least one usage of, so a key
    declared both literally and through a constant is listed twice.
    """
    registry = scan.registry
    found = scan.found
    report = RegistryReport(
        registry_class=registry_class,
        has_registry=registry is not None and registry.found,
        file_path=registry.path if registry is not None else None,
        constants_found=sorted(registry.constants) if registry is not None else [],
        methods_found=sorted(registry.dynamic_methods) if registry is not None else [],
        literal_keys=sorted(found.by_kind(UsageKind.LITERAL) | found.by_kind(UsageKind.FINDER)),
        constant_keys=sorted(found.by_kind(UsageKind.RESOLVED_CONSTANT)),
        dynamic_keys=sorted(found.by_kind(UsageKind.RESOLVED_DYNAMIC)),
        unresolved_symbols=sorted(found.by_kind(UsageKind.UNRESOLVED)),
        total_keys=len(found),
    )
    report.recommendations = _recommend(report)
    return report
