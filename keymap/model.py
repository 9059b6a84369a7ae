"""Data model for discovered automation keys and their usage locations."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, Iterable, Iterator, List, Mapping, Optional, Set

if TYPE_CHECKING:
    from scanner.constants import ConstantsRegistry


class UsageKind(str, Enum):
    """How a key usage was declared in source."""

    LITERAL = "literal-declaration"
    FINDER = "test-finder"
    RESOLVED_CONSTANT = "resolved-constant"
    RESOLVED_DYNAMIC = "resolved-dynamic"
    UNRESOLVED = "unresolved-symbolic"


@dataclass(frozen=True)
class KeyUsage:
    """
    A single occurrence of an automation key in a source file.

    Attributes:
        value: Canonical key string.
        kind: How the key was declared.
        path: File containing the occurrence.
        line: 1-based line number.
        column: 1-based column number.
        raw: The matched source text.
        symbol: Registry member name for symbolic references, else None.
    """

    value: str
    kind: UsageKind
    path: Path
    line: int
    column: int
    raw: str = ""
    symbol: Optional[str] = None

    @property
    def is_symbolic(self) -> bool:
        return self.kind in (
            UsageKind.RESOLVED_CONSTANT,
            UsageKind.RESOLVED_DYNAMIC,
            UsageKind.UNRESOLVED,
        )

    @property
    def location(self) -> str:
        """Return 'path:line:column'."""
        return f"{self.path}:{self.line}:{self.column}"

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "key": self.value,
            "kind": self.kind.value,
            "file": str(self.path).replace("\\", "/"),
            "line": self.line,
            "column": self.column,
            "raw": self.raw,
        }
        if self.symbol is not None:
            data["symbol"] = self.symbol
        return data


@dataclass(frozen=True)
class ScanWarning:
    """A non-fatal problem scoped to one file."""

    path: Path
    message: str

    def __str__(self) -> str:
        return f"{self.path}: {self.message}"


class FoundKeysMap:
    """
    Canonical key -> ordered list of usage locations.

    Usages are appended in the order they are added and never deduplicated,
    so a key used twice in one file has two entries.
    """

    def __init__(self):
        self._usages: Dict[str, List[KeyUsage]] = {}

    @classmethod
    def from_usages(cls, usages: Iterable[KeyUsage]) -> "FoundKeysMap":
        found = cls()
        for usage in usages:
            found.add(usage)
        return found

    @classmethod
    def from_paths(cls, mapping: Mapping[str, Iterable[Any]]) -> "FoundKeysMap":
        """
        Build a map from plain ``key -> [file paths]`` data.

        Each path becomes a literal usage without position information.
        """
        found = cls()
        for key, paths in mapping.items():
            found._usages.setdefault(key, [])
            for path in paths:
                found.add(KeyUsage(key, UsageKind.LITERAL, Path(path), 0, 0))
        return found

    @property
    def keys(self) -> Set[str]:
        """Return all canonical keys."""
        return set(self._usages)

    def add(self, usage: KeyUsage) -> None:
        self._usages.setdefault(usage.value, []).append(usage)

    def usages(self, key: str) -> List[KeyUsage]:
        """Get all usages of a key (empty list if unknown)."""
        return list(self._usages.get(key, []))

    def paths(self, key: str) -> List[Path]:
        """Get the file of each usage of a key, in usage order."""
        return [usage.path for usage in self._usages.get(key, [])]

    def count(self, key: str) -> int:
        return len(self._usages.get(key, []))

    def usage_counts(self) -> Dict[str, int]:
        return {key: len(usages) for key, usages in self._usages.items()}

    def restrict(self, keys: Iterable[str]) -> "FoundKeysMap":
        """Return a new map holding only the given keys, with their usages."""
        wanted = set(keys)
        restricted = FoundKeysMap()
        for key, usages in self._usages.items():
            if key in wanted:
                restricted._usages[key] = list(usages)
        return restricted

    def iter_usages(self) -> Iterator[KeyUsage]:
        """Iterate over every usage of every key."""
        for usages in self._usages.values():
            yield from usages

    def by_kind(self, kind: UsageKind) -> Set[str]:
        """Get keys with at least one usage of the given kind."""
        return {
            key
            for key, usages in self._usages.items()
            if any(usage.kind is kind for usage in usages)
        }

    def as_path_map(self) -> Dict[str, List[str]]:
        """Return ``key -> [file path strings]`` in usage order."""
        return {
            key: [str(usage.path).replace("\\", "/") for usage in usages]
            for key, usages in self._usages.items()
        }

    def __iter__(self) -> Iterator[str]:
        return iter(self._usages)

    def __len__(self) -> int:
        return len(self._usages)

    def __contains__(self, key: object) -> bool:
        return key in self._usages

    def __repr__(self) -> str:
        total = sum(len(u) for u in self._usages.values())
        return f"FoundKeysMap(keys={len(self._usages)}, usages={total})"


@dataclass
class ScanResult:
    """
    Everything one project scan produced.

    Attributes:
        root: Project root that was scanned.
        found: Aggregated key -> usages map.
        scanned_files: Files whose text was scanned for usages.
        warnings: Per-file problems; the scan continued past each of them.
        registry: The constants registry used for resolution.
        extra_registries: Registry candidates that lost the tie-break.
        cache_hits: Number of files served from the scan cache.
    """

    root: Path
    found: FoundKeysMap = field(default_factory=FoundKeysMap)
    scanned_files: List[Path] = field(default_factory=list)
    warnings: List[ScanWarning] = field(default_factory=list)
    registry: Optional["ConstantsRegistry"] = None
    extra_registries: List[Path] = field(default_factory=list)
    cache_hits: int = 0

    @property
    def fallbacks(self) -> List[KeyUsage]:
        """Symbolic usages that had no registry entry."""
        return [u for u in self.found.iter_usages() if u.kind is UsageKind.UNRESOLVED]
