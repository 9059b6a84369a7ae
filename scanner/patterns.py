"""
Pattern scanner for automation key usages in Dart source.

The scanner works on raw text with tolerant regular expressions rather than
a grammar-level parser. Each recognized call-site shape is a ``KeyShape``:
a tag from ``ShapeKind`` plus the regex that finds it. Shapes live in a
plain list, so callers can append their own without touching the
extraction or resolution code.
"""

import bisect
import heapq
import logging
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional, Pattern, Sequence, Tuple

from keymap.model import KeyUsage, UsageKind
from .constants import ConstantsRegistry, DEFAULT_REGISTRY_CLASS

logger = logging.getLogger(__name__)


DEFAULT_KEY_WRAPPERS = ("Key", "ValueKey")
FINDER_KINDS = ("ValueKey", "SemanticsLabel", "Tooltip")

# Single- or double-quoted literal; an escaped quote does not terminate it.
STRING_LITERAL = r"""(?:'(?P<sq>(?:[^'\\\n]|\\.)*)'|"(?P<dq>(?:[^"\\\n]|\\.)*)")"""
IDENTIFIER = r"[A-Za-z_$][\w$]*"
MODIFIER = r"(?:\b(?:const|new)\s+)?"
ARGUMENT_END = r"(?=\s*[,)])"


class ShapeKind(str, Enum):
    """Syntactic shapes that declare or reference a key."""

    LITERAL_KEY = "literal-key"
    TEST_FINDER = "test-finder"
    CONSTANT_REFERENCE = "constant-reference"
    DYNAMIC_CALL = "dynamic-call"


@dataclass(frozen=True)
class RawMatch:
    """
    An unresolved key candidate found in one file.

    ``text`` is the literal's inner text for literal shapes and the registry
    member name for symbolic shapes.
    """

    shape: ShapeKind
    text: str
    line: int
    column: int
    raw: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "shape": self.shape.value,
            "text": self.text,
            "line": self.line,
            "column": self.column,
            "raw": self.raw,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RawMatch":
        return cls(
            shape=ShapeKind(data["shape"]),
            text=str(data["text"]),
            line=int(data["line"]),
            column=int(data["column"]),
            raw=str(data["raw"]),
        )


@dataclass(frozen=True)
class KeyShape:
    """A recognized call-site shape and the regex that extracts it."""

    kind: ShapeKind
    regex: Pattern

    def extract(self, match) -> str:
        groups = match.groupdict()
        if groups.get("name") is not None:
            return groups["name"]
        if groups.get("sq") is not None:
            return groups["sq"]
        return groups.get("dq") or ""


def _alternation(names: Sequence[str]) -> str:
    # Longest first so 'ValueKey' wins over 'Key' at the same position.
    return "|".join(re.escape(n) for n in sorted(set(names), key=len, reverse=True))


def build_shapes(
    wrappers: Sequence[str] = DEFAULT_KEY_WRAPPERS,
    registry_class: str = DEFAULT_REGISTRY_CLASS,
) -> List[KeyShape]:
    """
    Build the default shape list.

    Args:
        wrappers: Call names that wrap a key (e.g. ``Key``, ``ValueKey``).
        registry_class: Name of the constants registry class.

    Returns:
        One ``KeyShape`` per ``ShapeKind``, in scan priority order.
    """
    wrapper_call = (
        MODIFIER
        + r"(?<![\w$.])(?:" + _alternation(wrappers) + r")"
        + r"\s*(?:<[^<>()]*>\s*)?\(\s*"
    )
    finder_call = (
        r"(?<![\w$.])find\s*\.\s*by(?:" + _alternation(FINDER_KINDS) + r")\s*\(\s*"
    )
    registry = re.escape(registry_class)

    return [
        KeyShape(
            ShapeKind.LITERAL_KEY,
            re.compile(wrapper_call + STRING_LITERAL + ARGUMENT_END),
        ),
        KeyShape(
            ShapeKind.TEST_FINDER,
            re.compile(finder_call + STRING_LITERAL + ARGUMENT_END),
        ),
        KeyShape(
            ShapeKind.CONSTANT_REFERENCE,
            re.compile(
                r"(?:" + wrapper_call + r"|" + finder_call + r")"
                + registry + r"\s*\.\s*(?P<name>" + IDENTIFIER + r")" + ARGUMENT_END
            ),
        ),
        KeyShape(
            ShapeKind.DYNAMIC_CALL,
            re.compile(
                r"(?<![\w$.])" + registry
                + r"\s*\.\s*(?P<name>" + IDENTIFIER + r"Key)\s*\("
            ),
        ),
    ]


def _literal_rule(kind: UsageKind) -> Callable[[RawMatch, ConstantsRegistry], Tuple[str, UsageKind]]:
    def rule(match: RawMatch, registry: ConstantsRegistry) -> Tuple[str, UsageKind]:
        return match.text, kind
    return rule


def _constant_rule(match: RawMatch, registry: ConstantsRegistry) -> Tuple[str, UsageKind]:
    value = registry.resolve_constant(match.text)
    if value is None:
        return match.text, UsageKind.UNRESOLVED
    return value, UsageKind.RESOLVED_CONSTANT


def _dynamic_rule(match: RawMatch, registry: ConstantsRegistry) -> Tuple[str, UsageKind]:
    prefix = registry.resolve_dynamic(match.text)
    if prefix is None:
        return match.text, UsageKind.UNRESOLVED
    return prefix, UsageKind.RESOLVED_DYNAMIC


RESOLUTION_RULES: Dict[ShapeKind, Callable[[RawMatch, ConstantsRegistry], Tuple[str, UsageKind]]] = {
    ShapeKind.LITERAL_KEY: _literal_rule(UsageKind.LITERAL),
    ShapeKind.TEST_FINDER: _literal_rule(UsageKind.FINDER),
    ShapeKind.CONSTANT_REFERENCE: _constant_rule,
    ShapeKind.DYNAMIC_CALL: _dynamic_rule,
}

SYMBOLIC_SHAPES = frozenset({ShapeKind.CONSTANT_REFERENCE, ShapeKind.DYNAMIC_CALL})


class PatternScanner:
    """
    Extracts key usages from file text.

    The scanner holds configuration only (shapes and registry); nothing is
    retained between calls, so scanning the same text twice gives the same
    result.
    """

    def __init__(
        self,
        shapes: Optional[List[KeyShape]] = None,
        registry: Optional[ConstantsRegistry] = None,
    ):
        self.shapes: List[KeyShape] = list(shapes) if shapes is not None else build_shapes()
        self.registry = registry if registry is not None else ConstantsRegistry.empty()

    def register(self, shape: KeyShape) -> None:
        """Add a shape; it is tried after the existing ones."""
        self.shapes.append(shape)

    def extract(self, text: str) -> Iterator[RawMatch]:
        """
        Lazily yield raw key candidates in source order.

        Unmatched regions are skipped; a failed match never stops the scan.
        """
        line_starts = _line_starts(text)

        def _iter_shape(priority: int, shape: KeyShape) -> Iterator[Tuple[int, int, RawMatch]]:
            for match in shape.regex.finditer(text):
                offset = match.start()
                line = bisect.bisect_right(line_starts, offset)
                column = offset - line_starts[line - 1] + 1
                yield offset, priority, RawMatch(
                    shape=shape.kind,
                    text=shape.extract(match),
                    line=line,
                    column=column,
                    raw=match.group(0),
                )

        streams = [_iter_shape(i, shape) for i, shape in enumerate(self.shapes)]
        for _, _, raw_match in heapq.merge(*streams, key=lambda item: (item[0], item[1])):
            yield raw_match

    def resolve(self, match: RawMatch, path: Path) -> KeyUsage:
        """Turn a raw candidate into a ``KeyUsage`` using the registry."""
        rule = RESOLUTION_RULES[match.shape]
        value, kind = rule(match, self.registry)
        if kind is UsageKind.UNRESOLVED:
            logger.debug("%s:%d: no registry entry for %s, using name as key", path, match.line, match.text)
        symbol = match.text if match.shape in SYMBOLIC_SHAPES else None
        return KeyUsage(
            value=value,
            kind=kind,
            path=path,
            line=match.line,
            column=match.column,
            raw=match.raw,
            symbol=symbol,
        )

    def scan(self, text: str, path: Path) -> Iterator[KeyUsage]:
        """Lazily yield resolved key usages for one file's text."""
        for match in self.extract(text):
            yield self.resolve(match, path)


def _line_starts(text: str) -> List[int]:
    starts = [0]
    for match in re.finditer(r"\n", text):
        starts.append(match.end())
    return starts
