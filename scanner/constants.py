"""Constants registry discovery and symbol extraction."""

import logging
import re
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

logger = logging.getLogger(__name__)


DEFAULT_REGISTRY_CLASS = "KeyConstants"

_IDENTIFIER = r"[A-Za-z_$][\w$]*"
# Matched against blanked code: quotes survive, literal contents are spaces.
_LITERAL_SPAN = r"""[rR]?(?P<literal>'[^'\n]*'|"[^"\n]*")"""

STATIC_ASSIGNMENT = re.compile(
    r"(?<![\w$.])(?P<name>" + _IDENTIFIER + r")\s*=\s*" + _LITERAL_SPAN + r"\s*[;,]"
)
DYNAMIC_DECLARATION = re.compile(
    r"(?<![\w$.])(?P<name>" + _IDENTIFIER + r"Key)\s*\([^()]*\)\s*(?P<body>=>|\{)"
)
LITERAL = re.compile(_LITERAL_SPAN)
RETURN_STATEMENT = re.compile(r"(?<![\w$])return\b")


class ConstantsRegistry:
    """
    Symbol table built from the constants registry file.

    Holds ``name -> literal`` for static constants and
    ``method name -> literal prefix`` for dynamic key generators. Lookups
    never modify the table.
    """

    def __init__(
        self,
        path: Optional[Path] = None,
        constants: Optional[Dict[str, str]] = None,
        dynamic_methods: Optional[Dict[str, str]] = None,
        shadowed: Optional[List[Path]] = None,
    ):
        self._path = path
        self._constants: Dict[str, str] = dict(constants or {})
        self._dynamic: Dict[str, str] = dict(dynamic_methods or {})
        self._shadowed: List[Path] = list(shadowed or [])

    @classmethod
    def empty(cls) -> "ConstantsRegistry":
        return cls()

    @property
    def path(self) -> Optional[Path]:
        """File the registry was read from, or None if none was found."""
        return self._path

    @property
    def found(self) -> bool:
        return self._path is not None

    @property
    def constants(self) -> Dict[str, str]:
        return dict(self._constants)

    @property
    def dynamic_methods(self) -> Dict[str, str]:
        return dict(self._dynamic)

    @property
    def shadowed(self) -> List[Path]:
        """Other files declaring the registry class that lost the tie-break."""
        return list(self._shadowed)

    def resolve_constant(self, name: str) -> Optional[str]:
        return self._constants.get(name)

    def resolve_dynamic(self, method_name: str) -> Optional[str]:
        return self._dynamic.get(method_name)

    def is_empty(self) -> bool:
        return not self._constants and not self._dynamic

    def __repr__(self) -> str:
        return (
            f"ConstantsRegistry(path={self._path}, constants={len(self._constants)}, "
            f"dynamic={len(self._dynamic)})"
        )


def _is_identifier_char(ch: str) -> bool:
    return ch.isalnum() or ch in "_$"


def _blank_strings_and_comments(text: str) -> str:
    """
    Replace string contents and comments with spaces, keeping offsets.

    Braces inside literals (e.g. ``'${id}'``) then no longer affect brace
    matching. Quote characters and raw-string prefixes are kept so literal
    spans can still be located. Triple-quoted strings may span lines; raw
    strings (``r'...'``) have no escapes.
    """
    out = list(text)
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        raw = (
            ch in "rR"
            and i + 1 < n
            and text[i + 1] in "'\""
            and (i == 0 or not _is_identifier_char(text[i - 1]))
        )
        if ch == "/" and i + 1 < n and text[i + 1] == "/":
            end = text.find("\n", i)
            end = n if end == -1 else end
            for j in range(i, end):
                out[j] = " "
            i = end
        elif ch == "/" and i + 1 < n and text[i + 1] == "*":
            end = text.find("*/", i + 2)
            end = n if end == -1 else end + 2
            for j in range(i, end):
                if out[j] != "\n":
                    out[j] = " "
            i = end
        elif ch in ("'", '"') or raw:
            start = i + 1 if raw else i
            quote = text[start]
            delimiter = quote * 3 if text.startswith(quote * 3, start) else quote
            j = start + len(delimiter)
            while j < n and not text.startswith(delimiter, j):
                if text[j] == "\n":
                    if len(delimiter) == 1:
                        break
                    j += 1
                    continue
                if text[j] == "\\" and not raw:
                    out[j] = " "
                    j += 1
                    if j < n and text[j] != "\n":
                        out[j] = " "
                        j += 1
                    continue
                out[j] = " "
                j += 1
            i = j + len(delimiter) if text.startswith(delimiter, j) else j + 1
        else:
            i += 1
    return "".join(out)


def has_registry_class(text: str, class_name: str = DEFAULT_REGISTRY_CLASS) -> bool:
    """Check whether text declares the registry class outside comments."""
    return _class_marker(class_name).search(_blank_strings_and_comments(text)) is not None


def _class_marker(class_name: str):
    return re.compile(r"\bclass\s+" + re.escape(class_name) + r"\b")


def _matching_brace(code: str, start: int) -> int:
    """Return the offset of the brace closing the one at ``start``."""
    depth = 0
    for i in range(start, len(code)):
        if code[i] == "{":
            depth += 1
        elif code[i] == "}":
            depth -= 1
            if depth == 0:
                return i
    return len(code)


def _class_bounds(code: str, class_name: str) -> Optional[Tuple[int, int]]:
    """Return (open, close) brace offsets of the registry class body."""
    marker = _class_marker(class_name).search(code)
    if marker is None:
        return None
    start = code.find("{", marker.end())
    if start == -1:
        return None
    return start, _matching_brace(code, start)


def interpolation_prefix(literal: str) -> str:
    """Return the part of a Dart string literal before its first unescaped '$'."""
    i = 0
    while i < len(literal):
        if literal[i] == "\\":
            i += 2
            continue
        if literal[i] == "$":
            return literal[:i]
        i += 1
    return literal


def parse_registry(
    text: str,
    class_name: str = DEFAULT_REGISTRY_CLASS,
    path: Optional[Path] = None,
) -> ConstantsRegistry:
    """
    Extract constants and dynamic key generators from registry source.

    Static constants are ``name = 'literal';`` members declared directly in
    the class body. Dynamic generators are ``*Key(...)`` members whose body
    builds a string; only the literal text before the first interpolation is
    kept.

    Args:
        text: Registry file content.
        class_name: Registry class name.
        path: File the text came from.

    Returns:
        The populated registry (empty tables if the class is not declared).
    """
    code = _blank_strings_and_comments(text)
    bounds = _class_bounds(code, class_name)
    if bounds is None:
        return ConstantsRegistry(path=path)
    open_brace, close_brace = bounds

    # Depth relative to the class body: 0 for members, >0 inside methods.
    member_level = []
    depth = 0
    for i in range(open_brace + 1, close_brace):
        if code[i] == "{":
            depth += 1
        member_level.append(depth == 0 and code[i] != "}")
        if code[i] == "}":
            depth -= 1

    body = text[open_brace + 1:close_brace]
    body_code = code[open_brace + 1:close_brace]
    members = "".join(ch if keep else " " for ch, keep in zip(body_code, member_level))

    constants: Dict[str, str] = {}
    for match in STATIC_ASSIGNMENT.finditer(members):
        constants[match.group("name")] = _literal_value(body, match)

    dynamic_methods: Dict[str, str] = {}
    for match in DYNAMIC_DECLARATION.finditer(body_code):
        if not member_level[match.start()]:
            continue
        literal = _returned_literal(body_code, match)
        if literal is None:
            continue
        prefix = interpolation_prefix(_literal_value(body, literal))
        if prefix:
            dynamic_methods[match.group("name")] = prefix

    return ConstantsRegistry(path=path, constants=constants, dynamic_methods=dynamic_methods)


def _literal_value(text: str, match) -> str:
    """Read a literal's contents from source at the span found in blanked code."""
    start, end = match.span("literal")
    return text[start + 1:end - 1]


def _returned_literal(code: str, declaration):
    """
    Locate the first literal of the expression a generator returns.

    Arrow bodies use the expression after ``=>``; block bodies use the first
    ``return`` statement inside the method.
    """
    start = declaration.end()
    if declaration.group("body") == "=>":
        end = code.find(";", start)
        end = len(code) if end == -1 else end
    else:
        close = _matching_brace(code, start - 1)
        statement = RETURN_STATEMENT.search(code, start, close)
        if statement is None:
            return None
        start = statement.end()
        end = code.find(";", start, close)
        end = close if end == -1 else end
    return LITERAL.search(code, start, end)


def _tie_break_key(path: Path, root: Optional[Path]) -> Tuple[int, str]:
    rel = path
    if root is not None:
        try:
            rel = path.resolve().relative_to(root.resolve())
        except ValueError:
            pass
    return len(rel.parts), rel.as_posix()


def find_registry_candidates(
    files: Iterable[Path],
    class_name: str = DEFAULT_REGISTRY_CLASS,
    root: Optional[Path] = None,
) -> List[Tuple[Path, str]]:
    """
    Find every file declaring the registry class.

    Returns:
        ``(path, text)`` pairs, shallowest path first, then alphabetical.
    """
    candidates: List[Tuple[Path, str]] = []
    for file_path in files:
        try:
            text = file_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError):
            continue
        if class_name not in text:
            continue
        if has_registry_class(text, class_name):
            candidates.append((file_path, text))
    candidates.sort(key=lambda item: _tie_break_key(item[0], root))
    return candidates


def build_registry(
    files: Iterable[Path],
    class_name: str = DEFAULT_REGISTRY_CLASS,
    root: Optional[Path] = None,
) -> ConstantsRegistry:
    """
    Locate the registry file among ``files`` and build its symbol table.

    If several files declare the class, the shallowest (then
    alphabetically first) wins and the rest are recorded as shadowed.
    """
    candidates = find_registry_candidates(files, class_name, root)
    if not candidates:
        logger.debug("No %s class found; symbolic keys resolve to their names", class_name)
        return ConstantsRegistry.empty()

    path, text = candidates[0]
    shadowed = [p for p, _ in candidates[1:]]
    if shadowed:
        logger.warning(
            "Found %d files declaring %s; using %s",
            len(candidates), class_name, path,
        )

    registry = parse_registry(text, class_name, path)
    logger.info(
        "Loaded %s from %s (%d constants, %d dynamic methods)",
        class_name, path, len(registry.constants), len(registry.dynamic_methods),
    )
    return ConstantsRegistry(
        path=path,
        constants=registry.constants,
        dynamic_methods=registry.dynamic_methods,
        shadowed=shadowed,
    )
