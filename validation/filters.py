"""Include/exclude filtering of key sets and keyed maps."""

import re
from functools import lru_cache
from typing import Dict, Iterable, Mapping, Optional, Pattern, Sequence, Set, TypeVar

V = TypeVar("V")


@lru_cache(maxsize=512)
def _compile(pattern: str) -> Optional[Pattern]:
    try:
        return re.compile(pattern)
    except (re.error, OverflowError, RecursionError):
        return None


def pattern_matches(pattern: str, key: str) -> bool:
    """
    Match one pattern against a key.

    The pattern is first compiled as a regular expression and searched for
    anywhere in the key. If it is not a valid regex, it is treated as a
    case-sensitive substring instead.
    """
    compiled = _compile(pattern)
    if compiled is None:
        return pattern in key
    return compiled.search(key) is not None


def matches_any(key: str, patterns: Iterable[str]) -> bool:
    return any(pattern_matches(p, key) for p in patterns)


def is_selected(
    key: str,
    include_only: Optional[Sequence[str]] = None,
    exclude: Optional[Sequence[str]] = None,
) -> bool:
    """Include first (empty means everything), then exclude."""
    if include_only and not matches_any(key, include_only):
        return False
    if exclude and matches_any(key, exclude):
        return False
    return True


def filter_keys(
    keys: Iterable[str],
    include_only: Optional[Sequence[str]] = None,
    exclude: Optional[Sequence[str]] = None,
) -> Set[str]:
    """
    Filter a flat key set.

    Args:
        keys: Keys to filter.
        include_only: Keep only keys matching any of these patterns.
                      Empty or None keeps every key.
        exclude: Drop keys matching any of these patterns, applied after
                 ``include_only``.

    Returns:
        The filtered key set.
    """
    return {key for key in keys if is_selected(key, include_only, exclude)}


def filter_key_map(
    mapping: Mapping[str, V],
    include_only: Optional[Sequence[str]] = None,
    exclude: Optional[Sequence[str]] = None,
) -> Dict[str, V]:
    """Filter a keyed map on its keys, keeping values and key order."""
    return {
        key: value
        for key, value in mapping.items()
        if is_selected(key, include_only, exclude)
    }
