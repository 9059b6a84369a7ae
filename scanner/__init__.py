"""Scanner module for file discovery, key extraction and symbol resolution."""

from .discovery import iter_files
from .patterns import PatternScanner, ShapeKind, KeyShape, RawMatch, build_shapes
from .constants import ConstantsRegistry, build_registry, parse_registry
from .cache import ScanCache, file_fingerprint
from .builder import build_key_map

__all__ = [
    "iter_files",
    "PatternScanner",
    "ShapeKind",
    "KeyShape",
    "RawMatch",
    "build_shapes",
    "ConstantsRegistry",
    "build_registry",
    "parse_registry",
    "ScanCache",
    "file_fingerprint",
    "build_key_map",
]
