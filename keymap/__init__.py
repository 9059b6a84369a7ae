"""Domain model for automation keys."""

from .errors import KeycheckError, ConfigurationError, CacheError
from .model import KeyUsage, UsageKind, FoundKeysMap, ScanWarning, ScanResult

__all__ = [
    "KeycheckError",
    "ConfigurationError",
    "CacheError",
    "KeyUsage",
    "UsageKind",
    "FoundKeysMap",
    "ScanWarning",
    "ScanResult",
]
