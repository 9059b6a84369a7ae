"""Error taxonomy for key scanning and validation."""


class KeycheckError(Exception):
    """Base class for all keycheck errors."""


class ConfigurationError(KeycheckError):
    """
    Raised when the run cannot start.

    Covers a missing or malformed expected-key source, an unreadable config
    file, and invalid policy options (e.g. progressive mode without a
    baseline). Always fatal: no validation result is produced.
    """


class CacheError(KeycheckError):
    """Raised internally when a cache entry cannot be read or decoded."""
