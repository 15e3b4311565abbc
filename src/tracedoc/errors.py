"""
Error taxonomy for tracedoc.

All failures are programmer errors surfaced at registration or write time.
Reads never raise for missing structure; they yield None instead.
"""

__all__ = [
    "TraceDocError",
    "ChangeSetError",
    "KeyPathError",
    "InvalidKeyError",
    "ConfigError",
]


class TraceDocError(Exception):
    """Base class for all tracedoc errors."""
    pass


class ChangeSetError(TraceDocError, ValueError):
    """Malformed changeset entry (missing callback, missing path, bad tag)."""
    pass


class KeyPathError(TraceDocError, ValueError):
    """Path string that cannot be parsed into segments."""
    pass


class InvalidKeyError(TraceDocError, TypeError):
    """Document key that is neither a string nor a non-negative integer."""
    pass


class ConfigError(TraceDocError, ValueError):
    """Invalid framework configuration value."""
    pass
