"""
Exception types shared across tkan.

Geometry and reorder code never raise: invalid input there yields a
"no effect" result. Only the persistence path (backends) raises, and only
startup treats a LoadError as fatal.
"""


class TkanError(Exception):
    """Base class for all tkan errors."""
    pass


class ConfigError(TkanError):
    """Raised when an explicitly requested config file cannot be used."""
    pass


class LoadError(TkanError):
    """Raised when a board source is missing, unreadable, or malformed."""
    pass


class PersistenceError(TkanError):
    """A save or remote update failed after the in-memory change was made."""
    pass


class SaveError(PersistenceError):
    """Raised when a full-board save fails."""
    pass


class RemoteError(PersistenceError):
    """Raised when a remote backend rejects or cannot receive an update."""
    pass
