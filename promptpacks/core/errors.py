# promptpacks/core/errors.py
from __future__ import annotations

__all__ = [
    "PackSystemError",
    "TransientNetworkError",
    "IntegrityError",
    "ArtifactTooLargeError",
    "MalformedPackError",
    "MalformedIndexError",
    "MalformedIndexEntryError",
    "ConfigurationError",
    "InstallError",
]



class PackSystemError(Exception):
    """Base class for every error raised inside the pack subsystem."""
    pass



class TransientNetworkError(PackSystemError):
    """
    Index or artifact fetch failed. Aborts the current step only; retried on the
    next scheduled or triggered cycle, never within the same cycle.
    """
    def __init__(self, message: str, *, url: str | None = None, status: int | None = None) -> None:
        super().__init__(message)
        self.url = url
        self.status = status



class IntegrityError(PackSystemError):
    """Hash or signature mismatch. The artifact is rejected, previous good version stays."""
    pass



class ArtifactTooLargeError(IntegrityError):
    """Artifact exceeded the configured size ceiling."""
    def __init__(self, message: str, *, limit: int) -> None:
        super().__init__(message)
        self.limit = limit



class MalformedPackError(PackSystemError):
    """Pack body failed to parse or does not match the pack schema."""
    def __init__(self, message: str, *, source: str | None = None) -> None:
        super().__init__(message)
        self.source = source



class MalformedIndexError(MalformedPackError):
    """Remote index is not a JSON object with the expected collections."""
    pass



class MalformedIndexEntryError(MalformedPackError):
    """A single index entry has a bad name, hash, or URL."""
    pass



class ConfigurationError(PackSystemError):
    """Invalid settings or an unusable trust-key override in strict mode."""
    pass



class InstallError(PackSystemError):
    """Filesystem failure while moving a verified artifact pair into place."""
    pass
