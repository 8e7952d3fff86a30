"""Domain errors raised by the storage layer.

Routes translate these into HTTP responses; the ingestion path catches and
logs them instead.
"""


class LogRelayError(Exception):
    pass


class StoreError(LogRelayError):
    """The live buffer document could not be read or written."""


class StoreCorruptError(StoreError):
    """The live buffer document exists but does not hold a JSON array."""


class ArchiveError(LogRelayError):
    """An archive snapshot could not be written, listed or removed."""


class InvalidArchiveName(ArchiveError):
    """The name does not resolve to a file directly inside the archive directory."""


class ArchiveNotFound(ArchiveError):
    pass


class NoLogProvided(LogRelayError):
    """A submission carried no usable ``log`` value."""
