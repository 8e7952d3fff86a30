from logrelay.schemas.logs import (
    ArchiveDeleted,
    ArchivesCleared,
    LogAck,
    LogSubmission,
)

__all__ = [
    "LogSubmission",
    "LogAck",
    "ArchiveDeleted",
    "ArchivesCleared",
]
