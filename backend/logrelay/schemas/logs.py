from typing import Any

from pydantic import BaseModel, ConfigDict


class LogSubmission(BaseModel):
    model_config = ConfigDict(extra="allow")

    log: Any = None


class LogAck(BaseModel):
    message: str
    archived: str | None = None  # only present when the sentinel fired


class ArchiveDeleted(BaseModel):
    ok: bool = True
    deleted: str


class ArchivesCleared(BaseModel):
    ok: bool = True
    deleted: list[str]
