"""Log ingestion and live buffer endpoints.

POST /log        — submit a record: {"log": "<text>"}
GET  /logs/data  — current live buffer (re-read from disk first)

The submission body is read leniently: a missing body, a non-JSON content
type, malformed JSON, or a JSON value that is not an object all count as
"no log provided" and get the same 400 as an empty ``log`` field.
"""

import json
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request, status

from logrelay.dependencies import get_engine
from logrelay.errors import NoLogProvided
from logrelay.ingest import IngestionEngine
from logrelay.schemas import LogAck, LogSubmission

router = APIRouter(tags=["logs"])

RECEIVED = "Log received"
RECEIVED_AND_ARCHIVED = "Log received and archived (shutdown detected)"


async def _read_submission(request: Request) -> LogSubmission:
    if "json" not in request.headers.get("content-type", ""):
        return LogSubmission()
    try:
        payload = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return LogSubmission()
    if not isinstance(payload, dict):
        return LogSubmission()
    return LogSubmission.model_validate(payload)


@router.post(
    "/log",
    response_model=LogAck,
    response_model_exclude_unset=True,
    openapi_extra={
        "requestBody": {
            "content": {"application/json": {"schema": LogSubmission.model_json_schema()}},
        }
    },
)
async def submit_log(
    body: LogSubmission = Depends(_read_submission),
    engine: IngestionEngine = Depends(get_engine),
) -> LogAck:
    try:
        result = await engine.submit(body.log)
    except NoLogProvided as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))

    if result.sentinel:
        return LogAck(message=RECEIVED_AND_ARCHIVED, archived=result.archived)
    return LogAck(message=RECEIVED)


@router.get("/logs/data")
async def get_log_data(engine: IngestionEngine = Depends(get_engine)) -> list[Any]:
    """Return the live buffer, oldest first."""
    return await engine.reload()
