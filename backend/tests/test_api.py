import pytest
from fastapi import FastAPI
from httpx import AsyncClient

from logrelay.errors import ArchiveError

pytestmark = pytest.mark.asyncio

LOG = "/log"
DATA = "/logs/data"
ARCHIVES = "/logs/archives"
CLEAR = "/logs/archives/clear"
DOWNLOAD = "/logs/download"

SHUTDOWN_MESSAGE = "Log received and archived (shutdown detected)"


# ── Helpers ───────────────────────────────────────────────────────────────────


async def _submit(client: AsyncClient, text) -> dict:
    resp = await client.post(LOG, json={"log": text})
    assert resp.status_code == 200, resp.text
    return resp.json()


async def _archive(client: AsyncClient, *lines: str) -> str:
    for line in lines:
        await _submit(client, line)
    body = await _submit(client, "shutdown")
    assert body["archived"]
    return body["archived"]


# ── Ingestion ─────────────────────────────────────────────────────────────────


async def test_submit_log(client: AsyncClient):
    body = await _submit(client, "hello")
    assert body == {"message": "Log received"}


async def test_submissions_are_returned_in_order(client: AsyncClient):
    for i in range(5):
        await _submit(client, f"line {i}")

    resp = await client.get(DATA)
    assert resp.status_code == 200
    assert resp.json() == [f"line {i}" for i in range(5)]


@pytest.mark.parametrize("payload", [{"log": ""}, {"log": None}, {"log": 0}, {"log": False}, {}, {"msg": "x"}])
async def test_submit_without_log_is_rejected(client: AsyncClient, payload: dict):
    await _submit(client, "existing")

    resp = await client.post(LOG, json=payload)

    assert resp.status_code == 400
    assert resp.json() == {"error": "No log provided"}
    assert (await client.get(DATA)).json() == ["existing"]


@pytest.mark.parametrize(
    "kwargs",
    [
        {},
        {"json": ["not", "an", "object"]},
        {"json": "shutdown"},
        {"content": b"{not json", "headers": {"content-type": "application/json"}},
        {"content": b'{"log": "x"}', "headers": {"content-type": "text/plain"}},
        {"content": b"plain text", "headers": {"content-type": "text/plain"}},
    ],
    ids=["no-body", "array", "string", "malformed", "text-json", "text"],
)
async def test_unusable_body_is_rejected(client: AsyncClient, kwargs: dict):
    resp = await client.post(LOG, **kwargs)

    assert resp.status_code == 400
    assert resp.json() == {"error": "No log provided"}
    assert (await client.get(DATA)).json() == []


async def test_data_is_idempotent(client: AsyncClient):
    await _submit(client, "a")
    first = (await client.get(DATA)).json()
    second = (await client.get(DATA)).json()
    assert first == second == ["a"]


async def test_data_reloads_from_disk(client: AsyncClient, app: FastAPI):
    await _submit(client, "a")
    app.state.engine.store.save(["replaced"])
    assert (await client.get(DATA)).json() == ["replaced"]


# ── Shutdown sentinel ─────────────────────────────────────────────────────────


@pytest.mark.parametrize("text", ["SHUTDOWN", "Shutdown", "graceful shutdown complete"])
async def test_shutdown_archives_buffer(client: AsyncClient, text: str):
    await _submit(client, "boot")
    await _submit(client, "working")

    body = await _submit(client, text)

    assert body["message"] == SHUTDOWN_MESSAGE
    name = body["archived"]
    assert name.startswith("logs-") and name.endswith(".json")

    assert (await client.get(DATA)).json() == []
    assert (await client.get(ARCHIVES)).json() == [name]

    resp = await client.get(f"{DOWNLOAD}/{name}")
    assert resp.status_code == 200
    assert resp.json() == ["boot", "working", text]


async def test_logs_after_shutdown_start_fresh(client: AsyncClient):
    await _archive(client, "one")
    await _submit(client, "two")
    assert (await client.get(DATA)).json() == ["two"]


# ── Archives ──────────────────────────────────────────────────────────────────


async def test_list_archives_empty(client: AsyncClient):
    resp = await client.get(ARCHIVES)
    assert resp.status_code == 200
    assert resp.json() == []


async def test_list_archives_newest_first(client: AsyncClient):
    first = await _archive(client, "a")
    second = await _archive(client, "b")
    assert (await client.get(ARCHIVES)).json() == sorted([first, second], reverse=True)


async def test_list_archives_storage_error(client: AsyncClient, app: FastAPI, monkeypatch):
    def broken():
        raise ArchiveError("permission denied")

    monkeypatch.setattr(app.state.archive_store, "list_snapshots", broken)
    resp = await client.get(ARCHIVES)
    assert resp.status_code == 500
    assert resp.json() == {"error": "Unable to list archives"}


async def test_delete_archive(client: AsyncClient):
    name = await _archive(client, "a")

    resp = await client.delete(f"{ARCHIVES}/{name}")

    assert resp.status_code == 200
    assert resp.json() == {"ok": True, "deleted": name}
    assert (await client.get(ARCHIVES)).json() == []


async def test_delete_archive_not_found(client: AsyncClient):
    resp = await client.delete(f"{ARCHIVES}/logs-missing.json")
    assert resp.status_code == 404
    assert resp.json() == {"error": "File not found"}


@pytest.mark.parametrize("name", ["..%2f..%2fetc%2fpasswd", "..%2flogs.json"])
async def test_delete_archive_path_escape(client: AsyncClient, app: FastAPI, name: str):
    logs_file = app.state.settings.logs_file
    await _submit(client, "keep me")

    resp = await client.delete(f"{ARCHIVES}/{name}")

    assert resp.status_code == 400
    assert resp.json() == {"error": "Invalid filename"}
    assert logs_file.exists()


async def test_clear_archives(client: AsyncClient):
    names = {await _archive(client, "a"), await _archive(client, "b")}

    resp = await client.post(CLEAR)

    assert resp.status_code == 200
    body = resp.json()
    assert body["ok"] is True
    assert set(body["deleted"]) == names
    assert (await client.get(ARCHIVES)).json() == []


async def test_clear_archives_when_empty(client: AsyncClient):
    resp = await client.post(CLEAR)
    assert resp.json() == {"ok": True, "deleted": []}


# ── Download ──────────────────────────────────────────────────────────────────


async def test_download_is_an_attachment(client: AsyncClient):
    name = await _archive(client, "a")

    resp = await client.get(f"{DOWNLOAD}/{name}")

    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("application/json")
    assert resp.headers["content-disposition"] == f'attachment; filename="{name}"'
    assert resp.json() == ["a", "shutdown"]


async def test_download_missing(client: AsyncClient):
    resp = await client.get(f"{DOWNLOAD}/logs-missing.json")
    assert resp.status_code == 404


async def test_download_path_escape(client: AsyncClient):
    resp = await client.get(f"{DOWNLOAD}/..%2f..%2fetc%2fpasswd")
    assert resp.status_code == 400


# ── Health ────────────────────────────────────────────────────────────────────


async def test_health(client: AsyncClient):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}
