import importlib

import httpx
import pytest
from fastapi.testclient import TestClient

from quicknotes.client.transport import NotesClient, RetryPolicy
from quicknotes.storage.database import make_engine
from quicknotes.storage.notes_store import NotesStore


@pytest.fixture()
def anyio_backend():
    # the client cache schedules asyncio tasks directly
    return "asyncio"


@pytest.fixture()
def app(tmp_path, monkeypatch):
    # isolate data dir (sqlite file + event log) per test
    monkeypatch.setenv("APP_DATA_DIR", str(tmp_path))
    monkeypatch.delenv("DATABASE_URL", raising=False)

    # reload modules so that api/notes.py picks up new env vars
    import quicknotes.api.notes
    import quicknotes.main
    importlib.reload(quicknotes.api.notes)
    importlib.reload(quicknotes.main)

    return quicknotes.main.app


@pytest.fixture()
def client(app):
    return TestClient(app)


@pytest.fixture()
def api_store(app):
    import quicknotes.api.notes
    return quicknotes.api.notes.store


@pytest.fixture()
def store(tmp_path):
    s = NotesStore(make_engine(f"sqlite:///{tmp_path / 'notes.db'}"))
    s.create_schema()
    return s


@pytest.fixture()
def make_notes_client(app):
    """Build a NotesClient talking to the in-process app, without real sleeps."""
    sleeps = []

    async def fake_sleep(delay):
        sleeps.append(delay)

    def _make(owner_id=None, retry=None):
        http = httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver")
        return NotesClient(client=http, retry=retry or RetryPolicy(), owner_id=owner_id, sleep=fake_sleep)

    _make.sleeps = sleeps
    return _make
