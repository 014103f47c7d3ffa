import asyncio
import uuid
from datetime import datetime, timedelta, timezone

import pytest

from quicknotes.client.cache import InfiniteData, NotesCache
from quicknotes.client.mutations import OptimisticMutationController
from quicknotes.client.presentation import (
    EMPTY_MESSAGE,
    LOAD_MORE_LABEL,
    LOADING_MESSAGE,
    NOT_FOUND_MESSAGE,
    NotesView,
    validate_note_form,
)
from quicknotes.errors import NotFoundError, TransportError
from quicknotes.models.notes import NoteOut, NotePage
from quicknotes.utils.formatting import DateFormatOptions, content_preview, format_date

T0 = datetime(2024, 3, 5, 14, 7, 9, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "options,expected",
    [
        (DateFormatOptions("en-US", "long", "short"), "March 5, 2024 at 2:07 PM"),
        (DateFormatOptions("en-US", "full", None), "Tuesday, March 5, 2024"),
        (DateFormatOptions("en-US", "medium", "medium"), "Mar 5, 2024, 2:07:09 PM"),
        (DateFormatOptions("en-US", "short", None), "3/5/24"),
        (DateFormatOptions("en-US", None, "long"), "2:07:09 PM UTC"),
        (DateFormatOptions("es-ES", "long", "short"), "5 de marzo de 2024, 14:07"),
        (DateFormatOptions("es-ES", "full", None), "martes, 5 de marzo de 2024"),
        (DateFormatOptions("es-ES", "short", "short"), "5/3/24, 14:07"),
    ],
)
def test_format_date(options, expected):
    assert format_date(T0, options) == expected


def test_format_date_rejects_bad_options():
    with pytest.raises(ValueError):
        format_date(T0, DateFormatOptions("fr-FR"))
    with pytest.raises(ValueError):
        format_date(T0, DateFormatOptions("en-US", "huge", None))
    with pytest.raises(ValueError):
        format_date(T0, DateFormatOptions("en-US", None, None))


def test_content_preview():
    assert content_preview("short") == "short"
    assert content_preview("x" * 50) == "x" * 50
    assert content_preview("x" * 51) == "x" * 50 + "..."


def test_validate_note_form():
    assert validate_note_form("t", "c") == {}
    assert validate_note_form("  ", "c") == {"title": "Title is required"}
    assert "title" in validate_note_form("x" * 256, "c")
    assert validate_note_form("t", "") == {"content": "Content is required"}


class FakeServer:
    def __init__(self, notes=(), has_more=False):
        self.notes = list(notes)
        self.has_more = has_more
        self.fail = None
        self.gate = None

    async def list_notes(self, cursor=None, limit=None):
        if self.gate is not None:
            await self.gate.wait()
        return NotePage(items=self.notes, has_more=self.has_more, next_cursor=None)

    async def get_note(self, note_id):
        if self.fail:
            raise self.fail
        for note in self.notes:
            if str(note.id) == str(note_id):
                return note
        raise NotFoundError("Note not found")

    async def create_note(self, title, content, idempotency_key=None):
        if self.fail:
            raise self.fail
        return NoteOut(id=uuid.uuid4(), title=title, content=content, created_at=T0)

    async def delete_note(self, note_id):
        if self.fail:
            raise self.fail


def _view(server):
    cache = NotesCache(server, page_size=20)
    return NotesView(cache, OptimisticMutationController(cache, server))


def test_render_empty_state():
    view = _view(FakeServer())
    assert EMPTY_MESSAGE in view.render()


def test_render_rows_and_load_more():
    note = NoteOut(id=uuid.uuid4(), title="Groceries", content="milk " * 20, created_at=T0)
    view = _view(FakeServer())
    view.cache.set_data(InfiniteData(pages=((note,),), page_params=(None,), has_more=True))

    assert view.rows() == [("Groceries", content_preview(note.content), "March 5, 2024 at 2:07 PM", str(note.id))]
    out = view.render()
    assert "Groceries" in out
    assert LOAD_MORE_LABEL in out


def test_render_detail():
    note = NoteOut(id=uuid.uuid4(), title="Plan", content="step one", created_at=T0)
    view = _view(FakeServer())
    out = view.render_detail(note)
    assert "Plan" in out
    assert "step one" in out
    assert "March 5, 2024" in out


@pytest.mark.anyio
async def test_create_action_reports_success():
    view = _view(FakeServer())
    await view.load()

    note = await view.create(" Title ", " Body ")

    assert note.title == "Title"
    assert view.cache.notes()[0].id == note.id
    assert view.notifier.latest().level == "success"


@pytest.mark.anyio
async def test_create_action_blocks_invalid_form():
    server = FakeServer()
    view = _view(server)

    assert await view.create("", "body") is None
    assert view.form_errors == {"title": "Title is required"}
    assert view.cache.get_data() is None


@pytest.mark.anyio
async def test_failed_actions_roll_back_and_notify():
    existing = NoteOut(id=uuid.uuid4(), title="keep", content="c", created_at=T0 - timedelta(days=1))
    server = FakeServer([existing])
    view = _view(server)
    await view.load()
    before = view.cache.get_data()

    server.fail = TransportError("HTTP 503: down")
    assert await view.create("t", "c") is None
    assert view.cache.get_data() == before
    assert view.notifier.latest().level == "error"

    assert await view.delete(existing.id) is False
    assert view.cache.notes() == [existing]


@pytest.mark.anyio
async def test_load_more_is_noop_without_next_page():
    view = _view(FakeServer())
    await view.load()
    await view.load_more()
    assert len(view.cache.get_data().pages) == 1


@pytest.mark.anyio
async def test_render_shows_loading_while_fetching():
    server = FakeServer([NoteOut(id=uuid.uuid4(), title="later", content="c", created_at=T0)])
    server.gate = asyncio.Event()
    view = _view(server)

    pending = asyncio.ensure_future(view.load())
    while not view.cache.is_fetching:
        await asyncio.sleep(0)
    assert LOADING_MESSAGE in view.render()

    server.gate.set()
    await pending
    out = view.render()
    assert LOADING_MESSAGE not in out
    assert "later" in out


@pytest.mark.anyio
async def test_open_loads_note_into_detail_page():
    note = NoteOut(id=uuid.uuid4(), title="Plan", content="step one", created_at=T0)
    view = _view(FakeServer([note]))

    assert await view.open(str(note.id)) == note
    assert view.current_note == note
    out = view.render_detail()
    assert "Plan" in out
    assert "step one" in out


@pytest.mark.anyio
async def test_open_missing_note_reports_not_found():
    view = _view(FakeServer())

    assert await view.open(uuid.uuid4()) is None
    assert view.current_note is None
    assert view.notifier.latest().message == NOT_FOUND_MESSAGE
    assert NOT_FOUND_MESSAGE in view.render_detail()


@pytest.mark.anyio
async def test_open_transport_failure_is_notified():
    server = FakeServer()
    server.fail = TransportError("HTTP 503: down")
    view = _view(server)

    assert await view.open(uuid.uuid4()) is None
    latest = view.notifier.latest()
    assert latest.level == "error"
    assert "down" in latest.message


@pytest.mark.anyio
async def test_delete_from_detail_page_goes_back_to_list():
    note = NoteOut(id=uuid.uuid4(), title="Plan", content="step one", created_at=T0)
    view = _view(FakeServer([note]))
    await view.load()
    await view.open(note.id)

    assert await view.delete(str(note.id)) is True

    assert view.current_note is None
    assert view.cache.notes() == []
    assert view.notifier.latest().message == "Note deleted"


@pytest.mark.anyio
async def test_delete_with_malformed_id_is_notified():
    note = NoteOut(id=uuid.uuid4(), title="keep", content="c", created_at=T0)
    view = _view(FakeServer([note]))
    await view.load()

    assert await view.delete("not-a-uuid") is False

    assert view.notifier.latest().level == "error"
    assert view.cache.notes() == [note]


@pytest.mark.anyio
async def test_open_against_app(make_notes_client, api_store):
    stored = api_store.insert("Server note", "from the store", created_at=T0)

    async with make_notes_client() as api:
        cache = NotesCache(api, page_size=20)
        view = NotesView(cache, OptimisticMutationController(cache, api))

        note = await view.open(stored.id)
        assert note.title == "Server note"
        assert "from the store" in view.render_detail()

        assert await view.open("not-a-uuid") is None
        assert view.notifier.latest().message == NOT_FOUND_MESSAGE
