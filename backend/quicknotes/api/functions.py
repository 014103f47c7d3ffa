"""Note access functions.

Transport-agnostic list/get/create/delete operations. Every function
validates its input before touching the store and raises
``ValidationError`` / ``NotFoundError`` from ``quicknotes.errors``.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import pydantic

from quicknotes.errors import NotFoundError, ValidationError
from quicknotes.models.notes import DeleteResult, NoteCreate, NoteId, NoteListQuery, NoteOut, NotePage
from quicknotes.storage.event_log import Event, EventLog
from quicknotes.storage.notes_store import Note, NotesStore
from quicknotes.utils.settings import DEFAULT_OWNER_ID, MAX_IDEMPOTENCY_KEY_LENGTH

logger = logging.getLogger(__name__)


def _validate(model: type[pydantic.BaseModel], data: dict[str, Any]):
    try:
        return model.model_validate(data)
    except pydantic.ValidationError as exc:
        fields = {}
        for err in exc.errors():
            name = ".".join(str(part) for part in err["loc"]) or "__root__"
            fields.setdefault(name, err["msg"])
        logger.debug("Rejected %s input: %s", model.__name__, fields)
        raise ValidationError("Invalid input", fields=fields) from exc


def _out(note: Note) -> NoteOut:
    return NoteOut(id=note.id, title=note.title, content=note.content, created_at=note.created_at)


def list_notes(
    store: NotesStore,
    cursor: Optional[str] = None,
    limit: Optional[int] = None,
    owner_id: str = DEFAULT_OWNER_ID,
) -> NotePage:
    """Return the page of notes strictly older than ``cursor``, newest first.

    One extra row is read to decide ``has_more``; ``next_cursor`` is the
    ``created_at`` of the last returned note when more pages exist.
    """
    data: dict[str, Any] = {"cursor": cursor or None}
    if limit is not None:
        data["limit"] = limit
    query = _validate(NoteListQuery, data)

    rows = store.scan_page(query.cursor, query.limit + 1, owner_id=owner_id)
    has_more = len(rows) > query.limit
    items = [_out(n) for n in rows[: query.limit]]
    next_cursor = items[-1].created_at if has_more else None
    return NotePage(items=items, has_more=has_more, next_cursor=next_cursor)


def get_note(store: NotesStore, note_id: Any, owner_id: str = DEFAULT_OWNER_ID) -> NoteOut:
    nid = _validate(NoteId, {"id": note_id}).id
    note = store.get_by_id(nid, owner_id=owner_id)
    if note is None:
        raise NotFoundError("Note not found")
    return _out(note)


def create_note(
    store: NotesStore,
    title: Any,
    content: Any,
    idempotency_key: Optional[str] = None,
    owner_id: str = DEFAULT_OWNER_ID,
    event_log: Optional[EventLog] = None,
) -> NoteOut:
    payload = _validate(NoteCreate, {"title": title, "content": content})
    if idempotency_key and len(idempotency_key) > MAX_IDEMPOTENCY_KEY_LENGTH:
        raise ValidationError(
            "Invalid input",
            fields={"idempotency_key": f"must be at most {MAX_IDEMPOTENCY_KEY_LENGTH} characters"},
        )
    note = store.insert(
        title=payload.title,
        content=payload.content,
        owner_id=owner_id,
        idempotency_key=idempotency_key or None,
    )

    if event_log is not None:
        event_log.emit(Event(
            event_type="NOTE_CREATED",
            owner_id=owner_id,
            note_id=str(note.id),
            meta={"idempotency_key": idempotency_key} if idempotency_key else None,
        ))

    return _out(note)


def delete_note(
    store: NotesStore,
    note_id: Any,
    owner_id: str = DEFAULT_OWNER_ID,
    event_log: Optional[EventLog] = None,
) -> DeleteResult:
    nid = _validate(NoteId, {"id": note_id}).id
    deleted = store.delete_by_id(nid, owner_id=owner_id)
    if deleted is None:
        raise NotFoundError("Note not found")

    if event_log is not None:
        event_log.emit(Event(event_type="NOTE_DELETED", owner_id=owner_id, note_id=str(nid)))

    return DeleteResult()
