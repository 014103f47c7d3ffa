from typing import Optional

from fastapi import APIRouter, Depends, Header, Query

from quicknotes.api import functions
from quicknotes.errors import ValidationError
from quicknotes.models.notes import DeleteResult, NoteOut, NotePage
from quicknotes.storage.database import make_engine
from quicknotes.storage.event_log import EventLog
from quicknotes.storage.notes_store import NotesStore
from quicknotes.utils import settings

router = APIRouter(prefix="/notes", tags=["notes"])

DATA_DIR = settings.data_dir()
engine = make_engine()
store = NotesStore(engine)
store.create_schema()

event_log = EventLog(DATA_DIR)


def get_owner_id(x_user_id: Optional[str] = Header(default=None, alias="X-User-Id")) -> str:
    # tenant selector only, nothing is authenticated
    owner_id = x_user_id or settings.DEFAULT_OWNER_ID
    if len(owner_id) > settings.MAX_OWNER_ID_LENGTH:
        raise ValidationError(
            "Invalid input",
            fields={"X-User-Id": f"must be at most {settings.MAX_OWNER_ID_LENGTH} characters"},
        )
    return owner_id


@router.get("", response_model=NotePage)
def list_notes(
    cursor: Optional[str] = Query(default=None),
    limit: Optional[int] = Query(default=None),
    owner_id: str = Depends(get_owner_id),
) -> NotePage:
    return functions.list_notes(store, cursor=cursor, limit=limit, owner_id=owner_id)


@router.get("/{note_id}", response_model=NoteOut)
def get_note(note_id: str, owner_id: str = Depends(get_owner_id)) -> NoteOut:
    return functions.get_note(store, note_id, owner_id=owner_id)


@router.post("", response_model=NoteOut, status_code=201)
def create_note(
    payload: dict,
    owner_id: str = Depends(get_owner_id),
    idempotency_key: Optional[str] = Header(default=None, alias="Idempotency-Key"),
) -> NoteOut:
    # body is validated by the access function so HTTP and direct callers share the rules
    return functions.create_note(
        store,
        title=payload.get("title"),
        content=payload.get("content"),
        idempotency_key=idempotency_key,
        owner_id=owner_id,
        event_log=event_log,
    )


@router.delete("/{note_id}", response_model=DeleteResult)
def delete_note(note_id: str, owner_id: str = Depends(get_owner_id)) -> DeleteResult:
    return functions.delete_note(store, note_id, owner_id=owner_id, event_log=event_log)
