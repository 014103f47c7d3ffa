import logging
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterator, Optional

from sqlalchemy import (
    Column,
    DateTime,
    Index,
    String,
    Table,
    Text,
    UniqueConstraint,
    Uuid,
    delete,
    func,
    select,
)
from sqlalchemy.engine import Engine, Row
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from quicknotes.errors import DatabaseError
from quicknotes.storage.database import metadata
from quicknotes.utils.settings import (
    DEFAULT_OWNER_ID,
    MAX_IDEMPOTENCY_KEY_LENGTH,
    MAX_OWNER_ID_LENGTH,
    MAX_TITLE_LENGTH,
)

logger = logging.getLogger(__name__)

notes_table = Table(
    "notes",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid.uuid4),
    Column("owner_id", String(MAX_OWNER_ID_LENGTH), nullable=False, default=DEFAULT_OWNER_ID),
    Column("title", String(MAX_TITLE_LENGTH), nullable=False),
    Column("content", Text, nullable=False),
    # naive UTC in the table, aware UTC everywhere else
    Column("created_at", DateTime, nullable=False),
    Column("idempotency_key", String(MAX_IDEMPOTENCY_KEY_LENGTH), nullable=True),
    UniqueConstraint("owner_id", "idempotency_key", name="uq_notes_owner_idempotency_key"),
    Index("ix_notes_owner_created_at", "owner_id", "created_at"),
)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _to_db_ts(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _from_db_ts(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class Note:
    id: uuid.UUID
    title: str
    content: str
    created_at: datetime
    owner_id: str = DEFAULT_OWNER_ID

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "title": self.title,
            "content": self.content,
            "created_at": self.created_at.isoformat(),
        }


def _row_to_note(row: Row) -> Note:
    return Note(
        id=row.id,
        title=row.title,
        content=row.content,
        created_at=_from_db_ts(row.created_at),
        owner_id=row.owner_id,
    )


class NotesStore:
    def __init__(self, engine: Engine):
        self.engine = engine

    @contextmanager
    def _translate_errors(self, operation: str) -> Iterator[None]:
        try:
            yield
        except SQLAlchemyError as exc:
            logger.error("Note store %s failed: %s", operation, exc)
            raise DatabaseError(f"Note store {operation} failed") from exc

    def create_schema(self) -> None:
        with self._translate_errors("create_schema"):
            metadata.create_all(self.engine)

    def insert(
        self,
        title: str,
        content: str,
        owner_id: str = DEFAULT_OWNER_ID,
        idempotency_key: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> Note:
        if idempotency_key is not None:
            existing = self._get_by_idempotency_key(owner_id, idempotency_key)
            if existing is not None:
                logger.info("Replayed create for idempotency key %s", idempotency_key)
                return existing

        note = Note(
            id=uuid.uuid4(),
            title=title,
            content=content,
            created_at=_from_db_ts(created_at or _utc_now()),
            owner_id=owner_id,
        )
        try:
            with self._translate_errors("insert"), self.engine.begin() as conn:
                conn.execute(
                    notes_table.insert().values(
                        id=note.id,
                        owner_id=owner_id,
                        title=title,
                        content=content,
                        created_at=_to_db_ts(note.created_at),
                        idempotency_key=idempotency_key,
                    )
                )
        except DatabaseError as exc:
            # lost a race against a concurrent retry of the same create
            if idempotency_key is not None and isinstance(exc.__cause__, IntegrityError):
                existing = self._get_by_idempotency_key(owner_id, idempotency_key)
                if existing is not None:
                    return existing
            raise
        return note

    def _get_by_idempotency_key(self, owner_id: str, key: str) -> Optional[Note]:
        stmt = select(notes_table).where(
            notes_table.c.owner_id == owner_id,
            notes_table.c.idempotency_key == key,
        )
        with self._translate_errors("lookup"), self.engine.connect() as conn:
            row = conn.execute(stmt).first()
        return _row_to_note(row) if row is not None else None

    def get_by_id(self, note_id: uuid.UUID, owner_id: str = DEFAULT_OWNER_ID) -> Optional[Note]:
        stmt = select(notes_table).where(
            notes_table.c.id == note_id,
            notes_table.c.owner_id == owner_id,
        )
        with self._translate_errors("get"), self.engine.connect() as conn:
            row = conn.execute(stmt).first()
        return _row_to_note(row) if row is not None else None

    def delete_by_id(self, note_id: uuid.UUID, owner_id: str = DEFAULT_OWNER_ID) -> Optional[Note]:
        where = (notes_table.c.id == note_id, notes_table.c.owner_id == owner_id)
        with self._translate_errors("delete"), self.engine.begin() as conn:
            row = conn.execute(select(notes_table).where(*where)).first()
            if row is None:
                return None
            conn.execute(delete(notes_table).where(*where))
        return _row_to_note(row)

    def scan_page(
        self,
        cursor: Optional[datetime],
        limit: int,
        owner_id: str = DEFAULT_OWNER_ID,
    ) -> list[Note]:
        """Return up to ``limit`` notes older than ``cursor``, newest first."""
        stmt = select(notes_table).where(notes_table.c.owner_id == owner_id)
        if cursor is not None:
            stmt = stmt.where(notes_table.c.created_at < _to_db_ts(cursor))
        stmt = stmt.order_by(
            notes_table.c.created_at.desc(),
            notes_table.c.id.desc(),
        ).limit(limit)
        with self._translate_errors("scan"), self.engine.connect() as conn:
            rows = conn.execute(stmt).all()
        return [_row_to_note(r) for r in rows]

    def count(self, owner_id: str = DEFAULT_OWNER_ID) -> int:
        stmt = select(func.count()).select_from(notes_table).where(notes_table.c.owner_id == owner_id)
        with self._translate_errors("count"), self.engine.connect() as conn:
            return int(conn.execute(stmt).scalar_one())
