"""
Optimistic create/delete against a ``NotesCache``.

Each attempt goes idle -> pending -> committed | rolled_back:
cancel in-flight reads, snapshot the cache, apply the speculative edit, call
the server, then reconcile on success or restore the snapshot on failure.
"""

from __future__ import annotations

import enum
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional, Protocol

from quicknotes.client.cache import (
    InfiniteData,
    NotesCache,
    insert_placeholder,
    remove_note,
    replace_note,
)
from quicknotes.errors import ValidationError
from quicknotes.models.notes import NoteOut

logger = logging.getLogger(__name__)


class NotesMutations(Protocol):
    async def create_note(
        self, title: str, content: str, idempotency_key: Optional[str] = None
    ) -> NoteOut: ...

    async def delete_note(self, note_id: uuid.UUID | str) -> None: ...


class MutationState(str, enum.Enum):
    IDLE = "idle"
    PENDING = "pending"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


@dataclass
class MutationAttempt:
    kind: str
    state: MutationState = MutationState.IDLE
    snapshot: Optional[InfiniteData] = None
    placeholder: Optional[NoteOut] = None
    target_id: Optional[uuid.UUID] = None
    result: Optional[NoteOut] = None
    error: Optional[Exception] = None


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class OptimisticMutationController:
    def __init__(
        self,
        cache: NotesCache,
        client: NotesMutations,
        *,
        id_factory: Callable[[], uuid.UUID] = uuid.uuid4,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self._cache = cache
        self._client = client
        self._id_factory = id_factory
        self._clock = clock
        self.last_attempt: Optional[MutationAttempt] = None

    @property
    def client(self) -> NotesMutations:
        return self._client

    async def _begin(self, attempt: MutationAttempt) -> None:
        self.last_attempt = attempt
        # a read landing mid-edit would clobber the speculative value
        await self._cache.cancel_fetches()
        attempt.snapshot = self._cache.snapshot()

    def _rollback(self, attempt: MutationAttempt, exc: Exception) -> None:
        self._cache.restore(attempt.snapshot)
        attempt.state = MutationState.ROLLED_BACK
        attempt.error = exc
        logger.warning("%s mutation rolled back: %s", attempt.kind, exc)

    async def create_note(self, title: str, content: str) -> NoteOut:
        attempt = MutationAttempt(kind="create")
        await self._begin(attempt)

        placeholder = NoteOut(
            id=self._id_factory(),
            title=title,
            content=content,
            created_at=self._clock(),
        )
        attempt.placeholder = placeholder
        self._cache.set_data(
            lambda old: insert_placeholder(old, placeholder, self._cache.page_size)
        )
        attempt.state = MutationState.PENDING

        try:
            # the placeholder id doubles as idempotency key so retries cannot duplicate
            created = await self._client.create_note(
                title, content, idempotency_key=str(placeholder.id)
            )
        except Exception as exc:
            self._rollback(attempt, exc)
            raise

        self._cache.set_data(lambda old: replace_note(old, placeholder.id, created))
        attempt.result = created
        attempt.state = MutationState.COMMITTED
        logger.info("Created note %s (placeholder %s)", created.id, placeholder.id)
        return created

    async def delete_note(self, note_id: uuid.UUID | str) -> None:
        try:
            nid = note_id if isinstance(note_id, uuid.UUID) else uuid.UUID(str(note_id))
        except ValueError as exc:
            raise ValidationError("Invalid input", fields={"id": "Invalid note id"}) from exc
        attempt = MutationAttempt(kind="delete", target_id=nid)
        await self._begin(attempt)

        self._cache.set_data(lambda old: remove_note(old, nid))
        attempt.state = MutationState.PENDING

        try:
            await self._client.delete_note(nid)
        except Exception as exc:
            self._rollback(attempt, exc)
            raise

        attempt.state = MutationState.COMMITTED
        logger.info("Deleted note %s", nid)
