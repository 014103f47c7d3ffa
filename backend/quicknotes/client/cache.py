"""
In-memory paginated mirror of the notes list.

One ``NotesCache`` owns one logical query ("all notes, newest first"). Its
value is an immutable ``InfiniteData``; every write swaps the whole value, so
a snapshot is simply the previous value.
"""

from __future__ import annotations

import asyncio
import logging
import time
from contextlib import suppress
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Awaitable, Callable, Optional, Protocol, Union
from uuid import UUID

from quicknotes.models.notes import NoteOut, NotePage
from quicknotes.utils import settings

logger = logging.getLogger(__name__)

QUERY_KEY = ("notes",)


class NotesSource(Protocol):
    async def list_notes(
        self, cursor: Optional[datetime] = None, limit: Optional[int] = None
    ) -> NotePage: ...


@dataclass(frozen=True)
class InfiniteData:
    pages: tuple[tuple[NoteOut, ...], ...] = ()
    page_params: tuple[Optional[datetime], ...] = ()
    has_more: bool = False
    next_cursor: Optional[datetime] = None

    def notes(self) -> list[NoteOut]:
        return [note for page in self.pages for note in page]

    def with_page(self, page: NotePage, cursor: Optional[datetime]) -> "InfiniteData":
        return replace(
            self,
            pages=self.pages + (tuple(page.items),),
            page_params=self.page_params + (cursor,),
            has_more=page.has_more,
            next_cursor=page.next_cursor,
        )


Updater = Callable[[Optional[InfiniteData]], Optional[InfiniteData]]


# ------------------------------ pure edits ----------------------------------


def insert_placeholder(
    data: Optional[InfiniteData], note: NoteOut, page_size: int
) -> InfiniteData:
    """Prepend ``note`` to the first page, spilling its overflow into page two."""
    if data is None or not data.pages:
        return InfiniteData(pages=((note,),), page_params=(None,))

    first = (note,) + data.pages[0]
    if len(first) <= page_size:
        return replace(data, pages=(first,) + data.pages[1:])

    first, spilled = first[:-1], first[-1]
    if len(data.pages) > 1:
        second = (spilled,) + data.pages[1]
        return replace(data, pages=(first, second) + data.pages[2:])

    # no second page yet: open one, keyed by the cursor that would fetch it
    return replace(
        data,
        pages=(first, (spilled,)),
        page_params=data.page_params[:1] + (first[-1].created_at,),
    )


def replace_note(
    data: Optional[InfiniteData], note_id: UUID, server_note: NoteOut
) -> Optional[InfiniteData]:
    """Swap the note ``note_id`` for ``server_note``, keeping the cached ``created_at``."""
    if data is None:
        return None
    pages = tuple(
        tuple(
            server_note.model_copy(update={"created_at": n.created_at}) if n.id == note_id else n
            for n in page
        )
        for page in data.pages
    )
    return replace(data, pages=pages)


def remove_note(data: Optional[InfiniteData], note_id: UUID) -> Optional[InfiniteData]:
    if data is None:
        return None
    pages = tuple(tuple(n for n in page if n.id != note_id) for page in data.pages)
    return replace(data, pages=pages)


# --------------------------------- cache ------------------------------------


class NotesCache:
    def __init__(
        self,
        source: NotesSource,
        page_size: Optional[int] = None,
        stale_time: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.query_key = QUERY_KEY
        self.page_size = settings.default_limit() if page_size is None else page_size
        self.stale_time = settings.stale_seconds() if stale_time is None else stale_time
        self._source = source
        self._clock = clock
        self._data: Optional[InfiniteData] = None
        self._updated_at: Optional[float] = None
        self._fetch_task: Optional[asyncio.Task] = None
        self._fetch_kind: Optional[str] = None

    # ------------------------------ value access -----------------------------

    def get_data(self) -> Optional[InfiniteData]:
        return self._data

    def set_data(self, value: Union[InfiniteData, None, Updater]) -> Optional[InfiniteData]:
        if callable(value):
            value = value(self._data)
        self._data = value
        return value

    def snapshot(self) -> Optional[InfiniteData]:
        return self._data

    def restore(self, snapshot: Optional[InfiniteData]) -> None:
        self._data = snapshot

    def notes(self) -> list[NoteOut]:
        return self._data.notes() if self._data is not None else []

    @property
    def has_next_page(self) -> bool:
        return self._data is not None and self._data.has_more

    @property
    def is_fetching(self) -> bool:
        return self._fetch_task is not None and not self._fetch_task.done()

    def is_stale(self) -> bool:
        if self._data is None or self._updated_at is None:
            return True
        return self._clock() - self._updated_at >= self.stale_time

    # --------------------------------- fetching ------------------------------

    async def ensure_data(self) -> Optional[InfiniteData]:
        if self._data is not None and not self.is_stale():
            return self._data
        if self._data is None:
            return await self.fetch_first_page()
        return await self.refetch()

    async def fetch_first_page(self) -> Optional[InfiniteData]:
        return await self._run_fetch("first", self._load_first)

    async def fetch_next_page(self) -> Optional[InfiniteData]:
        """Append the page after the last cached one.

        A first-page load or refetch already running is awaited first, then
        the next page is requested against its result.
        """
        if self.is_fetching and self._fetch_kind != "next":
            await self._join()
        if self._data is None:
            return await self.fetch_first_page()
        if not self._data.has_more:
            return self._data
        return await self._run_fetch("next", self._load_next)

    async def refetch(self) -> Optional[InfiniteData]:
        """Reload as many pages as are cached, replacing the whole value."""
        return await self._run_fetch("all", self._load_all)

    async def cancel_fetches(self) -> None:
        task = self._fetch_task
        if task is None or task.done():
            return
        logger.debug("Cancelling in-flight fetch for %s", self.query_key)
        task.cancel()
        with suppress(asyncio.CancelledError):
            await task

    async def _join(self) -> None:
        with suppress(asyncio.CancelledError):
            await asyncio.shield(self._fetch_task)
        current = asyncio.current_task()
        if current is not None and current.cancelling():
            raise asyncio.CancelledError()

    async def _run_fetch(
        self, kind: str, load: Callable[[], Awaitable[InfiniteData]]
    ) -> Optional[InfiniteData]:
        if self.is_fetching:
            # one fetch per query at a time; join the running one
            await self._join()
            return self._data

        task = asyncio.ensure_future(self._fetch_and_store(load))
        self._fetch_task = task
        self._fetch_kind = kind
        try:
            return await task
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if task.cancelled() and (current is None or not current.cancelling()):
                # cancelled through cancel_fetches(): the cache was left untouched
                return self._data
            raise
        finally:
            if self._fetch_task is task:
                self._fetch_task = None
                self._fetch_kind = None

    async def _fetch_and_store(
        self, load: Callable[[], Awaitable[InfiniteData]]
    ) -> InfiniteData:
        data = await load()
        self._data = data
        self._updated_at = self._clock()
        return data

    async def _load_first(self) -> InfiniteData:
        page = await self._source.list_notes(None, self.page_size)
        return InfiniteData().with_page(page, None)

    async def _load_next(self) -> InfiniteData:
        cursor = self._data.next_cursor if self._data is not None else None
        page = await self._source.list_notes(cursor, self.page_size)
        base = self._data if self._data is not None else InfiniteData()
        return base.with_page(page, cursor)

    async def _load_all(self) -> InfiniteData:
        wanted = max(1, len(self._data.pages)) if self._data is not None else 1
        data = InfiniteData()
        cursor: Optional[datetime] = None
        for _ in range(wanted):
            page = await self._source.list_notes(cursor, self.page_size)
            data = data.with_page(page, cursor)
            if not page.has_more:
                break
            cursor = page.next_cursor
        return data
