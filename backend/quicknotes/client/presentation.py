"""Text views over the notes cache: list table, detail page and user actions."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Optional, Protocol

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from quicknotes.client.cache import NotesCache
from quicknotes.client.mutations import OptimisticMutationController
from quicknotes.errors import NotFoundError, QuickNotesError, ValidationError
from quicknotes.models.notes import NoteOut
from quicknotes.utils import settings
from quicknotes.utils.formatting import DateFormatOptions, content_preview, format_date

logger = logging.getLogger(__name__)

EMPTY_MESSAGE = 'No notes yet. Create your first note with "New note".'
LOAD_MORE_LABEL = "Load more notes"
LOADING_MESSAGE = "Loading..."
NOT_FOUND_MESSAGE = "Note not found"


def validate_note_form(title: str, content: str) -> dict[str, str]:
    """Field-level messages for the create form; empty when the input is valid."""
    errors: dict[str, str] = {}
    if not title or not title.strip():
        errors["title"] = "Title is required"
    elif len(title.strip()) > settings.MAX_TITLE_LENGTH:
        errors["title"] = f"Title cannot exceed {settings.MAX_TITLE_LENGTH} characters"
    if not content or not content.strip():
        errors["content"] = "Content is required"
    elif len(content.strip()) > settings.max_content_length():
        errors["content"] = f"Content cannot exceed {settings.max_content_length()} characters"
    return errors


@dataclass(frozen=True)
class Notification:
    level: str
    message: str


@dataclass
class Notifier:
    """Collects transient success/error messages (toasts)."""

    items: list[Notification] = field(default_factory=list)

    def success(self, message: str) -> None:
        logger.info(message)
        self.items.append(Notification("success", message))

    def error(self, message: str) -> None:
        logger.warning(message)
        self.items.append(Notification("error", message))

    def latest(self) -> Optional[Notification]:
        return self.items[-1] if self.items else None


class NoteReader(Protocol):
    async def get_note(self, note_id: uuid.UUID | str) -> NoteOut: ...


class NotesView:
    def __init__(
        self,
        cache: NotesCache,
        controller: OptimisticMutationController,
        notifier: Optional[Notifier] = None,
        date_options: Optional[DateFormatOptions] = None,
        width: int = 120,
        reader: Optional[NoteReader] = None,
    ):
        self.cache = cache
        self.controller = controller
        self.notifier = notifier or Notifier()
        self.date_options = date_options or DateFormatOptions()
        # detail pages load through the mutation client unless told otherwise
        self.reader = reader if reader is not None else controller.client
        self.form_errors: dict[str, str] = {}
        self.current_note: Optional[NoteOut] = None
        self.opening = False
        self._console = Console(width=width, color_system=None, force_terminal=False)

    def _to_text(self, renderable) -> str:
        with self._console.capture() as capture:
            self._console.print(renderable)
        return capture.get()

    # -------------------------------- rendering ------------------------------

    def rows(self) -> list[tuple[str, str, str, str]]:
        return [
            (
                note.title,
                content_preview(note.content),
                format_date(note.created_at, self.date_options),
                str(note.id),
            )
            for note in self.cache.notes()
        ]

    def render(self) -> str:
        rows = self.rows()
        if not rows:
            if self.cache.is_fetching:
                return self._to_text(Text(LOADING_MESSAGE))
            return self._to_text(Text(EMPTY_MESSAGE))

        table = Table("Title", "Content (preview)", "Created", "ID")
        for row in rows:
            table.add_row(*(Text(cell) for cell in row))
        out = self._to_text(table)
        if self.cache.is_fetching:
            out += self._to_text(Text(LOADING_MESSAGE))
        elif self.cache.has_next_page:
            out += self._to_text(Text(f"[{LOAD_MORE_LABEL}]"))
        return out

    def render_detail(self, note: Optional[NoteOut] = None) -> str:
        if note is None:
            if self.opening:
                return self._to_text(Text(LOADING_MESSAGE))
            note = self.current_note
        if note is None:
            return self._to_text(Text(NOT_FOUND_MESSAGE))
        created = format_date(note.created_at, self.date_options)
        body = f"Created {created}\n\n{note.content}"
        return self._to_text(Panel(Text(body), title=Text(note.title)))

    # --------------------------------- actions -------------------------------

    async def load(self) -> None:
        try:
            await self.cache.ensure_data()
        except QuickNotesError as exc:
            self.notifier.error(f"Could not load notes: {exc.message}")

    async def load_more(self) -> None:
        if not self.cache.has_next_page:
            return
        try:
            await self.cache.fetch_next_page()
        except QuickNotesError as exc:
            self.notifier.error(f"Could not load more notes: {exc.message}")

    async def open(self, note_id: uuid.UUID | str) -> Optional[NoteOut]:
        """Load one note from the server and make it the current detail page."""
        self.current_note = None
        self.opening = True
        try:
            note = await self.reader.get_note(note_id)
        except (NotFoundError, ValidationError):
            self.notifier.error(NOT_FOUND_MESSAGE)
            return None
        except QuickNotesError as exc:
            self.notifier.error(f"Could not load note: {exc.message}")
            return None
        finally:
            self.opening = False
        self.current_note = note
        return note

    async def create(self, title: str, content: str) -> Optional[NoteOut]:
        self.form_errors = validate_note_form(title, content)
        if self.form_errors:
            return None
        try:
            note = await self.controller.create_note(title.strip(), content.strip())
        except QuickNotesError as exc:
            self.form_errors = dict(getattr(exc, "fields", {}) or {})
            self.notifier.error(exc.message)
            return None
        self.notifier.success("Note created")
        return note

    async def delete(self, note_id: uuid.UUID | str) -> bool:
        try:
            await self.controller.delete_note(note_id)
        except QuickNotesError as exc:
            self.notifier.error(exc.message)
            return False
        if self.current_note is not None and str(self.current_note.id) == str(note_id):
            # back to the list
            self.current_note = None
        self.notifier.success("Note deleted")
        return True
