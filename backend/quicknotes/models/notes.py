from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from quicknotes.utils import settings

MAX_CONTENT_LENGTH = settings.max_content_length()


class NoteCreate(BaseModel):
    title: str = Field(min_length=1, max_length=settings.MAX_TITLE_LENGTH)
    content: str = Field(min_length=1, max_length=MAX_CONTENT_LENGTH)

    @field_validator("title", "content", mode="before")
    @classmethod
    def _strip(cls, value):
        if isinstance(value, str):
            return value.strip()
        return value


class NoteListQuery(BaseModel):
    cursor: Optional[datetime] = None
    limit: int = Field(default=settings.default_limit(), ge=1, le=settings.max_limit())

    @field_validator("cursor")
    @classmethod
    def _assume_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class NoteId(BaseModel):
    id: UUID


class NoteOut(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: UUID
    title: str
    content: str
    created_at: datetime


class NotePage(BaseModel):
    items: list[NoteOut]
    has_more: bool
    next_cursor: Optional[datetime] = None


class DeleteResult(BaseModel):
    success: bool = True
