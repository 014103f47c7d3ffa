"""
Async HTTP client for the notes API.

Hides HTTP details behind list/get/create/delete calls returning the same
pydantic models the server emits, maps status codes back onto
``quicknotes.errors`` and retries transport failures with exponential
backoff.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, Optional
from uuid import UUID

import httpx

from quicknotes.errors import NotFoundError, QuickNotesError, TransportError, ValidationError
from quicknotes.models.notes import NoteOut, NotePage
from quicknotes.utils import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """Retries after the first try, delay ``min(base * 2**n, max_delay)``."""

    attempts: int = 3
    delay_base: float = 1.0
    max_delay: float = 30.0

    @classmethod
    def from_env(cls) -> "RetryPolicy":
        return cls(
            attempts=settings.retry_attempts(),
            delay_base=settings.retry_delay_base(),
            max_delay=settings.retry_max_delay(),
        )

    def delay(self, attempt_index: int) -> float:
        return min(self.delay_base * 2 ** attempt_index, self.max_delay)


class NotesClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        client: Optional[httpx.AsyncClient] = None,
        retry: Optional[RetryPolicy] = None,
        owner_id: Optional[str] = None,
        timeout: float = 10.0,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        headers = {"X-User-Id": owner_id} if owner_id else None
        if client is None:
            client = httpx.AsyncClient(
                base_url=base_url or settings.api_url(), timeout=timeout, headers=headers
            )
        elif headers:
            client.headers.update(headers)
        self._client = client
        self._retry = retry or RetryPolicy.from_env()
        self._sleep = sleep
        logger.debug("Initialized NotesClient with base_url: %s", self._client.base_url)

    async def __aenter__(self) -> "NotesClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    # ------------------------------ operations -------------------------------

    async def list_notes(
        self, cursor: Optional[datetime] = None, limit: Optional[int] = None
    ) -> NotePage:
        params: Dict[str, Any] = {}
        if cursor is not None:
            params["cursor"] = cursor.isoformat()
        if limit is not None:
            params["limit"] = limit
        body = await self._request("GET", "/notes", params=params)
        return NotePage.model_validate(body)

    async def get_note(self, note_id: UUID | str) -> NoteOut:
        body = await self._request("GET", f"/notes/{note_id}")
        return NoteOut.model_validate(body)

    async def create_note(
        self, title: str, content: str, idempotency_key: Optional[str] = None
    ) -> NoteOut:
        headers = {"Idempotency-Key": idempotency_key} if idempotency_key else None
        body = await self._request(
            "POST", "/notes", json={"title": title, "content": content}, headers=headers
        )
        return NoteOut.model_validate(body)

    async def delete_note(self, note_id: UUID | str) -> None:
        await self._request("DELETE", f"/notes/{note_id}")

    # ------------------------------- transport -------------------------------

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        attempt = 0
        while True:
            try:
                return await self._send(method, path, **kwargs)
            except TransportError as exc:
                if attempt >= self._retry.attempts:
                    logger.error(
                        "%s %s failed after %d attempts: %s", method, path, attempt + 1, exc
                    )
                    raise
                delay = self._retry.delay(attempt)
                logger.warning(
                    "%s %s failed (%s), retrying in %.1fs", method, path, exc, delay
                )
                await self._sleep(delay)
                attempt += 1

    async def _send(self, method: str, path: str, **kwargs) -> Any:
        logger.info("%s %s", method, path)
        try:
            resp = await self._client.request(method, path, **kwargs)
        except httpx.TransportError as exc:
            raise TransportError(f"{type(exc).__name__}: {exc}") from exc

        code = resp.status_code
        logger.debug("%s %s returned status %d", method, path, code)
        if code < 400:
            return resp.json()

        try:
            body = resp.json()
        except ValueError:
            body = {"detail": resp.text}
        detail = body.get("detail") if isinstance(body, dict) else None
        message = detail if isinstance(detail, str) else f"HTTP {code}"

        if code == 404:
            raise NotFoundError(message)
        if code in (400, 422):
            fields = body.get("fields") if isinstance(body, dict) else None
            raise ValidationError(message, fields=fields if isinstance(fields, dict) else None)
        if code >= 500:
            raise TransportError(f"HTTP {code}: {message}")
        raise QuickNotesError(f"HTTP {code}: {message}")
