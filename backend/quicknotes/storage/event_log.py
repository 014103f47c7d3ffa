import json
import logging
import os
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _events_path(base_dir: Path) -> Path:
    # data/events/events.log
    return base_dir / "events" / "events.log"


@dataclass(frozen=True)
class Event:
    event_type: str
    owner_id: str
    note_id: Optional[str] = None
    meta: Optional[dict[str, Any]] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "event_id": str(uuid.uuid4()),
            "event_type": self.event_type,
            "ts": _utc_now_iso(),
            "owner_id": self.owner_id,
            "note_id": self.note_id,
            "meta": self.meta or {},
        }


class EventLog:
    def __init__(self, base_dir: Path):
        self.base_dir = base_dir

    @property
    def path(self) -> Path:
        return _events_path(self.base_dir)

    def emit(self, event: Event) -> None:
        record = event.to_dict()
        logger.info(
            "%s owner=%s note=%s", record["event_type"], record["owner_id"], record["note_id"]
        )

        path = self.path
        path.parent.mkdir(parents=True, exist_ok=True)

        # append-only, durable write
        with path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(record, ensure_ascii=False) + "\n")
            f.flush()
            os.fsync(f.fileno())

    def read(self) -> list[dict[str, Any]]:
        if not self.path.exists():
            return []
        lines = self.path.read_text(encoding="utf-8").splitlines()
        return [json.loads(line) for line in lines if line.strip()]
