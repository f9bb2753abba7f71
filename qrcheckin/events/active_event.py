"""Remembers which event the operator last worked on.

The file is a convenience only. The authoritative set of events always comes
from the store, so a remembered id that no longer exists is discarded.
"""

import json
import logging
from datetime import UTC, datetime
from pathlib import Path
from uuid import UUID

from pydantic import BaseModel, ValidationError

from qrcheckin.events.dtos import EventDTO

logger = logging.getLogger(__name__)


class ActiveEventState(BaseModel):
    event_id: UUID | None = None
    selected_at: datetime | None = None

    @classmethod
    def load(cls, path: str | Path) -> "ActiveEventState":
        path = Path(path)
        if not path.exists():
            return cls()
        try:
            return cls.model_validate_json(path.read_text(encoding="utf-8"))
        except (ValidationError, json.JSONDecodeError, UnicodeDecodeError):
            logger.warning("Ignoring unreadable active event file %s", path)
            return cls()

    def save(self, path: str | Path) -> None:
        Path(path).write_text(self.model_dump_json(indent=2), encoding="utf-8")

    @classmethod
    def select(cls, path: str | Path, event_id: UUID) -> "ActiveEventState":
        state = cls(event_id=event_id, selected_at=datetime.now(UTC))
        state.save(path)
        return state

    @staticmethod
    def clear(path: str | Path) -> None:
        Path(path).unlink(missing_ok=True)

    def validated(self, events: list[EventDTO]) -> UUID | None:
        """Return the remembered event id if it still names an existing event."""
        if self.event_id is None:
            return None
        if any(event.uuid == self.event_id for event in events):
            return self.event_id
        logger.info("Remembered event %s no longer exists", self.event_id)
        return None
