"""
Completion event log.

Events are immutable and append-only. The log is the source of truth for
streaks and history; nothing edits or removes an event except clear().
"""

from __future__ import annotations

import json
from enum import Enum

from loguru import logger
from pydantic import BaseModel, ConfigDict, TypeAdapter, ValidationError
from pydantic.alias_generators import to_camel

from patissier.core.clock import UtcDatetime
from patissier.storage.repository import StateRepository


class EventType(str, Enum):
    MODULE_STARTED = "module_started"
    MODULE_COMPLETED = "module_completed"
    PATH_STARTED = "path_started"
    PATH_COMPLETED = "path_completed"


class CompletionEvent(BaseModel):
    """One learner action, stamped when it happened."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
        frozen=True,
    )

    type: EventType
    path_id: str
    timestamp: UtcDatetime
    module_id: str | None = None
    score: float | None = None
    time_spent: float | None = None
    attempts: int | None = None


_EVENTS_ADAPTER = TypeAdapter(list[CompletionEvent])


class CompletionEventLog:
    """Persisted, append-only list of completion events."""

    COLLECTION = "completion-events"

    def __init__(self, repository: StateRepository):
        self._repository = repository
        self._events: list[CompletionEvent] = repository.load(
            self.COLLECTION, _EVENTS_ADAPTER, list
        )

    def __len__(self) -> int:
        return len(self._events)

    def record(self, event: CompletionEvent) -> CompletionEvent:
        self._events.append(event)
        self._persist()
        logger.debug(f"Recorded {event.type.value} for path {event.path_id}")
        return event

    def events(self) -> list[CompletionEvent]:
        """All events in recording order."""
        return list(self._events)

    def recent(self, limit: int = 10) -> list[CompletionEvent]:
        """Most recent events first."""
        return sorted(self._events, key=lambda e: e.timestamp, reverse=True)[:limit]

    def clear(self) -> None:
        self._events = []
        self._persist()
        logger.info("Completion history cleared")

    def export_state(self) -> str:
        events = _EVENTS_ADAPTER.dump_python(self._events, mode="json", by_alias=True)
        return json.dumps({"events": events}, indent=2)

    def import_state(self, data: str) -> bool:
        """
        Replace the log with an exported document.

        The document must be an object with an ``events`` list.

        Returns:
            False, leaving the log untouched, when the document is invalid
        """
        try:
            parsed = json.loads(data)
        except json.JSONDecodeError as e:
            logger.error(f"Error importing completion data: {e}")
            return False

        if not isinstance(parsed, dict) or not isinstance(parsed.get("events"), list):
            logger.error("Error importing completion data: missing events list")
            return False

        try:
            events = _EVENTS_ADAPTER.validate_python(parsed["events"])
        except ValidationError as e:
            logger.error(f"Error importing completion data: {e.error_count()} validation errors")
            return False

        self._events = events
        self._persist()
        logger.info(f"Imported {len(events)} completion events")
        return True

    def _persist(self) -> None:
        self._repository.save(
            self.COLLECTION,
            _EVENTS_ADAPTER.dump_python(self._events, mode="json", by_alias=True),
        )
