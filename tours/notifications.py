import logging
from datetime import datetime, timezone
from typing import Optional, Protocol

from .models import EventType, TourEvent

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    def publish(self, event: TourEvent) -> None: ...


class InMemoryNotifier:
    def __init__(self):
        self.events: list[TourEvent] = []

    def publish(self, event: TourEvent) -> None:
        logger.info("event %s tour=%s payload=%s", event.type.value, event.tour_id, event.payload)
        self.events.append(event)

    def of_type(self, event_type: EventType) -> list[TourEvent]:
        return [e for e in self.events if e.type == event_type]

    def clear(self) -> None:
        self.events.clear()


def make_event(event_type: EventType, tour_id: Optional[int] = None, **payload) -> TourEvent:
    return TourEvent(
        type=event_type,
        tour_id=tour_id,
        payload=payload,
        created_at=datetime.now(timezone.utc),
    )
