import logging
from dataclasses import dataclass
from typing import Callable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LifecycleEvent:
    action:      str          # DELETED, BOOKED, RETURNED
    entity_type: str
    entity_id:   str

    def to_dict(self) -> dict:
        return {"action": self.action, "entityType": self.entity_type, "entityId": self.entity_id}


EventSubscriber = Callable[[LifecycleEvent], None]


def publish_lifecycle_event(event: LifecycleEvent, subscriber: EventSubscriber | None = None) -> None:
    """
    Hand a committed lifecycle event to the audit/notification side.
    No delivery backend is wired yet; events go to the log and to the
    optional subscriber callback. Only call after the transaction commits;
    a failing subscriber is logged and never reaches the caller.
    """
    logger.info(f"[LIFECYCLE] {event.action} {event.entity_type}#{event.entity_id}")
    if subscriber is None:
        return
    try:
        subscriber(event)
    except Exception:
        logger.exception(f"Lifecycle subscriber failed for {event.action} {event.entity_type}#{event.entity_id}")
