"""Notification dispatch for waiting-list events.

Notifications raised while a trip transaction is open are collected in a
``NotificationOutbox`` and delivered by the ``NotificationDispatcher`` only
after the transaction commits. Delivery is best effort: a failing notifier is
logged and skipped, it never rolls back the state change that caused it.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Protocol, Tuple

import structlog

from ..core.observability import metrics_collector

logger = logging.getLogger(__name__)


class NotificationKind(str, Enum):
    """Kinds of waiting-list notifications."""
    TURN_GRANTED = "TURN_GRANTED"
    POSITION_UPDATED = "POSITION_UPDATED"
    TURN_EXPIRED = "TURN_EXPIRED"


@dataclass
class Notification:
    user_id: str
    kind: NotificationKind
    payload: Dict[str, Any] = field(default_factory=dict)
    entry_id: Optional[str] = None


class Notifier(Protocol):
    """Delivery channel (email, push, ...) owned outside this service."""

    async def notify(self, user_id: str, kind: NotificationKind, payload: Dict[str, Any]) -> None:
        ...


class LoggingNotifier:
    """Default notifier that records notifications as structured log events."""

    def __init__(self):
        self.log = structlog.get_logger("tripqueue.notifications")

    async def notify(self, user_id: str, kind: NotificationKind, payload: Dict[str, Any]) -> None:
        self.log.info("waitlist_notification", user_id=user_id, kind=kind.value, **payload)


class NotificationOutbox:
    """
    Notifications buffered for delivery after commit.

    Position updates are keyed by entry so a customer hears only their final
    position when several changes happen within one transaction.
    """

    def __init__(self):
        self._items: Dict[Tuple[str, str], Notification] = {}
        self._sequence = 0

    def add(self, notification: Notification) -> None:
        if notification.kind == NotificationKind.POSITION_UPDATED and notification.entry_id:
            key = (notification.kind.value, notification.entry_id)
            # Re-insert so the latest update is also the latest delivered
            self._items.pop(key, None)
        else:
            self._sequence += 1
            key = (notification.kind.value, f"#{self._sequence}")
        self._items[key] = notification

    def drain(self) -> List[Notification]:
        items = list(self._items.values())
        self._items.clear()
        return items

    def __len__(self) -> int:
        return len(self._items)


class NotificationDispatcher:
    """Delivers notifications through a ``Notifier``, swallowing failures."""

    def __init__(self, notifier: Optional[Notifier] = None):
        self.notifier = notifier or LoggingNotifier()

    async def dispatch(self, notifications: Iterable[Notification]) -> int:
        """
        Deliver notifications in order.

        Returns:
            Number delivered successfully
        """
        delivered = 0
        for notification in notifications:
            try:
                await self.notifier.notify(
                    notification.user_id, notification.kind, notification.payload
                )
                delivered += 1
                metrics_collector.record_notification(notification.kind.value, "sent")
            except Exception as e:
                metrics_collector.record_notification(notification.kind.value, "failed")
                logger.warning(
                    "Failed to deliver waiting list notification",
                    exc_info=True,
                    extra={
                        "user_id": notification.user_id,
                        "kind": notification.kind.value,
                        "entry_id": notification.entry_id,
                        "error": str(e),
                    }
                )
        return delivered
