"""
Notification Service Tool
Fire-and-forget dispatch of reminder and refill notifications
"""

import logging
from typing import Callable, Dict, List, Optional, Any
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


logger = logging.getLogger(__name__)


class NotificationType(str, Enum):
    """Types of notifications"""
    MEDICATION_REMINDER = "medication_reminder"
    FOLLOW_UP_REMINDER = "follow_up_reminder"
    CHECK_IN_REMINDER = "check_in_reminder"
    REFILL_REMINDER = "refill_reminder"


@dataclass
class NotificationRequest:
    """A notification handed to the delivery handler"""
    title: str
    message: str
    notification_type: NotificationType = NotificationType.MEDICATION_REMINDER
    data: Dict[str, Any] = field(default_factory=dict)


@dataclass
class NotificationResult:
    """Outcome of a dispatch attempt"""
    success: bool
    dispatched_at: Optional[datetime] = None
    error: Optional[str] = None


# Stage index -> notification template
STAGE_TEMPLATES: Dict[int, Dict[str, Any]] = {
    0: {
        "type": NotificationType.MEDICATION_REMINDER,
        "title": "Time for your {medication}",
        "message": "It's time to take your {dosage} dose.",
    },
    1: {
        "type": NotificationType.FOLLOW_UP_REMINDER,
        "title": "Reminder: {medication}",
        "message": "Your {scheduled_time} dose of {medication} hasn't been marked yet.",
    },
    2: {
        "type": NotificationType.CHECK_IN_REMINDER,
        "title": "Did you take your {medication}?",
        "message": "Checking in on your {scheduled_time} dose. Mark it as taken or skipped.",
    },
}

REFILL_TEMPLATE = {
    "title": "Refill {medication}",
    "message": "You have {quantity} pills left. Time to get a refill.",
}


class NotificationService:
    """
    Dispatches notifications through an injectable handler.

    Delivery is best effort: the core decides when to notify, the handler
    (OS, browser push, SMS gateway) owns delivery. Handler failures are
    logged and never propagate.
    """

    def __init__(self, handler: Optional[Callable[[NotificationRequest], None]] = None):
        self._handler = handler
        self._history: List[NotificationRequest] = []

    def set_handler(self, handler: Optional[Callable[[NotificationRequest], None]]) -> None:
        self._handler = handler

    @property
    def history(self) -> List[NotificationRequest]:
        return list(self._history)

    def clear_history(self) -> None:
        self._history.clear()

    def dispatch(
        self,
        title: str,
        body: str,
        notification_type: NotificationType = NotificationType.MEDICATION_REMINDER,
        data: Optional[Dict[str, Any]] = None
    ) -> NotificationResult:
        """Send a notification without waiting on delivery"""
        request = NotificationRequest(
            title=title,
            message=body,
            notification_type=notification_type,
            data=data or {}
        )
        self._history.append(request)

        if self._handler is None:
            logger.info(f"[NOTIFY] {title}: {body}")
            return NotificationResult(success=True, dispatched_at=datetime.now())

        try:
            self._handler(request)
            return NotificationResult(success=True, dispatched_at=datetime.now())
        except Exception as e:
            logger.error(f"Notification handler failed for '{title}': {e}")
            return NotificationResult(success=False, error=str(e))

    def send_medication_reminder(
        self,
        medication_name: str,
        dosage: str,
        scheduled_time: str,
        stage: int,
        data: Optional[Dict[str, Any]] = None
    ) -> NotificationResult:
        """Dispatch the message for one escalation stage"""
        template = STAGE_TEMPLATES.get(stage, STAGE_TEMPLATES[0])
        context = {
            "medication": medication_name,
            "dosage": dosage or "scheduled",
            "scheduled_time": scheduled_time,
        }
        return self.dispatch(
            title=template["title"].format(**context),
            body=template["message"].format(**context),
            notification_type=template["type"],
            data={"stage": stage, "scheduled_time": scheduled_time, **(data or {})}
        )

    def send_refill_reminder(
        self,
        medication_name: str,
        quantity: int,
        data: Optional[Dict[str, Any]] = None
    ) -> NotificationResult:
        context = {"medication": medication_name, "quantity": quantity}
        return self.dispatch(
            title=REFILL_TEMPLATE["title"].format(**context),
            body=REFILL_TEMPLATE["message"].format(**context),
            notification_type=NotificationType.REFILL_REMINDER,
            data=data
        )


# Singleton instance
notification_service = NotificationService()
