"""Task reminders for NekoTasks.

A reminder fires at a task's deadline. Each task has one reminder slot keyed by
its stable notification id, so rescheduling or snoozing replaces the previous
reminder instead of adding another.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional

from pydantic import BaseModel, Field

from nekotasks.database.repository import ItemRepository
from nekotasks.models.constants import SNOOZE_MINUTES
from nekotasks.models.item import CalendarItem

logger = logging.getLogger(__name__)

REMINDER_CATEGORY = "TASK_REMINDER"


class ReminderAction(str, Enum):
    """Actions offered on a delivered reminder."""
    COMPLETE = "COMPLETE_ACTION"
    SNOOZE = "SNOOZE_ACTION"


class Reminder(BaseModel):
    """A scheduled reminder request."""

    identifier: str = Field(..., description="Reminder slot, 'task-<notification_id>'")
    title: str = Field(..., description="Task title")
    body: Optional[str] = Field(None, description="Task description")
    fire_at: datetime = Field(..., description="When the reminder fires (seconds zeroed)")
    category: str = Field(REMINDER_CATEGORY, description="Category carrying the complete/snooze actions")


class NotificationCenter(ABC):
    """Delivery backend for reminders."""

    @abstractmethod
    def add(self, reminder: Reminder) -> None:
        """Schedule a reminder, replacing any pending one with the same identifier."""

    @abstractmethod
    def remove_pending(self, identifiers: Iterable[str]) -> None:
        ...

    @abstractmethod
    def remove_delivered(self, identifiers: Iterable[str]) -> None:
        ...

    @abstractmethod
    def list_pending(self) -> List[Reminder]:
        """Pending reminders ordered by fire time."""


class InMemoryNotificationCenter(NotificationCenter):
    """Process-local notification center. Delivery happens when ``deliver_due`` is called."""

    def __init__(self):
        self.pending: Dict[str, Reminder] = {}
        self.delivered: Dict[str, Reminder] = {}

    def add(self, reminder: Reminder) -> None:
        self.pending[reminder.identifier] = reminder

    def remove_pending(self, identifiers: Iterable[str]) -> None:
        for identifier in identifiers:
            self.pending.pop(identifier, None)

    def remove_delivered(self, identifiers: Iterable[str]) -> None:
        for identifier in identifiers:
            self.delivered.pop(identifier, None)

    def list_pending(self) -> List[Reminder]:
        return sorted(self.pending.values(), key=lambda r: r.fire_at)

    def deliver_due(self, now: datetime) -> List[Reminder]:
        """Move reminders whose fire time has passed to the delivered set."""
        due = sorted(
            (r for r in self.pending.values() if r.fire_at <= now),
            key=lambda r: r.fire_at,
        )
        for reminder in due:
            del self.pending[reminder.identifier]
            self.delivered[reminder.identifier] = reminder
        return due


class ReminderManager:
    """Schedules, snoozes and cancels task reminders."""

    def __init__(self, center: NotificationCenter, clock: Callable[[], datetime] = datetime.now):
        self.center = center
        self.clock = clock

    @staticmethod
    def identifier_for(item: CalendarItem) -> str:
        return f"task-{item.notification_id}"

    def schedule_reminder(self, item: CalendarItem) -> Optional[Reminder]:
        """Schedule a reminder at the item's deadline.

        Completed items and items without a deadline get no reminder.

        Returns:
            The scheduled reminder, or None if nothing was scheduled
        """
        if item.is_completed or item.deadline is None:
            return None

        reminder = Reminder(
            identifier=self.identifier_for(item),
            title=item.title,
            body=item.description,
            fire_at=item.deadline.replace(second=0, microsecond=0),
        )
        self.center.add(reminder)
        logger.debug(f"Scheduled reminder {reminder.identifier} at {reminder.fire_at}")
        return reminder

    def schedule_snooze(self, item: CalendarItem, minutes: int = SNOOZE_MINUTES) -> Reminder:
        """Re-fire the item's reminder ``minutes`` from now."""
        reminder = Reminder(
            identifier=self.identifier_for(item),
            title=item.title,
            body=item.description,
            fire_at=self.clock() + timedelta(minutes=minutes),
        )
        self.center.add(reminder)
        logger.debug(f"Snoozed reminder {reminder.identifier} until {reminder.fire_at}")
        return reminder

    def cancel_reminder(self, item: CalendarItem) -> None:
        """Remove pending and delivered reminders for the item."""
        identifier = self.identifier_for(item)
        self.center.remove_pending([identifier])
        self.center.remove_delivered([identifier])
        logger.debug(f"Cancelled reminder {identifier}")

    def sync(self, item: CalendarItem) -> Optional[Reminder]:
        """Bring the item's reminder in line with its current state."""
        self.cancel_reminder(item)
        return self.schedule_reminder(item)

    def handle_action(self, identifier: str, action: ReminderAction, items: ItemRepository) -> Optional[CalendarItem]:
        """Apply a reminder action to the task it belongs to.

        Returns:
            The affected item, or None if no item owns the reminder
        """
        notification_id = identifier[len("task-"):] if identifier.startswith("task-") else identifier
        item = items.get_by_notification_id(notification_id)
        if item is None:
            logger.warning(f"Reminder action {action} for unknown reminder {identifier}")
            return None

        if ReminderAction(action) == ReminderAction.COMPLETE:
            item = items.set_completed(item.id, True)
            self.cancel_reminder(item)
        else:
            self.schedule_snooze(item)
        return item
