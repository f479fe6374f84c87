"""Calendar item data model for NekoTasks.

One record type serves both tasks (to-dos with deadlines and estimates) and
events (calendar items with start/end times and optional recurrence).
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional
import uuid

from pydantic import BaseModel, ConfigDict, Field, field_validator

from nekotasks.models.recurrence import Rule


class ItemType(str, Enum):
    """Item type enumeration."""
    TASK = "task"
    EVENT = "event"


def to_local_naive(value: Optional[datetime]) -> Optional[datetime]:
    """Convert aware datetimes to naive local time; naive values pass through."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


class CalendarItem(BaseModel):
    """Canonical task/event record."""

    model_config = ConfigDict(use_enum_values=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), description="Unique item identifier (UUID v4)")
    title: str = Field(..., description="Item title")
    description: Optional[str] = Field(None, description="Notes or description")
    item_type: ItemType = Field(ItemType.TASK, description="Task or event")
    created_at: datetime = Field(default_factory=datetime.now, description="Creation timestamp")
    deadline: Optional[datetime] = Field(None, description="Task deadline; anchors one-time items without a start")
    start_time: Optional[datetime] = Field(None, description="Event start")
    end_time: Optional[datetime] = Field(None, description="Event end")
    importance: Optional[int] = Field(None, ge=1, le=3, description="Priority: 1 = low, 2 = medium, 3 = high")
    time_estimate_min: Optional[int] = Field(None, ge=1, description="Estimated time to complete, in minutes")
    location_name: Optional[str] = Field(None, description="Where the item happens")
    is_completed: bool = Field(False, description="Whether the task is done")
    sort_order: int = Field(0, description="Position among siblings (subtasks)")
    notification_id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        description="Stable identifier for reminders",
    )
    is_recurring: bool = Field(False, description="Whether the item repeats")
    recurrence_rule: Optional[str] = Field(None, description="Serialized recurrence rule")
    label_ids: List[str] = Field(default_factory=list, description="Attached label ids")
    parent_id: Optional[str] = Field(None, description="Parent task id for subtasks")

    @field_validator("created_at", "deadline", "start_time", "end_time")
    @classmethod
    def _localize(cls, v):
        return to_local_naive(v)

    @property
    def rule(self) -> Optional[Rule]:
        """Decoded recurrence rule, or None when absent or undecodable."""
        from nekotasks.recurrence.serializer import decode_rule

        return decode_rule(self.recurrence_rule)

    def set_rule(self, rule: Optional[Rule]) -> None:
        """Store ``rule`` on the item; None makes the item non-recurring."""
        from nekotasks.recurrence.serializer import encode_rule

        self.recurrence_rule = encode_rule(rule) if rule is not None else None
        self.is_recurring = rule is not None
