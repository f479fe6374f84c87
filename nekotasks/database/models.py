"""SQLAlchemy database models for NekoTasks."""

from datetime import datetime
from typing import Union, TypeVar, Type
import uuid

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Table, Text
from sqlalchemy.orm import relationship

from nekotasks.database.database import Base
from nekotasks.models.item import ItemType

T = TypeVar('T')


def enum_to_value(enum_obj: Union[str, T]) -> str:
    """Convert enum to string value (handles both enum and string).

    Args:
        enum_obj: Enum instance or string value

    Returns:
        String value of the enum, or the string itself if already a string
    """
    if hasattr(enum_obj, 'value'):
        return enum_obj.value
    return str(enum_obj)


def value_to_enum(value: str, enum_class: Type[T], default: T) -> T:
    """Convert string to enum with fallback to default."""
    if not value:
        return default
    try:
        return enum_class(value.lower())
    except (ValueError, AttributeError):
        return default


item_labels = Table(
    "item_labels",
    Base.metadata,
    Column("item_id", String, ForeignKey("items.id", ondelete="CASCADE"), primary_key=True),
    Column("label_id", String, ForeignKey("labels.id", ondelete="CASCADE"), primary_key=True),
)


class LabelDB(Base):
    """Database model for Label."""

    __tablename__ = "labels"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String, nullable=False, index=True)
    color_hex = Column(String, nullable=True)

    items = relationship("ItemDB", secondary=item_labels, back_populates="labels")

    def to_pydantic(self):
        """Convert database model to Pydantic model."""
        from nekotasks.models.label import Label

        return Label(id=self.id, name=self.name, color_hex=self.color_hex)

    @classmethod
    def from_pydantic(cls, label):
        """Create database model from Pydantic model."""
        return cls(id=label.id, name=label.name, color_hex=label.color_hex)


class ItemDB(Base):
    """Database model for CalendarItem (tasks and events)."""

    __tablename__ = "items"

    # Primary key
    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))

    # Basic fields
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    item_type = Column(String, nullable=False, default=ItemType.TASK.value, index=True)
    created_at = Column(DateTime, nullable=False, default=datetime.now)

    # Timing
    deadline = Column(DateTime, nullable=True)
    start_time = Column(DateTime, nullable=True, index=True)
    end_time = Column(DateTime, nullable=True)

    # Task details
    importance = Column(Integer, nullable=True)
    time_estimate_min = Column(Integer, nullable=True)
    location_name = Column(String, nullable=True)
    is_completed = Column(Boolean, nullable=False, default=False)
    sort_order = Column(Integer, nullable=False, default=0)
    notification_id = Column(String, nullable=False, default=lambda: str(uuid.uuid4()))

    # Recurrence (serialized rule tree)
    is_recurring = Column(Boolean, nullable=False, default=False)
    recurrence_rule = Column(Text, nullable=True)

    # Subtasks are removed with their parent
    parent_id = Column(String, ForeignKey("items.id", ondelete="CASCADE"), nullable=True, index=True)
    subtasks = relationship("ItemDB", cascade="all, delete-orphan", order_by="ItemDB.sort_order")

    labels = relationship("LabelDB", secondary=item_labels, back_populates="items")

    def to_pydantic(self):
        """Convert database model to Pydantic model."""
        from nekotasks.models.item import CalendarItem

        return CalendarItem(
            id=self.id,
            title=self.title,
            description=self.description,
            item_type=value_to_enum(self.item_type, ItemType, ItemType.TASK),
            created_at=self.created_at,
            deadline=self.deadline,
            start_time=self.start_time,
            end_time=self.end_time,
            importance=self.importance,
            time_estimate_min=self.time_estimate_min,
            location_name=self.location_name,
            is_completed=self.is_completed,
            sort_order=self.sort_order,
            notification_id=self.notification_id,
            is_recurring=self.is_recurring,
            recurrence_rule=self.recurrence_rule,
            label_ids=[label.id for label in self.labels],
            parent_id=self.parent_id,
        )

    @classmethod
    def from_pydantic(cls, item):
        """Create database model from Pydantic model (labels are attached by the repository)."""
        return cls(
            id=item.id,
            title=item.title,
            description=item.description,
            item_type=enum_to_value(item.item_type),
            created_at=item.created_at,
            deadline=item.deadline,
            start_time=item.start_time,
            end_time=item.end_time,
            importance=item.importance,
            time_estimate_min=item.time_estimate_min,
            location_name=item.location_name,
            is_completed=item.is_completed,
            sort_order=item.sort_order,
            notification_id=item.notification_id,
            is_recurring=item.is_recurring,
            recurrence_rule=item.recurrence_rule,
            parent_id=item.parent_id,
        )
