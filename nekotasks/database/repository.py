"""Repository layer for item database operations."""

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from nekotasks.models.item import CalendarItem, ItemType
from nekotasks.database.models import ItemDB, LabelDB, enum_to_value

logger = logging.getLogger(__name__)


class UnknownLabelError(ValueError):
    """Raised when an item references label ids that do not exist."""


class ItemRepository:
    """Repository for CalendarItem database operations."""

    def __init__(self, db: Session):
        self.db = db

    def _labels_for(self, label_ids: List[str]) -> List[LabelDB]:
        if not label_ids:
            return []
        unique_ids = list(dict.fromkeys(label_ids))
        labels = self.db.query(LabelDB).filter(LabelDB.id.in_(unique_ids)).all()
        found = {label.id for label in labels}
        missing = [label_id for label_id in unique_ids if label_id not in found]
        if missing:
            raise UnknownLabelError(f"Unknown label ids: {', '.join(missing)}")
        by_id = {label.id: label for label in labels}
        return [by_id[label_id] for label_id in unique_ids]

    def add(self, item: CalendarItem) -> ItemDB:
        """Stage a new item in the session without committing.

        Callers that batch several writes (the assistant pipeline) commit once at the end.
        """
        item_db = ItemDB.from_pydantic(item)
        item_db.labels = self._labels_for(item.label_ids)
        self.db.add(item_db)
        self.db.flush()
        logger.debug(f"Staged item {item.id}: {item.title[:50]}")
        return item_db

    def create(self, item: CalendarItem) -> CalendarItem:
        """Create a new item."""
        try:
            item_db = self.add(item)
            self.db.commit()
            self.db.refresh(item_db)
            logger.debug(f"Created item {item.id}: {item.title[:50]}")
            return item_db.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to create item {item.id}: {type(e).__name__}: {str(e)}")
            raise

    def get(self, item_id: str) -> Optional[CalendarItem]:
        """Get item by ID."""
        item_db = self.db.query(ItemDB).filter(ItemDB.id == item_id).first()
        return item_db.to_pydantic() if item_db else None

    def get_by_notification_id(self, notification_id: str) -> Optional[CalendarItem]:
        """Get item by its reminder identifier."""
        item_db = self.db.query(ItemDB).filter(ItemDB.notification_id == notification_id).first()
        return item_db.to_pydantic() if item_db else None

    def get_all(self, item_type: Optional[ItemType] = None) -> List[CalendarItem]:
        """Get all items (optionally of one type) in creation order."""
        query = self.db.query(ItemDB)
        if item_type is not None:
            query = query.filter(ItemDB.item_type == enum_to_value(item_type))
        items_db = query.order_by(ItemDB.created_at, ItemDB.id).all()
        return [item_db.to_pydantic() for item_db in items_db]

    def get_events(self) -> List[CalendarItem]:
        """Get all events (the input to calendar queries)."""
        return self.get_all(ItemType.EVENT)

    def get_top_level_tasks(self, include_completed: bool = False) -> List[CalendarItem]:
        """Get tasks that are not subtasks of another task.

        Completed tasks are left out unless ``include_completed`` is True.
        """
        query = self.db.query(ItemDB).filter(
            ItemDB.item_type == ItemType.TASK.value,
            ItemDB.parent_id.is_(None),
        )
        if not include_completed:
            query = query.filter(ItemDB.is_completed.is_(False))
        items_db = query.order_by(ItemDB.created_at, ItemDB.id).all()
        return [item_db.to_pydantic() for item_db in items_db]

    def get_subtasks(self, parent_id: str) -> List[CalendarItem]:
        """Get subtasks of a task ordered by sort order."""
        items_db = self.db.query(ItemDB).filter(
            ItemDB.parent_id == parent_id,
        ).order_by(ItemDB.sort_order, ItemDB.created_at).all()
        return [item_db.to_pydantic() for item_db in items_db]

    def update(self, item: CalendarItem) -> CalendarItem:
        """Update an existing item."""
        item_db = self.db.query(ItemDB).filter(ItemDB.id == item.id).first()
        if not item_db:
            raise ValueError(f"Item {item.id} not found")

        item_db.title = item.title
        item_db.description = item.description
        item_db.item_type = enum_to_value(item.item_type)
        item_db.deadline = item.deadline
        item_db.start_time = item.start_time
        item_db.end_time = item.end_time
        item_db.importance = item.importance
        item_db.time_estimate_min = item.time_estimate_min
        item_db.location_name = item.location_name
        item_db.is_completed = item.is_completed
        item_db.sort_order = item.sort_order
        item_db.is_recurring = item.is_recurring
        item_db.recurrence_rule = item.recurrence_rule
        item_db.parent_id = item.parent_id

        try:
            item_db.labels = self._labels_for(item.label_ids)
            self.db.commit()
            self.db.refresh(item_db)
            logger.debug(f"Updated item {item.id}: {item.title[:50]}")
            return item_db.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to update item {item.id}: {type(e).__name__}: {str(e)}")
            raise

    def set_completed(self, item_id: str, completed: bool = True) -> Optional[CalendarItem]:
        """Mark an item complete (or not). Returns None if the item does not exist."""
        item_db = self.db.query(ItemDB).filter(ItemDB.id == item_id).first()
        if not item_db:
            return None

        try:
            item_db.is_completed = completed
            self.db.commit()
            self.db.refresh(item_db)
            logger.debug(f"Set item {item_id} completed={completed}")
            return item_db.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to update completion of item {item_id}: {type(e).__name__}: {str(e)}")
            raise

    def delete(self, item_id: str) -> bool:
        """Delete an item and its subtasks."""
        item_db = self.db.query(ItemDB).filter(ItemDB.id == item_id).first()
        if not item_db:
            return False

        try:
            self.db.delete(item_db)
            self.db.commit()
            logger.debug(f"Deleted item {item_id}")
            return True
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to delete item {item_id}: {type(e).__name__}: {str(e)}")
            raise
