"""Repository layer for label database operations."""

import logging
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from nekotasks.models.label import Label
from nekotasks.database.models import LabelDB

logger = logging.getLogger(__name__)


class LabelRepository:
    """Repository for Label database operations."""

    def __init__(self, db: Session):
        self.db = db

    def add(self, label: Label) -> LabelDB:
        """Stage a new label in the session without committing."""
        label_db = LabelDB.from_pydantic(label)
        self.db.add(label_db)
        self.db.flush()
        logger.debug(f"Staged label {label.id}: {label.name}")
        return label_db

    def create(self, label: Label) -> Label:
        """Create a new label."""
        try:
            label_db = self.add(label)
            self.db.commit()
            self.db.refresh(label_db)
            logger.debug(f"Created label {label.id}: {label.name}")
            return label_db.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to create label {label.name}: {type(e).__name__}: {str(e)}")
            raise

    def get(self, label_id: str) -> Optional[Label]:
        """Get label by ID."""
        label_db = self.db.query(LabelDB).filter(LabelDB.id == label_id).first()
        return label_db.to_pydantic() if label_db else None

    def get_all(self) -> List[Label]:
        """Get all labels sorted by name."""
        labels_db = self.db.query(LabelDB).order_by(LabelDB.name).all()
        return [label_db.to_pydantic() for label_db in labels_db]

    def find_by_name(self, name: str) -> Optional[Label]:
        """Find a label by name, ignoring case and surrounding whitespace."""
        wanted = name.strip().lower()
        if not wanted:
            return None
        label_db = self.db.query(LabelDB).filter(func.lower(LabelDB.name) == wanted).first()
        return label_db.to_pydantic() if label_db else None

    def update(self, label: Label) -> Label:
        """Update an existing label."""
        label_db = self.db.query(LabelDB).filter(LabelDB.id == label.id).first()
        if not label_db:
            raise ValueError(f"Label {label.id} not found")

        label_db.name = label.name
        label_db.color_hex = label.color_hex

        try:
            self.db.commit()
            self.db.refresh(label_db)
            logger.debug(f"Updated label {label.id}: {label.name}")
            return label_db.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to update label {label.id}: {type(e).__name__}: {str(e)}")
            raise

    def delete(self, label_id: str) -> bool:
        """Delete a label; items keep existing without it."""
        label_db = self.db.query(LabelDB).filter(LabelDB.id == label_id).first()
        if not label_db:
            return False

        try:
            self.db.delete(label_db)
            self.db.commit()
            logger.debug(f"Deleted label {label_id}")
            return True
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to delete label {label_id}: {type(e).__name__}: {str(e)}")
            raise
