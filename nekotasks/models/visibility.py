"""Visibility filter for calendar queries."""

from typing import FrozenSet

from pydantic import BaseModel, ConfigDict, Field


class VisibilityFilter(BaseModel):
    """Category toggles plus a label allow-list.

    An empty ``label_ids`` means no label restriction.
    """

    model_config = ConfigDict(frozen=True)

    show_recurring: bool = Field(True, description="Include recurring items")
    show_one_time: bool = Field(True, description="Include one-time items")
    label_ids: FrozenSet[str] = Field(default_factory=frozenset, description="Allowed label ids")

    @property
    def is_default(self) -> bool:
        return self.show_recurring and self.show_one_time and not self.label_ids


SHOW_ALL = VisibilityFilter()
