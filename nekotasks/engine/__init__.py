"""Calendar query engine for NekoTasks."""

from nekotasks.engine.occurrence import occurs_on
from nekotasks.engine.day_query import items_on, items_in_range, items_in_week, passes_filter

__all__ = [
    "occurs_on",
    "items_on",
    "items_in_range",
    "items_in_week",
    "passes_filter",
]
