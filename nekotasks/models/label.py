"""Label data model for NekoTasks."""

from typing import Optional
import uuid

from pydantic import BaseModel, Field

# Color names the assistant may use, mapped to hex
LABEL_COLORS = {
    "red": "E53935",
    "orange": "FB8C00",
    "yellow": "FDD835",
    "green": "43A047",
    "teal": "00897B",
    "blue": "1E88E5",
    "indigo": "3949AB",
    "purple": "8E24AA",
    "pink": "D81B60",
    "gray": "757575",
}


def color_hex_for(name: Optional[str]) -> Optional[str]:
    """Hex color for a color name (case-insensitive), or None if unknown."""
    if not name:
        return None
    return LABEL_COLORS.get(name.strip().lower())


class Label(BaseModel):
    """Colored tag attached to tasks and events."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), description="Unique label identifier")
    name: str = Field(..., min_length=1, description="Display name")
    color_hex: Optional[str] = Field(None, description="Hex color without '#', e.g. 'FF5733'")
