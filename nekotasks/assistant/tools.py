"""Assistant tools: create tasks, events and labels from model tool calls.

Each tool receives its arguments as parsed JSON and a ``ToolExecutionContext``
holding the database session. Tools only stage rows; the pipeline commits once
at the end of the turn.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

from dateutil.parser import isoparse
from sqlalchemy.orm import Session

from nekotasks.database.label_repository import LabelRepository
from nekotasks.database.repository import ItemRepository
from nekotasks.models.constants import DEFAULT_EVENT_DURATION_MINUTES, MAX_IMPORTANCE, MIN_IMPORTANCE
from nekotasks.models.item import to_local_naive
from nekotasks.models.item_factory import create_event, create_task, default_event_start
from nekotasks.models.label import LABEL_COLORS, Label, color_hex_for

logger = logging.getLogger(__name__)


class AssistantToolError(ValueError):
    """Raised when a tool call has unusable arguments. Reported back to the model."""


@dataclass
class ToolExecutionContext:
    """Per-turn state handed to every tool call."""

    db: Session
    now: datetime = field(default_factory=datetime.now)
    created_items: List[str] = field(default_factory=list)


# Argument parsing

def _optional_str(arguments: Dict[str, Any], key: str) -> Optional[str]:
    value = arguments.get(key)
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _required_str(arguments: Dict[str, Any], key: str) -> str:
    value = _optional_str(arguments, key)
    if value is None:
        raise AssistantToolError(f"'{key}' is required")
    return value


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO 8601 string to naive local time. Unparsable input returns None."""
    if not value:
        return None
    try:
        return to_local_naive(isoparse(value))
    except (ValueError, OverflowError):
        logger.warning(f"Ignoring unparsable date from assistant: {value!r}")
        return None


def parse_time_estimate(value: Optional[str]) -> Optional[int]:
    """Parse 'H:MM' into minutes. Minutes are clamped to 0..59; non-positive totals return None."""
    if not value:
        return None
    parts = value.split(":")
    try:
        hours = int(parts[0])
    except ValueError:
        logger.warning(f"Ignoring unparsable time estimate from assistant: {value!r}")
        return None
    minutes = 0
    if len(parts) > 1:
        try:
            minutes = min(59, max(0, int(parts[1])))
        except ValueError:
            minutes = 0
    total = hours * 60 + minutes
    return total if total > 0 else None


def parse_priority(value: Optional[str]) -> Optional[int]:
    if not value:
        return None
    try:
        priority = int(value)
    except ValueError:
        logger.warning(f"Ignoring non-numeric priority from assistant: {value!r}")
        return None
    if not MIN_IMPORTANCE <= priority <= MAX_IMPORTANCE:
        logger.warning(f"Ignoring out-of-range priority from assistant: {priority}")
        return None
    return priority


def attach_labels(label_names: Optional[str], context: ToolExecutionContext) -> List[str]:
    """Resolve comma-separated label names to ids, creating missing labels.

    Names match existing labels case-insensitively. Duplicate names resolve to
    one label.
    """
    if not label_names:
        return []
    names = [name.strip() for name in label_names.split(",") if name.strip()]
    if not names:
        return []

    labels = LabelRepository(context.db)
    by_name = {label.name.lower(): label.id for label in labels.get_all()}
    label_ids: List[str] = []
    for name in names:
        key = name.lower()
        if key not in by_name:
            new_label = Label(name=name)
            labels.add(new_label)
            by_name[key] = new_label.id
            logger.debug(f"Created label {name!r} on demand")
        if by_name[key] not in label_ids:
            label_ids.append(by_name[key])
    return label_ids


def _parse_subtasks(value: Optional[str]) -> List[Dict[str, Any]]:
    if not value:
        return []
    try:
        entries = json.loads(value)
    except json.JSONDecodeError as e:
        raise AssistantToolError(f"subtasks must be a JSON array: {e}") from e
    if not isinstance(entries, list):
        raise AssistantToolError("subtasks must be a JSON array")
    return entries


# Tools

def create_task_tool(arguments: Dict[str, Any], context: ToolExecutionContext) -> str:
    """Create a task (and optional subtasks)."""
    title = _required_str(arguments, "title")
    subtasks = _parse_subtasks(_optional_str(arguments, "subtasks"))

    items = ItemRepository(context.db)
    task = create_task(
        title=title,
        description=_optional_str(arguments, "description"),
        deadline=parse_iso_datetime(_optional_str(arguments, "deadline")),
        time_estimate_min=parse_time_estimate(_optional_str(arguments, "timeEstimate")),
        importance=parse_priority(_optional_str(arguments, "priority")),
        label_ids=attach_labels(_optional_str(arguments, "labels"), context),
    )
    items.add(task)

    # Position in the array is the sort order
    for index, entry in enumerate(subtasks):
        if not isinstance(entry, dict) or not _optional_str(entry, "title"):
            logger.debug(f"Skipping subtask entry {index} without a title")
            continue
        subtask = create_task(
            title=_optional_str(entry, "title"),
            description=_optional_str(entry, "description"),
            deadline=parse_iso_datetime(_optional_str(entry, "deadline")),
            time_estimate_min=parse_time_estimate(_optional_str(entry, "timeEstimate")),
            importance=parse_priority(_optional_str(entry, "priority")),
            parent_id=task.id,
            sort_order=index,
        )
        items.add(subtask)

    context.created_items.append(f"task: {title}")
    return f"Created task '{title}'"


def create_event_tool(arguments: Dict[str, Any], context: ToolExecutionContext) -> str:
    """Create a one-time event. Missing start is 9 AM today; missing end is one hour after start."""
    title = _required_str(arguments, "title")

    start = parse_iso_datetime(_optional_str(arguments, "startTime"))
    if start is None:
        start = default_event_start(context.now.date())
    end = parse_iso_datetime(_optional_str(arguments, "endTime"))
    if end is None:
        end = start + timedelta(minutes=DEFAULT_EVENT_DURATION_MINUTES)

    event = create_event(
        title=title,
        start_time=start,
        end_time=end,
        location_name=_optional_str(arguments, "location"),
        description=_optional_str(arguments, "description"),
        label_ids=attach_labels(_optional_str(arguments, "labels"), context),
    )
    ItemRepository(context.db).add(event)

    context.created_items.append(f"event: {title}")
    return f"Created event '{title}'"


def create_label_tool(arguments: Dict[str, Any], context: ToolExecutionContext) -> str:
    """Create a label with an optional named color."""
    name = _required_str(arguments, "name")
    LabelRepository(context.db).add(Label(name=name, color_hex=color_hex_for(_optional_str(arguments, "color"))))

    context.created_items.append(f"label: {name}")
    return f"Created label '{name}'"


TOOL_HANDLERS: Dict[str, Callable[[Dict[str, Any], ToolExecutionContext], str]] = {
    "create_task": create_task_tool,
    "create_event": create_event_tool,
    "create_label": create_label_tool,
}


def _string_param(description: str, **extra) -> Dict[str, Any]:
    return {"type": "string", "description": description, **extra}


TOOL_SCHEMAS: List[Dict[str, Any]] = [
    {
        "type": "function",
        "function": {
            "name": "create_task",
            "description": "Create a new task. Use this when the user wants to add a task or item todo.",
            "parameters": {
                "type": "object",
                "properties": {
                    "title": _string_param("The title of the task"),
                    "description": _string_param("Optional notes or description of the task"),
                    "deadline": _string_param("Optional deadline in ISO 8601 format (e.g., 2026-02-15T14:00:00)"),
                    "timeEstimate": _string_param("Estimate of time needed to complete the task in HH:MM format"),
                    "priority": _string_param("Priority level: 1 = low, 2 = medium, 3 = high", enum=["1", "2", "3"]),
                    "labels": _string_param(
                        "Comma-separated label names to categorize the task. Try to add at least one label to "
                        "each task/event. Do not create new labels without the user explicitly asking."
                    ),
                    "subtasks": _string_param(
                        "JSON array of subtask objects, ordered sequentially. Each object: "
                        "{\"title\":\"...\", \"description\":\"...\", \"deadline\":\"ISO 8601\", "
                        "\"timeEstimate\":\"HH:MM\", \"priority\":\"1-3\"}. Only title is required."
                    ),
                },
                "required": ["title"],
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": "create_event",
            "description": "Create a calendar event. Use this when the user wants to schedule something at a specific time.",
            "parameters": {
                "type": "object",
                "properties": {
                    "title": _string_param("The title of the event"),
                    "startTime": _string_param("Start time in ISO 8601 format (e.g., 2026-02-15T14:00:00)"),
                    "endTime": _string_param("End time in ISO 8601 format"),
                    "location": _string_param("Optional location name"),
                    "description": _string_param("Optional notes or description"),
                    "labels": _string_param("Comma-separated label names to categorize the event"),
                },
                "required": ["title"],
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": "create_label",
            "description": "Create a label/tag for organizing tasks and events.",
            "parameters": {
                "type": "object",
                "properties": {
                    "name": _string_param("The name of the label"),
                    "color": _string_param("Color name", enum=sorted(LABEL_COLORS)),
                },
                "required": ["name"],
            },
        },
    },
]


def execute_tool(name: str, arguments: str, context: ToolExecutionContext) -> str:
    """Run one tool call and return the text reported back to the model.

    Invalid arguments and unknown tools produce an error message instead of
    raising, so the model can correct itself.
    """
    handler = TOOL_HANDLERS.get(name)
    if handler is None:
        logger.warning(f"Assistant requested unknown tool {name!r}")
        return f"Error: unknown tool '{name}'"

    try:
        parsed = json.loads(arguments or "{}")
    except json.JSONDecodeError as e:
        logger.warning(f"Unparsable arguments for tool {name}: {e}")
        return f"Error: arguments for {name} are not valid JSON"
    if not isinstance(parsed, dict):
        return f"Error: arguments for {name} must be a JSON object"

    try:
        return handler(parsed, context)
    except AssistantToolError as e:
        logger.warning(f"Tool {name} rejected arguments: {e}")
        return f"Error: {e}"
