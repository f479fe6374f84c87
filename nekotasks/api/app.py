"""FastAPI web application for NekoTasks."""

import logging
from contextlib import asynccontextmanager
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Response
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from nekotasks.assistant.pipeline import AssistantPipeline
from nekotasks.database.database import get_db, init_db
from nekotasks.database.label_repository import LabelRepository
from nekotasks.database.repository import ItemRepository, UnknownLabelError
from nekotasks.engine.day_query import items_in_week, items_on
from nekotasks.integrations.openai_client import AssistantUnavailableError
from nekotasks.models.item import CalendarItem, ItemType, to_local_naive
from nekotasks.models.item_factory import create_event, create_task
from nekotasks.models.label import Label
from nekotasks.models.visibility import VisibilityFilter
from nekotasks.notifications.reminders import InMemoryNotificationCenter, Reminder, ReminderAction, ReminderManager
from nekotasks.recurrence.calendar import ReferenceCalendar, default_calendar
from nekotasks.recurrence.picker import PickerState, build_rule, describe_rule, load_picker_state
from nekotasks.recurrence.serializer import encode_rule, rule_to_dict

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


# Initialize FastAPI app
app = FastAPI(
    title="NekoTasks API",
    description="Tasks, events and recurring calendar items with a natural-language assistant",
    version="0.1.0",
    lifespan=lifespan,
)


# Process-wide collaborators (overridable in tests via dependency_overrides)
_assistant: Optional[AssistantPipeline] = None
_reminders = ReminderManager(InMemoryNotificationCenter())


def get_assistant() -> AssistantPipeline:
    global _assistant
    if _assistant is None:
        _assistant = AssistantPipeline()
    return _assistant


def get_reminders() -> ReminderManager:
    return _reminders


def get_calendar() -> ReferenceCalendar:
    return default_calendar()


# Request/response models
class ItemCreateRequest(BaseModel):
    """Request body for creating an item."""
    title: str = Field(..., min_length=1)
    item_type: ItemType = ItemType.TASK
    description: Optional[str] = None
    deadline: Optional[datetime] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    importance: Optional[int] = Field(None, ge=1, le=3)
    time_estimate_min: Optional[int] = Field(None, ge=1)
    location_name: Optional[str] = None
    label_ids: List[str] = Field(default_factory=list)
    parent_id: Optional[str] = None
    sort_order: int = 0
    recurrence: Optional[PickerState] = Field(None, description="Recurrence editor state; omit for one-time items")


class ItemUpdateRequest(BaseModel):
    """Request body for updating an item. Only fields that are sent are changed."""
    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    deadline: Optional[datetime] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    importance: Optional[int] = Field(None, ge=1, le=3)
    time_estimate_min: Optional[int] = Field(None, ge=1)
    location_name: Optional[str] = None
    is_completed: Optional[bool] = None
    label_ids: Optional[List[str]] = None
    sort_order: Optional[int] = None
    recurrence: Optional[PickerState] = None


# Fields an update may change but never clear; a null for these is ignored
NON_NULLABLE_UPDATE_FIELDS = frozenset({"title", "is_completed", "label_ids", "sort_order"})


class ItemResponse(BaseModel):
    """An item together with its editable recurrence state."""
    item: CalendarItem
    recurrence: Optional[PickerState] = None
    recurrence_description: str = "Does not repeat"


class ItemListResponse(BaseModel):
    items: List[CalendarItem]


class LabelRequest(BaseModel):
    name: str = Field(..., min_length=1)
    color_hex: Optional[str] = None


class DayResponse(BaseModel):
    day: date
    items: List[CalendarItem]


class WeekResponse(BaseModel):
    days: List[DayResponse]


class RecurrencePreviewResponse(BaseModel):
    rule: Optional[Dict[str, Any]] = None
    encoded: Optional[str] = None
    description: str


class ChatRequest(BaseModel):
    message: str = Field(..., min_length=1)
    reset: bool = Field(False, description="Start a new conversation before sending")


class ChatResponse(BaseModel):
    reply: str
    created: List[str] = Field(default_factory=list)


class ReminderActionRequest(BaseModel):
    action: ReminderAction


def _apply_recurrence(item: CalendarItem, state: Optional[PickerState]) -> None:
    """Build the item's rule from an editor state. Raises 400 for unbuildable states."""
    if state is None or not state.is_recurring:
        item.set_rule(None)
        return
    rule = build_rule(state)
    if rule is None:
        raise HTTPException(status_code=400, detail="A weekly repeat needs at least one weekday selected.")
    item.set_rule(rule)


def _item_response(item: CalendarItem) -> ItemResponse:
    rule = item.rule if item.is_recurring else None
    if rule is None:
        return ItemResponse(item=item)
    state = load_picker_state(rule)
    return ItemResponse(item=item, recurrence=state, recurrence_description=describe_rule(state))


def _visibility(show_recurring: bool, show_one_time: bool, label_ids: Optional[List[str]]) -> VisibilityFilter:
    return VisibilityFilter(
        show_recurring=show_recurring,
        show_one_time=show_one_time,
        label_ids=frozenset(label_ids or []),
    )


def _sync_reminder(item: CalendarItem, reminders: ReminderManager) -> None:
    if item.item_type == ItemType.TASK.value:
        reminders.sync(item)


@app.get("/health")
def health():
    """Health check endpoint."""
    return {"status": "healthy", "version": "0.1.0"}


# Items

@app.post("/items", response_model=ItemResponse, status_code=201)
def create_item(
    request: ItemCreateRequest,
    db: Session = Depends(get_db),
    reminders: ReminderManager = Depends(get_reminders),
):
    """Create a task or event."""
    if request.item_type == ItemType.EVENT:
        item = create_event(
            title=request.title,
            start_time=request.start_time,
            end_time=request.end_time,
            location_name=request.location_name,
            description=request.description,
            label_ids=request.label_ids,
        )
        item.deadline = to_local_naive(request.deadline)
    else:
        item = create_task(
            title=request.title,
            description=request.description,
            deadline=request.deadline,
            time_estimate_min=request.time_estimate_min,
            importance=request.importance,
            label_ids=request.label_ids,
            parent_id=request.parent_id,
            sort_order=request.sort_order,
        )
        item.start_time = to_local_naive(request.start_time)
        item.end_time = to_local_naive(request.end_time)
        item.location_name = request.location_name
    _apply_recurrence(item, request.recurrence)

    repo = ItemRepository(db)
    if request.parent_id and repo.get(request.parent_id) is None:
        raise HTTPException(status_code=400, detail=f"Parent item {request.parent_id} not found")
    try:
        created = repo.create(item)
    except UnknownLabelError as e:
        raise HTTPException(status_code=400, detail=str(e))

    _sync_reminder(created, reminders)
    return _item_response(created)


@app.get("/items", response_model=ItemListResponse)
def list_items(
    item_type: Optional[ItemType] = None,
    top_level_only: bool = False,
    include_completed: bool = False,
    db: Session = Depends(get_db),
):
    """List items, optionally only tasks/events or only top-level tasks.

    The top-level task list hides completed tasks unless ``include_completed`` is set.
    """
    repo = ItemRepository(db)
    if top_level_only:
        items = repo.get_top_level_tasks(include_completed=include_completed)
    else:
        items = repo.get_all(item_type)
    return ItemListResponse(items=items)


@app.get("/items/{item_id}", response_model=ItemResponse)
def get_item(item_id: str, db: Session = Depends(get_db)):
    item = ItemRepository(db).get(item_id)
    if item is None:
        raise HTTPException(status_code=404, detail=f"Item {item_id} not found")
    return _item_response(item)


@app.put("/items/{item_id}", response_model=ItemResponse)
def update_item(
    item_id: str,
    request: ItemUpdateRequest,
    db: Session = Depends(get_db),
    reminders: ReminderManager = Depends(get_reminders),
):
    """Update an item. Sending ``recurrence`` rebuilds its rule."""
    repo = ItemRepository(db)
    existing = repo.get(item_id)
    if existing is None:
        raise HTTPException(status_code=404, detail=f"Item {item_id} not found")

    changes = {
        key: value
        for key, value in request.model_dump(exclude_unset=True, exclude={"recurrence"}).items()
        if value is not None or key not in NON_NULLABLE_UPDATE_FIELDS
    }
    updated = CalendarItem(**{**existing.model_dump(), **changes})
    if "recurrence" in request.model_fields_set:
        _apply_recurrence(updated, request.recurrence)

    try:
        saved = repo.update(updated)
    except UnknownLabelError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ValueError:
        raise HTTPException(status_code=404, detail=f"Item {item_id} not found")

    _sync_reminder(saved, reminders)
    return _item_response(saved)


@app.delete("/items/{item_id}", status_code=204)
def delete_item(
    item_id: str,
    db: Session = Depends(get_db),
    reminders: ReminderManager = Depends(get_reminders),
):
    """Delete an item and its subtasks."""
    repo = ItemRepository(db)
    item = repo.get(item_id)
    if item is None:
        raise HTTPException(status_code=404, detail=f"Item {item_id} not found")
    subtasks = repo.get_subtasks(item_id)
    repo.delete(item_id)
    for removed in [item, *subtasks]:
        reminders.cancel_reminder(removed)
    return Response(status_code=204)


@app.post("/items/{item_id}/complete", response_model=ItemResponse)
def complete_item(
    item_id: str,
    completed: bool = True,
    db: Session = Depends(get_db),
    reminders: ReminderManager = Depends(get_reminders),
):
    """Mark an item complete (or reopen it with ``completed=false``)."""
    item = ItemRepository(db).set_completed(item_id, completed)
    if item is None:
        raise HTTPException(status_code=404, detail=f"Item {item_id} not found")
    _sync_reminder(item, reminders)
    return _item_response(item)


@app.get("/items/{item_id}/subtasks", response_model=ItemListResponse)
def list_subtasks(item_id: str, db: Session = Depends(get_db)):
    repo = ItemRepository(db)
    if repo.get(item_id) is None:
        raise HTTPException(status_code=404, detail=f"Item {item_id} not found")
    return ItemListResponse(items=repo.get_subtasks(item_id))


# Labels

@app.post("/labels", response_model=Label, status_code=201)
def create_label(request: LabelRequest, db: Session = Depends(get_db)):
    return LabelRepository(db).create(Label(name=request.name.strip(), color_hex=request.color_hex))


@app.get("/labels", response_model=List[Label])
def list_labels(db: Session = Depends(get_db)):
    return LabelRepository(db).get_all()


@app.put("/labels/{label_id}", response_model=Label)
def update_label(label_id: str, request: LabelRequest, db: Session = Depends(get_db)):
    try:
        return LabelRepository(db).update(Label(id=label_id, name=request.name.strip(), color_hex=request.color_hex))
    except ValueError:
        raise HTTPException(status_code=404, detail=f"Label {label_id} not found")


@app.delete("/labels/{label_id}", status_code=204)
def delete_label(label_id: str, db: Session = Depends(get_db)):
    if not LabelRepository(db).delete(label_id):
        raise HTTPException(status_code=404, detail=f"Label {label_id} not found")
    return Response(status_code=204)


# Calendar

@app.get("/calendar/day", response_model=DayResponse)
def calendar_day(
    day: Optional[date] = Query(None, alias="date"),
    show_recurring: bool = True,
    show_one_time: bool = True,
    label_ids: Optional[List[str]] = Query(None),
    db: Session = Depends(get_db),
    calendar: ReferenceCalendar = Depends(get_calendar),
):
    """Events visible on a day, ordered by start time."""
    target = day or date.today()
    events = ItemRepository(db).get_events()
    visible = items_on(events, target, _visibility(show_recurring, show_one_time, label_ids), calendar)
    return DayResponse(day=target, items=visible)


@app.get("/calendar/week", response_model=WeekResponse)
def calendar_week(
    day: Optional[date] = Query(None, alias="date"),
    show_recurring: bool = True,
    show_one_time: bool = True,
    label_ids: Optional[List[str]] = Query(None),
    db: Session = Depends(get_db),
    calendar: ReferenceCalendar = Depends(get_calendar),
):
    """Events for the seven days of the calendar week containing ``date``."""
    target = day or date.today()
    events = ItemRepository(db).get_events()
    week = items_in_week(events, target, _visibility(show_recurring, show_one_time, label_ids), calendar)
    return WeekResponse(days=[DayResponse(day=d, items=items) for d, items in week.items()])


# Recurrence

@app.post("/recurrence/preview", response_model=RecurrencePreviewResponse)
def preview_recurrence(state: PickerState):
    """Rule and human-readable summary for an editor state."""
    rule = build_rule(state)
    if rule is None:
        return RecurrencePreviewResponse(description=describe_rule(state))
    return RecurrencePreviewResponse(rule=rule_to_dict(rule), encoded=encode_rule(rule), description=describe_rule(state))


# Reminders

@app.get("/reminders", response_model=List[Reminder])
def list_reminders(reminders: ReminderManager = Depends(get_reminders)):
    """Pending reminders ordered by fire time."""
    return reminders.center.list_pending()


@app.post("/reminders/{identifier}/action", response_model=ItemResponse)
def reminder_action(
    identifier: str,
    request: ReminderActionRequest,
    db: Session = Depends(get_db),
    reminders: ReminderManager = Depends(get_reminders),
):
    """Handle a reminder's complete or snooze action."""
    item = reminders.handle_action(identifier, request.action, ItemRepository(db))
    if item is None:
        raise HTTPException(status_code=404, detail=f"Reminder {identifier} not found")
    return _item_response(item)


# Assistant

@app.post("/assistant/chat", response_model=ChatResponse)
def assistant_chat(
    request: ChatRequest,
    db: Session = Depends(get_db),
    assistant: AssistantPipeline = Depends(get_assistant),
):
    """Send a message to the assistant, which may create tasks, events and labels."""
    if not assistant.is_available():
        raise HTTPException(status_code=503, detail="The assistant is not configured (missing OPENAI_API_KEY).")
    if request.reset:
        assistant.reset_session()
    try:
        result = assistant.send(request.message, db)
    except AssistantUnavailableError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return ChatResponse(**result)
