"""API routes for events, announcements, tasks and todos."""

from datetime import UTC, datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from carehome.api.deps import get_current_actor, get_policies
from carehome.api.schemas.activity import (
    AnnouncementCreate,
    AnnouncementResponse,
    EventCreate,
    EventResponse,
    EventUpdate,
    TaskCreate,
    TaskResponse,
    TodoCreate,
    TodoResponse,
)
from carehome.core.database import get_db
from carehome.core.exceptions import DateRangeValidationError
from carehome.models import Announcement, Event, Task, TaskStatus, Todo
from carehome.policy import Actor, PolicySet
from carehome.repositories import (
    AnnouncementRepository,
    EventRepository,
    TaskRepository,
    TodoRepository,
)

router = APIRouter(prefix="/api", tags=["activity"])


# Events


@router.get("/events", response_model=list[EventResponse])
async def list_events(
    start: datetime | None = Query(None, description="Only events ending after this time"),
    end: datetime | None = Query(None, description="Only events starting before this time"),
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    policies: PolicySet = Depends(get_policies),
) -> list[Event]:
    if start and end and start > end:
        raise DateRangeValidationError(start=start, end=end)
    return await EventRepository(db, actor, policies).list_between(start, end)


@router.post("/events", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
async def create_event(
    data: EventCreate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    policies: PolicySet = Depends(get_policies),
) -> Event:
    event = Event(
        title=data.title,
        description=data.description,
        start_time=data.start_time,
        end_time=data.end_time,
        location=data.location,
        organizer_id=actor.id,
        attendees=[str(profile_id) for profile_id in data.attendees],
    )
    event = await EventRepository(db, actor, policies).insert(event)
    await db.commit()
    return event


@router.patch("/events/{event_id}", response_model=EventResponse)
async def update_event(
    event_id: UUID,
    data: EventUpdate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    policies: PolicySet = Depends(get_policies),
) -> Event:
    repo = EventRepository(db, actor, policies)
    event = await repo.get_visible(event_id)
    changes = data.model_dump(exclude_unset=True)
    if changes.get("attendees") is not None:
        changes["attendees"] = [str(profile_id) for profile_id in changes["attendees"]]
    start = changes.get("start_time") or event.start_time
    end = changes.get("end_time") or event.end_time
    if end < start:
        raise DateRangeValidationError(start=start, end=end)
    event = await repo.apply_update(event, changes)
    await db.commit()
    return event


@router.delete("/events/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_event(
    event_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    policies: PolicySet = Depends(get_policies),
) -> None:
    repo = EventRepository(db, actor, policies)
    event = await repo.get_visible(event_id)
    await repo.remove(event)
    await db.commit()


# Announcements


@router.get("/announcements", response_model=list[AnnouncementResponse])
async def list_announcements(
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    policies: PolicySet = Depends(get_policies),
) -> list[Announcement]:
    return await AnnouncementRepository(db, actor, policies).list_current(datetime.now(UTC))


@router.post(
    "/announcements", response_model=AnnouncementResponse, status_code=status.HTTP_201_CREATED
)
async def create_announcement(
    data: AnnouncementCreate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    policies: PolicySet = Depends(get_policies),
) -> Announcement:
    announcement = Announcement(**data.model_dump(), author_id=actor.id)
    announcement = await AnnouncementRepository(db, actor, policies).insert(announcement)
    await db.commit()
    return announcement


@router.delete("/announcements/{announcement_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_announcement(
    announcement_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    policies: PolicySet = Depends(get_policies),
) -> None:
    repo = AnnouncementRepository(db, actor, policies)
    announcement = await repo.get_visible(announcement_id)
    await repo.remove(announcement)
    await db.commit()


# Tasks and todos


@router.get("/tasks", response_model=list[TaskResponse])
async def list_my_tasks(
    status_filter: TaskStatus | None = Query(None, alias="status"),
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    policies: PolicySet = Depends(get_policies),
) -> list[Task]:
    return await TaskRepository(db, actor, policies).list_mine(status_filter)


@router.post("/tasks", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
async def assign_task(
    data: TaskCreate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    policies: PolicySet = Depends(get_policies),
) -> Task:
    task = Task(**data.model_dump(), status=TaskStatus.TODO)
    task = await TaskRepository(db, actor, policies).insert(task)
    await db.commit()
    return task


@router.get("/todos", response_model=list[TodoResponse])
async def list_my_todos(
    include_completed: bool = Query(True),
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    policies: PolicySet = Depends(get_policies),
) -> list[Todo]:
    return await TodoRepository(db, actor, policies).list_mine(include_completed=include_completed)


@router.post("/todos", response_model=TodoResponse, status_code=status.HTTP_201_CREATED)
async def create_todo(
    data: TodoCreate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    policies: PolicySet = Depends(get_policies),
) -> Todo:
    todo = Todo(**data.model_dump(), assigned_to=actor.id, completed=False)
    todo = await TodoRepository(db, actor, policies).insert(todo)
    await db.commit()
    return todo
