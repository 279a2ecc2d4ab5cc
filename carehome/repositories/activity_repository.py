"""Repositories for events, announcements, tasks and todos."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import Select, false, or_

from carehome.models import Announcement, Event, Task, TaskStatus, Todo
from carehome.policy import Table
from carehome.repositories.base import ScopedRepository


class EventRepository(ScopedRepository[Event]):
    model_class = Event
    table = Table.EVENTS

    async def list_between(
        self, start: datetime | None = None, end: datetime | None = None
    ) -> list[Event]:
        stmt = self.base_query().order_by(Event.start_time)
        if start is not None:
            stmt = stmt.where(Event.end_time >= start)
        if end is not None:
            stmt = stmt.where(Event.start_time <= end)
        return await self.fetch_visible(stmt)


class AnnouncementRepository(ScopedRepository[Announcement]):
    model_class = Announcement
    table = Table.ANNOUNCEMENTS

    async def list_current(self, now: datetime) -> list[Announcement]:
        """Announcements that have not expired, newest first."""
        stmt = (
            self.base_query()
            .where(or_(Announcement.expires_at.is_(None), Announcement.expires_at > now))
            .order_by(Announcement.created_at.desc())
        )
        return await self.fetch_visible(stmt)


class TaskRepository(ScopedRepository[Task]):
    model_class = Task
    table = Table.TASKS

    def visibility_filter(self, stmt: Select[Any]) -> Select[Any]:
        if self.actor is None:
            return stmt.where(false())
        return stmt.where(Task.assigned_to == self.actor.id)

    async def list_mine(self, status: TaskStatus | None = None) -> list[Task]:
        stmt = self.base_query().order_by(Task.due_date)
        if status is not None:
            stmt = stmt.where(Task.status == status)
        return await self.fetch_visible(stmt)


class TodoRepository(ScopedRepository[Todo]):
    model_class = Todo
    table = Table.TODOS

    def visibility_filter(self, stmt: Select[Any]) -> Select[Any]:
        if self.actor is None:
            return stmt.where(false())
        return stmt.where(Todo.assigned_to == self.actor.id)

    async def list_mine(self, *, include_completed: bool = True) -> list[Todo]:
        stmt = self.base_query().order_by(Todo.due_date)
        if not include_completed:
            stmt = stmt.where(Todo.completed.is_(False))
        return await self.fetch_visible(stmt)
