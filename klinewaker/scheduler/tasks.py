"""Reminder task list with optimistic updates.

Mutations are applied to the in-memory list first so a display can show
them immediately, then written to the store. If the store call fails the
previous list is put back and a StoreError is raised.
"""

import logging
import uuid
from typing import Any, Callable, Optional

from klinewaker.db.store import DataStore
from klinewaker.errors import NotFoundError, StoreError
from klinewaker.models import Task

logger = logging.getLogger(__name__)


class TaskBoard:
    """In-memory projection of the reminder tasks in a DataStore."""

    def __init__(self, store: DataStore):
        self._store = store
        self._tasks: list[Task] = []

    @property
    def store(self) -> DataStore:
        return self._store

    @property
    def tasks(self) -> list[Task]:
        return list(self._tasks)

    def refresh(self) -> list[Task]:
        """Reload tasks from the store, newest first."""
        docs = self._store.tasks.find(sort=("createdAt", -1))
        self._tasks = [Task.model_validate(doc) for doc in docs]
        return self.tasks

    def get(self, task_id: str) -> Optional[Task]:
        for task in self._tasks:
            if task.id == task_id:
                return task
        return None

    def _commit(self, previous: list[Task], action: Callable[[], Any], what: str) -> Any:
        try:
            return action()
        except Exception as e:
            self._tasks = previous
            logger.error("Failed to %s: %s", what, e)
            raise StoreError(f"Failed to {what}: {e}") from e

    def add(self, name: str, period: int, notify_before: int = 0) -> Task:
        """Create a new enabled task."""
        task = Task(
            id=uuid.uuid4().hex,
            name=name,
            period=period,
            notify_before=notify_before,
        )
        previous = self.tasks
        self._tasks = [task] + self._tasks

        doc = task.model_dump(by_alias=True)
        self._commit(previous, lambda: self._store.tasks.insert(doc), "add task")
        return task

    def update(self, task_id: str, **changes: Any) -> Task:
        """Change a task's name, period, notify lead time or enabled flag.

        Raises:
            NotFoundError: If the task is not on the board.
        """
        current = self.get(task_id)
        if current is None:
            raise NotFoundError(f"Task not found: {task_id}")

        updated = Task.model_validate({**current.model_dump(), **changes})
        previous = self.tasks
        self._tasks = [updated if t.id == task_id else t for t in self._tasks]

        patch = updated.model_dump(by_alias=True, exclude={"id", "created_at"})
        self._commit(
            previous,
            lambda: self._store.tasks.update({"id": task_id}, patch),
            "update task",
        )
        return updated

    def toggle(self, task_id: str) -> Task:
        """Flip a task's enabled flag."""
        current = self.get(task_id)
        if current is None:
            raise NotFoundError(f"Task not found: {task_id}")
        return self.update(task_id, enabled=not current.enabled)

    def remove(self, task_id: str) -> bool:
        """Delete a task. Returns False if it was not on the board."""
        if self.get(task_id) is None:
            return False

        previous = self.tasks
        self._tasks = [t for t in self._tasks if t.id != task_id]
        self._commit(
            previous,
            lambda: self._store.tasks.remove({"id": task_id}),
            "remove task",
        )
        return True
