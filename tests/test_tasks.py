"""Tests for the reminder task board."""

import pytest

from klinewaker.db.store import DataStore
from klinewaker.errors import NotFoundError, StoreError
from klinewaker.models import Task
from klinewaker.scheduler import TaskBoard


@pytest.fixture
def board(temp_db: DataStore) -> TaskBoard:
    return TaskBoard(temp_db)


class TestTaskBoard:

    def test_add_persists_camel_case(self, board: TaskBoard, temp_db: DataStore):
        task = board.add("ES 15m", 15, notify_before=30)

        stored = temp_db.tasks.find_one({"id": task.id})
        assert stored["notifyBefore"] == 30
        assert stored["enabled"] is True
        assert "createdAt" in stored
        assert Task.model_validate(stored) == task

    def test_refresh_newest_first(self, board: TaskBoard, temp_db: DataStore):
        temp_db.tasks.insert({"id": "old", "name": "old", "period": 5, "createdAt": 1})
        temp_db.tasks.insert({"id": "new", "name": "new", "period": 5, "createdAt": 2})

        assert [t.id for t in board.refresh()] == ["new", "old"]

    def test_update(self, board: TaskBoard):
        task = board.add("NQ", 5)
        updated = board.update(task.id, period=60, name="NQ 1h")

        assert updated.period_label == "1h"
        assert board.refresh()[0].name == "NQ 1h"
        assert board.get(task.id).created_at == task.created_at

    def test_toggle(self, board: TaskBoard):
        task = board.add("BTC", 15)
        assert board.toggle(task.id).enabled is False
        assert board.refresh()[0].enabled is False
        assert board.toggle(task.id).enabled is True

    def test_remove(self, board: TaskBoard, temp_db: DataStore):
        task = board.add("BTC", 15)
        assert board.remove(task.id) is True
        assert board.remove(task.id) is False
        assert temp_db.tasks.count() == 0

    def test_missing_task(self, board: TaskBoard):
        with pytest.raises(NotFoundError):
            board.update("missing", period=5)
        with pytest.raises(NotFoundError):
            board.toggle("missing")


class TestRollback:
    """A failed write restores the previous list."""

    def test_failed_add(self, board: TaskBoard, temp_db: DataStore, monkeypatch):
        existing = board.add("kept", 15)

        def boom(doc):
            raise OSError("disk full")

        monkeypatch.setattr(temp_db.tasks, "insert", boom)

        with pytest.raises(StoreError):
            board.add("lost", 5)
        assert board.tasks == [existing]

    def test_failed_update(self, board: TaskBoard, temp_db: DataStore, monkeypatch):
        task = board.add("kept", 15)

        def boom(query, patch):
            raise OSError("locked")

        monkeypatch.setattr(temp_db.tasks, "update", boom)

        with pytest.raises(StoreError):
            board.toggle(task.id)
        assert board.get(task.id).enabled is True

    def test_failed_remove(self, board: TaskBoard, temp_db: DataStore, monkeypatch):
        task = board.add("kept", 15)

        def boom(query):
            raise OSError("locked")

        monkeypatch.setattr(temp_db.tasks, "remove", boom)

        with pytest.raises(StoreError):
            board.remove(task.id)
        assert board.get(task.id) == task
