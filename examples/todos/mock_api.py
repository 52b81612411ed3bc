"""
vmodels TODO demo - Mock Backend
================================

Asynchronous stand-in for a remote todo service. Every call sleeps for a
simulated network latency before answering from an in-memory table.
"""

import asyncio
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

# Simulated round trip in seconds
DEFAULT_LATENCY = 0.5


class RequestState(Enum):
    LOADING = "loading"
    SUCCESS = "success"
    FAILURE = "failure"


@dataclass(frozen=True)
class Todo:
    id: int
    name: str
    created_at: datetime
    completed: bool = False
    notes: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> "Todo":
        """Revive a persisted todo; ``created_at`` is stored as ISO 8601."""
        return cls(
            id=data["id"],
            name=data["name"],
            created_at=datetime.fromisoformat(data["created_at"]),
            completed=data.get("completed", False),
            notes=data.get("notes", ""),
        )


@dataclass(frozen=True)
class TodoSearchResult:
    id: int
    name: str
    completed: bool


def _seed() -> Dict[int, Todo]:
    now = datetime.now()
    return {
        1: Todo(
            1,
            "Update README.md",
            now,
            notes="Make sure the new feature has been added to the documentation",
        ),
        2: Todo(2, "Update GitHub releases", now, notes="Delete the old artifacts"),
        3: Todo(3, "Try out vmodels", now, completed=True, notes="It works"),
    }


class MockApi:
    def __init__(self, latency: float = DEFAULT_LATENCY):
        self.latency = latency
        self._todos = _seed()

    async def _sleep(self) -> None:
        await asyncio.sleep(self.latency)

    async def get_todos(self) -> List[TodoSearchResult]:
        await self._sleep()
        ordered = sorted(self._todos.values(), key=lambda todo: todo.created_at)
        return [TodoSearchResult(todo.id, todo.name, todo.completed) for todo in ordered]

    async def get_todo(self, todo_id: int) -> Optional[Todo]:
        await self._sleep()
        return self._todos.get(todo_id)

    async def add_todo(self, name: str, notes: str = "") -> Todo:
        await self._sleep()
        todo = Todo(len(self._todos) + 1, name, datetime.now(), notes=notes)
        self._todos[todo.id] = todo
        return todo

    async def update_todo(self, todo: Todo) -> Todo:
        await self._sleep()
        self._todos[todo.id] = todo
        return replace(todo)

    async def delete_todo(self, todo_id: int) -> Optional[Todo]:
        await self._sleep()
        return self._todos.pop(todo_id, None)


api = MockApi()
