"""
vmodels TODO demo - View Models
===============================

Three models showing the factory's modes:

- ``use_count``: persisted to a JSON file, one counter per username
- ``use_todo``: persisted, but only the ``todo`` cell, revived through a
  restore hook
- ``use_todo_list``: unmemoized, rebuilt on every call
"""

import logging
from dataclasses import replace

from mock_api import RequestState, Todo, api

from vmodels import (
    JsonFileStorage,
    PersistenceOptions,
    define_model,
    define_view_model,
    observable,
)

logger = logging.getLogger(__name__)

storage = JsonFileStorage("todo_demo_state.json")


@define_view_model("Count", persistence=PersistenceOptions(storage))
def use_count(username):
    count = observable(0)

    def increment(by=1):
        logger.info("Incremented %s by %s", username, by)
        count.set(count.value + by)

    return {
        "count": count,
        "next_number": count >> (lambda value: value + 1),
        "increment": increment,
    }


@define_view_model(
    "Todo",
    persistence=PersistenceOptions(
        storage,
        keys_to_persist=["todo"],
        restore_fields={"todo": Todo.from_dict},
    ),
)
def use_todo(todo_id):
    # The id lives in a cell so behaviors follow it across argument switches.
    current_id = observable(todo_id)
    todo = observable(None)
    request_state = observable(RequestState.SUCCESS)
    toggle_state = observable(RequestState.SUCCESS)

    async def load_todo():
        request_state.set(RequestState.LOADING)
        todo.set(await api.get_todo(current_id.value))
        request_state.set(RequestState.SUCCESS)

    async def toggle_completed():
        if todo.value is None:
            logger.warning("Attempted to toggle a todo that doesn't exist")
            return
        toggle_state.set(RequestState.LOADING)
        toggled = replace(todo.value, completed=not todo.value.completed)
        todo.set(toggled)
        todo.set(await api.update_todo(toggled))
        toggle_state.set(RequestState.SUCCESS)

    return {
        "todo_id": current_id,
        "todo": todo,
        "request_state": request_state,
        "is_loading": request_state >> (lambda state: state is RequestState.LOADING),
        "load_todo": load_todo,
        "toggle_completed": toggle_completed,
        "is_toggling_completed": toggle_state
        >> (lambda state: state is RequestState.LOADING),
    }


@define_model("TodoList")
def use_todo_list():
    all_todos = observable([])
    request_state = observable(RequestState.SUCCESS)

    async def load_todos():
        request_state.set(RequestState.LOADING)
        all_todos.set(await api.get_todos())
        request_state.set(RequestState.SUCCESS)

    return {
        "all_todos": all_todos,
        "completed_todos": all_todos
        >> (lambda todos: [todo for todo in todos if todo.completed]),
        "incomplete_todos": all_todos
        >> (lambda todos: [todo for todo in todos if not todo.completed]),
        "request_state": request_state,
        "is_loading": request_state >> (lambda state: state is RequestState.LOADING),
        "load_todos": load_todos,
    }
