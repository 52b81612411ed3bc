#!/usr/bin/env python3
"""
vmodels TODO demo
=================

Walks through the view models in ``view_models.py``: loads and toggles a
todo, switches the todo id under a held bundle, and reads state back with
``get_state``. Diagnostics go through a rich log handler.

To run:
```bash
$ pip install -e ".[demo]" && cd examples/todos && python main.py
```
"""

import asyncio
import logging

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from view_models import storage, use_count, use_todo, use_todo_list

from vmodels import observable

console = Console()

logging.basicConfig(
    level=logging.INFO,
    format="%(message)s",
    handlers=[RichHandler(console=console, show_path=False)],
)


def show_todos(title, todos):
    table = Table(title=title)
    table.add_column("id", justify="right")
    table.add_column("name")
    table.add_column("done")
    for todo in todos:
        table.add_row(str(todo.id), todo.name, "x" if todo.completed else "")
    console.print(table)


async def main():
    console.rule("Counter")
    username = observable("alice")
    counter = use_count(username)
    counter.increment()
    counter.increment(2)
    console.print(f"alice: {counter.count.value}, next {counter.next_number.value}")
    username.set("bob")
    console.print(f"bob (same bundle): {counter.count.value}")
    console.print("alice stored:", storage.get("VIEW_MODEL.Count.alice"))

    console.rule("Todo list")
    todo_list = use_todo_list()
    await todo_list.load_todos()
    show_todos("All todos", todo_list.all_todos.value)
    show_todos("Incomplete", todo_list.incomplete_todos.value)

    console.rule("Todo")
    console.print("Todo 1 on load:", use_todo.get_state(1))
    todo_id = observable(1)
    todo = use_todo(todo_id)
    if todo.todo.value is None:
        await todo.load_todo()
    console.print("Loaded:", todo.todo.value)
    await todo.toggle_completed()
    console.print("Toggled:", todo.todo.value)

    todo_id.set(2)
    await todo.load_todo()
    console.print("Switched to 2:", todo.todo.value)
    console.print("Todo 2 via get_state:", use_todo.get_state(2))


if __name__ == "__main__":
    asyncio.run(main())
