"""
Shared fixtures: an in-memory todo service that records every call and can
be told to fail or stall specific requests.
"""

import asyncio
import json
from typing import Dict, Iterable, List, Optional, Set, Tuple

import httpx
import pytest

from todosync import EventBus, Todo, TodoManager, TodoStatus
from todosync.errors import RemoteFailure


class FakeTodoService:
    def __init__(self, todos: Iterable[Todo] = ()):
        self.todos: Dict[int, Todo] = {t.id: t for t in todos}
        self.next_id = max(self.todos, default=0) + 1
        self.calls: List[Tuple[str, object]] = []
        self.failures: Set[Tuple[str, Optional[int]]] = set()
        self.delays: Dict[Tuple[str, Optional[int]], float] = {}
        self.gates: Dict[Tuple[str, Optional[int]], asyncio.Event] = {}
        self.query_delays: List[float] = []
        self.fail_queries = False

    def mutation_ids(self, op: str) -> List[object]:
        return [arg for name, arg in self.calls if name == op]

    @property
    def query_count(self) -> int:
        return len(self.mutation_ids("query_all"))

    async def _enter(self, op: str, todo_id: Optional[int]) -> None:
        self.calls.append((op, todo_id))
        delay = self.delays.get((op, todo_id))
        if delay:
            await asyncio.sleep(delay)
        gate = self.gates.get((op, todo_id))
        if gate:
            await gate.wait()
        if (op, todo_id) in self.failures:
            raise RemoteFailure(op, "injected failure")

    async def query_all(self, statuses) -> List[Todo]:
        wanted = [TodoStatus(s) for s in statuses]
        self.calls.append(("query_all", tuple(s.value for s in wanted)))
        if self.fail_queries:
            raise RemoteFailure("query_all", "service unavailable")
        result = [t for t in self.todos.values() if t.status in wanted]
        if self.query_delays:
            await asyncio.sleep(self.query_delays.pop(0))
        return result

    async def update_status(self, todo_id: int, status: TodoStatus) -> None:
        await self._enter("update_status", todo_id)
        if todo_id not in self.todos:
            raise RemoteFailure("update_status", "NOT_FOUND")
        self.todos[todo_id] = self.todos[todo_id].model_copy(update={"status": TodoStatus(status)})

    async def delete(self, todo_id: int) -> None:
        await self._enter("delete", todo_id)
        if todo_id not in self.todos:
            raise RemoteFailure("delete", "NOT_FOUND")
        del self.todos[todo_id]

    async def create(self, body: str) -> Todo:
        await self._enter("create", None)
        todo = Todo(id=self.next_id, body=body)
        self.todos[todo.id] = todo
        self.next_id += 1
        return todo


def make_todos() -> List[Todo]:
    return [
        Todo(id=1, status="pending", body="a"),
        Todo(id=2, status="completed", body="b"),
        Todo(id=3, status="pending", body="c"),
    ]


def trpc_transport(service: FakeTodoService) -> httpx.MockTransport:
    """tRPC-over-HTTP front for a FakeTodoService"""

    async def handler(request: httpx.Request) -> httpx.Response:
        procedure = request.url.path.rsplit("/", 1)[-1]
        try:
            if request.method == "GET" and procedure == "todo.getAll":
                payload = json.loads(request.url.params["input"])
                todos = await service.query_all(payload["statuses"])
                data = [t.model_dump(mode="json") for t in todos]
            elif request.method == "POST" and procedure == "todoStatus.update":
                payload = json.loads(request.content)
                await service.update_status(payload["todoId"], payload["status"])
                data = None
            elif request.method == "POST" and procedure == "todo.delete":
                payload = json.loads(request.content)
                await service.delete(payload["id"])
                data = None
            elif request.method == "POST" and procedure == "todo.create":
                payload = json.loads(request.content)
                data = (await service.create(payload["body"])).model_dump(mode="json")
            else:
                return httpx.Response(404, json={"error": {"message": f"No procedure {procedure}"}})
        except RemoteFailure as e:
            return httpx.Response(500, json={"error": {"message": e.reason}})
        return httpx.Response(200, json={"result": {"data": data}})

    return httpx.MockTransport(handler)


@pytest.fixture
def todos() -> List[Todo]:
    return make_todos()


@pytest.fixture
def service(todos) -> FakeTodoService:
    return FakeTodoService(todos)


@pytest.fixture
def bus() -> EventBus:
    return EventBus(record=True)


@pytest.fixture
def manager(service, bus) -> TodoManager:
    return TodoManager(service, bus)
