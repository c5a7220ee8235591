"""
TODOSYNC - Remote Todo Service
==============================
The remote service owns durable todo state. The client consumes four
operations: query-all-by-status, update-status, delete and create.

HttpTodoService speaks the tRPC-over-HTTP shape of the todo server:
queries are ``GET {base}/{procedure}?input=<json>``, mutations are
``POST {base}/{procedure}`` with a JSON body, and every response wraps its
payload as ``{"result": {"data": ...}}``.
"""

import json
import logging
from typing import Any, Dict, Iterable, List, Optional, Protocol

import httpx

from .errors import RemoteFailure, ValidationError
from .schema import Todo, TodoStatus, parse_todo

logger = logging.getLogger("todosync.service")


class TodoService(Protocol):
    """Contract of the remote todo service"""

    async def query_all(self, statuses: Iterable[TodoStatus]) -> List[Todo]:
        """Idempotent read of every todo whose status is in ``statuses``"""
        ...

    async def update_status(self, todo_id: int, status: TodoStatus) -> None:
        ...

    async def delete(self, todo_id: int) -> None:
        ...

    async def create(self, body: str) -> Optional[Todo]:
        ...


class HttpTodoService:
    """
    httpx client for the tRPC todo routers.

    Every failure (transport error, timeout, non-2xx status, error payload)
    surfaces as RemoteFailure.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    async def _get_http_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeout)
            self._owns_client = True
        return self._client

    async def aclose(self) -> None:
        if self._owns_client and self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    # ========================================
    # WIRE
    # ========================================

    async def _call(self, procedure: str, payload: Dict[str, Any], mutation: bool) -> Any:
        client = await self._get_http_client()
        url = f"{self.base_url}/{procedure}"

        try:
            if mutation:
                resp = await client.post(url, json=payload)
            else:
                resp = await client.get(url, params={"input": json.dumps(payload)})
        except httpx.TimeoutException as e:
            raise RemoteFailure(procedure, f"timed out after {self.timeout}s") from e
        except httpx.HTTPError as e:
            raise RemoteFailure(procedure, f"{type(e).__name__}: {e}") from e

        try:
            body = resp.json()
        except ValueError:
            body = None

        if resp.status_code >= 400:
            raise RemoteFailure(procedure, self._error_message(body) or f"HTTP {resp.status_code}", resp.status_code)
        if not isinstance(body, dict):
            raise RemoteFailure(procedure, "response is not a JSON object", resp.status_code)
        if "error" in body:
            raise RemoteFailure(procedure, self._error_message(body) or "unknown error", resp.status_code)

        result = body.get("result")
        if not isinstance(result, dict):
            raise RemoteFailure(procedure, "response has no result", resp.status_code)
        return result.get("data")

    @staticmethod
    def _error_message(body: Any) -> Optional[str]:
        if not isinstance(body, dict):
            return None
        error = body.get("error")
        if isinstance(error, dict):
            message = error.get("message")
            if message is None and isinstance(error.get("json"), dict):
                message = error["json"].get("message")
            return str(message) if message is not None else json.dumps(error)
        if error is not None:
            return str(error)
        return None

    # ========================================
    # OPERATIONS
    # ========================================

    async def query_all(self, statuses: Iterable[TodoStatus]) -> List[Todo]:
        statuses = [TodoStatus(s).value for s in statuses]
        data = await self._call("todo.getAll", {"statuses": statuses}, mutation=False)

        if not isinstance(data, list):
            raise RemoteFailure("todo.getAll", f"expected a list of todos, got {type(data).__name__}")

        try:
            todos = [parse_todo(item) for item in data]
        except ValidationError as e:
            raise RemoteFailure("todo.getAll", str(e)) from e

        logger.debug(f"📥 todo.getAll({statuses}) -> {len(todos)} todos")
        return todos

    async def update_status(self, todo_id: int, status: TodoStatus) -> None:
        await self._call(
            "todoStatus.update",
            {"todoId": todo_id, "status": TodoStatus(status).value},
            mutation=True
        )

    async def delete(self, todo_id: int) -> None:
        await self._call("todo.delete", {"id": todo_id}, mutation=True)

    async def create(self, body: str) -> Optional[Todo]:
        data = await self._call("todo.create", {"body": body}, mutation=True)
        if isinstance(data, dict):
            try:
                return parse_todo(data)
            except ValidationError:
                logger.debug(f"todo.create returned an unparseable todo: {data!r}")
        return None
