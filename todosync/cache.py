"""
TODOSYNC - Todo Query Cache
===========================
Explicit replacement for an ambient, process-wide query cache. Holds the last
todo snapshot confirmed by the remote service and refetches it on demand.

The snapshot is only ever replaced wholesale. Each refetch carries a sequence
number and a response older than the last applied one is dropped, so
out-of-order completions cannot roll the view back.
"""

import asyncio
import logging
from typing import Optional, Set, Tuple

from .errors import RemoteFailure, StaleView
from .events import FILTER_CHANGED, REFETCH_FAILED, TODOS_REFETCHED, EventBus
from .filters import FilterSelector
from .schema import Todo, TodoFilter, statuses_for_filter
from .service import TodoService

logger = logging.getLogger("todosync.cache")


class TodoQueryCache:
    """Read-only cached copy of the remote todo set"""

    def __init__(
        self,
        service: TodoService,
        selector: FilterSelector,
        bus: Optional[EventBus] = None
    ):
        self.service = service
        self.selector = selector
        self.bus = bus

        self._todos: Tuple[Todo, ...] = ()
        self._issued = 0
        self._applied = 0
        self._stale = True
        self._pending: Set["asyncio.Task[bool]"] = set()

        self.fetched_filter: Optional[TodoFilter] = None
        self.last_error: Optional[RemoteFailure] = None
        self.fetch_count = 0

        if bus:
            bus.subscribe(FILTER_CHANGED, self._on_filter_changed)

    @property
    def todos(self) -> Tuple[Todo, ...]:
        return self._todos

    @property
    def is_stale(self) -> bool:
        return self._stale

    @property
    def in_flight(self) -> int:
        return len(self._pending)

    def require_fresh(self) -> Tuple[Todo, ...]:
        """Snapshot, or StaleView while a refetch is still owed"""
        if self._stale:
            raise StaleView("todo snapshot has not caught up with the latest mutation")
        return self._todos

    def get(self, todo_id: int) -> Optional[Todo]:
        for todo in self._todos:
            if todo.id == todo_id:
                return todo
        return None

    # ========================================
    # REFETCH
    # ========================================

    async def refetch(self) -> bool:
        """Query the service for the active tab and replace the snapshot.

        Returns True when the response was applied. A failed or superseded
        fetch keeps the previous snapshot.
        """
        self._issued += 1
        return await self._refetch(self._issued)

    async def _refetch(self, seq: int) -> bool:
        active = self.selector.get_active()
        statuses = statuses_for_filter(active)
        self.fetch_count += 1

        try:
            todos = await self.service.query_all(statuses)
            ids = [t.id for t in todos]
            if len(ids) != len(set(ids)):
                raise RemoteFailure("todo.getAll", "response contains duplicate todo ids")
        except RemoteFailure as e:
            self.last_error = e
            if seq > self._applied:
                self._stale = True
            logger.warning(f"⚠️ Refetch #{seq} failed, keeping {len(self._todos)} cached todos: {e}")
            if self.bus:
                await self.bus.emit(REFETCH_FAILED, {"seq": seq, "reason": e.reason})
            return False

        if seq < self._applied:
            logger.debug(f"Dropping refetch #{seq}, #{self._applied} already applied")
            return False

        self._todos = tuple(todos)
        self._applied = seq
        self.fetched_filter = active
        self.last_error = None
        self._stale = seq != self._issued

        logger.debug(f"🔄 Refetch #{seq} applied: {len(todos)} todos ({active.value})")
        if self.bus:
            await self.bus.emit(TODOS_REFETCHED, {
                "seq": seq,
                "filter": active.value,
                "count": len(todos),
            })
        return True

    def invalidate(self) -> "asyncio.Task[bool]":
        """Mark the snapshot stale and schedule a refetch.

        The returned task may be awaited; wait_idle() awaits every one still
        outstanding.
        """
        self._stale = True
        # Sequence is taken at scheduling time so a queued refetch counts as owed
        self._issued += 1
        task = asyncio.ensure_future(self._refetch(self._issued))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def wait_idle(self) -> None:
        while self._pending:
            await asyncio.gather(*list(self._pending))

    async def _on_filter_changed(self, event_type: str, data: dict) -> None:
        self.invalidate()
