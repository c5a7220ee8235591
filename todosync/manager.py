"""
TODOSYNC - Todo Manager
=======================
Wires the filter selector, query cache, view model and mutation coordinator
around one remote todo service.

Control flow:
    filter change  -> cache refetch for the tab's statuses -> view re-derived
    user intent    -> coordinator mutation(s) -> refetch per acknowledgment
"""

import logging
from typing import Any, Dict, List, Optional, Union

from .cache import TodoQueryCache
from .coordinator import MutationCoordinator
from .events import EventBus
from .filters import FilterSelector
from .schema import BulkResult, MutationResult, Todo, TodoFilter, TodoStatus, validate_todo_id
from .service import TodoService
from .view_model import TodoListView, TodoViewModel

logger = logging.getLogger("todosync.manager")


class TodoManager:
    """
    Single-list todo client.

    Usage:
        manager = TodoManager(HttpTodoService("http://localhost:3000/api/trpc"))
        await manager.start()
        await manager.set_filter("pending")
        await manager.complete(3)
        print(manager.status_report())
    """

    def __init__(self, service: TodoService, bus: Optional[EventBus] = None):
        self.service = service
        self.bus = bus or EventBus()
        self.selector = FilterSelector(self.bus)
        self.cache = TodoQueryCache(service, self.selector, self.bus)
        self.view_model = TodoViewModel(self.cache, self.selector, self.bus)
        self.coordinator = MutationCoordinator(service, self.cache, self.bus)

    # ========================================
    # READ SIDE
    # ========================================

    async def start(self) -> bool:
        """Initial fetch for the default tab"""
        return await self.cache.refetch()

    async def set_filter(self, value: Union[TodoFilter, str]) -> TodoListView:
        """Switch tabs and wait for the scoped refetch to settle"""
        await self.selector.set_active(value)
        await self.cache.wait_idle()
        return self.view_model.snapshot()

    @property
    def visible(self) -> List[Todo]:
        return self.view_model.visible

    def snapshot(self) -> TodoListView:
        return self.view_model.snapshot()

    def find(self, todo_id: int) -> Optional[Todo]:
        return self.cache.get(validate_todo_id(todo_id))

    # ========================================
    # WRITE SIDE
    # ========================================

    async def add(self, body: str) -> MutationResult:
        return await self.coordinator.create(body)

    async def complete(self, todo_id: int) -> Optional[MutationResult]:
        """Complete a todo by id; None if it is not in the snapshot"""
        todo = self.find(todo_id)
        if not todo:
            logger.warning(f"Todo not found: {todo_id}")
            return None
        return await self.coordinator.complete(todo)

    async def delete(self, todo_id: int) -> Optional[MutationResult]:
        todo = self.find(todo_id)
        if not todo:
            logger.warning(f"Todo not found: {todo_id}")
            return None
        return await self.coordinator.delete(todo)

    async def complete_all(self) -> BulkResult:
        return await self.coordinator.complete_all_pending()

    async def delete_all(self) -> BulkResult:
        return await self.coordinator.delete_all()

    async def aclose(self) -> None:
        await self.cache.wait_idle()
        close = getattr(self.service, "aclose", None)
        if close:
            await close()

    # ========================================
    # REPORTING
    # ========================================

    def to_dict(self) -> Dict[str, Any]:
        view = self.snapshot()
        return {
            "filter": view.active.value,
            "stale": view.is_stale,
            "can_complete_all": view.can_complete_all,
            "can_delete_all": view.can_delete_all,
            "todos": [t.model_dump(mode="json") for t in view.visible],
            "failures": self.coordinator.stats.failed,
        }

    def status_report(self) -> str:
        """Human-readable rendering of the visible list"""
        view = self.snapshot()

        tabs = " ".join(
            f"[{tab.value}]" if tab == view.active else f" {tab.value} "
            for tab in self.selector.tabs
        )
        lines = [f"📋 Todos {tabs}", ""]

        if view.is_empty:
            lines.append("  No data")
        for todo in view.visible:
            icon = "✅" if todo.status == TodoStatus.COMPLETED else "⬜"
            lines.append(f"  {icon} [{todo.id}] {todo.body}")

        lines.append("")
        done = sum(1 for t in view.visible if t.is_completed)
        lines.append(f"{done}/{len(view.visible)} completed")
        if view.is_stale:
            lines.append("⏳ Waiting for the server to confirm the latest change")
        if self.coordinator.stats.failed:
            lines.append(
                f"⚠️ {self.coordinator.stats.failed} request(s) failed: "
                f"{self.coordinator.stats.failed_ids}"
            )
        return "\n".join(lines)
