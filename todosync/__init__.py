"""
TODOSYNC - Todo List Client
===========================

Keeps a local, filtered view of a remote todo list consistent with the
server. Every mutation is followed by a refetch; the cached snapshot is never
edited in place.

Usage:
    from todosync import TodoManager, HttpTodoService

    manager = TodoManager(HttpTodoService("http://localhost:3000/api/trpc"))
    await manager.start()

    await manager.set_filter("pending")
    await manager.complete(1)
    result = await manager.complete_all()
    print(result.failed_ids)
    print(manager.status_report())
"""

from .schema import (
    Todo,
    TodoStatus,
    TodoFilter,
    FILTER_TABS,
    MutationResult,
    BulkResult,
    statuses_for_filter
)
from .errors import TodoSyncError, ValidationError, RemoteFailure, StaleView
from .events import EventBus
from .filters import FilterSelector
from .cache import TodoQueryCache
from .view_model import TodoViewModel, TodoListView, derive_visible, all_completed
from .coordinator import MutationCoordinator, MutationStats
from .service import TodoService, HttpTodoService
from .config import ClientConfig
from .manager import TodoManager

__version__ = "1.0.0"
__all__ = [
    "TodoManager",
    "Todo",
    "TodoStatus",
    "TodoFilter",
    "FILTER_TABS",
    "MutationResult",
    "BulkResult",
    "statuses_for_filter",
    "TodoSyncError",
    "ValidationError",
    "RemoteFailure",
    "StaleView",
    "EventBus",
    "FilterSelector",
    "TodoQueryCache",
    "TodoViewModel",
    "TodoListView",
    "derive_visible",
    "all_completed",
    "MutationCoordinator",
    "MutationStats",
    "TodoService",
    "HttpTodoService",
    "ClientConfig",
]
