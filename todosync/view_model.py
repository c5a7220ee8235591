"""
TODOSYNC - Todo View Model
==========================
Derives what the list shows from the cached snapshot and the active tab.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from .cache import TodoQueryCache
from .events import FILTER_CHANGED, TODOS_REFETCHED, EventBus
from .filters import FilterSelector
from .schema import Todo, TodoFilter, TodoStatus

logger = logging.getLogger("todosync.view_model")


def derive_visible(todos: Iterable[Todo], active: TodoFilter) -> List[Todo]:
    """Todos matching the tab, in fetch order. Empty when nothing matches."""
    active = TodoFilter(active)
    if active == TodoFilter.ALL:
        return list(todos)
    status = TodoStatus(active.value)
    return [t for t in todos if t.status == status]


def all_completed(visible: Sequence[Todo]) -> bool:
    """True iff there is at least one todo and every one is completed"""
    return bool(visible) and all(t.status == TodoStatus.COMPLETED for t in visible)


@dataclass(frozen=True)
class TodoListView:
    """Everything a renderer needs for one frame"""
    active: TodoFilter
    visible: Tuple[Todo, ...]
    can_complete_all: bool
    can_delete_all: bool
    is_stale: bool

    @property
    def is_empty(self) -> bool:
        return not self.visible


class TodoViewModel:
    """
    Read side of the list.

    Subscribes to refetch and filter events and hands a fresh TodoListView to
    every listener registered with on_change().
    """

    def __init__(
        self,
        cache: TodoQueryCache,
        selector: FilterSelector,
        bus: Optional[EventBus] = None
    ):
        self.cache = cache
        self.selector = selector
        self._listeners: List[Callable[[TodoListView], None]] = []
        self.revision = 0

        if bus:
            bus.subscribe(TODOS_REFETCHED, self._on_source_changed)
            bus.subscribe(FILTER_CHANGED, self._on_source_changed)

    @property
    def visible(self) -> List[Todo]:
        return derive_visible(self.cache.todos, self.selector.get_active())

    @property
    def can_complete_all(self) -> bool:
        return self._can_complete_all(self.visible, self.selector.get_active())

    @property
    def can_delete_all(self) -> bool:
        return bool(self.visible)

    @staticmethod
    def _can_complete_all(visible: Sequence[Todo], active: TodoFilter) -> bool:
        # Completed tab never offers bulk-complete
        if not visible or active == TodoFilter.COMPLETED:
            return False
        return not all_completed(visible)

    def snapshot(self) -> TodoListView:
        visible = tuple(self.visible)
        active = self.selector.get_active()
        return TodoListView(
            active=active,
            visible=visible,
            can_complete_all=self._can_complete_all(visible, active),
            can_delete_all=bool(visible),
            is_stale=self.cache.is_stale,
        )

    def on_change(self, listener: Callable[[TodoListView], None]) -> None:
        self._listeners.append(listener)

    def _on_source_changed(self, event_type: str, data: dict) -> None:
        self.revision += 1
        view = self.snapshot()
        logger.debug(f"👁️ {event_type}: {len(view.visible)} visible ({view.active.value})")
        for listener in self._listeners:
            listener(view)
