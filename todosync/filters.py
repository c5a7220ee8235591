"""
TODOSYNC - Filter Selector
==========================
Holds the active status tab. Changing it signals that the visible set must be
re-derived and that a fetch scoped to the new tab's statuses should happen.
"""

import logging
from typing import Optional, Tuple, Union

from .events import FILTER_CHANGED, EventBus
from .schema import FILTER_TABS, TodoFilter, coerce_filter

logger = logging.getLogger("todosync.filters")


class FilterSelector:
    """Active filter for the session. Starts at ``all``, never persisted."""

    def __init__(self, bus: Optional[EventBus] = None, initial: Union[TodoFilter, str] = TodoFilter.ALL):
        self.bus = bus
        self._active = coerce_filter(initial)

    @property
    def tabs(self) -> Tuple[TodoFilter, ...]:
        return FILTER_TABS

    def get_active(self) -> TodoFilter:
        return self._active

    async def set_active(self, value: Union[TodoFilter, str]) -> bool:
        """Select a tab. Returns True when the active filter changed."""
        new_filter = coerce_filter(value)
        if new_filter == self._active:
            return False

        previous, self._active = self._active, new_filter
        logger.info(f"🗂️ Filter: {previous.value} -> {new_filter.value}")

        if self.bus:
            await self.bus.emit(FILTER_CHANGED, {"previous": previous.value, "active": new_filter.value})
        return True
