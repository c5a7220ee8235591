"""
TODOSYNC - Event Bus
====================
Explicit publish/subscribe channel between the mutation coordinator, the
query cache and whatever renders the list. Replaces implicit
refetch-on-success callbacks with named events that can be observed in tests.

Usage:
    bus = EventBus()
    bus.subscribe(MUTATION_SUCCEEDED, on_mutation)
    await bus.emit(MUTATION_SUCCEEDED, {"action": "delete", "todo_id": 3})
"""

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, Union

logger = logging.getLogger("todosync.events")

# Event names
FILTER_CHANGED = "filter_changed"
MUTATION_SUCCEEDED = "mutation_succeeded"
MUTATION_FAILED = "mutation_failed"
TODOS_REFETCHED = "todos_refetched"
REFETCH_FAILED = "refetch_failed"

Handler = Callable[[str, Dict[str, Any]], Union[None, Awaitable[None]]]


class EventBus:
    """
    In-process event bus.

    Handlers may be plain functions or coroutines. They run in subscription
    order; a handler that raises is logged and does not stop the others.
    """

    def __init__(self, record: bool = False):
        self._handlers: Dict[str, List[Handler]] = {}
        self._wildcard: List[Handler] = []
        self.history: Optional[List[Tuple[str, Dict[str, Any]]]] = [] if record else None

    def subscribe(self, event_type: Optional[str], handler: Handler) -> Callable[[], None]:
        """Register a handler; None subscribes to every event.

        Returns a callable that removes the subscription.
        """
        handlers = self._wildcard if event_type is None else self._handlers.setdefault(event_type, [])
        handlers.append(handler)

        def unsubscribe() -> None:
            if handler in handlers:
                handlers.remove(handler)

        return unsubscribe

    async def emit(self, event_type: str, data: Optional[Dict[str, Any]] = None) -> None:
        payload = dict(data or {})
        if self.history is not None:
            self.history.append((event_type, payload))

        handlers = list(self._handlers.get(event_type, [])) + list(self._wildcard)
        logger.debug(f"📣 {event_type} -> {len(handlers)} handler(s): {payload}")

        for handler in handlers:
            try:
                result = handler(event_type, payload)
                if inspect.isawaitable(result):
                    await result
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Event handler {handler!r} failed on {event_type}: {e}", exc_info=True)

    def events(self, event_type: Optional[str] = None) -> List[Dict[str, Any]]:
        """Recorded payloads (requires record=True)"""
        if self.history is None:
            return []
        return [data for name, data in self.history if event_type is None or name == event_type]
