"""
TODOSYNC - Mutation Coordinator
===============================
Turns user intents into remote mutations and restores view consistency
afterwards. The cached snapshot is never patched locally: every acknowledged
mutation is followed by a refetch, and a failed one leaves the last
server-confirmed state on screen.

Bulk intents fan out into independent per-todo calls. They are best-effort,
not transactional: siblings race, a failure does not stop the rest, and the
refetches converge the view on whatever the server actually applied.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional

from .cache import TodoQueryCache
from .errors import RemoteFailure
from .events import MUTATION_FAILED, MUTATION_SUCCEEDED, EventBus
from .schema import BulkResult, MutationResult, Todo, TodoStatus, validate_body, validate_todo_id
from .service import TodoService
from .view_model import derive_visible

logger = logging.getLogger("todosync.coordinator")


@dataclass
class MutationStats:
    """Running success/failure counts for an observability layer"""
    succeeded: int = 0
    failed: int = 0
    failures: List[MutationResult] = field(default_factory=list)

    @property
    def failed_ids(self) -> List[int]:
        return [r.todo_id for r in self.failures if r.todo_id is not None]

    def record(self, result: MutationResult) -> None:
        if result.skipped:
            return
        if result.ok:
            self.succeeded += 1
        else:
            self.failed += 1
            self.failures.append(result)

    def reset(self) -> None:
        self.succeeded = 0
        self.failed = 0
        self.failures.clear()


class MutationCoordinator:
    """
    Applies complete/delete/create intents to the remote service.

    Usage:
        coordinator = MutationCoordinator(service, cache, bus)
        await coordinator.complete(todo)
        result = await coordinator.complete_all_pending()
        print(result.failed_ids, coordinator.stats.failed)
    """

    def __init__(
        self,
        service: TodoService,
        cache: TodoQueryCache,
        bus: Optional[EventBus] = None
    ):
        self.service = service
        self.cache = cache
        self.bus = bus
        self.stats = MutationStats()

    # ========================================
    # SINGLE MUTATIONS
    # ========================================

    async def complete(self, todo: Todo) -> MutationResult:
        """Mark a pending todo completed. Already-completed todos issue no request."""
        if todo.status == TodoStatus.COMPLETED:
            logger.debug(f"Todo {todo.id} already completed, nothing to do")
            return MutationResult.noop("complete", todo.id, "already completed")

        return await self._mutate(
            "complete",
            todo.id,
            lambda: self.service.update_status(todo.id, TodoStatus.COMPLETED)
        )

    async def delete(self, todo: Todo) -> MutationResult:
        return await self._mutate("delete", todo.id, lambda: self.service.delete(todo.id))

    async def delete_by_id(self, todo_id: int) -> MutationResult:
        todo_id = validate_todo_id(todo_id)
        return await self._mutate("delete", todo_id, lambda: self.service.delete(todo_id))

    async def create(self, body: str) -> MutationResult:
        """Create a todo; an empty body raises ValidationError before any request"""
        body = validate_body(body)
        created: List[Optional[int]] = []

        async def call() -> None:
            todo = await self.service.create(body)
            created.append(todo.id if todo else None)

        result = await self._mutate("create", None, call)
        if result.ok and created and created[0] is not None:
            result = MutationResult.success("create", created[0])
        return result

    # ========================================
    # BULK MUTATIONS
    # ========================================

    async def complete_all_pending(self) -> BulkResult:
        """Complete every pending todo the active tab shows"""
        pending = [t for t in self._visible() if t.status == TodoStatus.PENDING]
        if not pending:
            logger.info("✅ Nothing pending, complete-all skipped")
            return BulkResult(action="complete_all")

        logger.info(f"☑️ Completing {len(pending)} pending todos")
        results = await asyncio.gather(*(self.complete(t) for t in pending))
        return self._summarize("complete_all", results)

    async def delete_all(self) -> BulkResult:
        """Delete every todo the active tab shows"""
        todos = self._visible()
        if not todos:
            logger.info("🗑️ List is empty, delete-all skipped")
            return BulkResult(action="delete_all")

        logger.info(f"🗑️ Deleting {len(todos)} todos")
        results = await asyncio.gather(*(self.delete(t) for t in todos))
        return self._summarize("delete_all", results)

    # ========================================
    # HELPERS
    # ========================================

    def _visible(self) -> List[Todo]:
        # The cache may still hold the previous tab's rows until its refetch lands
        return derive_visible(self.cache.todos, self.cache.selector.get_active())

    async def _mutate(
        self,
        action: str,
        todo_id: Optional[int],
        call: Callable[[], Awaitable[None]]
    ) -> MutationResult:
        label = f"{action} #{todo_id}" if todo_id is not None else action

        try:
            await call()
        except RemoteFailure as e:
            result = MutationResult.failure(action, todo_id, e.reason)
            self.stats.record(result)
            logger.warning(f"⚠️ {label} failed: {e.reason}")
            if self.bus:
                await self.bus.emit(MUTATION_FAILED, {
                    "action": action,
                    "todo_id": todo_id,
                    "reason": e.reason,
                })
            return result

        result = MutationResult.success(action, todo_id)
        self.stats.record(result)
        logger.info(f"✅ {label} acknowledged")
        if self.bus:
            await self.bus.emit(MUTATION_SUCCEEDED, {"action": action, "todo_id": todo_id})

        # One refetch per acknowledged mutation, bulk siblings included
        await self.cache.invalidate()
        return result

    def _summarize(self, action: str, results: List[MutationResult]) -> BulkResult:
        bulk = BulkResult(action=action, results=list(results))
        if bulk.failed:
            logger.warning(
                f"⚠️ {action}: {bulk.succeeded} succeeded, {bulk.failed} failed {bulk.failed_ids}"
            )
        else:
            logger.info(f"✅ {action}: {bulk.succeeded} succeeded")
        return bulk
