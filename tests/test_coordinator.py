import asyncio

import pytest

from todosync import TodoFilter, TodoStatus, derive_visible
from todosync.errors import ValidationError
from todosync.events import MUTATION_FAILED, MUTATION_SUCCEEDED, TODOS_REFETCHED


def run(manager, *steps):
    """Start the manager, then await each step in order"""
    async def scenario():
        await manager.start()
        results = []
        for step in steps:
            results.append(await step())
        await manager.cache.wait_idle()
        return results
    return asyncio.run(scenario())


def mutation_calls(service):
    return [c for c in service.calls if c[0] != "query_all"]


class TestComplete:
    def test_complete_issues_exactly_one_update(self, manager, service):
        [result] = run(manager, lambda: manager.coordinator.complete(manager.cache.get(1)))

        assert result.ok
        assert mutation_calls(service) == [("update_status", 1)]
        assert service.mutation_ids("update_status") == [1]
        assert manager.cache.get(1).status == TodoStatus.COMPLETED
        assert manager.cache.get(3).status == TodoStatus.PENDING

    def test_completing_a_completed_todo_is_a_noop(self, manager, service):
        [result] = run(manager, lambda: manager.coordinator.complete(manager.cache.get(2)))

        assert result.skipped
        assert mutation_calls(service) == []
        assert service.query_count == 1
        assert manager.coordinator.stats.succeeded == 0

    def test_success_triggers_refetch_and_event(self, manager, service, bus):
        run(manager, lambda: manager.complete(1))

        assert service.query_count == 2
        assert bus.events(MUTATION_SUCCEEDED) == [{"action": "complete", "todo_id": 1}]
        assert not manager.cache.is_stale

    def test_failure_leaves_status_unchanged(self, manager, service, bus):
        service.failures.add(("update_status", 1))
        [result] = run(manager, lambda: manager.complete(1))

        assert not result.ok
        assert result.reason == "injected failure"
        assert manager.cache.get(1).status == TodoStatus.PENDING
        assert service.query_count == 1
        assert manager.coordinator.stats.failed == 1
        assert manager.coordinator.stats.failed_ids == [1]
        assert bus.events(MUTATION_FAILED)[0]["todo_id"] == 1

    def test_unknown_id_returns_none(self, manager, service):
        [result] = run(manager, lambda: manager.complete(42))
        assert result is None
        assert mutation_calls(service) == []


class TestDelete:
    def test_deleted_id_never_reappears(self, manager, service):
        run(manager, lambda: manager.delete(1), lambda: manager.add("new"))

        for active in TodoFilter:
            assert 1 not in [t.id for t in derive_visible(manager.cache.todos, active)]
        assert [t.body for t in manager.visible] == ["b", "c", "new"]
        assert manager.cache.get(4).body == "new"

    def test_failure_keeps_todo_visible(self, manager, service):
        service.failures.add(("delete", 3))
        [result] = run(manager, lambda: manager.delete(3))

        assert not result.ok
        assert 3 in [t.id for t in manager.visible]

    def test_delete_by_id_validates(self, manager, service):
        with pytest.raises(ValidationError):
            asyncio.run(manager.coordinator.delete_by_id(0))
        assert service.calls == []


class TestCreate:
    def test_create_refetches_and_reports_id(self, manager, service):
        [result] = run(manager, lambda: manager.add("  write docs "))

        assert result.ok
        assert result.todo_id == 4
        assert service.query_count == 2
        assert manager.visible[-1].body == "write docs"

    def test_empty_body_rejected_before_request(self, manager, service):
        with pytest.raises(ValidationError):
            asyncio.run(manager.add("   "))
        assert service.calls == []


class TestCompleteAllPending:
    def test_completes_every_pending_todo(self, manager, service):
        [bulk] = run(manager, manager.complete_all)

        assert sorted(service.mutation_ids("update_status")) == [1, 3]
        assert bulk.succeeded == 2
        assert derive_visible(manager.cache.todos, TodoFilter.PENDING) == []
        assert not manager.view_model.can_complete_all

    def test_one_refetch_per_successful_mutation(self, manager, service, bus):
        run(manager, manager.complete_all)
        # initial fetch + one per acknowledged complete
        assert service.query_count == 3
        assert len(bus.events(TODOS_REFETCHED)) == 3

    def test_no_pending_issues_no_calls(self, manager, service):
        for todo_id in list(service.todos):
            service.todos[todo_id] = service.todos[todo_id].model_copy(update={"status": TodoStatus.COMPLETED})
        [bulk] = run(manager, manager.complete_all)

        assert bulk.skipped
        assert mutation_calls(service) == []

    def test_empty_set_issues_no_calls(self, manager, service):
        service.todos.clear()
        [bulk] = run(manager, manager.complete_all)
        assert bulk.skipped
        assert mutation_calls(service) == []

    def test_partial_failure_is_best_effort(self, manager, service):
        service.failures.add(("update_status", 1))
        [bulk] = run(manager, manager.complete_all)

        assert bulk.succeeded == 1
        assert bulk.failed_ids == [1]
        assert [t.id for t in derive_visible(manager.cache.todos, TodoFilter.PENDING)] == [1]
        assert manager.coordinator.stats.failed == 1

    def test_siblings_run_concurrently(self, manager, service):
        async def scenario():
            await manager.start()
            gate = asyncio.Event()
            service.gates[("update_status", 1)] = gate
            landed = asyncio.Event()
            manager.bus.subscribe(TODOS_REFETCHED, lambda event_type, data: landed.set())

            task = asyncio.ensure_future(manager.complete_all())
            await asyncio.wait_for(landed.wait(), timeout=5)
            # todo 3 finished while todo 1 is still held at the gate
            partial = [t.id for t in derive_visible(manager.cache.todos, TodoFilter.PENDING)]
            still_running = not task.done()
            gate.set()
            bulk = await task
            return partial, still_running, bulk

        partial, still_running, bulk = asyncio.run(scenario())
        assert partial == [1]
        assert still_running
        assert bulk.succeeded == 2
        assert derive_visible(manager.cache.todos, TodoFilter.PENDING) == []


class TestDeleteAll:
    def test_one_delete_per_todo(self, manager, service):
        [bulk] = run(manager, manager.delete_all)

        assert sorted(service.mutation_ids("delete")) == [1, 2, 3]
        assert len(mutation_calls(service)) == 3
        assert bulk.succeeded == 3
        assert manager.visible == []

    def test_empty_set_issues_no_calls(self, manager, service):
        service.todos.clear()
        [bulk] = run(manager, manager.delete_all)

        assert bulk.skipped
        assert mutation_calls(service) == []
        assert not manager.snapshot().can_delete_all

    def test_partial_failure_leaves_survivors(self, manager, service):
        service.failures.add(("delete", 2))
        [bulk] = run(manager, manager.delete_all)

        assert bulk.failed_ids == [2]
        assert [t.id for t in manager.visible] == [2]
        assert "1 request(s) failed: [2]" in manager.status_report()

    def test_uses_snapshot_of_active_tab(self, manager, service):
        async def scenario():
            await manager.start()
            await manager.set_filter("completed")
            bulk = await manager.delete_all()
            await manager.cache.wait_idle()
            return bulk

        bulk = asyncio.run(scenario())
        assert service.mutation_ids("delete") == [2]
        assert bulk.succeeded == 1
        assert sorted(service.todos) == [1, 3]

    def test_only_visible_todos_deleted_while_tab_refetch_in_flight(self, manager, service):
        async def scenario():
            await manager.start()
            service.query_delays = [0.05]
            await manager.selector.set_active("pending")
            # cache still holds the all-tab rows here
            assert manager.cache.is_stale
            shown = [t.id for t in manager.visible]
            bulk = await manager.delete_all()
            await manager.cache.wait_idle()
            return shown, bulk

        shown, bulk = asyncio.run(scenario())
        assert shown == [1, 3]
        assert sorted(service.mutation_ids("delete")) == [1, 3]
        assert bulk.succeeded == 2
        assert sorted(service.todos) == [2]


class TestCompleteAllOnCompletedTab:
    def test_hidden_pending_todos_are_not_completed(self, manager, service):
        async def scenario():
            await manager.start()
            service.query_delays = [0.05]
            await manager.selector.set_active("completed")
            bulk = await manager.complete_all()
            await manager.cache.wait_idle()
            return bulk

        bulk = asyncio.run(scenario())
        assert bulk.skipped
        assert service.mutation_ids("update_status") == []
        assert not manager.view_model.can_complete_all


class TestFilterChangeDuringMutation:
    def test_last_refetch_is_authoritative(self, manager, service):
        service.delays[("update_status", 1)] = 0.02

        async def scenario():
            await manager.start()
            task = asyncio.ensure_future(manager.complete(1))
            await asyncio.sleep(0)
            await manager.set_filter("pending")
            await task
            await manager.cache.wait_idle()

        asyncio.run(scenario())
        assert manager.selector.get_active() == TodoFilter.PENDING
        assert [t.id for t in manager.visible] == [3]
        assert manager.cache.fetched_filter == TodoFilter.PENDING
