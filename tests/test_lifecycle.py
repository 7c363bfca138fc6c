# tests/test_lifecycle.py

from __future__ import annotations

from datetime import datetime

import pytest

from taskcycle.tasks.lifecycle import TaskLifecycleController, TaskNotFoundError
from taskcycle.tasks.task_models import HistoryAction, Meal, MealTimes, Monthly, Weekly

from .fakes import FakeRepo, completed, make_task


@pytest.mark.asyncio
async def test_load_resets_stale_completions_and_saves(collection, clock) -> None:
    collection.tasks = [
        completed(Weekly(), datetime(2023, 12, 20, 9, 0), by="p1"),  # 12 days ago
        make_task("t2", is_completed=True, completed_by="p2", completed_at=datetime(2024, 1, 1, 8, 0)),
    ]
    repo = FakeRepo(collection)
    controller = TaskLifecycleController(repo, clock)

    assert await controller.load() == ["t1"]
    assert repo.saves == 1

    saved = repo.snapshot()
    t1 = saved.find_task("t1")
    assert (t1.is_completed, t1.completed_by, t1.completed_at) == (False, None, None)
    assert saved.find_task("t2").is_completed

    (entry,) = saved.history
    assert entry.action is HistoryAction.AUTO_RESET
    assert entry.task_id == "t1"
    assert entry.profile_id == "p1"
    assert entry.profile_name == "Alice"
    assert "Weekly recurrence reset" in (entry.details or "")


@pytest.mark.asyncio
async def test_load_without_stale_tasks_does_not_save(controller, repo) -> None:
    assert await controller.load() == []
    assert repo.saves == 0


@pytest.mark.asyncio
async def test_auto_reset_is_applied_once(collection, clock) -> None:
    collection.tasks = [completed(Monthly(), datetime(2024, 1, 31, 9, 0))]
    repo = FakeRepo(collection)
    controller = TaskLifecycleController(repo, clock)
    clock.set(datetime(2024, 1, 31, 12, 0))
    await controller.load()

    clock.set(datetime(2024, 2, 1, 0, 0))
    assert await controller.apply_auto_resets() == ["t1"]
    assert await controller.apply_auto_resets() == []
    assert len(controller.collection.history) == 1


@pytest.mark.asyncio
async def test_meal_task_resets_with_assigned_profile_table(collection, clock) -> None:
    task = completed(MealTimes(frozenset({Meal.LUNCH})), datetime(2024, 1, 1, 8, 0), by="p2")
    task.profile_ids = ["p1"]
    collection.tasks = [task]
    controller = TaskLifecycleController(FakeRepo(collection), clock)
    await controller.load()

    clock.set(datetime(2024, 1, 1, 12, 0))
    assert await controller.apply_auto_resets() == ["t1"]


@pytest.mark.asyncio
async def test_complete_uncheck_and_toggle(controller, repo, clock) -> None:
    await controller.load()
    task = await controller.add_task(title="Water plants", group_id="g1", recurrence=Weekly())

    done = await controller.complete(task.id, "p2")
    assert done.is_completed
    assert done.completed_by == "p2"
    assert done.completed_at == clock.now()

    # Completing again is a no-op.
    again = await controller.complete(task.id, "p1")
    assert again.completed_by == "p2"

    undone = await controller.uncheck(task.id, "p2")
    assert not undone.is_completed and undone.completed_at is None

    toggled = await controller.toggle(task.id, "p1")
    assert toggled.is_completed

    actions = [h.action for h in controller.collection.history]
    assert actions == [HistoryAction.COMPLETED, HistoryAction.UNCHECKED, HistoryAction.COMPLETED]
    assert controller.collection.history[-1].profile_name == "Bob"
    assert repo.snapshot().find_task(task.id).is_completed


@pytest.mark.asyncio
async def test_reset_keeps_history_and_restore_drops_it(controller) -> None:
    await controller.load()
    task = await controller.add_task(title="Laundry", group_id="g1", recurrence=Weekly())
    other = await controller.add_task(title="Dishes", group_id="g1", recurrence=Weekly())
    await controller.complete(task.id, "p1")
    await controller.complete(other.id, "p1")

    await controller.reset(task.id)
    assert [h.action for h in controller.collection.history if h.task_id == task.id] == [
        HistoryAction.RESET,
        HistoryAction.COMPLETED,
    ]

    restored = await controller.restore(task.id)
    assert not restored.is_completed
    own = [h for h in controller.collection.history if h.task_id == task.id]
    assert [h.action for h in own] == [HistoryAction.RESTORED]
    assert any(h.task_id == other.id for h in controller.collection.history)


@pytest.mark.asyncio
async def test_add_task_orders_within_group_and_delete(controller, repo) -> None:
    await controller.load()
    a = await controller.add_task(title="A", group_id="g1", recurrence=Weekly())
    b = await controller.add_task(title="B", group_id="g1", recurrence=Weekly())
    c = await controller.add_task(title="C", group_id="work", recurrence=Weekly())
    assert (a.order, b.order, c.order) == (0, 1, 0)

    await controller.delete_task(a.id)
    assert [t.id for t in repo.snapshot().tasks] == [b.id, c.id]


@pytest.mark.asyncio
async def test_unknown_task_raises(controller) -> None:
    await controller.load()
    with pytest.raises(TaskNotFoundError):
        await controller.complete("missing", "p1")
    with pytest.raises(TaskNotFoundError):
        await controller.delete_task("missing")


@pytest.mark.asyncio
async def test_next_occurrence_counts_from_completion(controller, clock) -> None:
    await controller.load()
    task = await controller.add_task(title="Rent", group_id="g1", recurrence=Monthly())
    assert controller.next_occurrence_for(task) == datetime(2024, 2, 1, 9, 0)

    clock.set(datetime(2024, 1, 31, 18, 0))
    done = await controller.complete(task.id, "p1")
    assert controller.next_occurrence_for(done) == datetime(2024, 2, 29, 18, 0)


@pytest.mark.asyncio
async def test_notification_requests_use_controller_clock(controller, clock) -> None:
    await controller.load()
    await controller.add_task(title="Stretch", group_id="health", recurrence=Weekly())

    clock.set(datetime(2024, 1, 7, 21, 0))  # 6.5 of 7 days
    (req,) = controller.notification_requests()
    assert req.title == "Task Resets Soon: Stretch"
