# tests/test_task_board.py

from __future__ import annotations

import asyncio
import threading
from dataclasses import replace

import pytest

from nudgeboard.tasks.task_board import TaskBoard, normalize_reminder_interval
from nudgeboard.tasks.task_errors import LoadError, NotFoundError, PersistenceError, ValidationError
from nudgeboard.tasks.task_models import TaskFormData, TaskStatus
from nudgeboard.tasks.task_reminder import needs_attention

from .fakes import T0, FakeClock, FakeTaskGateway, make_task


def _board(gateway: FakeTaskGateway, clock: FakeClock, **kwargs) -> TaskBoard:
    return TaskBoard(gateway, clock=clock, **kwargs)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [(None, 24), (0, 24), (-3, 24), ("abc", 24), ("", 24), (True, 24), (1, 1), ("48", 48), (2.9, 2)],
)
def test_normalize_reminder_interval(raw, expected) -> None:
    assert normalize_reminder_interval(raw) == expected


def test_initial_status_must_be_init_or_working(clock: FakeClock) -> None:
    with pytest.raises(ValueError):
        TaskBoard(FakeTaskGateway(), initial_status=TaskStatus.DONE, clock=clock)


@pytest.mark.asyncio
async def test_load_all_marks_board_loaded(clock: FakeClock) -> None:
    gateway = FakeTaskGateway([make_task("a"), make_task("b", created_at=T0 + 1)])
    board = _board(gateway, clock)
    assert not board.is_loaded

    tasks = await board.load_all()

    assert board.is_loaded
    assert [t.id for t in tasks] == ["b", "a"]
    assert [t.id for t in board.tasks] == ["b", "a"]


@pytest.mark.asyncio
async def test_load_failure_raises_and_keeps_board_unloaded(clock: FakeClock) -> None:
    gateway = FakeTaskGateway([make_task("a")])
    gateway.fail_all = True
    board = _board(gateway, clock)

    with pytest.raises(LoadError) as excinfo:
        await board.load_all()

    assert "backend unreachable" in str(excinfo.value)
    assert not board.is_loaded
    assert board.tasks == ()


@pytest.mark.asyncio
async def test_create_uses_initial_status_and_defaults(clock: FakeClock) -> None:
    gateway = FakeTaskGateway()
    board = _board(gateway, clock)
    await board.load_all()

    task = await board.create(TaskFormData(name="  Write report  ", url=" https://x.test ", reminder_interval=0))

    assert task.name == "Write report"
    assert task.url == "https://x.test"
    assert task.status == TaskStatus.INIT
    assert task.reminder_interval == 24
    assert task.created_at == task.updated_at == T0
    assert task.last_reminded_at is None
    assert not task.is_pinned
    assert board.tasks[0] == task
    assert gateway.rows[task.id] == task


@pytest.mark.asyncio
async def test_create_with_working_initial_status(clock: FakeClock) -> None:
    board = _board(FakeTaskGateway(), clock, initial_status=TaskStatus.WORKING)
    task = await board.create(TaskFormData(name="Ship it", reminder_interval=4))
    assert task.status == TaskStatus.WORKING
    assert task.reminder_interval == 4


@pytest.mark.asyncio
async def test_create_prepends_and_ids_are_unique(clock: FakeClock) -> None:
    board = _board(FakeTaskGateway(), clock)
    first = await board.create(TaskFormData(name="one"))
    second = await board.create(TaskFormData(name="two"))
    assert first.id != second.id
    assert [t.id for t in board.tasks] == [second.id, first.id]


@pytest.mark.asyncio
async def test_create_rejects_empty_name_without_touching_gateway(clock: FakeClock) -> None:
    gateway = FakeTaskGateway()
    board = _board(gateway, clock)

    with pytest.raises(ValidationError):
        await board.create(TaskFormData(name="   "))

    assert gateway.calls == []
    assert board.tasks == ()


@pytest.mark.asyncio
async def test_create_failure_leaves_local_list_unchanged(clock: FakeClock) -> None:
    gateway = FakeTaskGateway()
    board = _board(gateway, clock)
    gateway.fail_all = True

    with pytest.raises(PersistenceError) as excinfo:
        await board.create(TaskFormData(name="x"))

    assert "backend unreachable" in str(excinfo.value)
    assert isinstance(excinfo.value.__cause__, ConnectionError)
    assert board.tasks == ()


@pytest.mark.asyncio
async def test_update_changes_only_given_fields(clock: FakeClock) -> None:
    gateway = FakeTaskGateway([make_task("a", description="keep me", url="https://a.test")])
    board = _board(gateway, clock)
    await board.load_all()
    clock.advance(minutes=5)

    task = await board.update("a", name="renamed", reminder_interval=-1)

    assert task.name == "renamed"
    assert task.reminder_interval == 24
    assert task.description == "keep me"
    assert task.url == "https://a.test"
    assert task.updated_at == T0 + 300
    assert board.get("a") == task


@pytest.mark.asyncio
async def test_update_validation(clock: FakeClock) -> None:
    gateway = FakeTaskGateway([make_task("a")])
    board = _board(gateway, clock)
    await board.load_all()

    with pytest.raises(ValidationError):
        await board.update("a", name="")
    with pytest.raises(ValidationError):
        await board.update("a", owner_id="mallory")
    with pytest.raises(ValidationError):
        await board.update("a", status="archived")
    with pytest.raises(ValidationError):
        await board.update("a", task_id="b")

    assert not [c for c in gateway.calls if c[0] == "update"]


@pytest.mark.asyncio
async def test_set_status_never_touches_last_reminded_at(clock: FakeClock) -> None:
    gateway = FakeTaskGateway([make_task("a", last_reminded_at=T0 - 60)])
    board = _board(gateway, clock)
    await board.load_all()

    task = await board.set_status("a", "done")

    assert task.status == TaskStatus.DONE
    assert task.last_reminded_at == T0 - 60
    (_, _, fields) = gateway.calls[-1]
    assert "last_reminded_at" not in fields


@pytest.mark.asyncio
async def test_reopening_done_task_measures_next_reminder_from_last_one(clock: FakeClock) -> None:
    reminded_at = T0 + 3600
    gateway = FakeTaskGateway(
        [make_task("a", status=TaskStatus.DONE, interval=24, last_reminded_at=reminded_at)]
    )
    board = _board(gateway, clock)
    await board.load_all()
    clock.advance(hours=10)

    task = await board.set_status("a", TaskStatus.WORKING)

    assert task.status == TaskStatus.WORKING
    assert task.last_reminded_at == reminded_at
    assert gateway.rows["a"].last_reminded_at == reminded_at
    assert not needs_attention(task, reminded_at + 24 * 3600 - 1)
    assert needs_attention(task, reminded_at + 24 * 3600)


@pytest.mark.asyncio
async def test_preset_color_names_are_stored_as_hex(clock: FakeClock) -> None:
    gateway = FakeTaskGateway([make_task("a")])
    board = _board(gateway, clock)
    await board.load_all()

    assert (await board.update("a", color=" Red ")).color == "#EF4444"
    assert (await board.update("a", color="#123456")).color == "#123456"
    assert (await board.update("a", color="")).color is None

    created = await board.create(TaskFormData(name="b", color="blue"))
    assert created.color == "#3B82F6"
    assert gateway.rows[created.id].color == "#3B82F6"


@pytest.mark.asyncio
async def test_mark_reminded_writes_status_and_timestamp_together(clock: FakeClock) -> None:
    gateway = FakeTaskGateway([make_task("a")])
    board = _board(gateway, clock)
    await board.load_all()
    clock.advance(hours=30)

    task = await board.mark_reminded("a")

    updates = [c for c in gateway.calls if c[0] == "update"]
    assert len(updates) == 1
    fields = updates[0][2]
    assert fields["status"] == TaskStatus.NEED_TAKING_CARE
    assert fields["last_reminded_at"] == T0 + 30 * 3600
    assert task.status == TaskStatus.NEED_TAKING_CARE
    assert task.updated_at == T0 + 30 * 3600


@pytest.mark.asyncio
async def test_mark_reminded_twice_last_write_wins(clock: FakeClock) -> None:
    board = _board(FakeTaskGateway([make_task("a")]), clock)
    await board.load_all()

    await board.mark_reminded("a")
    clock.advance(minutes=1)
    task = await board.mark_reminded("a")

    assert task.status == TaskStatus.NEED_TAKING_CARE
    assert task.last_reminded_at == T0 + 60


@pytest.mark.asyncio
async def test_failed_mutation_keeps_optimistic_local_state(clock: FakeClock) -> None:
    gateway = FakeTaskGateway([make_task("a")])
    board = _board(gateway, clock)
    await board.load_all()
    gateway.fail_updates.add("a")

    with pytest.raises(PersistenceError) as excinfo:
        await board.set_status("a", TaskStatus.DONE)

    assert "write failed for a" in str(excinfo.value)
    assert board.get("a").status == TaskStatus.DONE
    assert gateway.rows["a"].status == TaskStatus.WORKING

    # An explicit reload brings the server view back.
    await board.load_all()
    assert board.get("a").status == TaskStatus.WORKING


@pytest.mark.asyncio
async def test_mutation_on_vanished_task_raises_not_found(clock: FakeClock) -> None:
    gateway = FakeTaskGateway([make_task("a")])
    board = _board(gateway, clock)
    await board.load_all()
    del gateway.rows["a"]

    with pytest.raises(NotFoundError) as excinfo:
        await board.mark_reminded("a")

    assert excinfo.value.task_id == "a"
    assert board.get("a") is None


@pytest.mark.asyncio
async def test_mutations_after_delete_raise_not_found(clock: FakeClock) -> None:
    board = _board(FakeTaskGateway([make_task("a")]), clock)
    await board.load_all()

    await board.delete("a")

    with pytest.raises(NotFoundError):
        await board.update("a", name="ghost")
    with pytest.raises(NotFoundError):
        await board.set_status("a", TaskStatus.DONE)
    with pytest.raises(NotFoundError):
        await board.toggle_pin("a", True)
    await board.delete("a")
    assert board.get("a") is None


@pytest.mark.asyncio
async def test_delete_is_idempotent(clock: FakeClock) -> None:
    gateway = FakeTaskGateway([make_task("a")])
    board = _board(gateway, clock)
    await board.load_all()

    await board.delete("a")
    await board.delete("a")
    await board.delete("never-existed")

    assert board.tasks == ()
    assert gateway.rows == {}


@pytest.mark.asyncio
async def test_toggle_pin_keeps_original_pin_time(clock: FakeClock) -> None:
    board = _board(FakeTaskGateway([make_task("a")]), clock)
    await board.load_all()

    pinned = await board.toggle_pin("a", True)
    assert pinned.is_pinned and pinned.pinned_at == T0

    clock.advance(hours=1)
    again = await board.toggle_pin("a", True)
    assert again.pinned_at == T0

    unpinned = await board.toggle_pin("a", False)
    assert not unpinned.is_pinned
    assert unpinned.pinned_at is None


@pytest.mark.asyncio
async def test_reorder_without_status_change_is_local_only(clock: FakeClock) -> None:
    gateway = FakeTaskGateway([make_task("a"), make_task("b", created_at=T0 + 1)])
    board = _board(gateway, clock)
    await board.load_all()
    calls_before = len(gateway.calls)

    job = board.reorder(reversed(board.tasks))

    assert job is None
    assert [t.id for t in board.tasks] == ["a", "b"]
    assert len(gateway.calls) == calls_before


@pytest.mark.asyncio
async def test_reorder_persists_status_changes_in_background(clock: FakeClock) -> None:
    gateway = FakeTaskGateway([make_task("a"), make_task("b", created_at=T0 + 1)])
    board = _board(gateway, clock)
    await board.load_all()

    moved = [replace(board.get("a"), status=TaskStatus.DONE), board.get("b")]
    job = board.reorder(moved)

    assert job is not None
    assert board.get("a").status == TaskStatus.DONE
    await job
    assert gateway.rows["a"].status == TaskStatus.DONE
    assert gateway.rows["b"].status == TaskStatus.WORKING


@pytest.mark.asyncio
async def test_reorder_failure_is_logged_not_rolled_back(clock: FakeClock, caplog) -> None:
    gateway = FakeTaskGateway([make_task("a")])
    board = _board(gateway, clock)
    await board.load_all()
    gateway.fail_updates.add("a")

    moved = [replace(board.get("a"), status=TaskStatus.DONE)]
    job = board.reorder(moved)
    await job

    assert board.get("a").status == TaskStatus.DONE
    assert gateway.rows["a"].status == TaskStatus.WORKING
    assert "failed to persist status" in caplog.text


@pytest.mark.asyncio
async def test_subscribe_refreshes_on_remote_change(clock: FakeClock) -> None:
    gateway = FakeTaskGateway([make_task("a")])
    board = _board(gateway, clock)
    await board.load_all()

    received: list[list] = []
    changed = asyncio.Event()

    def on_change(tasks) -> None:
        received.append(tasks)
        changed.set()

    unsubscribe = board.subscribe(on_change)

    # Another client writes from its own thread.
    writer = threading.Thread(target=gateway.remote_update, args=("a",), kwargs={"name": "remote name"})
    writer.start()
    writer.join()

    await asyncio.wait_for(changed.wait(), timeout=2.0)
    assert received[-1][0].name == "remote name"
    assert board.get("a").name == "remote name"

    unsubscribe()
    unsubscribe()
    assert gateway.listener_count == 0


@pytest.mark.asyncio
async def test_subscribe_coalesces_bursts(clock: FakeClock) -> None:
    gateway = FakeTaskGateway([make_task("a")])
    board = _board(gateway, clock)
    await board.load_all()

    calls: list[int] = []

    async def on_change(tasks) -> None:
        calls.append(len(tasks))

    board.subscribe(on_change)
    for i in range(5):
        gateway.remote_update("a", name=f"v{i}")

    await asyncio.sleep(0)
    await board.wait_idle()

    assert 1 <= len(calls) <= 2
    assert board.get("a").name == "v4"
    await board.aclose()


@pytest.mark.asyncio
async def test_refresh_failure_keeps_previous_state(clock: FakeClock) -> None:
    gateway = FakeTaskGateway([make_task("a")])
    board = _board(gateway, clock)
    await board.load_all()

    calls: list[list] = []
    board.subscribe(calls.append)

    gateway.remote_update("a", name="unseen")
    gateway.fail_all = True
    await asyncio.sleep(0)
    await board.wait_idle()

    assert calls == []
    assert board.get("a").name == "task a"
    assert board.is_loaded
    await board.aclose()


@pytest.mark.asyncio
async def test_aclose_drops_gateway_listeners(clock: FakeClock) -> None:
    gateway = FakeTaskGateway()
    board = _board(gateway, clock)
    board.subscribe(lambda tasks: None)
    board.subscribe(lambda tasks: None)
    assert gateway.listener_count == 2

    await board.aclose()
    assert gateway.listener_count == 0
