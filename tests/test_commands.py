# tests/test_commands.py

from __future__ import annotations

import json
from pathlib import Path

import pytest

from nudgeboard.cli.commands import CommandRegistry, registry
from nudgeboard.tasks.task_models import TaskStatus

from .fakes import FakeClock


@pytest.mark.asyncio
async def test_command_registry_routes_2_and_3_params(state) -> None:
    reg = CommandRegistry()
    called = {"h2": 0, "h3": 0}
    notes: list[str] = []

    def h2(state, args):
        called["h2"] += 1
        return "h2:" + ",".join(args)

    async def h3(state, args, emit):
        called["h3"] += 1
        if emit is not None:
            emit("note")
        return "h3"

    reg.register("a", h2, "a", aliases=["aa"])
    reg.register("b", h3, "b")

    assert await reg.handle(state, "/a x y") == "h2:x,y"
    assert await reg.handle(state, "/AA") == "h2:"
    assert await reg.handle(state, "/b", emit=notes.append) == "h3"
    assert called == {"h2": 2, "h3": 1}
    assert notes == ["note"]
    assert "/a - a" in reg.build_help()


@pytest.mark.asyncio
async def test_command_registry_unknown_and_non_command(state) -> None:
    reg = CommandRegistry()
    assert await reg.handle(state, "hello") is None
    assert "Unknown command" in (await reg.handle(state, "/nope") or "")
    assert "Empty command" in (await reg.handle(state, "/") or "")


@pytest.mark.asyncio
async def test_add_list_show_and_delete(state) -> None:
    await state.board.load_all()

    reply = await registry.handle(state, "/add Write report | 6")
    assert reply is not None and reply.startswith("Created ")
    assert "Write report" in reply
    assert "every 6h" in reply

    (task,) = state.board.tasks
    short = task.id[:8]

    listing = await registry.handle(state, "/list")
    assert "all=1" in listing
    assert f"[{short}] Write report" in listing

    assert "no matching tasks" in await registry.handle(state, "/list done")

    details = await registry.handle(state, f"/show {short}")
    assert f"id: {task.id}" in details

    assert await registry.handle(state, f"/rm {short}") == "Deleted task 'Write report'."
    assert state.board.tasks == ()
    assert state.task_store.select_all() == []


@pytest.mark.asyncio
async def test_add_requires_a_name(state) -> None:
    assert await registry.handle(state, "/add | 4") == "name is required"


@pytest.mark.asyncio
async def test_status_edit_pin_and_board(state) -> None:
    await state.board.load_all()
    await registry.handle(state, "/add Deploy")
    short = state.board.tasks[0].id[:8]

    reply = await registry.handle(state, f"/status {short} working")
    assert reply.startswith("Updated ")
    assert state.task_store.get_task(state.board.tasks[0].id).status == TaskStatus.WORKING

    reply = await registry.handle(state, f"/edit {short} jira_id PROJ-42")
    assert state.board.tasks[0].jira_id == "PROJ-42"

    reply = await registry.handle(state, f"/edit {short} owner_id someone")
    assert "cannot be updated" in reply

    reply = await registry.handle(state, f"/edit {short} task_id other")
    assert "cannot be updated" in reply

    await registry.handle(state, f"/edit {short} color green")
    assert state.board.tasks[0].color == "#10B981"

    reply = await registry.handle(state, f"/pin {short}")
    assert "[pinned]" in reply

    board = await registry.handle(state, "/board")
    assert "== Working (1)" in board
    assert "== Done (0)" in board

    assert "not found" in (await registry.handle(state, "/show zzzzzzzz")).lower()
    assert "invalid task status" in await registry.handle(state, f"/mv {short} archived")


@pytest.mark.asyncio
async def test_check_escalates_overdue_tasks(state, clock: FakeClock) -> None:
    assert await registry.handle(state, "/check") == "Task list is not loaded yet."

    await state.board.load_all()
    await registry.handle(state, "/add Follow up | 2")
    short = state.board.tasks[0].id[:8]
    await registry.handle(state, f"/status {short} working")

    clock.advance(hours=1)
    assert (await registry.handle(state, "/check")).startswith("Reminder check: 0 escalated")

    clock.advance(hours=1)
    reply = await registry.handle(state, "/check")
    assert reply.startswith("Reminder check: 1 escalated, 0 failed.")
    assert "Follow up needs taking care" in reply
    assert state.board.tasks[0].status == TaskStatus.NEED_TAKING_CARE


@pytest.mark.asyncio
async def test_import_command(state, tmp_path: Path) -> None:
    await state.board.load_all()
    path = tmp_path / "legacy.json"
    path.write_text(json.dumps([{"name": "old one"}, {}]), encoding="utf-8")
    notes: list[str] = []

    reply = await registry.handle(state, f"/import {path}", emit=notes.append)

    assert reply == "Imported 1 tasks (skipped 1)."
    assert notes and notes[0].startswith("[IMPORT]")
    assert [t.name for t in state.task_store.select_all()] == ["old one"]


@pytest.mark.asyncio
async def test_vocab_flow_with_offline_generator(state) -> None:
    assert "Usage" in await registry.handle(state, "/vocab gen")

    generated = await registry.handle(state, "/vocab gen serendipity")
    assert generated.startswith("serendipity")
    assert state.vocabulary.list_vocabulary() == []

    saved = await registry.handle(state, "/vocab add serendipity")
    assert saved.startswith("Saved #1 serendipity")
    assert (await registry.handle(state, "/vocab add Serendipity")).startswith("Already saved")

    assert "#1 serendipity" in await registry.handle(state, "/vocab list seren")
    assert "serendipity *" in await registry.handle(state, "/vocab fav 1")
    assert "[reviews: 1]" in await registry.handle(state, "/vocab review #1")
    assert "#1 serendipity" in await registry.handle(state, "/vocab show 1")
    assert await registry.handle(state, "/vocab show 99") == "Vocabulary not found: #99"
    assert await registry.handle(state, "/vocab del 1") == "Deleted #1 serendipity."
    assert await registry.handle(state, "/vocab list") == "No vocabulary saved."
