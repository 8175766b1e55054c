# src/nudgeboard/cli/commands.py

from __future__ import annotations

import asyncio
import contextlib
import inspect
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import cast

from ..core.state import AppState
from ..llm.client import VocabularyGenerationError
from ..tasks.task_api import import_legacy_tasks
from ..tasks.task_errors import NotFoundError, PersistenceError, TaskError, ValidationError
from ..tasks.task_models import Task, TaskFormData, TaskStatus
from ..tasks.task_reminder import next_due_at
from ..tasks.task_scheduler import check_reminders
from ..tasks.task_views import BOARD_COLUMNS, filter_tasks, status_counts, tasks_for_column
from ..vocabulary.vocab_models import Vocabulary, VocabularyEntry, parse_stored_field

CommandEmitter = Callable[[str], None]
CommandResult = str | Awaitable[str]
CommandHandler2 = Callable[[AppState, list[str]], CommandResult]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], CommandResult]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)

SHORT_ID = 8


class CommandRegistry:
    """Simple slash-command registry used by connectors (/help, /add, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    async def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        Handlers may be plain functions or coroutine functions.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except Exception:
            nparams = 3

        if nparams >= 3:
            result = cast(CommandHandler3, handler)(state, args, emit)
        else:
            result = cast(CommandHandler2, handler)(state, args)

        if inspect.isawaitable(result):
            return await result
        return result

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- formatting helpers ----

def _ts_local(ts: float) -> str:
    return datetime.fromtimestamp(ts).astimezone().strftime("%Y-%m-%d %H:%M")


def _due_hint(task: Task, now_ts: float) -> str:
    due = next_due_at(task)
    if due is None:
        return ""
    hours = (due - now_ts) / 3600.0
    if hours <= 0:
        return ", overdue"
    return f", due in {hours:.1f}h"


def format_task_line(task: Task, now_ts: float) -> str:
    pin = " [pinned]" if task.is_pinned else ""
    return (
        f"[{task.id[:SHORT_ID]}] {task.name}{pin} "
        f"({task.status.label}, every {task.reminder_interval}h{_due_hint(task, now_ts)})"
    )


def format_task_details(task: Task, now_ts: float) -> str:
    lines = [
        format_task_line(task, now_ts),
        f"  id: {task.id}",
        f"  created: {_ts_local(task.created_at)}",
        f"  updated: {_ts_local(task.updated_at)}",
        f"  last reminded: {_ts_local(task.last_reminded_at) if task.last_reminded_at else '-'}",
    ]
    if task.url:
        lines.append(f"  url: {task.url}")
    if task.jira_id:
        lines.append(f"  jira: {task.jira_id}")
    if task.color:
        lines.append(f"  color: {task.color}")
    if task.description:
        lines.append("")
        lines.append(task.description)
    return "\n".join(lines)


def _resolve_task(state: AppState, prefix: str) -> Task:
    """Find a task by full id or unique id prefix."""
    p = (prefix or "").strip()
    if not p:
        raise ValidationError("task id is required")
    matches = [t for t in state.board.tasks if t.id.startswith(p)]
    if not matches:
        raise NotFoundError(p)
    if len(matches) > 1:
        raise ValidationError(f"ambiguous task id prefix: {p}")
    return matches[0]


def _task_error_message(err: TaskError) -> str:
    if isinstance(err, NotFoundError):
        return f"Task not found: {err.task_id}. Use /list to refresh."
    if isinstance(err, PersistenceError):
        return f"Storage error: {err}"
    return str(err)


# ---- general ----

def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_list(state: AppState, args: list[str]) -> str:
    """
    /list                 -> all tasks
    /list working         -> only WORKING tasks
    /list [status] words  -> search name/description/url
    """
    status: TaskStatus | None = None
    rest = list(args)
    if rest:
        with contextlib.suppress(ValueError):
            status = TaskStatus.parse(rest[0])
            rest = rest[1:]

    now_ts = state.board.now()
    tasks = filter_tasks(state.board.tasks, status=status, query=" ".join(rest))
    counts = status_counts(state.board.tasks)
    header = "Tasks: " + ", ".join(f"{k}={v}" for k, v in counts.items())
    if not tasks:
        return header + "\n  (no matching tasks)"
    return "\n".join([header, *(f"  {format_task_line(t, now_ts)}" for t in tasks)])


def cmd_board(state: AppState, args: list[str]) -> str:
    now_ts = state.board.now()
    lines: list[str] = []
    for status in BOARD_COLUMNS:
        column = tasks_for_column(state.board.tasks, status)
        lines.append(f"== {status.label} ({len(column)})")
        lines.extend(f"  {format_task_line(t, now_ts)}" for t in column)
    return "\n".join(lines)


async def cmd_add(state: AppState, args: list[str]) -> str:
    """/add <name> [| hours]"""
    raw = " ".join(args)
    name, _, hours = raw.partition("|")
    form = TaskFormData(name=name.strip(), reminder_interval=hours.strip() or None)
    try:
        task = await state.board.create(form)
    except TaskError as e:
        return _task_error_message(e)
    return f"Created {format_task_line(task, state.board.now())}"


def cmd_show(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /show <id>"
    try:
        task = _resolve_task(state, args[0])
    except TaskError as e:
        return _task_error_message(e)
    return format_task_details(task, state.board.now())


async def cmd_status(state: AppState, args: list[str]) -> str:
    """/status <id> <init|working|need_taking_care|done>"""
    if len(args) < 2:
        return "Usage: /status <id> <init|working|need_taking_care|done>"
    try:
        task = _resolve_task(state, args[0])
        updated = await state.board.set_status(task.id, " ".join(args[1:]))
    except TaskError as e:
        return _task_error_message(e)
    return f"Updated {format_task_line(updated, state.board.now())}"


async def cmd_edit(state: AppState, args: list[str]) -> str:
    """/edit <id> <field> <value...>"""
    if len(args) < 2:
        return "Usage: /edit <id> <name|description|url|jira_id|reminder_interval|color> <value>"
    field_name = args[1].lower()
    value = " ".join(args[2:])
    try:
        task = _resolve_task(state, args[0])
        updated = await state.board.update(task.id, **{field_name: value})
    except TaskError as e:
        return _task_error_message(e)
    return f"Updated {format_task_line(updated, state.board.now())}"


async def _set_pin(state: AppState, args: list[str], pinned: bool) -> str:
    if not args:
        return f"Usage: /{'pin' if pinned else 'unpin'} <id>"
    try:
        task = _resolve_task(state, args[0])
        updated = await state.board.toggle_pin(task.id, pinned)
    except TaskError as e:
        return _task_error_message(e)
    return f"{'Pinned' if pinned else 'Unpinned'} {format_task_line(updated, state.board.now())}"


async def cmd_pin(state: AppState, args: list[str]) -> str:
    return await _set_pin(state, args, True)


async def cmd_unpin(state: AppState, args: list[str]) -> str:
    return await _set_pin(state, args, False)


async def cmd_delete(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /delete <id>"
    try:
        task = _resolve_task(state, args[0])
        await state.board.delete(task.id)
    except TaskError as e:
        return _task_error_message(e)
    return f"Deleted task {task.name!r}."


async def cmd_check(state: AppState, args: list[str]) -> str:
    result = await check_reminders(state.board)
    if result.skipped:
        return "Task list is not loaded yet."
    lines = [f"Reminder check: {len(result.reminded)} escalated, {len(result.failures)} failed."]
    lines.extend(f"  {t.name} needs taking care" for t in result.reminded)
    return "\n".join(lines)


async def cmd_import(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if not args:
        return "Usage: /import <path-to-legacy-tasks.json>"
    if emit:
        with contextlib.suppress(Exception):
            emit("[IMPORT] Importing legacy tasks...")
    try:
        report = await import_legacy_tasks(state.board, " ".join(args))
    except TaskError as e:
        return _task_error_message(e)
    return f"Imported {len(report.imported)} tasks (skipped {report.skipped})."


# ---- vocabulary ----

def _format_vocab(v: Vocabulary, *, details: bool = False) -> str:
    star = " *" if v.is_favorite else ""
    meaning = parse_stored_field(v.meaning)
    if isinstance(meaning, dict):
        short = meaning.get("vietnamese", "")
        pos = meaning.get("partOfSpeech", "")
        meaning_text = f"({pos}) {short}" if pos else str(short)
    else:
        meaning_text = str(meaning)
    line = f"#{v.id} {v.word}{star}: {meaning_text} [reviews: {v.review_count}]"
    if not details:
        return line

    lines = [line]
    ipa = parse_stored_field(v.ipa)
    if isinstance(ipa, dict):
        lines.append(f"  UK {ipa.get('uk', '')}  US {ipa.get('us', '')}")
    elif ipa:
        lines.append(f"  {ipa}")
    usage = parse_stored_field(v.usage)
    if isinstance(usage, dict):
        lines.extend(f"  - {ex}" for ex in usage.get("examples", []))
    elif usage:
        lines.append(f"  {usage}")
    return "\n".join(lines)


def _format_entry(entry: VocabularyEntry) -> str:
    lines = [
        f"{entry.word}  UK {entry.ipa.uk}  US {entry.ipa.us}",
        f"  ({entry.meaning.part_of_speech}) {entry.meaning.vietnamese}",
    ]
    lines.extend(f"  - {ex}" for ex in entry.usage.examples)
    return "\n".join(lines)


def _vocab_id(raw: str) -> int | None:
    try:
        return int(raw.lstrip("#"))
    except ValueError:
        return None


async def cmd_vocab(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /vocab gen <word>      -> generate content (not saved)
    /vocab add <word>      -> generate + save
    /vocab list [query]    -> list saved words
    /vocab show <id>       -> details
    /vocab fav <id>        -> toggle favourite
    /vocab review <id>     -> count a review
    /vocab del <id>        -> delete
    """
    usage = (
        "Vocabulary:\n"
        "  /vocab gen <word> | add <word> | list [query] | show <id> | fav <id> | review <id> | del <id>"
    )
    if not args:
        return usage

    sub = args[0].lower()
    rest = args[1:]
    store = state.vocabulary

    if sub in ("gen", "add"):
        word = " ".join(rest).strip()
        if not word:
            return f"Usage: /vocab {sub} <word>"
        if sub == "add":
            existing = await asyncio.to_thread(store.find_by_word, word)
            if existing is not None:
                return f"Already saved: {_format_vocab(existing)}"
        if emit:
            with contextlib.suppress(Exception):
                emit(f"[AI] Generating content for {word!r}...")
        try:
            entry = await asyncio.to_thread(state.generator.generate, word)
        except VocabularyGenerationError as e:
            return f"[AI] {e}"
        if sub == "gen":
            return _format_entry(entry)
        saved = await asyncio.to_thread(store.add_entry, entry)
        return f"Saved {_format_vocab(saved)}"

    if sub == "list":
        items = await asyncio.to_thread(store.list_vocabulary, query=" ".join(rest) or None)
        if not items:
            return "No vocabulary saved."
        return "\n".join(_format_vocab(v) for v in items)

    if sub in ("show", "fav", "review", "del"):
        vocab_id = _vocab_id(rest[0]) if rest else None
        if vocab_id is None:
            return f"Usage: /vocab {sub} <id>"
        current = await asyncio.to_thread(store.get, vocab_id)
        if current is None:
            return f"Vocabulary not found: #{vocab_id}"
        if sub == "show":
            return _format_vocab(current, details=True)
        if sub == "fav":
            updated = await asyncio.to_thread(store.toggle_favorite, vocab_id, not current.is_favorite)
            return _format_vocab(updated)
        if sub == "review":
            updated = await asyncio.to_thread(store.increment_review, vocab_id)
            return _format_vocab(updated)
        await asyncio.to_thread(store.delete_vocabulary, vocab_id)
        return f"Deleted #{vocab_id} {current.word}."

    return "Unknown /vocab subcommand.\n" + usage


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("list", cmd_list, help_text="List tasks: /list [status] [search words].", aliases=["ls"])
registry.register("board", cmd_board, help_text="Show the kanban board columns.")
registry.register("add", cmd_add, help_text="Create a task: /add <name> [| reminder hours].")
registry.register("show", cmd_show, help_text="Show task details: /show <id>.")
registry.register("status", cmd_status, help_text="Set task status: /status <id> <status>.", aliases=["mv"])
registry.register("edit", cmd_edit, help_text="Edit a field: /edit <id> <field> <value>.")
registry.register("pin", cmd_pin, help_text="Pin a task: /pin <id>.")
registry.register("unpin", cmd_unpin, help_text="Unpin a task: /unpin <id>.")
registry.register("delete", cmd_delete, help_text="Delete a task: /delete <id>.", aliases=["rm"])
registry.register("check", cmd_check, help_text="Run a reminder check now.")
registry.register("import", cmd_import, help_text="Import legacy tasks from a JSON export.")
registry.register(
    "vocab", cmd_vocab, help_text="Vocabulary: /vocab gen|add|list|show|fav|review|del."
)
