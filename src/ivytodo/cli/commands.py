# src/ivytodo/cli/commands.py

from __future__ import annotations

import contextlib
import inspect
import logging
from collections.abc import Callable
from datetime import date, datetime
from typing import Any, cast

from ..core.errors import CapacityError, NotFoundError, ValidationError
from ..core.state import AppState
from ..focus.timer import FocusPhase, FocusTimer, PhaseAlert
from ..planning.daily_plan import MAX_PLAN_SIZE
from ..query.engine import Filter, Group, SortMode
from ..tasks import task_api
from ..tasks.task_models import EisenhowerTag, Priority, Recurrence, RepeatType, Task

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], str]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], str]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)

DUE_FORMATS = ("%Y-%m-%d %H:%M", "%Y-%m-%d")


class CommandRegistry:
    """Simple slash-command registry used by connectors (/help, /add, /plan, ...)."""

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

    def handle(self, state: AppState, line: str, emit: CommandEmitter | None = None) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.

        Validation, capacity and not-found errors become user-facing replies.
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
        except (TypeError, ValueError):
            nparams = 3

        try:
            if nparams >= 3:
                h3 = cast(CommandHandler3, handler)
                return h3(state, args, emit)
            h2 = cast(CommandHandler2, handler)
            return h2(state, args)
        except ValidationError as e:
            return f"Invalid input: {e}"
        except CapacityError:
            return f"A plan can hold at most {MAX_PLAN_SIZE} tasks."
        except NotFoundError as e:
            return f"No task with id {e.task_id}."

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- formatting / parsing helpers ----


def _fmt_ts(ts: float) -> str:
    return datetime.fromtimestamp(ts).strftime("%b %d, %H:%M")


def _tag_label(tag: EisenhowerTag) -> str:
    return tag.value.replace("_", " ").title()


def format_task(task: Task, now: float) -> str:
    box = "[x]" if task.is_done else "[ ]"
    due = _fmt_ts(task.due_at) if task.due_at is not None else "No due date"
    meta = f"{due} | {task.priority.value.title()} | {_tag_label(task.tag)}"
    if task.recurrence is not None:
        meta = f"every {task.recurrence.interval} {task.recurrence.type.value.lower()} | {meta}"
    line = f"#{task.id} {box} {task.title} ({meta})"
    if task.is_overdue(now):
        line += " OVERDUE"
    if task.note:
        line += f"\n      {task.note}"
    return line


def _format_list(state: AppState, tasks: list[Task], empty: str) -> str:
    if not tasks:
        return empty
    now = state.clock.now()
    return "\n".join(format_task(t, now) for t in tasks)


def _parse_id(raw: str) -> int:
    try:
        return int(raw.lstrip("#"))
    except ValueError:
        raise ValidationError(f"not a task id: {raw!r}") from None


def _parse_choice(enum_cls: Any, raw: str) -> Any:
    try:
        return enum_cls(raw.lower()) if enum_cls in (Filter, Group, SortMode) else enum_cls(raw.upper())
    except ValueError:
        options = ", ".join(m.value.lower() for m in enum_cls)
        raise ValidationError(f"{raw!r} is not one of: {options}") from None


def parse_due(args: list[str]) -> float:
    text = " ".join(args)
    for fmt in DUE_FORMATS:
        try:
            return datetime.strptime(text, fmt).timestamp()
        except ValueError:
            continue
    raise ValidationError("due must look like YYYY-MM-DD or YYYY-MM-DD HH:MM")


# ---- task commands ----


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str]) -> str:
    view = state.view.state
    p = view.params
    counts = ", ".join(f"{_tag_label(tag)}: {n}" for tag, n in view.counts.items())
    focus = state.focus.snapshot.phase.value if state.focus is not None else FocusPhase.IDLE.value
    return (
        "Status:\n"
        f"  Query: {p.query!r}  Filter: {p.filter.value}  Group: {p.group.value}  Sort: {p.sort.value}\n"
        f"  Visible: {len(view.items)}  ({counts})\n"
        f"  Today's plan: {len(state.planner.today_plan)} tasks\n"
        f"  Focus: {focus}"
    )


def cmd_add(state: AppState, args: list[str]) -> str:
    """
    /add title words            -> new task
    /add title words | note     -> new task with a note
    """
    title, _, note = " ".join(args).partition("|")
    task = task_api.add_task(state, title=title, note=note)
    return f"Added #{task.id}: {task.title}"


def cmd_list(state: AppState, args: list[str]) -> str:
    # UPCOMING is relative to now; recompute even when nothing was written.
    state.view.refresh()
    return _format_list(state, state.view.state.items, "No tasks match the current view.")


def cmd_search(state: AppState, args: list[str]) -> str:
    state.view.set_query(" ".join(args))
    return cmd_list(state, [])


def cmd_filter(state: AppState, args: list[str]) -> str:
    if not args:
        return f"Filter is {state.view.params.filter.value}. Use /filter all|active|done."
    state.view.set_filter(_parse_choice(Filter, args[0]))
    return cmd_list(state, [])


def cmd_sort(state: AppState, args: list[str]) -> str:
    if not args:
        modes = " | ".join(m.value for m in SortMode)
        return f"Sort is {state.view.params.sort.value}. Use /sort {modes}."
    state.view.set_sort(_parse_choice(SortMode, args[0]))
    return cmd_list(state, [])


def cmd_group(state: AppState, args: list[str]) -> str:
    if not args:
        groups = " | ".join(g.value for g in Group)
        return f"Group is {state.view.params.group.value}. Use /group {groups}."
    state.view.set_group(_parse_choice(Group, args[0]))
    return cmd_list(state, [])


def cmd_done(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /done <id>"
    task = task_api.toggle_done(state, _parse_id(args[0]))
    if task is None:
        return f"No task with id {args[0]}."
    return f"#{task.id} marked {'done' if task.is_done else 'not done'}."


def cmd_delete(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /del <id>"
    task_id = _parse_id(args[0])
    if not task_api.delete_task(state, task_id):
        return f"No task with id {task_id}."
    state.planner.refresh_today()
    return f"Deleted #{task_id}."


def cmd_priority(state: AppState, args: list[str]) -> str:
    if len(args) < 2:
        return "Usage: /prio <id> low|medium|high"
    task = task_api.require_task(state, _parse_id(args[0]))
    task.priority = _parse_choice(Priority, args[1])
    task_api.update_task(state, task)
    return f"#{task.id} priority is {task.priority.value.lower()}."


def cmd_tag(state: AppState, args: list[str]) -> str:
    if len(args) < 2:
        return "Usage: /tag <id> do_now|schedule|delegate|eliminate"
    task = task_api.require_task(state, _parse_id(args[0]))
    task.tag = _parse_choice(EisenhowerTag, args[1])
    task_api.update_task(state, task)
    return f"#{task.id} is in {_tag_label(task.tag)}."


def cmd_due(state: AppState, args: list[str]) -> str:
    if len(args) < 2:
        return "Usage: /due <id> YYYY-MM-DD [HH:MM] | none"
    task = task_api.require_task(state, _parse_id(args[0]))
    task.due_at = None if args[1].lower() == "none" else parse_due(args[1:])
    task_api.update_task(state, task)
    if task.due_at is None:
        return f"#{task.id} has no due date."
    return f"#{task.id} due {_fmt_ts(task.due_at)}."


def cmd_repeat(state: AppState, args: list[str]) -> str:
    if len(args) < 2:
        return "Usage: /repeat <id> daily|weekly|monthly|yearly [interval] | none"
    task = task_api.require_task(state, _parse_id(args[0]))
    if args[1].lower() == "none":
        task.recurrence = None
    else:
        interval = 1
        if len(args) > 2:
            try:
                interval = int(args[2])
            except ValueError:
                raise ValidationError("interval must be a whole number") from None
        task.recurrence = Recurrence(type=_parse_choice(RepeatType, args[1]), interval=interval)
    task_api.update_task(state, task)
    if task.recurrence is None:
        return f"#{task.id} does not repeat."
    return f"#{task.id} repeats every {task.recurrence.interval} {task.recurrence.type.value.lower()}."


def cmd_day(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /day YYYY-MM-DD"
    try:
        day = date.fromisoformat(args[0])
    except ValueError:
        raise ValidationError("date must look like YYYY-MM-DD") from None
    return _format_list(state, task_api.tasks_for_day(state, day), f"Nothing due on {day.isoformat()}.")


def cmd_dates(state: AppState, args: list[str]) -> str:
    dates = sorted(task_api.dates_with_tasks(state))
    if not dates:
        return "No due dates yet."
    return "Dates with tasks: " + ", ".join(dates)


# ---- Ivy Lee plan ----


def cmd_today(state: AppState, args: list[str]) -> str:
    plan = state.planner.refresh_today()
    return _format_list(state, plan, "No plan for today.")


def cmd_tomorrow(state: AppState, args: list[str]) -> str:
    return _format_list(state, state.planner.get_tomorrow_plan(), "No tasks planned for tomorrow.")


def cmd_plan(state: AppState, args: list[str]) -> str:
    """
    /plan              -> list candidates (open tasks)
    /plan 4 2 9        -> make tasks 4, 2, 9 tomorrow's plan, in that order
    """
    if not args:
        return _format_list(
            state,
            state.planner.candidates(),
            "Nothing to plan: every task is done.",
        ) + f"\nPick up to {MAX_PLAN_SIZE}: /plan <id> [<id> ...]"

    selected = [task_api.require_task(state, _parse_id(a)) for a in args]
    plan = state.planner.plan_tomorrow(selected)
    return f"Tomorrow ({state.planner.tomorrow_key()}):\n" + _format_list(state, plan, "(empty)")


def cmd_unplan(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /unplan <id>"
    task = task_api.require_task(state, _parse_id(args[0]))
    state.planner.remove_from_plan(task)
    return f"#{task.id} removed from its plan."


# ---- focus timer ----


def _on_scheduler(state: AppState, fn: Callable[..., Any], *args: Any) -> Any:
    """Timer methods must run on the scheduler's thread."""
    if state.runtime is not None:
        return state.runtime.call(fn, *args)
    return fn(*args)


def _format_focus(timer: FocusTimer) -> str:
    s = timer.snapshot
    if s.phase is FocusPhase.IDLE:
        return f"Focus on {s.task_title!r}: idle."
    mins, secs = divmod(s.remaining_ms // 1000, 60)
    paused = " (paused)" if s.is_paused else ""
    return f"Focus on {s.task_title!r}: {s.phase.value} {mins:02d}:{secs:02d}, set {s.current_set}/{s.total_sets}{paused}"


def _alert_text(alert: PhaseAlert) -> str:
    if alert.next_phase is FocusPhase.IDLE:
        return "\a[FOCUS] Session complete."
    if alert.next_phase is FocusPhase.BREAK:
        return f"\a[FOCUS] Set {alert.set_index} done. Take a break."
    return f"\a[FOCUS] Break over. Set {alert.set_index + 1} starts."


def _int_arg(raw: str, name: str) -> int:
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be a whole number") from None


def cmd_focus(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /focus start <id>                     -> default durations from settings
    /focus start <focus> <break> <sets> <id>
    /focus pause | resume | stop | status
    """
    sub = args[0].lower() if args else "status"

    if sub == "start":
        rest = args[1:]
        if len(rest) not in (1, 4):
            return "Usage: /focus start [<focus min> <break min> <sets>] <id>"
        settings = state.settings
        focus_min = int(getattr(settings, "focus_minutes", 25))
        break_min = int(getattr(settings, "break_minutes", 5))
        sets = int(getattr(settings, "focus_sets", 4))
        if len(rest) == 4:
            focus_min = _int_arg(rest[0], "focus minutes")
            break_min = _int_arg(rest[1], "break minutes")
            sets = _int_arg(rest[2], "sets")
        task_id = _parse_id(rest[-1])

        if state.tick_scheduler is None:
            return "Focus timer is unavailable (no background loop)."

        if state.focus is not None:
            _on_scheduler(state, state.focus.close)

        tick_ms = int(float(getattr(settings, "focus_tick_seconds", 1.0)) * 1000)
        timer = FocusTimer.for_task(state.store, task_id, state.tick_scheduler, state.clock, tick_ms=tick_ms)
        if emit is not None:
            def _announce(alert: PhaseAlert) -> None:
                with contextlib.suppress(Exception):
                    emit(_alert_text(alert))

            timer.on_alert(_announce)

        _on_scheduler(state, timer.start, focus_min, break_min, sets)
        state.focus = timer
        return _format_focus(timer)

    timer = state.focus
    if timer is None:
        return "No focus session. Use /focus start <id>."

    if sub == "pause":
        _on_scheduler(state, timer.pause)
    elif sub == "resume":
        _on_scheduler(state, timer.resume)
    elif sub == "stop":
        _on_scheduler(state, timer.stop)
    elif sub != "status":
        return "Usage: /focus start|pause|resume|stop|status"

    return _format_focus(timer)


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show view parameters, counts, plan and focus state.")
registry.register("add", cmd_add, help_text="Add a task: /add title [| note].")
registry.register("list", cmd_list, help_text="Show the current view.", aliases=["ls"])
registry.register("search", cmd_search, help_text="Search title/note: /search text (empty clears).")
registry.register("filter", cmd_filter, help_text="/filter all|active|done.")
registry.register("sort", cmd_sort, help_text="/sort created_desc|created_asc|due_asc|due_desc|priority_desc|priority_asc.")
registry.register("group", cmd_group, help_text="/group all|upcoming|do_now|schedule|delegate|eliminate.")
registry.register("done", cmd_done, help_text="Toggle done: /done <id>.")
registry.register("del", cmd_delete, help_text="Delete a task: /del <id>.", aliases=["rm"])
registry.register("prio", cmd_priority, help_text="Set priority: /prio <id> low|medium|high.")
registry.register("tag", cmd_tag, help_text="Set quadrant: /tag <id> do_now|schedule|delegate|eliminate.")
registry.register("due", cmd_due, help_text="Set due: /due <id> YYYY-MM-DD [HH:MM] | none.")
registry.register("repeat", cmd_repeat, help_text="Set recurrence: /repeat <id> daily|weekly|monthly|yearly [n] | none.")
registry.register("day", cmd_day, help_text="Tasks due on a day: /day YYYY-MM-DD.")
registry.register("dates", cmd_dates, help_text="List dates that have due tasks.")
registry.register("today", cmd_today, help_text="Show today's Ivy Lee plan.")
registry.register("tomorrow", cmd_tomorrow, help_text="Show tomorrow's Ivy Lee plan.")
registry.register("plan", cmd_plan, help_text="Plan tomorrow: /plan <id> [<id> ...] (max 6, in order).")
registry.register("unplan", cmd_unplan, help_text="Remove a task from its plan: /unplan <id>.")
registry.register("focus", cmd_focus, help_text="Pomodoro: /focus start [f b sets] <id> | pause | resume | stop | status.")
