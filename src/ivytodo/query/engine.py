# src/ivytodo/query/engine.py

"""
Task query engine.

compute_view() turns a full task snapshot plus the current view parameters into the
ordered list shown to the user. The stages run in a fixed order:

  completion filter -> text filter -> group filter -> sort

Each stage only narrows or reorders the previous one. The function is pure: it does
not mutate its input, keeps no state, and performs no I/O.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import StrEnum
from typing import assert_never

from ..tasks.task_models import EisenhowerTag, Task

UPCOMING_WINDOW_SECONDS = 72 * 60 * 60


class Filter(StrEnum):
    ALL = "all"
    ACTIVE = "active"
    DONE = "done"


class SortMode(StrEnum):
    CREATED_DESC = "created_desc"
    CREATED_ASC = "created_asc"
    DUE_ASC = "due_asc"
    DUE_DESC = "due_desc"
    PRIORITY_DESC = "priority_desc"
    PRIORITY_ASC = "priority_asc"


class Group(StrEnum):
    ALL = "all"
    UPCOMING = "upcoming"
    DO_NOW = "do_now"
    SCHEDULE = "schedule"
    DELEGATE = "delegate"
    ELIMINATE = "eliminate"


@dataclass(slots=True, frozen=True)
class ViewParams:
    query: str = ""
    filter: Filter = Filter.ALL
    group: Group = Group.ALL
    sort: SortMode = SortMode.CREATED_DESC


def _passes_filter(task: Task, f: Filter) -> bool:
    match f:
        case Filter.ALL:
            return True
        case Filter.ACTIVE:
            return not task.is_done
        case Filter.DONE:
            return task.is_done
        case _:
            assert_never(f)


def _matches_text(task: Task, needle: str) -> bool:
    return needle in task.title.casefold() or needle in task.note.casefold()


def _group_tag(group: Group) -> EisenhowerTag | None:
    match group:
        case Group.DO_NOW:
            return EisenhowerTag.DO_NOW
        case Group.SCHEDULE:
            return EisenhowerTag.SCHEDULE
        case Group.DELEGATE:
            return EisenhowerTag.DELEGATE
        case Group.ELIMINATE:
            return EisenhowerTag.ELIMINATE
        case Group.ALL | Group.UPCOMING:
            return None
        case _:
            assert_never(group)


def _in_group(task: Task, group: Group, now: float) -> bool:
    if group is Group.ALL:
        return True
    if group is Group.UPCOMING:
        if task.due_at is None:
            return False
        return now <= task.due_at <= now + UPCOMING_WINDOW_SECONDS
    return task.tag == _group_tag(group)


def sort_tasks(tasks: Iterable[Task], mode: SortMode) -> list[Task]:
    """Stable sort by `mode`. Done tasks sink to the bottom for both due-date modes."""
    items = list(tasks)
    match mode:
        case SortMode.CREATED_DESC:
            return sorted(items, key=lambda t: t.created_at, reverse=True)
        case SortMode.CREATED_ASC:
            return sorted(items, key=lambda t: t.created_at)
        case SortMode.DUE_ASC:
            return sorted(
                items,
                key=lambda t: (
                    t.is_done,
                    t.due_at is None,
                    t.due_at if t.due_at is not None else 0.0,
                    -t.created_at,
                ),
            )
        case SortMode.DUE_DESC:
            return sorted(
                items,
                key=lambda t: (
                    t.is_done,
                    t.due_at is None,
                    -t.due_at if t.due_at is not None else 0.0,
                    -t.created_at,
                ),
            )
        case SortMode.PRIORITY_DESC:
            return sorted(items, key=lambda t: (-t.priority.rank, -t.created_at))
        case SortMode.PRIORITY_ASC:
            return sorted(items, key=lambda t: (t.priority.rank, -t.created_at))
        case _:
            assert_never(mode)


def compute_view(tasks: Iterable[Task], params: ViewParams, now: float) -> list[Task]:
    """
    Visible, ordered task list for `params`.

    `now` anchors the UPCOMING window (now .. now+72h, both ends inclusive).
    """
    stage = [t for t in tasks if _passes_filter(t, params.filter)]

    if params.query.strip():
        needle = params.query.casefold()
        stage = [t for t in stage if _matches_text(t, needle)]

    stage = [t for t in stage if _in_group(t, params.group, now)]

    return sort_tasks(stage, params.sort)


def quadrant_counts(tasks: Iterable[Task]) -> dict[EisenhowerTag, int]:
    counts = {tag: 0 for tag in EisenhowerTag}
    for t in tasks:
        counts[t.tag] += 1
    return counts
