# src/ivytodo/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class Priority(StrEnum):
    """Three-level priority; `rank` gives the total order LOW < MEDIUM < HIGH."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]

    @classmethod
    def from_db(cls, raw: str | None) -> Priority:
        if not raw:
            return cls.MEDIUM
        try:
            return cls(raw.upper())
        except ValueError:
            return cls.MEDIUM


_PRIORITY_RANK = {Priority.LOW: 0, Priority.MEDIUM: 1, Priority.HIGH: 2}


class EisenhowerTag(StrEnum):
    """Urgency/importance quadrant. Every task carries exactly one."""

    DO_NOW = "DO_NOW"
    SCHEDULE = "SCHEDULE"
    DELEGATE = "DELEGATE"
    ELIMINATE = "ELIMINATE"

    @classmethod
    def from_db(cls, raw: str | None) -> EisenhowerTag:
        if not raw:
            return cls.DO_NOW
        try:
            return cls(raw.upper())
        except ValueError:
            return cls.DO_NOW


class RepeatType(StrEnum):
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"
    YEARLY = "YEARLY"

    @classmethod
    def from_db(cls, raw: str | None) -> RepeatType | None:
        if not raw:
            return None
        try:
            return cls(raw.upper())
        except ValueError:
            return None


@dataclass(slots=True, frozen=True)
class Recurrence:
    type: RepeatType
    interval: int = 1


@dataclass(slots=True)
class Task:
    id: int
    title: str
    note: str
    is_done: bool
    created_at: float
    due_at: float | None

    priority: Priority = Priority.MEDIUM
    tag: EisenhowerTag = EisenhowerTag.DO_NOW
    recurrence: Recurrence | None = None

    # Ivy Lee plan: both set or both None.
    ivy_date: str | None = None
    ivy_rank: int | None = None

    @property
    def is_planned(self) -> bool:
        return self.ivy_date is not None

    def is_overdue(self, now: float) -> bool:
        return self.due_at is not None and self.due_at < now and not self.is_done
