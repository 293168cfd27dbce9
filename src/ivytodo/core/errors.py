# src/ivytodo/core/errors.py

"""
Error kinds surfaced by the core.

Read paths never raise NotFoundError; they return None. It exists for the
command paths that address a task by id and need to report a miss.
"""

from __future__ import annotations


class ValidationError(ValueError):
    """Input rejected before it reaches the store (blank title, bad interval, ...)."""


class NotFoundError(LookupError):
    def __init__(self, task_id: int) -> None:
        super().__init__(f"task {task_id} not found")
        self.task_id = task_id


class CapacityError(ValueError):
    """A daily plan would exceed its member limit. Nothing was written."""

    def __init__(self, size: int, limit: int) -> None:
        super().__init__(f"plan has {size} tasks, limit is {limit}")
        self.size = size
        self.limit = limit
