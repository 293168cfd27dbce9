"""
Task subsystem.

Components:
- task_models.py: data structures (Task, Priority, EisenhowerTag, Recurrence)
- task_store.py: SQLite-backed storage, calendar queries and live snapshots
- task_api.py: validated create/update/toggle/delete used by connectors
"""
