"""
Task subsystem.

Components:
- task_models.py: data structures (Task, LifecycleEvent, NotificationRequest) + JSON codec
- schedule.py: cron-style schedule evaluation (next occurrence after an instant)
- task_store.py: SQLite-backed storage + due-task query + conditional run-window advance
- notifier.py: builds notification requests and hands them to the bus
- trigger.py: the shared fire path (used by the scanner and explicit trigger events)
- coordinator.py: applies lifecycle events to the store
- task_scheduler.py: periodic due-task scanner
- task_api.py: helpers for clients that emit lifecycle events
"""
