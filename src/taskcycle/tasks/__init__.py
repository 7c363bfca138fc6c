"""
Task subsystem.

Components:
- task_models.py: data structures (Task, RecurrencePattern, TaskCollection, ...)
- recurrence.py: next-occurrence date arithmetic
- reset_policy.py: "should this completed task reset now?" and period progress
- lifecycle.py: the controller that applies resets and user actions
- task_store.py / task_codec.py: JSON document persistence
- task_scheduler.py: polling loop that drives resets and reminders
"""
