"""
Reminder subsystem.

- notification_scheduler.py: which reminders are eligible now
- dispatcher.py: permission handling and repeat suppression before delivery
- due_dates.py: due-date arithmetic and formatting
"""
