from sensus.jobs.scheduled import cleanup_old_notifications, generate_weekly_reports, send_reminders
from sensus.jobs.triggers import on_diary_entry_created, on_evaluation_created

__all__ = [
    "cleanup_old_notifications",
    "generate_weekly_reports",
    "on_diary_entry_created",
    "on_evaluation_created",
    "send_reminders",
]
