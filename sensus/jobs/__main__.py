"""Run a scheduled job once: ``sensus-jobs reminders|weekly-reports|cleanup``.

Meant to be invoked by an external cron.
"""
import argparse
import asyncio
import logging

from sensus.core.config import get_settings
from sensus.core.logging import configure_logging
from sensus.db.session import build_engine, build_sessionmaker, utcnow
from sensus.jobs.scheduled import cleanup_old_notifications, generate_weekly_reports, send_reminders

logger = logging.getLogger("sensus.jobs")

COMMANDS = ("reminders", "weekly-reports", "cleanup")


async def run(command: str) -> int:
    settings = get_settings()
    engine = build_engine(settings.database_url, settings.database_echo)
    sessionmaker = build_sessionmaker(engine)
    now = utcnow()
    try:
        if command == "reminders":
            return await send_reminders(
                sessionmaker,
                now,
                settings.diary_reminder_after_days,
                settings.test_reminder_after_days,
            )
        if command == "weekly-reports":
            return await generate_weekly_reports(sessionmaker, now)
        return await cleanup_old_notifications(sessionmaker, now, settings.notification_retention_days)
    finally:
        await engine.dispose()


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(prog="sensus-jobs", description="Run one Sensus background job")
    parser.add_argument("command", choices=COMMANDS)
    args = parser.parse_args(argv)
    configure_logging(get_settings())
    count = asyncio.run(run(args.command))
    logger.info("%s done (%d records)", args.command, count)


if __name__ == "__main__":
    main()
