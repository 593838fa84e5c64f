"""Process-wide logging setup."""
import logging

from sensus.core.config import Settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def configure_logging(settings: Settings) -> None:
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger("sensus").setLevel(level)
    if not settings.database_echo:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    # passlib logs a noisy warning when probing bcrypt's version attribute
    logging.getLogger("passlib").setLevel(logging.ERROR)
