import logging
import sys

from pydantic import ConfigDict
from pydantic_settings import BaseSettings
from pythonjsonlogger.json import JsonFormatter

_NOISY_LOGGERS = ("httpx", "httpcore", "sqlalchemy.engine", "aiosqlite")


class LoggingSettings(BaseSettings):
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"

    model_config = ConfigDict(env_file=".env", extra="ignore")


def configure_logging(settings: LoggingSettings | None = None) -> None:
    """Route all loggers to stdout, as JSON unless ``LOG_FORMAT=text``."""
    if settings is None:
        settings = LoggingSettings()
    level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    if settings.LOG_FORMAT.lower() == "json":
        handler.setFormatter(
            JsonFormatter(
                "%(asctime)s %(levelname)s %(name)s %(message)s",
                rename_fields={"levelname": "level", "asctime": "timestamp"},
            )
        )
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(level)
    root_logger.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
