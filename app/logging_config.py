import logging
import os

from pythonjsonlogger import jsonlogger

from studybuddy.constants import APP_NAME

# httpx logs full request URLs at INFO, and Bot API URLs embed the bot token.
_QUIET_LOGGERS = ("httpx", "httpcore", "telegram", "google.auth")


def setup_logging() -> None:
    """Configure structured JSON logging for Cloud Run."""
    log_level = os.environ.get("LOG_LEVEL", "INFO").upper()

    handler = logging.StreamHandler()
    formatter = jsonlogger.JsonFormatter(
        "%(asctime)s %(levelname)s %(name)s %(message)s",
        rename_fields={"levelname": "severity"},
        static_fields={"service": APP_NAME},
    )
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.setLevel(log_level)
    root.handlers = [handler]

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
