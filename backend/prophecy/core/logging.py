import json
import logging
import os
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from typing import Optional

from prophecy.core.config import settings

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


class JsonFormatter(logging.Formatter):
    """Format logs as JSON for log shippers"""

    def format(self, record):
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data)


def setup_logging(
    log_level: Optional[str] = None,
    log_to_file: Optional[bool] = None,
    json_format: Optional[bool] = None,
) -> logging.Logger:
    """
    Configure the root logger with a console handler and an optional
    rotating file handler.

    Arguments default to the values in settings. Calling this more than once
    replaces the handlers installed by the previous call.
    """
    level = LOG_LEVELS.get((log_level or settings.LOG_LEVEL).upper(), logging.INFO)
    to_file = settings.LOG_TO_FILE if log_to_file is None else log_to_file
    as_json = settings.LOG_JSON if json_format is None else json_format

    formatter = JsonFormatter() if as_json else logging.Formatter(LOG_FORMAT)

    root = logging.getLogger()
    root.setLevel(level)
    for handler in list(root.handlers):
        if getattr(handler, "_prophecy_handler", False):
            root.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    console_handler._prophecy_handler = True
    root.addHandler(console_handler)

    if to_file:
        os.makedirs(settings.LOG_DIR, exist_ok=True)
        file_handler = RotatingFileHandler(
            os.path.join(settings.LOG_DIR, "prophecy.log"),
            maxBytes=10 * 1024 * 1024,  # 10 MB
            backupCount=5
        )
        file_handler.setFormatter(formatter)
        file_handler._prophecy_handler = True
        root.addHandler(file_handler)

    # Quiet noisy third-party loggers
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    return root
