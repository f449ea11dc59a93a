import json
import logging
import sys
from datetime import date
from pathlib import Path

from loguru import logger

from prayer_notify.config.settings import settings
from prayer_notify.utils.context import get_request_id

LOGGING_CONFIG_PATH = Path(__file__).resolve().parents[2] / "logging_config.json"

# Third-party loggers whose records should end up in loguru sinks
FORWARDED_LOGGERS = (
    "uvicorn",
    "uvicorn.error",
    "uvicorn.access",
    "fastapi",
    "celery",
    "celery.task",
    "sqlalchemy.engine",
)


class InterceptHandler(logging.Handler):
    """Forward standard-library log records into loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Skip frames from the logging module so loguru reports the real caller
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.bind(request_id=get_request_id() or "app").opt(
            depth=depth, exception=record.exc_info
        ).log(level, record.getMessage())


class CustomizeLogger:
    """Builds the process-wide loguru logger from a profile in logging_config.json."""

    @classmethod
    def make_logger(cls, config_path: Path = LOGGING_CONFIG_PATH, profile: str = "logger"):
        profiles = json.loads(Path(config_path).read_text())
        config = profiles.get(profile, profiles["logger"])

        level = (settings.LOG_LEVEL or config.get("level", "INFO")).upper()
        log_file = Path(config["log_dir"]) / (
            f"{date.today():%Y-%m-%d}-{config['filename']}"
        )

        logger.remove()
        logger.configure(extra={"request_id": "app"})

        logger.add(
            sys.stdout,
            level=level,
            format=config["console_format"],
            colorize=True,
            backtrace=True,
            enqueue=True,
        )

        file_sink = dict(
            rotation=config.get("rotation"),
            retention=config.get("retention"),
            level=level,
            backtrace=True,
            enqueue=True,
            colorize=False,
        )
        if config.get("use_json_logs") and config.get("file_format") == "json":
            file_sink["serialize"] = True
        else:
            file_sink["format"] = config["file_format"]
        logger.add(str(log_file), **file_sink)

        cls.forward_std_logging()
        return logger

    @staticmethod
    def forward_std_logging() -> None:
        logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
        for name in FORWARDED_LOGGERS:
            std_logger = logging.getLogger(name)
            std_logger.handlers = [InterceptHandler()]
            std_logger.propagate = False


custom_logger = CustomizeLogger.make_logger(
    profile="production" if settings.ENVIRONMENT == "production" else "logger"
)


def get_logger():
    """Logger bound to the current request or task ID."""
    return custom_logger.bind(request_id=get_request_id() or "app")
