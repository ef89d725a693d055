import sys
import logging

from core.config import LOG_LEVEL

LOG_FORMAT = "%(asctime)s [%(levelname)s] [%(name)s] - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LEVELS = ("debug", "info", "warning", "error", "critical")


def setup_logging(log_level: str = None, stream=None):
    """Configure the root logger plus the uvicorn and fastapi loggers."""
    log_level = (log_level or LOG_LEVEL).lower()
    if log_level not in LEVELS:
        print(f"[Logger] Invalid LOG_LEVEL '{log_level}', defaulting to INFO")
        log_level = "info"

    level = getattr(logging, log_level.upper())
    stream = stream or sys.stdout

    formatter_class = ColorFormatter if stream.isatty() else logging.Formatter
    handler = logging.StreamHandler(stream)
    handler.setFormatter(formatter_class(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
    handler.setLevel(level)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = [handler]

    for logger_name in ("uvicorn", "uvicorn.error", "uvicorn.access", "fastapi"):
        server_logger = logging.getLogger(logger_name)
        server_logger.setLevel(level)
        server_logger.handlers = [handler]
        server_logger.propagate = False

    # the stripe library logs every request at info
    logging.getLogger("stripe").setLevel(max(level, logging.WARNING))
    return level


class Logger:
    def __init__(self, name: str = "stripe_metrics"):
        self.logger = logging.getLogger(name)

    def debug(self, msg, *args, **kwargs):
        self.logger.debug(msg, *args, **kwargs)

    def info(self, msg, *args, **kwargs):
        self.logger.info(msg, *args, **kwargs)

    def warning(self, msg, *args, **kwargs):
        self.logger.warning(msg, *args, **kwargs)

    def error(self, msg, *args, **kwargs):
        self.logger.error(msg, *args, **kwargs)

    def exception(self, msg, *args, **kwargs):
        self.logger.exception(msg, *args, **kwargs)


class ColorFormatter(logging.Formatter):
    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[1;31m",
    }
    RESET = "\033[0m"

    def format(self, record):
        color = self.COLORS.get(record.levelname, self.RESET)
        return f"{color}{super().format(record)}{self.RESET}"
