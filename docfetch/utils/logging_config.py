import logging
import os
import sys
from pathlib import Path
from typing import Optional

from loguru import logger

CONSOLE_FORMAT = "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | {message}"
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"

# Third-party loggers that speak stdlib logging
INTERCEPTED_LOGGERS = ("playwright", "asyncio", "urllib3", "requests")


class InterceptHandler(logging.Handler):
    """Intercept standard logging and redirect to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        # Get corresponding Loguru level if it exists
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find caller from where originated the logged message
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def env_log_level(default: str = "INFO") -> str:
    """Return log level string from LOG_LEVEL env (fallback to ``default``)."""
    return os.getenv("LOG_LEVEL", default).upper()


def configure_logger(
    level: Optional[str] = None,
    log_file: Optional[str] = "docfetch.log",
    log_dir: Path = Path("logs"),
) -> None:
    """
    Configure loguru for a docfetch run.

    Args:
        level: Log level; defaults to LOG_LEVEL or INFO.
        log_file: File name inside ``log_dir``. None disables the file sink.
        log_dir: Directory for the file sink, created if missing.
    """
    level = (level or env_log_level()).upper()

    # Remove default handler to avoid duplicate logs
    logger.remove()

    logger.add(sys.stderr, format=CONSOLE_FORMAT, level=level, backtrace=True, diagnose=False)

    if log_file:
        log_dir.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_dir / log_file,
            rotation="10 MB",
            retention="10 days",
            level=level,
            format=FILE_FORMAT,
            backtrace=True,
            diagnose=True,
        )

    # Route Playwright & friends through loguru
    logging.basicConfig(handlers=[InterceptHandler()], level=logging.INFO, force=True)
    for logger_name in INTERCEPTED_LOGGERS:
        logging.getLogger(logger_name).handlers = [InterceptHandler()]
        logging.getLogger(logger_name).propagate = False
