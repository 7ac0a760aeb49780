# utils/logging.py
import logging
import logging.config
from datetime import datetime
from pathlib import Path
from typing import Optional

LOGGER_NAME = "repredret"


def setup_logging(
    log_dir: Optional[str] = "./logs",
    console: bool = True,
    level: str = "INFO",
    quiet_console: bool = False,
    console_level: Optional[str] = None,
) -> tuple:
    """
    Setup logging with an optional file handler and an optional console handler.

    Args:
        log_dir: Directory for the timestamped log file; None disables file logging
        console: Whether to enable console logging
        level: Level of the ``repredret`` logger
        quiet_console: If True, only errors reach the console
        console_level: Separate level for console (defaults to level)

    Returns:
        (logger, summary_logger)
    """
    name = LOGGER_NAME

    handlers = {}
    log_path = None
    if log_dir:
        Path(log_dir).mkdir(parents=True, exist_ok=True)
        ts = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_path = str(Path(log_dir) / f"{name}_{ts}.log")
        handlers["file"] = {
            "class": "logging.FileHandler",
            "formatter": "plain",
            "filename": log_path,
            "encoding": "utf-8",
            "mode": "w",
            "level": "DEBUG",
        }

    config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "plain": {
                "format": "{asctime} {levelname:<7} {name} - {message}",
                "style": "{",
            },
        },
        "handlers": handlers,
        "loggers": {
            name: {
                "level": level.upper(),
                "handlers": list(handlers),
                "propagate": False,
            },
        },
    }

    logging.config.dictConfig(config)
    logging.captureWarnings(True)

    logger = logging.getLogger(name)
    console_formatter = logging.Formatter("{levelname:<7} {message}", style="{")

    # Summary lines (batch progress, final report) go through their own logger
    # so they can reach the console while detailed logs stay in the file.
    summary_logger = logging.getLogger(f"{name}.summary")
    summary_logger.setLevel(logging.INFO)
    summary_logger.propagate = False
    for handler in list(summary_logger.handlers):
        summary_logger.removeHandler(handler)
        handler.close()

    if log_path:
        fh_summary = logging.FileHandler(log_path, encoding="utf-8", mode="a")
        fh_summary.setLevel(logging.INFO)
        fh_summary.setFormatter(logging.Formatter("{asctime} SUMMARY - {message}", style="{"))
        summary_logger.addHandler(fh_summary)

    if console:
        console_handler = logging.StreamHandler()
        if quiet_console:
            console_handler.setLevel(logging.ERROR)
        else:
            console_handler.setLevel(getattr(logging, (console_level or level).upper()))
        console_handler.setFormatter(console_formatter)
        if not quiet_console:
            logger.addHandler(console_handler)
        summary_logger.addHandler(console_handler)

    logger.info("Logging initialised. File: %s", log_path or "<none>")
    return logger, summary_logger


def get_summary_logger() -> logging.Logger:
    """Logger used for progress and summary lines."""
    return logging.getLogger(f"{LOGGER_NAME}.summary")
