"""Logging configuration for the kubeprov package."""
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

import typer

STEP = 25
logging.addLevelName(STEP, "STEP")

LEVEL_STYLES = {
    logging.DEBUG: ("DEBUG", typer.colors.WHITE),
    logging.INFO: ("INFO", typer.colors.GREEN),
    STEP: ("STEP", typer.colors.BLUE),
    logging.WARNING: ("WARNING", typer.colors.YELLOW),
    logging.ERROR: ("ERROR", typer.colors.RED),
    logging.CRITICAL: ("ERROR", typer.colors.RED),
}

FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class StatusFormatter(logging.Formatter):
    """Render records as operator status lines: ``[INFO] message``."""

    def __init__(self, color: bool = False):
        super().__init__("%(message)s")
        self.color = color

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        label, fg = LEVEL_STYLES.get(record.levelno, (record.levelname, None))
        prefix = f"[{label}]"
        if self.color and fg:
            prefix = typer.style(prefix, fg=fg, bold=record.levelno >= logging.WARNING)
        return f"{prefix} {message}"


def setup_logging(debug: bool = False, log_file: Optional[str] = None,
                  level: str = "INFO", max_size_mb: int = 10, backup_count: int = 3) -> logging.Logger:
    """
    Configure the ``kubeprov`` logger hierarchy.

    Args:
        debug: Force DEBUG level
        log_file: Optional audit log path (rotated)
        level: Level name used when debug is off
        max_size_mb: Rotation size for the audit log
        backup_count: Rotated files to keep

    Returns:
        The package root logger
    """
    logger = logging.getLogger("kubeprov")
    log_level = logging.DEBUG if debug else getattr(logging, level.upper(), logging.INFO)
    logger.setLevel(log_level)
    logger.propagate = False

    # Reconfiguring replaces earlier handlers
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(log_level)
    console.setFormatter(StatusFormatter(color=sys.stdout.isatty()))
    logger.addHandler(console)

    if log_file:
        path = Path(log_file).expanduser().absolute()
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            filename=path,
            maxBytes=max_size_mb * 1024 * 1024,
            backupCount=backup_count,
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        logger.addHandler(file_handler)
        logger.debug(f"Logging to file: {path}")

    # Disable debug logging for noisy libraries
    if not debug:
        logging.getLogger("urllib3").setLevel(logging.WARNING)
        logging.getLogger("kubernetes").setLevel(logging.WARNING)

    return logger


def step(logger: logging.Logger, message: str) -> None:
    """Log a workflow step heading."""
    logger.log(STEP, message)
