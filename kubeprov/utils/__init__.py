"""Utility functions and helpers for kubeprov."""
import logging
import shutil
import time
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional, Tuple, Union

logger = logging.getLogger("kubeprov.utils")

BACKUP_STAMP = "%Y%m%d%H%M%S"


def retry_call(
    func: Callable[[], bool],
    attempts: int,
    delay: float,
    sleep: Callable[[float], None] = time.sleep,
    description: str = "operation",
) -> Tuple[bool, int]:
    """Call ``func`` until it returns True, with a fixed delay between attempts.

    Args:
        func: Callable returning True on success
        attempts: Maximum number of calls
        delay: Seconds to wait between failed attempts
        sleep: Sleep function (injected in tests)
        description: Name used in log messages

    Returns:
        tuple: (succeeded, number of attempts made)
    """
    for attempt in range(1, attempts + 1):
        if func():
            return True, attempt
        if attempt < attempts:
            logger.warning(
                f"Attempt {attempt}/{attempts} of {description} failed. "
                f"Retrying in {delay:g}s..."
            )
            sleep(delay)
    return False, attempts


def backup_file(path: Union[str, Path], now: Optional[datetime] = None) -> Optional[Path]:
    """Copy ``path`` to ``<path>.bak.<timestamp>`` if it exists.

    Returns:
        Path of the backup, or None when there was nothing to back up
    """
    path = Path(path)
    if not path.exists():
        return None
    stamp = (now or datetime.now()).strftime(BACKUP_STAMP)
    backup = path.with_name(f"{path.name}.bak.{stamp}")
    shutil.copy2(path, backup)
    logger.debug(f"Backed up {path} to {backup}")
    return backup


def write_file(path: Union[str, Path], content: str, mode: Optional[int] = None,
               backup: bool = True) -> bool:
    """Write ``content`` to ``path`` unless it already holds exactly that.

    An existing file with different content is backed up first.

    Returns:
        bool: True if the file was written
    """
    path = Path(path)
    if path.exists() and path.read_text() == content:
        logger.debug(f"{path} already up to date")
        return False
    if backup:
        backup_file(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    if mode is not None:
        path.chmod(mode)
    logger.debug(f"Wrote {path}")
    return True
