"""
Completion marker - renames processed files so later scans skip them.
"""

import logging
from pathlib import Path

logger = logging.getLogger(__name__)

PROCESSED_PREFIX = "."


def marked_name(path: str, prefix: str = PROCESSED_PREFIX) -> str:
    """Return the path the file will have once marked."""
    file_path = Path(path)
    return str(file_path.with_name(prefix + file_path.name))


def is_marked(path: str, prefix: str = PROCESSED_PREFIX) -> bool:
    return Path(path).name.startswith(prefix)


def mark_processed(path: str, prefix: str = PROCESSED_PREFIX) -> bool:
    """
    Rename a file by prefixing its name.

    Failure is logged and not raised; an unmarked file is picked up again by
    the next run.

    Returns:
        True if the file was renamed
    """
    target = marked_name(path, prefix)
    try:
        Path(path).rename(target)
    except OSError as e:
        logger.error("Error while renaming file: %s", path, extra={"target": target, "error": str(e)})
        return False

    logger.debug("Renamed %s -> %s", path, target)
    return True
