"""
File operation utilities

This module handles the output file and the local credential file.
"""
import logging
from collections.abc import Iterable
from pathlib import Path

import aiofiles


logger = logging.getLogger(__name__)


async def write_output_file(path: Path | str, entries: Iterable[str]) -> Path:
    """
    Write entries to the output file, one per line, replacing any previous file

    Args:
        path: Output file path
        entries: Lines to write, already in their final order

    Returns:
        Path of the written file
    """
    path = Path(path)
    lines = list(entries)

    async with aiofiles.open(path, "w", encoding="utf-8") as f:
        await f.write("".join(f"{line}\n" for line in lines))

    logger.info(f"Wrote {len(lines)} entries to {path}")
    return path


def remove_output_file(path: Path | str) -> bool:
    """
    Delete a previous output file so a failed run leaves no stale data

    Args:
        path: Path to file to delete

    Returns:
        True if deleted successfully, False otherwise
    """
    path = Path(path)
    if not path.exists():
        return False

    try:
        path.unlink()
        logger.debug(f"Removed previous output file: {path}")
        return True
    except (OSError, PermissionError) as e:
        logger.warning(f"Failed to delete previous output file {path}: {e}")
        return False


def load_cookie(path: Path | str) -> str | None:
    """
    Read the session cookie value from a local credential file

    Args:
        path: Credential file path

    Returns:
        Stripped cookie value, or None if the file is missing or empty
    """
    path = Path(path)
    if not path.is_file():
        return None

    try:
        value = path.read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError) as e:
        logger.warning(f"Failed to read credential file {path}: {e}")
        return None

    if not value:
        return None
    logger.debug(f"Loaded session cookie from {path}")
    return value
