"""
Safe file operation utilities for DylibCurator.

Delete helpers are best effort: they log failures and report them through
their return value instead of raising.

© 2026 MBP LLC. All rights reserved.
"""

import shutil
import time
from pathlib import Path
from typing import Collection, Optional
from ..utils.logger import logger


def resolve_name_collision(path: Path, taken: Collection[str] = (),
                           max_attempts: int = 9999) -> Path:
    """
    Resolve file name collisions by appending a counter.

    Args:
        path: Desired file path
        taken: Case-folded names already reserved in the same directory
        max_attempts: Maximum number of attempts

    Returns:
        New path with unique name
    """
    if path.name.casefold() not in taken and not path.exists():
        return path

    stem = path.stem
    suffix = path.suffix
    parent = path.parent

    for i in range(1, max_attempts + 1):
        new_path = parent / f"{stem} ({i}){suffix}"
        if new_path.name.casefold() not in taken and not new_path.exists():
            return new_path

    timestamp = int(time.time())
    return parent / f"{stem}__{timestamp}{suffix}"


def safe_delete(path: Optional[Path]) -> bool:
    """
    Delete a single file, tolerating files that are already gone.

    Args:
        path: File to delete (None is treated as already deleted)

    Returns:
        True if the file no longer exists, False if deletion failed
    """
    if path is None:
        return True

    try:
        path.unlink()
        logger.debug(f"Deleted: {path}")
        return True
    except FileNotFoundError:
        return True
    except OSError as e:
        logger.warning(f"Failed to delete {path}: {e}")
        return False


def remove_tree(root: Path) -> bool:
    """
    Recursively delete a directory, tolerating one that is already gone.

    Args:
        root: Directory to delete

    Returns:
        True if the directory no longer exists, False otherwise
    """
    if not root.exists() and not root.is_symlink():
        return True

    try:
        if root.is_symlink() or root.is_file():
            root.unlink()
        else:
            shutil.rmtree(root, ignore_errors=True)
    except FileNotFoundError:
        return True
    except OSError as e:
        logger.warning(f"Failed to remove {root}: {e}")
        return False

    if root.exists():
        logger.warning(f"Failed to remove {root}: some entries could not be deleted")
        return False

    logger.debug(f"Removed directory: {root}")
    return True


def format_size(size_bytes: int) -> str:
    """
    Format a byte count the way file browsers show it (decimal units).

    Args:
        size_bytes: Size in bytes

    Returns:
        Human readable string such as "12 KB" or "1.4 MB"
    """
    if size_bytes <= 0:
        return "Zero KB"
    if size_bytes < 1000:
        return f"{size_bytes} bytes"

    size = float(size_bytes)
    for unit in ("KB", "MB", "GB", "TB"):
        size /= 1000
        if size < 1000 or unit == "TB":
            break

    if size >= 100 or unit == "KB":
        return f"{size:.0f} {unit}"
    return f"{size:.1f} {unit}"

