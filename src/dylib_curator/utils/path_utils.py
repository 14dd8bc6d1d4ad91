"""
Path helpers for staging directories and archive members.

© 2026 MBP LLC. All rights reserved.
"""

from pathlib import Path, PurePosixPath
from typing import Optional


def sanitize_folder_name(name: str, replacement: str = '_', separator: str = '-',
                         fallback: str = 'App') -> str:
    """
    Turn an application display name into a single safe directory name.

    Args:
        name: Display name of the application
        replacement: Character to replace invalid chars with
        separator: Character to replace path separators with
        fallback: Name used when nothing usable is left

    Returns:
        Sanitized folder name
    """
    for char in '/\\':
        name = name.replace(char, separator)

    invalid_chars = '<>:"|?*\0'
    for char in invalid_chars:
        name = name.replace(char, replacement)
    name = name.strip()

    # "." and ".." would resolve outside the scratch root
    if not name or set(name) == {'.'}:
        return fallback
    return name


def is_path_safe(path: Path, base: Path) -> bool:
    """
    Check if path is safe (within base directory).

    Args:
        path: Path to check
        base: Base directory

    Returns:
        True if safe, False otherwise
    """
    try:
        return path.resolve().is_relative_to(base.resolve())
    except (OSError, RuntimeError, ValueError):
        return False


def normalize_member_name(member_name: str) -> Optional[PurePosixPath]:
    """
    Normalize a zip member name to a relative POSIX path.

    Returns None for names that are absolute or climb out of the archive
    root with ".." components.
    """
    member = PurePosixPath(member_name.replace('\\', '/'))
    if member.is_absolute() or not member.parts:
        return None
    if any(part == '..' for part in member.parts):
        return None
    if member.parts[0].endswith(':'):
        return None
    return member
