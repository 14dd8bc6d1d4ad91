"""Custom exception classes for DylibCurator.

Soft cleanup failures are never raised; they are logged where they happen.

© 2026 MBP LLC. All rights reserved.
"""

from pathlib import Path
from typing import Optional


class DylibCuratorError(Exception):
    """Base exception for all curator errors."""

    pass


class ExtractionError(DylibCuratorError):
    """Raised when a bundle cannot be extracted into the scratch area."""

    def __init__(self, message: str, bundle_root: Optional[Path] = None):
        self.bundle_root = bundle_root
        super().__init__(message)


class ExtractionCancelled(ExtractionError):
    """Raised when an extraction is interrupted before it completes."""

    pass


class EmptySelectionError(DylibCuratorError):
    """Raised when a session is committed with nothing marked to keep."""

    pass

