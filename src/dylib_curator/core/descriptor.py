"""
Descriptor for a single file staged out of an application bundle.

© 2026 MBP LLC. All rights reserved.
"""

import uuid
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Optional

from ..utils.file_utils import format_size


@dataclass(frozen=True)
class ArtifactDescriptor:
    """
    Immutable record of one extracted file.

    Attributes:
        name: Base name of the file as it appeared in the bundle
        original_path: Path of the file inside the source bundle
        size_bytes: Byte length of the staged copy at copy time
        staged_location: Copy in the scratch directory, None once removed
        identity: Unique token generated at extraction time
    """

    name: str
    original_path: str
    size_bytes: int
    staged_location: Optional[Path] = None
    identity: uuid.UUID = field(default_factory=uuid.uuid4)

    @property
    def formatted_size(self) -> str:
        return format_size(self.size_bytes)

    @property
    def is_staged(self) -> bool:
        """True while the staged copy still exists on disk."""
        return self.staged_location is not None and self.staged_location.exists()

    def without_stage(self) -> "ArtifactDescriptor":
        """Copy of this descriptor marked as removed, keeping its identity."""
        return replace(self, staged_location=None)
