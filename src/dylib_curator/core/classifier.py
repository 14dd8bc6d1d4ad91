"""
Library classification and incidental cleanup.

© 2026 MBP LLC. All rights reserved.
"""

from dataclasses import dataclass
from typing import Iterable, List, Sequence

from .descriptor import ArtifactDescriptor
from ..utils.file_utils import safe_delete
from ..utils.logger import logger

DEFAULT_LIBRARY_SUFFIXES = (".dylib",)


@dataclass(frozen=True)
class ClassificationResult:
    """Libraries and incidental artifacts, each in extraction order."""

    libraries: List[ArtifactDescriptor]
    incidental: List[ArtifactDescriptor]

    @property
    def is_empty(self) -> bool:
        """True when no library artifact survived classification."""
        return not self.libraries


class ArtifactClassifier:
    """Partitions extracted artifacts into libraries and incidental files."""

    def __init__(self, library_suffixes: Iterable[str] = DEFAULT_LIBRARY_SUFFIXES):
        """
        Initialize classifier.

        Args:
            library_suffixes: Name suffixes that mark a dynamic library
        """
        self.library_suffixes = tuple(s.lower() for s in library_suffixes)

    def is_library(self, descriptor: ArtifactDescriptor) -> bool:
        return descriptor.name.lower().endswith(self.library_suffixes)

    def partition(self, descriptors: Sequence[ArtifactDescriptor]) -> ClassificationResult:
        """Split descriptors without touching the file system."""
        libraries = []
        incidental = []
        for descriptor in descriptors:
            if self.is_library(descriptor):
                libraries.append(descriptor)
            else:
                incidental.append(descriptor)
        return ClassificationResult(libraries=libraries, incidental=incidental)

    def classify(self, descriptors: Sequence[ArtifactDescriptor]) -> ClassificationResult:
        """
        Partition descriptors and delete every staged incidental file.

        Incidental files are removed whether or not any library was found.
        A file that cannot be deleted is logged and left behind; its
        descriptor keeps its staged location.

        Args:
            descriptors: Everything the extractor staged

        Returns:
            ClassificationResult with cleaned-up incidental descriptors
        """
        result = self.partition(descriptors)

        cleaned = []
        failed = 0
        for descriptor in result.incidental:
            if descriptor.staged_location is None:
                cleaned.append(descriptor)
                continue

            if safe_delete(descriptor.staged_location):
                logger.debug(f"Removed incidental file: {descriptor.name}")
                cleaned.append(descriptor.without_stage())
            else:
                failed += 1
                cleaned.append(descriptor)

        logger.info(
            f"Classified {len(descriptors)} files: {len(result.libraries)} libraries, "
            f"{len(cleaned)} incidental ({failed} cleanup failures)"
        )
        if result.is_empty:
            logger.info("No library files found in extraction")

        return ClassificationResult(libraries=result.libraries, incidental=cleaned)
