"""Core extraction and curation pipeline."""

from .classifier import ArtifactClassifier, ClassificationResult
from .descriptor import ArtifactDescriptor
from .exceptions import (
    DylibCuratorError,
    EmptySelectionError,
    ExtractionCancelled,
    ExtractionError,
)
from .extractor import BundleExtractor
from .pipeline import CurationPipeline
from .reconciler import ReconcileReport, Reconciler
from .session import CurationSession, SessionState

__all__ = [
    "ArtifactClassifier",
    "ArtifactDescriptor",
    "BundleExtractor",
    "ClassificationResult",
    "CurationPipeline",
    "CurationSession",
    "DylibCuratorError",
    "EmptySelectionError",
    "ExtractionCancelled",
    "ExtractionError",
    "ReconcileReport",
    "Reconciler",
    "SessionState",
]
