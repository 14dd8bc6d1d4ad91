"""
Extraction and curation pipeline for DylibCurator.

© 2026 MBP LLC. All rights reserved.
"""

import asyncio
import threading
from pathlib import Path
from typing import Callable, Dict, Optional

from .classifier import ArtifactClassifier
from .exceptions import ExtractionError
from .extractor import BundleExtractor
from .reconciler import Reconciler
from .session import CurationSession
from ..config.settings import CuratorSettings, get_settings
from ..utils.logger import logger
from ..utils.path_utils import sanitize_folder_name

BundleResolver = Callable[[str], Optional[Path]]
RevealHandler = Callable[[Path], None]


class CurationPipeline:
    """Runs resolve -> extract -> classify and opens curation sessions."""

    def __init__(
        self,
        resolve_bundle_directory: Optional[BundleResolver] = None,
        reveal_in_file_system: Optional[RevealHandler] = None,
        settings: Optional[CuratorSettings] = None,
        extractor: Optional[BundleExtractor] = None,
        classifier: Optional[ArtifactClassifier] = None,
        reconciler: Optional[Reconciler] = None
    ):
        """
        Initialize the pipeline.

        Args:
            resolve_bundle_directory: Maps an application identifier to its
                bundle directory, or None when it cannot be found
            reveal_in_file_system: Called with the directory of kept libraries
            settings: Settings (defaults to the cached environment settings)
            extractor: Bundle extractor override
            classifier: Artifact classifier override
            reconciler: Reconciler override
        """
        self.settings = settings or get_settings()
        self.resolve_bundle_directory = resolve_bundle_directory
        self.reveal_in_file_system = reveal_in_file_system
        self.extractor = extractor or BundleExtractor(
            self.settings.scratch_root, max_workers=self.settings.max_workers
        )
        self.classifier = classifier or ArtifactClassifier(self.settings.library_suffixes)
        self.reconciler = reconciler or Reconciler()

        self._in_flight: set = set()
        self._in_flight_lock = threading.Lock()

        self.stats: Dict[str, int] = {
            'extractions': 0,
            'files_staged': 0,
            'libraries_found': 0,
            'empty_results': 0,
            'failures': 0,
        }

    async def open_session(self, application_identifier: str,
                           display_name: str) -> Optional[CurationSession]:
        """
        Resolve an application's bundle and stage its libraries for curation.

        Args:
            application_identifier: Identifier passed to the bundle resolver
            display_name: Human name of the application

        Returns:
            An open session, or None when the bundle contains no libraries

        Raises:
            ExtractionError: If the bundle cannot be resolved or extracted
        """
        if self.resolve_bundle_directory is None:
            raise ExtractionError("No bundle directory resolver configured")

        bundle_root = self.resolve_bundle_directory(application_identifier)
        if bundle_root is None:
            self.stats['failures'] += 1
            raise ExtractionError(
                f"Could not resolve bundle directory for {application_identifier}"
            )

        return await self.open_session_for_bundle(Path(bundle_root), display_name)

    async def open_session_for_bundle(self, bundle_root: Path,
                                      display_name: str) -> Optional[CurationSession]:
        """
        Stage the libraries of a known bundle path for curation.

        The scratch directory stays claimed until the returned session is
        committed or cancelled; a second request for the same directory
        fails with ExtractionError without touching it. On failure or
        cancellation the directory this call claimed is discarded before
        the error propagates.
        """
        folder_name = sanitize_folder_name(display_name)
        destination = self.extractor.destination_for(folder_name)
        claim = self._claim(destination, bundle_root)

        try:
            descriptors = await self.extractor.extract(bundle_root, folder_name)
            result = self.classifier.classify(descriptors)
        except asyncio.CancelledError:
            self.reconciler.discard_directory(destination)
            self._release(claim)
            raise
        except ExtractionError:
            self.stats['failures'] += 1
            self.reconciler.discard_directory(destination)
            self._release(claim)
            raise
        except BaseException:
            self._release(claim)
            raise

        self.stats['extractions'] += 1
        self.stats['files_staged'] += len(descriptors)
        self.stats['libraries_found'] += len(result.libraries)

        logger.info(
            f"Extracted {len(result.libraries)} libraries "
            f"(filtered from {len(descriptors)} total files) from {display_name}"
        )

        if result.is_empty:
            self.stats['empty_results'] += 1
            self._release(claim)
            return None

        return CurationSession(
            result.libraries,
            display_name=folder_name,
            scratch_directory=destination,
            reconciler=self.reconciler,
            on_close=lambda: self._release(claim),
        )

    def commit(self, session: CurationSession) -> Optional[Path]:
        """
        Commit a session and reveal the directory of kept libraries.

        Raises:
            EmptySelectionError: If the session keeps nothing
        """
        directory = session.commit()
        if directory is not None and self.reveal_in_file_system is not None:
            self.reveal_in_file_system(directory)
        return directory

    def cancel(self, session: CurationSession) -> None:
        session.cancel()

    def _claim(self, destination: Path, bundle_root: Path) -> str:
        """Reserve a scratch directory for a single writer until released."""
        key = str(destination.resolve())
        with self._in_flight_lock:
            if key in self._in_flight:
                raise ExtractionError(
                    f"Scratch directory {destination} is already in use by another "
                    f"extraction or open session", bundle_root
                )
            self._in_flight.add(key)
        return key

    def _release(self, claim: str) -> None:
        with self._in_flight_lock:
            self._in_flight.discard(claim)
