"""
Bundle extractor: stages every file of an application bundle.

© 2026 MBP LLC. All rights reserved.
"""

import asyncio
import os
import shutil
import stat
import threading
import zipfile
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from .descriptor import ArtifactDescriptor
from .exceptions import ExtractionCancelled, ExtractionError
from ..utils.file_utils import remove_tree, resolve_name_collision
from ..utils.logger import logger
from ..utils.path_utils import is_path_safe, normalize_member_name, sanitize_folder_name

ARCHIVE_SUFFIXES = ('.ipa', '.zip')


class BundleExtractor:
    """Copies bundle contents into a per-application scratch directory."""

    def __init__(self, scratch_root: Path, max_workers: int = 4):
        """
        Initialize bundle extractor.

        Args:
            scratch_root: Directory holding one staging folder per application
            max_workers: Number of copy worker threads
        """
        self.scratch_root = Path(scratch_root)
        self.max_workers = max(1, max_workers)

    def destination_for(self, destination_folder_name: str) -> Path:
        """Staging directory used for a folder name."""
        return self.scratch_root / sanitize_folder_name(destination_folder_name)

    async def extract(self, bundle_root: Path,
                      destination_folder_name: str) -> List[ArtifactDescriptor]:
        """
        Extract a bundle without blocking the event loop.

        The copy runs on a worker thread. If the awaiting task is cancelled
        the worker is told to stop, and whatever was staged so far is
        deleted before the cancellation propagates.

        Args:
            bundle_root: Bundle directory or zip container
            destination_folder_name: Folder name under the scratch root

        Returns:
            One descriptor per staged file, library or not
        """
        cancel_event = threading.Event()
        loop = asyncio.get_running_loop()
        future = loop.run_in_executor(
            None, self.extract_sync, bundle_root, destination_folder_name, cancel_event
        )

        try:
            return await asyncio.shield(future)
        except asyncio.CancelledError:
            cancel_event.set()
            logger.info(f"Extraction cancelled: {bundle_root}")
            try:
                await future
            except ExtractionError:
                pass
            remove_tree(self.destination_for(destination_folder_name))
            raise

    def extract_sync(
        self,
        bundle_root: Path,
        destination_folder_name: str,
        cancel_event: Optional[threading.Event] = None
    ) -> List[ArtifactDescriptor]:
        """
        Blocking extraction of a bundle directory or zip container.

        Args:
            bundle_root: Bundle directory or zip container
            destination_folder_name: Folder name under the scratch root
            cancel_event: Set by another thread to stop copying

        Returns:
            One descriptor per staged file, in bundle path order

        Raises:
            ExtractionError: If the bundle is missing or unreadable, or the
                scratch directory cannot be created
            ExtractionCancelled: If cancel_event was set before completion
        """
        bundle_root = Path(bundle_root)
        cancel_event = cancel_event or threading.Event()

        if not bundle_root.exists():
            raise ExtractionError(f"Bundle not found: {bundle_root}", bundle_root)
        if not os.access(bundle_root, os.R_OK):
            raise ExtractionError(f"Bundle is not readable: {bundle_root}", bundle_root)

        if bundle_root.is_dir():
            if not os.access(bundle_root, os.X_OK):
                raise ExtractionError(f"Bundle is not readable: {bundle_root}", bundle_root)
            extract_files = self._extract_directory
        elif zipfile.is_zipfile(bundle_root):
            extract_files = self._extract_archive
        else:
            raise ExtractionError(
                f"Bundle is neither a directory nor a zip container: {bundle_root}",
                bundle_root
            )

        destination = self._prepare_destination(destination_folder_name, bundle_root)
        logger.info(f"Extracting {bundle_root} -> {destination}")

        try:
            descriptors = extract_files(bundle_root, destination, cancel_event)
        except zipfile.BadZipFile as e:
            raise ExtractionError(f"Corrupt bundle archive {bundle_root}: {e}", bundle_root) from e

        logger.info(f"Staged {len(descriptors)} files from {bundle_root.name}")
        return descriptors

    def _prepare_destination(self, destination_folder_name: str, bundle_root: Path) -> Path:
        """Create an empty staging directory, dropping state from earlier runs."""
        destination = self.destination_for(destination_folder_name)

        if destination.exists() or destination.is_symlink():
            logger.info(f"Clearing previous extraction: {destination}")
            if not remove_tree(destination):
                raise ExtractionError(
                    f"Could not clear scratch directory: {destination}", bundle_root
                )

        try:
            destination.mkdir(parents=True)
        except OSError as e:
            raise ExtractionError(
                f"Could not create scratch directory {destination}: {e}", bundle_root
            ) from e

        return destination

    def _discover_files(self, bundle_root: Path) -> List[Path]:
        """Find every regular file under the bundle, sorted by path."""
        files = []

        def _on_error(error: OSError) -> None:
            if Path(error.filename or '') == bundle_root:
                raise ExtractionError(f"Bundle is not readable: {bundle_root}", bundle_root)
            logger.warning(f"Skipping unreadable directory {error.filename}: {error.strerror}")

        for root, dirs, filenames in os.walk(bundle_root, onerror=_on_error):
            dirs.sort()
            root_path = Path(root)

            for filename in sorted(filenames):
                file_path = root_path / filename
                try:
                    mode = file_path.lstat().st_mode
                except OSError as e:
                    logger.warning(f"Skipping {file_path}: {e}")
                    continue

                if stat.S_ISLNK(mode):
                    logger.debug(f"Skipping symlink: {file_path}")
                    continue
                if stat.S_ISREG(mode):
                    files.append(file_path)

        return files

    def _plan_staged_paths(self, names: List[str], destination: Path) -> List[Path]:
        """Pick a unique staged path for each base name, in order."""
        taken = set()
        planned = []
        for name in names:
            staged = resolve_name_collision(destination / name, taken)
            taken.add(staged.name.casefold())
            planned.append(staged)
        return planned

    def _extract_directory(self, bundle_root: Path, destination: Path,
                           cancel_event: threading.Event) -> List[ArtifactDescriptor]:
        sources = self._discover_files(bundle_root)
        staged_paths = self._plan_staged_paths([s.name for s in sources], destination)
        jobs = list(zip(sources, staged_paths))

        logger.info(f"Found {len(jobs)} files in bundle")

        results: Dict[int, ArtifactDescriptor] = {}
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = {
                executor.submit(self._copy_file, source, staged, cancel_event): index
                for index, (source, staged) in enumerate(jobs)
            }

            for future in as_completed(futures):
                if future.cancelled():
                    continue
                descriptor = future.result()
                if descriptor is not None:
                    results[futures[future]] = descriptor

                if cancel_event.is_set():
                    for pending in futures:
                        pending.cancel()

        if cancel_event.is_set():
            raise ExtractionCancelled(f"Extraction of {bundle_root} was cancelled", bundle_root)

        return [results[index] for index in sorted(results)]

    def _copy_file(self, source: Path, staged: Path,
                   cancel_event: threading.Event) -> Optional[ArtifactDescriptor]:
        """Copy one file; a failure skips the file instead of failing the bundle."""
        if cancel_event.is_set():
            return None

        try:
            shutil.copy2(source, staged)
            size = staged.stat().st_size
        except OSError as e:
            logger.error(f"Failed to copy {source}: {e}")
            return None

        logger.debug(f"Copied: {source} -> {staged}")
        return ArtifactDescriptor(
            name=source.name,
            original_path=str(source),
            size_bytes=size,
            staged_location=staged,
        )

    def _archive_members(self, archive: zipfile.ZipFile) -> List[Tuple[zipfile.ZipInfo, str]]:
        """Regular file members of an archive with their normalized names."""
        members = []
        for info in archive.infolist():
            if info.is_dir():
                continue

            # Symlinks stored by zip tools carry S_IFLNK in the high attribute bits
            if stat.S_ISLNK(info.external_attr >> 16):
                logger.debug(f"Skipping symlink member: {info.filename}")
                continue

            member = normalize_member_name(info.filename)
            if member is None:
                logger.warning(f"Skipping unsafe archive member: {info.filename}")
                continue
            members.append((info, member.as_posix()))

        return sorted(members, key=lambda item: item[1])

    def _extract_archive(self, bundle_root: Path, destination: Path,
                         cancel_event: threading.Event) -> List[ArtifactDescriptor]:
        descriptors = []

        with zipfile.ZipFile(bundle_root) as archive:
            members = self._archive_members(archive)
            names = [member.rsplit('/', 1)[-1] for _, member in members]
            staged_paths = self._plan_staged_paths(names, destination)

            logger.info(f"Found {len(members)} files in archive")

            for (info, member), name, staged in zip(members, names, staged_paths):
                if cancel_event.is_set():
                    raise ExtractionCancelled(
                        f"Extraction of {bundle_root} was cancelled", bundle_root
                    )

                if not is_path_safe(staged, destination):
                    logger.warning(f"Skipping archive member outside scratch directory: {member}")
                    continue

                try:
                    with archive.open(info) as src, open(staged, 'wb') as dst:
                        shutil.copyfileobj(src, dst)
                    size = staged.stat().st_size
                except OSError as e:
                    logger.error(f"Failed to extract {member}: {e}")
                    continue

                descriptors.append(ArtifactDescriptor(
                    name=name,
                    original_path=f"{bundle_root}/{member}",
                    size_bytes=size,
                    staged_location=staged,
                ))

        return descriptors
