"""
Reconciler: applies a curation decision to the scratch directory.

© 2026 MBP LLC. All rights reserved.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional

from ..utils.file_utils import remove_tree, safe_delete
from ..utils.logger import logger

if TYPE_CHECKING:
    from .session import CurationSession


@dataclass
class ReconcileReport:
    """Outcome of the last finalize or abort."""

    directory: Path
    kept: List[str] = field(default_factory=list)
    deleted: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    missing: List[str] = field(default_factory=list)

    @property
    def clean(self) -> bool:
        return not self.failed and not self.missing


class Reconciler:
    """
    Deletes unkept libraries on commit and whole scratch directories on abort.

    Both operations are idempotent. Files that are already gone count as
    deleted, and a file that cannot be deleted is logged without stopping
    the rest of the pass.
    """

    def __init__(self):
        self.last_report: Optional[ReconcileReport] = None

    def finalize(self, session: "CurationSession") -> Path:
        """
        Delete every library the session does not keep.

        Args:
            session: Session whose keep set is final

        Returns:
            The session's scratch directory, now holding only kept libraries
        """
        keep_set = session.keep_set
        report = ReconcileReport(directory=session.scratch_directory)

        for library in session.extracted_libraries:
            if library.identity in keep_set:
                if library.is_staged:
                    report.kept.append(library.name)
                else:
                    report.missing.append(library.name)
                    logger.warning(f"Kept library is no longer staged: {library.name}")
                continue

            if safe_delete(library.staged_location):
                report.deleted.append(library.name)
                logger.info(f"Deleted: {library.name}")
            else:
                report.failed.append(library.name)

        logger.info(
            f"Kept {len(report.kept)} libraries in {report.directory} "
            f"({len(report.deleted)} deleted, {len(report.failed)} failed, "
            f"{len(report.missing)} missing)"
        )
        self.last_report = report
        return session.scratch_directory

    def abort(self, session: "CurationSession") -> None:
        """Delete the session's scratch directory and everything staged in it."""
        report = ReconcileReport(directory=session.scratch_directory)
        if self.discard_directory(session.scratch_directory):
            report.deleted = [library.name for library in session.extracted_libraries]
        else:
            report.failed = [library.name for library in session.extracted_libraries
                             if library.is_staged]
        self.last_report = report

    def discard_directory(self, directory: Path) -> bool:
        """
        Delete a scratch directory, e.g. when extraction is abandoned.

        Args:
            directory: Staging directory to remove

        Returns:
            True if the directory no longer exists
        """
        removed = remove_tree(directory)
        if removed:
            logger.info(f"Discarded scratch directory: {directory}")
        return removed
