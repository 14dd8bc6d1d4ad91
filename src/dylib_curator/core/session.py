"""
Curation session: the keep/discard decision between extraction and reconcile.

© 2026 MBP LLC. All rights reserved.
"""

import threading
import uuid
from enum import Enum
from pathlib import Path
from typing import Callable, FrozenSet, Iterable, Optional, Sequence, Tuple

from .descriptor import ArtifactDescriptor
from .exceptions import EmptySelectionError
from .reconciler import Reconciler
from ..utils.logger import logger


class SessionState(Enum):
    """Lifecycle of a curation session."""

    OPEN = "open"
    COMMITTED = "committed"
    ABORTED = "aborted"


class CurationSession:
    """
    Holds extracted libraries and the subset the caller wants to keep.

    Every operation runs under one lock so rapid concurrent calls are
    serialized. Once committed or aborted the session ignores further
    operations (they are logged as invalid transitions).
    """

    def __init__(
        self,
        extracted_libraries: Sequence[ArtifactDescriptor],
        display_name: str,
        scratch_directory: Path,
        reconciler: Optional[Reconciler] = None,
        keep: Optional[Iterable[uuid.UUID]] = None,
        on_close: Optional[Callable[[], None]] = None
    ):
        """
        Open a session.

        Args:
            extracted_libraries: Library artifacts staged for this application
            display_name: Sanitized application name
            scratch_directory: Directory the libraries were staged into
            reconciler: Reconciler run on commit or cancel
            keep: Identities initially kept (defaults to every library)
            on_close: Called once after the session is committed or cancelled
        """
        self._libraries: Tuple[ArtifactDescriptor, ...] = tuple(extracted_libraries)
        self._identities = frozenset(library.identity for library in self._libraries)
        self.display_name = display_name
        self.scratch_directory = Path(scratch_directory)
        self.reconciler = reconciler or Reconciler()
        self._on_close = on_close

        self._lock = threading.RLock()
        self._state = SessionState.OPEN
        if keep is None:
            self._keep = set(self._identities)
        else:
            self._keep = set(keep) & self._identities

    @property
    def extracted_libraries(self) -> Tuple[ArtifactDescriptor, ...]:
        return self._libraries

    @property
    def keep_set(self) -> FrozenSet[uuid.UUID]:
        with self._lock:
            return frozenset(self._keep)

    @property
    def state(self) -> SessionState:
        with self._lock:
            return self._state

    @property
    def is_open(self) -> bool:
        return self.state is SessionState.OPEN

    @property
    def total_count(self) -> int:
        return len(self._libraries)

    @property
    def selected_count(self) -> int:
        with self._lock:
            return len(self._keep)

    @property
    def all_selected(self) -> bool:
        with self._lock:
            return len(self._keep) == len(self._identities)

    @property
    def selection_summary(self) -> str:
        return f"{self.selected_count} of {self.total_count} selected"

    @property
    def kept_libraries(self) -> Tuple[ArtifactDescriptor, ...]:
        """Kept libraries in extraction order."""
        with self._lock:
            return tuple(lib for lib in self._libraries if lib.identity in self._keep)

    def is_kept(self, identity: uuid.UUID) -> bool:
        with self._lock:
            return identity in self._keep

    def _check_open(self, operation: str) -> bool:
        if self._state is SessionState.OPEN:
            return True
        logger.warning(
            f"Ignoring {operation} on {self._state.value} session for {self.display_name}"
        )
        return False

    def toggle(self, identity: uuid.UUID) -> None:
        """Flip whether one library is kept; unknown identities are ignored."""
        with self._lock:
            if not self._check_open("toggle"):
                return
            if identity not in self._identities:
                logger.debug(f"Ignoring toggle of unknown artifact {identity}")
                return

            if identity in self._keep:
                self._keep.remove(identity)
            else:
                self._keep.add(identity)

    def select_all(self) -> None:
        with self._lock:
            if self._check_open("select all"):
                self._keep = set(self._identities)

    def deselect_all(self) -> None:
        with self._lock:
            if self._check_open("deselect all"):
                self._keep.clear()

    def toggle_all(self) -> None:
        """Select everything, or deselect everything if all are selected."""
        with self._lock:
            if not self._check_open("toggle all"):
                return
            if len(self._keep) == len(self._identities):
                self._keep.clear()
            else:
                self._keep = set(self._identities)

    def commit(self) -> Optional[Path]:
        """
        Keep the selected libraries and delete the rest.

        Returns:
            Directory holding the kept libraries, or None if the session
            was already closed

        Raises:
            EmptySelectionError: If nothing is marked to keep
        """
        with self._lock:
            if not self._check_open("commit"):
                return None
            if not self._keep:
                raise EmptySelectionError(
                    f"Nothing selected to keep for {self.display_name}; cancel instead"
                )

            self._state = SessionState.COMMITTED
            logger.info(f"Committing {self.selection_summary} for {self.display_name}")
            try:
                return self.reconciler.finalize(self)
            finally:
                self._closed()

    def cancel(self) -> None:
        """Discard the whole extraction."""
        with self._lock:
            if not self._check_open("cancel"):
                return

            self._state = SessionState.ABORTED
            logger.info(f"Cancelling extraction for {self.display_name}")
            try:
                self.reconciler.abort(self)
            finally:
                self._closed()

    def _closed(self) -> None:
        if self._on_close is not None:
            on_close, self._on_close = self._on_close, None
            on_close()

    def __repr__(self) -> str:
        return (
            f"CurationSession(display_name={self.display_name!r}, "
            f"state={self._state.value}, {self.selection_summary})"
        )
