"""
Synchronisation between the in-memory dataset and the remote document store.

Reads are plain blocking calls. Writes are fire-and-forget: every push sends
the complete dataset from a background worker and the caller moves on
without waiting. There is no conflict detection, no versioning and no
retry; whichever push reaches the store last wins. A failed push is logged
and otherwise ignored, so local state simply carries on ahead of the store.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait as wait_futures
from enum import Enum
from typing import Any, Dict, Optional, Protocol, Set

from ..domain.exceptions import RemoteStoreError
from ..domain.models import Snapshot

logger = logging.getLogger(__name__)


class RemoteStoreProtocol(Protocol):
    """Protocol describing the document store behaviour needed by the gateway."""

    def fetch_document(self) -> Dict[str, Any]:
        """Return the whole stored document."""

    def push_document(self, document: Dict[str, Any]) -> None:
        """Overwrite the stored document."""


class SyncStatus(str, Enum):
    """Cosmetic indicator for the UI; says nothing about whether a push succeeded."""
    IDLE = "idle"
    SYNCING = "syncing"


class SyncGateway:
    """
    Fetches the full dataset on demand and pushes full snapshots in the background.

    The status reads ``SYNCING`` from the start of a push until
    ``settle_delay`` seconds after the last outstanding push finished,
    whatever its outcome.
    """

    def __init__(
        self,
        store: RemoteStoreProtocol,
        settle_delay: float = 1.0,
        max_workers: int = 4,
    ) -> None:
        self._store = store
        self._settle_delay = settle_delay
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="clubroom-sync",
        )
        self._lock = threading.Lock()
        self._outstanding = 0
        self._futures: Set[Future] = set()
        self._status = SyncStatus.IDLE
        self._settle_timer: Optional[threading.Timer] = None
        self.last_push_error: Optional[Exception] = None

    @property
    def status(self) -> SyncStatus:
        return self._status

    def fetch_all(self, base: Optional[Snapshot] = None) -> Optional[Snapshot]:
        """
        Download the complete dataset.

        Args:
            base: Snapshot supplying collections the document leaves out

        Returns:
            The remote snapshot, or None if it could not be fetched. Callers
            keep whatever state they had in that case.
        """
        try:
            document = self._store.fetch_document()
            snapshot = Snapshot.from_document(document, base)
        except RemoteStoreError as exc:
            logger.warning("Fetch error: %s", exc)
            return None

        logger.info(
            "Fetched %d bookings, %d rules, %d special schedules",
            len(snapshot.bookings),
            len(snapshot.rules),
            len(snapshot.special_schedules),
        )
        return snapshot

    def push_all(self, snapshot: Snapshot) -> Future:
        """
        Start overwriting the remote dataset with ``snapshot``.

        Returns immediately. The returned future resolves once the attempt is
        over; it never carries the push error. The settle delay runs on a
        timer afterwards and does not hold the future up.
        """
        document = snapshot.to_document()

        with self._lock:
            self._outstanding += 1
            self._status = SyncStatus.SYNCING
            self._cancel_settle_timer()
            future = self._executor.submit(self._push, document)
            self._futures.add(future)

        future.add_done_callback(self._forget)
        return future

    def _push(self, document: Dict[str, Any]) -> None:
        try:
            self._store.push_document(document)
            self.last_push_error = None
            logger.debug("Pushed snapshot with %d bookings", len(document["bookings"]))
        except RemoteStoreError as exc:
            # Not retried and not surfaced; the next push sends everything again.
            logger.warning("Save error: %s", exc)
            self.last_push_error = exc
        finally:
            self._push_finished()

    def _push_finished(self) -> None:
        with self._lock:
            self._outstanding -= 1
            if self._outstanding:
                return

            if self._settle_delay <= 0:
                self._status = SyncStatus.IDLE
                return

            timer = threading.Timer(self._settle_delay, self._settle)
            timer.daemon = True
            self._settle_timer = timer
            timer.start()

    def _settle(self) -> None:
        with self._lock:
            # A newer push replaced or cancelled this timer
            if self._settle_timer is not threading.current_thread():
                return
            self._settle_timer = None
            if self._outstanding == 0:
                self._status = SyncStatus.IDLE

    def _cancel_settle_timer(self) -> None:
        # Caller holds the lock
        if self._settle_timer is not None:
            self._settle_timer.cancel()
            self._settle_timer = None

    def _forget(self, future: Future) -> None:
        with self._lock:
            self._futures.discard(future)

    def wait(self, timeout: Optional[float] = None) -> bool:
        """
        Block until every push started so far has finished.

        Returns:
            True if nothing is outstanding any more
        """
        with self._lock:
            pending = set(self._futures)

        _, not_done = wait_futures(pending, timeout=timeout)
        return not not_done

    def close(self) -> None:
        """Let outstanding pushes finish, then stop the worker threads."""
        self.wait()
        with self._lock:
            self._cancel_settle_timer()
            if self._outstanding == 0:
                self._status = SyncStatus.IDLE
        self._executor.shutdown(wait=True)

    def __enter__(self) -> "SyncGateway":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
