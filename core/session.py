"""
Session controller owning the current root, its watch and its snapshot.
"""
from typing import Callable, Iterable, List, Optional
import asyncio
import logging
import os

from send2trash import send2trash
from watchfiles import awatch

from .models import AppConfig, CopyCandidate, DeletionResult, HashState, ScanSnapshot
from .classifier import NameClassifier
from .scanner import CandidateIndex
from .hasher import IntegrityVerifier
from .planner import DeletionPlanner
from .watcher import WatchCoordinator
from .errors import WatchError

logger = logging.getLogger(__name__)

SnapshotConsumer = Callable[[ScanSnapshot], None]
ErrorConsumer = Callable[[WatchError], None]


class SweepSession:
    """
    Ties the engine together for one user-selected root.

    Consumers get a full snapshot after the initial scan, after every
    watch-triggered rescan and after every deletion batch. Error consumers
    hear about a watch that fails after it started.
    """

    def __init__(self, config: AppConfig,
                 trash_func: Callable[[str], None] = send2trash,
                 watch_factory: Callable = awatch):
        self.config = config
        self.classifier = NameClassifier(
            numeric_suffix=config.numeric_suffix,
            min_copy_number=config.min_copy_number
        )
        self.index = CandidateIndex(config, self.classifier)
        self.verifier = IntegrityVerifier(config.hash_chunk_size)
        self.planner = DeletionPlanner(self.classifier, self.verifier, trash_func, config.dry_run)
        self.scan_lock = asyncio.Lock()
        self.watcher = WatchCoordinator(
            self.index,
            self._publish,
            debounce_ms=config.watch_debounce_ms,
            scan_lock=self.scan_lock,
            watch_factory=watch_factory,
            on_error=self._report_watch_error
        )
        self.root: Optional[str] = None
        self.snapshot: Optional[ScanSnapshot] = None
        self._consumers: List[SnapshotConsumer] = []
        self._error_consumers: List[ErrorConsumer] = []

    def subscribe(self, consumer: SnapshotConsumer) -> Callable[[], None]:
        """Register a snapshot consumer; returns a function that removes it."""
        return self._register(self._consumers, consumer)

    def subscribe_errors(self, consumer: ErrorConsumer) -> Callable[[], None]:
        """Register a consumer for failures of a running watch."""
        return self._register(self._error_consumers, consumer)

    @staticmethod
    def _register(consumers: list, consumer) -> Callable[[], None]:
        consumers.append(consumer)

        def unsubscribe() -> None:
            if consumer in consumers:
                consumers.remove(consumer)

        return unsubscribe

    async def open(self, root: str, watch: Optional[bool] = None) -> ScanSnapshot:
        """
        (Optionally) start watching a new root, then scan and publish it.

        The watch is live before the scan starts, so nothing created in
        between goes unnoticed.

        Raises:
            WatchError: If the watch cannot be started; the snapshot is
                still published first
        """
        await self.watcher.stop()
        self.root = os.path.abspath(root)

        if watch is None:
            watch = self.config.watch
        error = None
        if watch:
            try:
                await self.watcher.start(self.root)
            except WatchError as e:
                error = e

        snapshot = await self.rescan()
        if error is not None:
            raise error
        return snapshot

    async def rescan(self) -> ScanSnapshot:
        """Full scan of the current root."""
        if self.root is None:
            raise RuntimeError("No root selected")
        return await self.watcher.rescan(self.root)

    async def delete_selected(self, paths: Iterable[str], strict: Optional[bool] = None) -> DeletionResult:
        """Re-validate and trash the given paths, then refresh the snapshot."""
        if strict is None:
            strict = self.config.strict
        result = await self.planner.delete(paths, strict)
        if self.root is not None:
            await self.rescan()
        return result

    async def delete_folder_copies(self, folder: str, strict: Optional[bool] = None) -> DeletionResult:
        """Trash every deletable copy in `folder` and below it."""
        async with self.scan_lock:
            folder_snapshot = await asyncio.to_thread(self.index.scan, folder)
        paths = [c.path for c in folder_snapshot.deletable()]
        logger.info(f"Requesting {len(paths)} copies under {folder}")
        return await self.delete_selected(paths, strict)

    async def check_hash(self, candidate: CopyCandidate) -> HashState:
        return await self.verifier.verify(candidate)

    async def close(self) -> None:
        await self.watcher.stop()

    def _publish(self, snapshot: ScanSnapshot) -> None:
        self.snapshot = snapshot
        for consumer in list(self._consumers):
            try:
                consumer(snapshot)
            except Exception as e:
                logger.error(f"Snapshot consumer failed: {e}")

    def _report_watch_error(self, error: WatchError) -> None:
        for consumer in list(self._error_consumers):
            try:
                consumer(error)
            except Exception as e:
                logger.error(f"Watch error consumer failed: {e}")
