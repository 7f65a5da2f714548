"""
Filesystem watch that turns change notifications into full rescans.
"""
from typing import Callable, Iterable, Optional, Set, Tuple
import asyncio
import logging
import os

from watchfiles import BaseFilter, Change, awatch

from .models import ScanSnapshot
from .classifier import is_image
from .scanner import CandidateIndex
from .errors import WatchError

logger = logging.getLogger(__name__)

# Longest quiet spell before the watch yields an empty batch. The first
# batch, empty or not, means the OS subscription is in place.
READY_TIMEOUT_MS = 250


class CopyEventFilter(BaseFilter):
    """
    Lets through changes that may affect the set of copy candidates.

    Image files always qualify. Directory changes qualify too, since a
    directory event can hide changes to the files beneath it; a removed
    path is treated as a directory when it has no extension. Only the
    directories the scanner skips are ignored, and only below the root.
    """

    def __init__(self, root: str, max_depth: int = 99, excluded_dirs: Iterable[str] = ()):
        super().__init__()
        self.root = os.path.abspath(root)
        self.max_depth = max_depth
        self.excluded_dirs = frozenset(excluded_dirs)

    def __call__(self, change: Change, path: str) -> bool:
        relative = os.path.relpath(path, self.root)
        if relative == os.pardir or relative.startswith(os.pardir + os.sep):
            return False

        parts = relative.split(os.sep)
        if self.excluded_dirs.intersection(parts):
            return False
        # Depth of the containing directory, root is 0
        if len(parts) - 1 > self.max_depth:
            return False

        if is_image(path):
            return True
        if os.path.isdir(path):
            return True
        return change == Change.deleted and not os.path.splitext(path)[1]


class WatchCoordinator:
    """Watches one root at a time and publishes a fresh snapshot per change burst."""

    def __init__(self, index: CandidateIndex,
                 publish: Callable[[ScanSnapshot], None],
                 debounce_ms: int = 2000,
                 scan_lock: Optional[asyncio.Lock] = None,
                 watch_factory: Callable = awatch,
                 on_error: Optional[Callable[[WatchError], None]] = None):
        """
        Initialize watch coordinator.

        Args:
            index: Index used for rescans
            publish: Receives every snapshot produced by a rescan
            debounce_ms: Settle time the watch waits before reporting a burst
            scan_lock: Lock serialising scans of the root with other callers
            watch_factory: Async watch generator, `watchfiles.awatch` signature
            on_error: Receives failures of a watch that had already started
        """
        self.index = index
        self.publish = publish
        self.debounce_ms = debounce_ms
        self.scan_lock = scan_lock or asyncio.Lock()
        self.watch_factory = watch_factory
        self.on_error = on_error
        self.root: Optional[str] = None
        self.last_error: Optional[WatchError] = None
        self._task: Optional[asyncio.Task] = None
        self._stop_event: Optional[asyncio.Event] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self, root: str) -> None:
        """
        Start watching `root`, replacing any previous watch.

        Returns once the OS subscription is live, so any change made
        afterwards is reported.

        Raises:
            WatchError: If the root cannot be watched
        """
        await self.stop()

        root = os.path.abspath(root)
        if not os.path.isdir(root):
            raise WatchError(f"Cannot watch {root}: not a directory")

        self.root = root
        self.last_error = None
        self._stop_event = asyncio.Event()
        ready = asyncio.Event()
        self._task = asyncio.create_task(self._run(root, self._stop_event, ready))

        waiter = asyncio.ensure_future(ready.wait())
        await asyncio.wait({waiter, self._task}, return_when=asyncio.FIRST_COMPLETED)
        if not ready.is_set():
            waiter.cancel()
            error = self.last_error or WatchError(f"Watch on {root} ended before it started")
            self._task = None
            self._stop_event = None
            raise error

        logger.info(f"Watching {root}")

    async def stop(self) -> None:
        """Stop the active watch and wait until its OS resources are released."""
        if self._task is None:
            return

        self._stop_event.set()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        logger.info(f"Stopped watching {self.root}")
        self._task = None
        self._stop_event = None

    async def rescan(self, root: str) -> ScanSnapshot:
        """Run a full scan in a worker thread and publish the result."""
        async with self.scan_lock:
            snapshot = await asyncio.to_thread(self.index.scan, root)
        self.publish(snapshot)
        return snapshot

    async def _run(self, root: str, stop_event: asyncio.Event, ready: asyncio.Event) -> None:
        watch_filter = CopyEventFilter(
            root,
            max_depth=self.index.config.max_depth,
            excluded_dirs=self.index.config.excluded_dirs
        )
        try:
            async for changes in self.watch_factory(
                root,
                watch_filter=watch_filter,
                debounce=self.debounce_ms,
                stop_event=stop_event,
                recursive=True,
                rust_timeout=READY_TIMEOUT_MS,
                yield_on_timeout=True
            ):
                ready.set()
                relevant = self._relevant(changes, watch_filter)
                if not relevant:
                    continue
                logger.debug(f"{len(relevant)} relevant changes under {root}, rescanning")
                await self.rescan(root)
        except Exception as e:
            self.last_error = WatchError(f"Watch on {root} failed: {e}")
            logger.error(str(self.last_error))
            if ready.is_set() and self.on_error is not None:
                self.on_error(self.last_error)

    @staticmethod
    def _relevant(changes: Set[Tuple[Change, str]], watch_filter: CopyEventFilter) -> Set[Tuple[Change, str]]:
        return {(change, path) for change, path in changes if watch_filter(change, path)}
