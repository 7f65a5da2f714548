"""
Pytest configuration and fixtures for Copy Sweeper tests.
"""
import asyncio
import pytest
import sys
from pathlib import Path

# Ensure project root is in path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))


@pytest.fixture
def sample_config():
    """Create a sample AppConfig for testing."""
    from core.models import AppConfig
    return AppConfig(watch=False, watch_debounce_ms=50)


@pytest.fixture
def make_file():
    """Factory writing a file (and its parents) with the given bytes."""
    def _make(path: Path, content: bytes = b"image-bytes") -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
        return path
    return _make


@pytest.fixture
def photo_tree(tmp_path, make_file):
    """
    A small photo folder:

        Photo.jpg, Photo - Copy.jpg           copy with original
        Lonely - Copy.png                     copy without original
        Image (2).jpg, Image.jpg              numeric copy with original
        trip/Copy of Beach.JPG, trip/Beach.JPG
        notes - Copy.txt                      not an image
    """
    root = tmp_path / "photos"
    make_file(root / "Photo.jpg", b"photo")
    make_file(root / "Photo - Copy.jpg", b"photo")
    make_file(root / "Lonely - Copy.png", b"lonely")
    make_file(root / "Image.jpg", b"image")
    make_file(root / "Image (2).jpg", b"image")
    make_file(root / "trip" / "Beach.JPG", b"beach")
    make_file(root / "trip" / "Copy of Beach.JPG", b"beach")
    make_file(root / "notes.txt", b"notes")
    make_file(root / "notes - Copy.txt", b"notes")
    return root


@pytest.fixture
def sample_candidate():
    """Create a sample CopyCandidate for testing."""
    from core.models import CopyCandidate
    return CopyCandidate(
        path="/photos/Photo - Copy.jpg",
        directory="/photos",
        name="Photo - Copy.jpg",
        extension=".jpg",
        inferred_original_base="Photo",
        original_path="/photos/Photo.jpg",
        original_exists=True,
        size=1024,
        modified_at=1700000000.0
    )


class FakeWatch:
    """
    Stand-in for watchfiles.awatch.

    Yields an empty batch as soon as it is subscribed, like awatch with
    `yield_on_timeout`, then the batches put on `queue` until the stop
    event is set. An exception put on the queue is raised from the stream;
    `fail_on_start` is raised before the first batch.
    """

    def __init__(self):
        self.queue = None
        self.calls = []
        self.active = 0
        self.closed = 0
        self.fail_on_start = None

    def __call__(self, root, watch_filter=None, debounce=None, stop_event=None, recursive=True, **kwargs):
        if self.queue is None:
            self.queue = asyncio.Queue()
        self.calls.append({"root": root, "watch_filter": watch_filter, "debounce": debounce, **kwargs})
        return self._stream(stop_event)

    async def _stream(self, stop_event):
        if self.fail_on_start is not None:
            raise self.fail_on_start
        self.active += 1
        try:
            yield set()
            while not stop_event.is_set():
                get = asyncio.ensure_future(self.queue.get())
                stop = asyncio.ensure_future(stop_event.wait())
                done, pending = await asyncio.wait({get, stop}, return_when=asyncio.FIRST_COMPLETED)
                for task in pending:
                    task.cancel()
                if get in done:
                    item = get.result()
                    if isinstance(item, Exception):
                        raise item
                    yield item
        finally:
            self.active -= 1
            self.closed += 1

    async def push(self, changes):
        if self.queue is None:
            self.queue = asyncio.Queue()
        if isinstance(changes, Exception):
            await self.queue.put(changes)
        else:
            await self.queue.put(set(changes))


@pytest.fixture
def fake_watch():
    """A controllable replacement for the filesystem watch."""
    return FakeWatch()
