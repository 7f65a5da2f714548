"""
Tests for core.session module.
"""
import pytest
import asyncio
import os
from unittest.mock import Mock
from watchfiles import Change
from core.session import SweepSession
from core.models import AppConfig, HashState
from core.errors import WatchError


@pytest.fixture
def trash():
    """Trash primitive that deletes for real so rescans see the change."""
    return Mock(side_effect=os.remove)


class TestSweepSession:
    """Tests for SweepSession."""

    @pytest.mark.asyncio
    async def test_open_publishes_snapshot(self, sample_config, photo_tree, trash, fake_watch):
        """Test the initial scan reaches every consumer."""
        session = SweepSession(sample_config, trash, fake_watch)
        received = []
        session.subscribe(received.append)

        snapshot = await session.open(str(photo_tree))

        assert received == [snapshot]
        assert session.snapshot is snapshot
        assert session.root == str(photo_tree)
        assert not session.watcher.is_running

    @pytest.mark.asyncio
    async def test_open_starts_watch(self, sample_config, photo_tree, trash, fake_watch):
        """Test opening with watch enabled subscribes to changes."""
        session = SweepSession(sample_config, trash, fake_watch)
        await session.open(str(photo_tree), watch=True)

        assert session.watcher.is_running
        await session.close()
        assert not session.watcher.is_running

    @pytest.mark.asyncio
    async def test_watch_triggered_rescan(self, sample_config, tmp_path, make_file, trash, fake_watch):
        """Test a change under the root publishes a snapshot with the new copy."""
        session = SweepSession(sample_config, trash, fake_watch)
        snapshots = []
        arrived = asyncio.Event()

        def consumer(snapshot):
            snapshots.append(snapshot)
            arrived.set()

        await session.open(str(tmp_path), watch=True)
        session.subscribe(consumer)

        make_file(tmp_path / "Cat.png")
        copy = make_file(tmp_path / "Cat (2).png")
        await fake_watch.push([(Change.added, str(copy))])

        await asyncio.wait_for(arrived.wait(), timeout=5)
        await session.close()

        assert snapshots[-1].paths() == [str(copy)]

    @pytest.mark.asyncio
    async def test_delete_selected_refreshes(self, sample_config, photo_tree, trash, fake_watch):
        """Test a deletion batch is followed by a fresh snapshot."""
        session = SweepSession(sample_config, trash, fake_watch)
        received = []
        session.subscribe(received.append)
        await session.open(str(photo_tree))

        copy = str(photo_tree / "Photo - Copy.jpg")
        result = await session.delete_selected([copy, str(photo_tree / "Lonely - Copy.png")])

        assert result.deleted == [copy]
        assert len(received) == 2
        assert received[-1].get(copy) is None
        assert received[-1].get(str(photo_tree / "Lonely - Copy.png")) is not None

    @pytest.mark.asyncio
    async def test_delete_uses_configured_strictness(self, photo_tree, make_file, trash, fake_watch):
        """Test strict mode from config applies when no override is given."""
        make_file(photo_tree / "Photo.jpg", b"changed original")
        session = SweepSession(AppConfig(strict=True, watch=False), trash, fake_watch)
        await session.open(str(photo_tree))

        copy = str(photo_tree / "Photo - Copy.jpg")
        assert (await session.delete_selected([copy])).deleted == []
        assert (await session.delete_selected([copy], strict=False)).deleted == [copy]

    @pytest.mark.asyncio
    async def test_delete_folder_copies(self, sample_config, photo_tree, trash, fake_watch):
        """Test deleting every deletable copy below one folder."""
        session = SweepSession(sample_config, trash, fake_watch)
        await session.open(str(photo_tree))

        result = await session.delete_folder_copies(str(photo_tree / "trip"))

        assert result.deleted == [str(photo_tree / "trip" / "Copy of Beach.JPG")]
        assert (photo_tree / "Photo - Copy.jpg").exists()
        assert [a for a in session.snapshot.folder_aggregates()] == [str(photo_tree)]

    @pytest.mark.asyncio
    async def test_check_hash(self, sample_config, photo_tree, trash, fake_watch):
        """Test hash checks update the candidate in the snapshot."""
        session = SweepSession(sample_config, trash, fake_watch)
        snapshot = await session.open(str(photo_tree))
        candidate = snapshot.get(str(photo_tree / "Photo - Copy.jpg"))

        assert await session.check_hash(candidate) == HashState.MATCH
        assert snapshot.get(candidate.path).hash_state == HashState.MATCH

    @pytest.mark.asyncio
    async def test_failing_consumer_does_not_block_others(self, sample_config, photo_tree, trash, fake_watch):
        """Test one broken consumer does not stop delivery."""
        session = SweepSession(sample_config, trash, fake_watch)
        session.subscribe(Mock(side_effect=RuntimeError("boom")))
        received = []
        session.subscribe(received.append)

        await session.open(str(photo_tree))

        assert len(received) == 1

    @pytest.mark.asyncio
    async def test_unsubscribe(self, sample_config, photo_tree, trash, fake_watch):
        """Test an unsubscribed consumer stops receiving snapshots."""
        session = SweepSession(sample_config, trash, fake_watch)
        received = []
        unsubscribe = session.subscribe(received.append)
        unsubscribe()
        unsubscribe()

        await session.open(str(photo_tree))

        assert received == []

    @pytest.mark.asyncio
    async def test_rescan_without_root(self, sample_config, trash, fake_watch):
        """Test rescan needs a root."""
        session = SweepSession(sample_config, trash, fake_watch)
        with pytest.raises(RuntimeError):
            await session.rescan()

    @pytest.mark.asyncio
    async def test_dry_run(self, photo_tree, trash, fake_watch):
        """Test dry-run sessions never call the trash primitive."""
        session = SweepSession(AppConfig(dry_run=True, watch=False), trash, fake_watch)
        await session.open(str(photo_tree))

        result = await session.delete_selected([str(photo_tree / "Photo - Copy.jpg")])

        trash.assert_not_called()
        assert result.dry_run is True
        assert result.deleted_count == 1

    @pytest.mark.asyncio
    async def test_watch_is_live_before_initial_scan(self, sample_config, photo_tree, trash, fake_watch):
        """Test the initial snapshot is published while the watch is already subscribed."""
        session = SweepSession(sample_config, trash, fake_watch)
        active_at_publish = []
        session.subscribe(lambda snapshot: active_at_publish.append(fake_watch.active))

        await session.open(str(photo_tree), watch=True)
        await session.close()

        assert active_at_publish == [1]

    @pytest.mark.asyncio
    async def test_watch_failure_still_publishes(self, sample_config, photo_tree, trash, fake_watch):
        """Test a failing watch raises from open after the snapshot went out."""
        fake_watch.fail_on_start = OSError("too many watches")
        session = SweepSession(sample_config, trash, fake_watch)
        received = []
        session.subscribe(received.append)

        with pytest.raises(WatchError, match="too many watches"):
            await session.open(str(photo_tree), watch=True)

        assert len(received) == 1
        assert not session.watcher.is_running

    @pytest.mark.asyncio
    async def test_running_watch_failure_reaches_error_consumers(self, sample_config, tmp_path, trash, fake_watch):
        """Test error consumers hear about a watch that breaks later."""
        session = SweepSession(sample_config, trash, fake_watch)
        reported = asyncio.Event()
        errors = []

        def on_error(error):
            errors.append(error)
            reported.set()

        session.subscribe_errors(Mock(side_effect=RuntimeError("boom")))
        session.subscribe_errors(on_error)
        await session.open(str(tmp_path), watch=True)

        await fake_watch.push(OSError("watched directory vanished"))
        await asyncio.wait_for(reported.wait(), timeout=5)
        await session.close()

        assert "watched directory vanished" in str(errors[0])


class TestSweepSessionLiveWatch:
    """Runs the real filesystem watch with a short settle time."""

    @pytest.mark.asyncio
    async def test_copy_created_right_after_open(self, tmp_path, make_file):
        """Test a copy written as soon as open returns shows up in a later snapshot."""
        make_file(tmp_path / "Dog.jpg", b"dog")
        session = SweepSession(AppConfig(watch_debounce_ms=50), trash_func=Mock())
        arrived = asyncio.Event()
        session.subscribe(lambda snapshot: arrived.set() if len(snapshot) else None)

        await session.open(str(tmp_path))
        copy = make_file(tmp_path / "Dog - Copy.jpg", b"dog")

        try:
            await asyncio.wait_for(arrived.wait(), timeout=10)
        finally:
            await session.close()

        assert session.snapshot.get(str(copy)).deletable is True
