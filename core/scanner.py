"""
Scanner that indexes copy candidates under a root directory.
"""
from pathlib import Path
from typing import Callable, Iterator, List, Optional, Set, Tuple
import os
import logging
import time

from .models import AppConfig, CopyCandidate, ScanProgress, ScanSnapshot
from .classifier import NameClassifier, is_image, split_name
from .errors import EnumerationError

logger = logging.getLogger(__name__)


class CandidateIndex:
    """Builds scan snapshots of copy candidates for a directory tree."""

    def __init__(self, config: Optional[AppConfig] = None,
                 classifier: Optional[NameClassifier] = None,
                 progress_callback: Optional[Callable[[ScanProgress], None]] = None):
        """
        Initialize candidate index.

        Args:
            config: Application configuration (defaults are used if omitted)
            classifier: Name classifier; built from config if omitted
            progress_callback: Optional callback for progress updates
        """
        self.config = config or AppConfig()
        self.classifier = classifier or NameClassifier(
            numeric_suffix=self.config.numeric_suffix,
            min_copy_number=self.config.min_copy_number
        )
        self.excluded_dirs = set(self.config.excluded_dirs)
        self.progress_callback = progress_callback

    def scan(self, root: str) -> ScanSnapshot:
        """
        Scan a directory tree for copy candidates.

        Unreadable directories are skipped and listed in the snapshot's
        `skipped_dirs`; this method does not raise for filesystem errors.

        Args:
            root: Directory to scan

        Returns:
            A fresh ScanSnapshot
        """
        root = os.path.abspath(root)
        skipped: List[str] = []
        progress = ScanProgress()
        candidates = []

        for filepath in self._walk(root, skipped, progress):
            progress.files_seen += 1
            candidate = self.build_candidate(filepath)
            if candidate is not None:
                candidates.append(candidate)
                progress.candidates_found += 1

        if self.progress_callback:
            self.progress_callback(progress)

        logger.info(f"Scanned {root}: {len(candidates)} copies in "
                    f"{progress.directories_scanned} directories, {len(skipped)} skipped")

        return ScanSnapshot(
            root=root,
            candidates=tuple(candidates),
            skipped_dirs=tuple(skipped),
            scanned_at=time.time()
        )

    def build_candidate(self, filepath: str) -> Optional[CopyCandidate]:
        """
        Classify one image file and collect its facts.

        Returns:
            CopyCandidate, or None if the name is not a copy or the file is gone
        """
        directory, stem, extension = split_name(filepath)
        original_base = self.classifier.classify(stem)
        if original_base is None:
            return None

        try:
            stat = os.stat(filepath)
        except OSError as e:
            logger.debug(f"Copy vanished before stat: {filepath}: {e}")
            return None

        original_path = os.path.join(directory, original_base + extension)

        return CopyCandidate(
            path=filepath,
            directory=directory,
            name=Path(filepath).name,
            extension=extension,
            inferred_original_base=original_base,
            original_path=original_path,
            original_exists=os.path.isfile(original_path),
            size=stat.st_size,
            modified_at=stat.st_mtime
        )

    def _walk(self, root: str, skipped: List[str], progress: ScanProgress) -> Iterator[str]:
        """Yield image files under root, depth-first, guarding against cycles."""
        visited: Set[Tuple[int, int]] = set()
        stack = [(root, 0)]

        while stack:
            directory, depth = stack.pop()
            try:
                entries = self._list_dir(directory)
                stat = os.stat(directory)
            except EnumerationError as e:
                logger.warning(str(e))
                skipped.append(directory)
                continue
            except OSError as e:
                logger.warning(f"Cannot stat directory {directory}: {e}")
                skipped.append(directory)
                continue

            identity = (stat.st_dev, stat.st_ino)
            if identity in visited:
                logger.debug(f"Already visited, skipping: {directory}")
                continue
            visited.add(identity)

            progress.directories_scanned += 1
            progress.current_directory = directory
            if self.progress_callback and progress.directories_scanned % 50 == 0:
                self.progress_callback(progress)

            subdirs = []
            for entry in entries:
                try:
                    if entry.is_dir(follow_symlinks=self.config.follow_symlinks):
                        if entry.name in self.excluded_dirs:
                            continue
                        if depth < self.config.max_depth:
                            subdirs.append(entry.path)
                    elif entry.is_file() and is_image(entry.name):
                        yield entry.path
                except OSError as e:
                    logger.warning(f"Could not access {entry.path}: {e}")

            # Reversed so the stack pops subdirectories in name order
            for subdir in reversed(subdirs):
                stack.append((subdir, depth + 1))

    @staticmethod
    def _list_dir(directory: str) -> List[os.DirEntry]:
        try:
            with os.scandir(directory) as it:
                return sorted(it, key=lambda entry: entry.name)
        except OSError as e:
            raise EnumerationError(directory, e.strerror or str(e)) from e
