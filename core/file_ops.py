"""
File operations: trash invocation and size helpers.
"""
from pathlib import Path
from typing import Callable, Iterable, List, Tuple
import logging

from send2trash import send2trash

from .errors import TrashError

logger = logging.getLogger(__name__)


class FileOperations:
    """Moves files to the trash one by one and reports exact outcomes."""

    @staticmethod
    def trash_files(filepaths: Iterable[str],
                    trash_func: Callable[[str], None] = send2trash,
                    dry_run: bool = False) -> Tuple[List[str], List[TrashError]]:
        """
        Move files to the trash.

        Each path is trashed independently; one failure never aborts the batch.

        Args:
            filepaths: Paths to trash
            trash_func: Trash primitive, raising on failure
            dry_run: If True, don't actually trash anything

        Returns:
            Tuple of (successful_paths, failures)
        """
        successful = []
        failures = []

        for filepath in filepaths:
            try:
                if dry_run:
                    # In dry run, just check if file exists
                    if Path(filepath).exists():
                        successful.append(filepath)
                        logger.info(f"[DRY RUN] Would trash: {filepath}")
                    else:
                        failures.append(TrashError(filepath, "File not found"))
                    continue

                trash_func(filepath)
                successful.append(filepath)
                logger.info(f"Moved to trash: {filepath}")

            except PermissionError as e:
                failures.append(TrashError(filepath, f"Permission denied: {e}"))
                logger.error(f"Permission denied: {filepath}")
            except Exception as e:
                failures.append(TrashError(filepath, str(e)))
                logger.error(f"Failed to trash {filepath}: {e}")

        return successful, failures

    @staticmethod
    def get_total_size(filepaths: Iterable[str]) -> int:
        """Total size in bytes of the files that can still be stat'ed."""
        total = 0
        for filepath in filepaths:
            try:
                total += Path(filepath).stat().st_size
            except OSError:
                logger.warning(f"Could not get size of {filepath}")
        return total

    @staticmethod
    def format_size(size_bytes: float) -> str:
        """
        Format size in bytes to human-readable string.

        Args:
            size_bytes: Size in bytes

        Returns:
            Formatted string (e.g., "1.5 GB")
        """
        for unit in ['B', 'KB', 'MB', 'GB', 'TB']:
            if size_bytes < 1024.0:
                return f"{size_bytes:.1f} {unit}"
            size_bytes /= 1024.0
        return f"{size_bytes:.1f} PB"
