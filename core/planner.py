"""
Deletion planning: re-validates every requested path right before deleting.
"""
from typing import Callable, Iterable, List, Optional
import logging
import os

from send2trash import send2trash

from .models import DeletionResult
from .classifier import NameClassifier, is_image
from .hasher import IntegrityVerifier
from .file_ops import FileOperations

logger = logging.getLogger(__name__)


class DeletionPlanner:
    """
    Decides which requested copies may be trashed.

    Nothing from a previous scan is trusted: the name, the original and
    (in strict mode) the content are checked against the disk at call time.
    """

    def __init__(self, classifier: Optional[NameClassifier] = None,
                 verifier: Optional[IntegrityVerifier] = None,
                 trash_func: Callable[[str], None] = send2trash,
                 dry_run: bool = False):
        self.classifier = classifier or NameClassifier()
        self.verifier = verifier or IntegrityVerifier()
        self.trash_func = trash_func
        self.dry_run = dry_run

    async def plan(self, requested_paths: Iterable[str], strict: bool = False) -> List[str]:
        """
        Filter requested paths down to those safe to delete.

        Args:
            requested_paths: Paths the user asked to delete
            strict: Also require byte-identical content with the original

        Returns:
            Approved paths ordered by (directory, name)
        """
        requested = sorted(set(requested_paths), key=lambda p: (os.path.dirname(p), os.path.basename(p)))
        approved = []

        for path in requested:
            reason = await self._rejection_reason(path, strict)
            if reason:
                logger.info(f"Not deleting {path}: {reason}")
                continue
            approved.append(path)

        logger.info(f"Approved {len(approved)} of {len(requested)} requested paths"
                    f"{' (strict)' if strict else ''}")
        return approved

    async def _rejection_reason(self, path: str, strict: bool) -> Optional[str]:
        """Why `path` must not be deleted, or None if it is safe."""
        if not is_image(path):
            return "not a recognised image"
        if not os.path.isfile(path):
            return "copy no longer exists"

        original_path = self.classifier.original_path_for(path)
        if original_path is None:
            return "name does not match a copy pattern"
        if not os.path.isfile(original_path):
            return f"original missing: {original_path}"

        if strict:
            try:
                identical = await self.verifier.compare(path, original_path)
            except OSError as e:
                return f"cannot verify content: {e}"
            if not identical:
                return "content differs from original"

        return None

    def execute(self, approved: List[str]) -> DeletionResult:
        """
        Hand approved paths to the trash primitive.

        Returns:
            DeletionResult listing exactly the paths that were trashed
        """
        deleted, errors = FileOperations.trash_files(approved, self.trash_func, self.dry_run)
        return DeletionResult(
            requested=list(approved),
            approved=list(approved),
            deleted=deleted,
            failures=[(e.path, e.reason) for e in errors],
            dry_run=self.dry_run
        )

    async def delete(self, requested_paths: Iterable[str], strict: bool = False) -> DeletionResult:
        """Plan, then trash what was approved."""
        requested = list(dict.fromkeys(requested_paths))
        approved = await self.plan(requested, strict)
        result = self.execute(approved)
        result.requested = requested

        logger.info(f"{'[DRY RUN] ' if self.dry_run else ''}Trashed {result.deleted_count} files, "
                    f"{result.failed_count} failed, {len(result.rejected)} rejected")
        return result
