"""
Data models for the copy sweeper.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List, Optional, Tuple
import os


DEFAULT_EXCLUDED_DIRS = ["node_modules", "dist", "__pycache__", ".git"]


class HashState(str, Enum):
    """Content verification state of a candidate."""
    IDLE = "idle"
    COMPUTING = "computing"
    MATCH = "match"
    MISMATCH = "mismatch"
    ERROR = "error"


@dataclass
class CopyCandidate:
    """A file whose name marks it as a copy of a sibling original."""
    path: str
    directory: str
    name: str  # basename with extension
    extension: str  # leading dot, original case
    inferred_original_base: Optional[str]
    original_path: Optional[str]
    original_exists: bool
    size: int
    modified_at: float
    hash_state: HashState = field(default=HashState.IDLE, compare=False)

    @property
    def deletable(self) -> bool:
        """A copy is only deletable while its original is present."""
        return bool(self.inferred_original_base and self.original_exists)


@dataclass(frozen=True)
class FolderAggregate:
    """Deletable copies grouped by directory."""
    directory: str
    count: int = 0
    total_bytes: int = 0


@dataclass(frozen=True)
class ScanSnapshot:
    """
    Result of one scan of a root directory.

    Candidates are kept sorted by (directory, name). A snapshot is never
    patched; the next scan replaces it.
    """
    root: str
    candidates: Tuple[CopyCandidate, ...] = ()
    skipped_dirs: Tuple[str, ...] = ()
    scanned_at: float = 0.0

    def __post_init__(self):
        ordered = tuple(sorted(self.candidates, key=lambda c: (c.directory, c.name)))
        seen = set()
        for candidate in ordered:
            if candidate.path in seen:
                raise ValueError(f"Duplicate candidate path in snapshot: {candidate.path}")
            seen.add(candidate.path)
        object.__setattr__(self, "candidates", ordered)
        object.__setattr__(self, "skipped_dirs", tuple(self.skipped_dirs))

    def __len__(self) -> int:
        return len(self.candidates)

    def __iter__(self) -> Iterator[CopyCandidate]:
        return iter(self.candidates)

    def paths(self) -> List[str]:
        return [c.path for c in self.candidates]

    def get(self, path: str) -> Optional[CopyCandidate]:
        for candidate in self.candidates:
            if candidate.path == path:
                return candidate
        return None

    def deletable(self) -> List[CopyCandidate]:
        return [c for c in self.candidates if c.deletable]

    @property
    def total_reclaimable(self) -> int:
        """Bytes freed if every deletable copy were removed."""
        return sum(c.size for c in self.candidates if c.deletable)

    def folder_aggregates(self) -> Dict[str, FolderAggregate]:
        """Group deletable candidates by directory, in directory order."""
        counts: Dict[str, Tuple[int, int]] = {}
        for candidate in self.candidates:
            if not candidate.deletable:
                continue
            count, size = counts.get(candidate.directory, (0, 0))
            counts[candidate.directory] = (count + 1, size + candidate.size)
        return {
            directory: FolderAggregate(directory, count, size)
            for directory, (count, size) in sorted(counts.items())
        }

    def in_folder(self, folder: str) -> List[CopyCandidate]:
        """Candidates located in `folder` or below it."""
        folder = os.path.abspath(folder)
        prefix = folder.rstrip(os.sep) + os.sep
        return [
            c for c in self.candidates
            if c.directory == folder or c.directory.startswith(prefix)
        ]

    def search(self, query: str) -> List[CopyCandidate]:
        """Case-insensitive substring match on name or path."""
        query = query.strip().lower()
        if not query:
            return list(self.candidates)
        return [
            c for c in self.candidates
            if query in c.name.lower() or query in c.path.lower()
        ]


@dataclass
class DeletionResult:
    """Outcome of a deletion batch."""
    requested: List[str] = field(default_factory=list)
    approved: List[str] = field(default_factory=list)
    deleted: List[str] = field(default_factory=list)
    failures: List[Tuple[str, str]] = field(default_factory=list)  # (path, reason)
    dry_run: bool = False

    @property
    def deleted_count(self) -> int:
        return len(self.deleted)

    @property
    def failed_count(self) -> int:
        return len(self.failures)

    @property
    def rejected(self) -> List[str]:
        """Requested paths the planner refused to approve."""
        approved = set(self.approved)
        return [p for p in self.requested if p not in approved]


@dataclass
class ScanProgress:
    """Progress information for a running scan."""
    directories_scanned: int = 0
    files_seen: int = 0
    candidates_found: int = 0
    current_directory: Optional[str] = None


@dataclass
class AppConfig:
    """Application configuration."""
    root: Optional[str] = None
    strict: bool = False  # require identical content before deleting
    numeric_suffix: bool = True  # treat "Name (N)" as a copy
    min_copy_number: int = 2
    max_depth: int = 99
    follow_symlinks: bool = False
    excluded_dirs: List[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDED_DIRS))
    watch: bool = True
    watch_debounce_ms: int = 2000
    dry_run: bool = False
    hash_chunk_size: int = 65536
    log_file: str = "copysweep.log"

    def validate(self) -> List[str]:
        """Validate configuration, return list of errors."""
        errors = []

        if self.root is not None and not os.path.isdir(self.root):
            errors.append(f"Root is not a directory: {self.root}")

        if self.min_copy_number < 2:
            errors.append("min_copy_number must be >= 2")

        if self.max_depth < 0:
            errors.append("max_depth must be >= 0")

        if self.watch_debounce_ms < 0:
            errors.append("watch_debounce_ms must be >= 0")

        if self.hash_chunk_size < 1:
            errors.append("hash_chunk_size must be >= 1")

        return errors
