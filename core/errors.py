"""
Error taxonomy for the copy sweeper.

Hashing failures are plain OSError (IOError); callers treat them as
"cannot verify".
"""


class CopySweepError(Exception):
    """Base class for copy sweeper errors."""


class EnumerationError(CopySweepError):
    """A directory could not be listed during a scan."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"Cannot enumerate {path}: {reason}")
        self.path = path
        self.reason = reason


class TrashError(CopySweepError):
    """The trash primitive failed for a single path."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"Cannot move {path} to trash: {reason}")
        self.path = path
        self.reason = reason


class WatchError(CopySweepError):
    """A filesystem watch could not be started or died while running."""
