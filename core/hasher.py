"""
Content verification with streaming xxHash digests.
"""
import asyncio
import logging
import os

import xxhash

from .models import CopyCandidate, HashState

logger = logging.getLogger(__name__)


class IntegrityVerifier:
    """Compares a copy with its original by content digest."""

    def __init__(self, chunk_size: int = 65536):
        """
        Initialize verifier.

        Args:
            chunk_size: Chunk size for streaming hash computation
        """
        self.chunk_size = chunk_size

    def hash_file(self, filepath: str) -> str:
        """
        Compute the digest of a whole file using streaming.

        Raises:
            OSError: If the file cannot be read
        """
        hasher = xxhash.xxh3_128()

        with open(filepath, 'rb') as f:
            while chunk := f.read(self.chunk_size):
                hasher.update(chunk)

        return hasher.hexdigest()

    async def digest(self, filepath: str) -> str:
        """Hash a file in a worker thread."""
        return await asyncio.to_thread(self.hash_file, filepath)

    async def compare(self, path_a: str, path_b: str) -> bool:
        """
        Check whether two files have identical content.

        Both digests are computed concurrently; the first failure propagates.

        Args:
            path_a: First file
            path_b: Second file

        Returns:
            True if the digests match

        Raises:
            OSError: If either file cannot be read; this means "cannot verify",
                not "mismatch"
        """
        if os.path.getsize(path_a) != os.path.getsize(path_b):
            return False

        digest_a, digest_b = await asyncio.gather(self.digest(path_a), self.digest(path_b))
        return digest_a == digest_b

    async def verify(self, candidate: CopyCandidate) -> HashState:
        """
        Compare a candidate with its original and record the outcome.

        Candidates without a present original are left untouched.

        Returns:
            The candidate's new hash state
        """
        if not candidate.deletable or not candidate.original_path:
            return candidate.hash_state

        candidate.hash_state = HashState.COMPUTING
        try:
            match = await self.compare(candidate.path, candidate.original_path)
        except OSError as e:
            logger.error(f"Cannot verify {candidate.path}: {e}")
            candidate.hash_state = HashState.ERROR
        else:
            candidate.hash_state = HashState.MATCH if match else HashState.MISMATCH

        return candidate.hash_state
