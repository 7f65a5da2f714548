"""
Filename classification for copy detection.

Everything here works on path strings only and never touches the disk.
"""
from dataclasses import dataclass
from typing import List, Optional, Tuple
import os
import re


IMAGE_EXTENSIONS = frozenset({
    ".jpg", ".jpeg", ".png", ".gif", ".bmp", ".webp", ".tif", ".tiff",
    ".heic", ".heif",
    # raw formats
    ".arw", ".cr2", ".nef", ".orf", ".rw2", ".dng",
})


def is_image(path: str) -> bool:
    """Check whether a path carries a recognised image extension."""
    return os.path.splitext(path)[1].lower() in IMAGE_EXTENSIONS


def split_name(path: str) -> Tuple[str, str, str]:
    """Split a path into (directory, stem, extension)."""
    directory, filename = os.path.split(path)
    stem, extension = os.path.splitext(filename)
    return directory, stem, extension


@dataclass(frozen=True)
class NamingRule:
    """A copy-naming convention; group `name` captures the original stem."""
    label: str
    pattern: re.Pattern
    numbered: bool = False  # group `number` must reach the minimum copy number


COPY_SUFFIX = NamingRule("copy-suffix", re.compile(r"^(?P<name>.+)\s-\scopy(?:\s\(\d+\))?$", re.IGNORECASE))
COPIA_SUFFIX = NamingRule("copia-suffix", re.compile(r"^(?P<name>.+)\s-\scopia(?:\s\(\d+\))?$", re.IGNORECASE))
COPY_OF_PREFIX = NamingRule("copy-of-prefix", re.compile(r"^copy\s+of\s+(?P<name>.+)$", re.IGNORECASE))
COPIA_DI_PREFIX = NamingRule("copia-di-prefix", re.compile(r"^copia\s+di\s+(?P<name>.+)$", re.IGNORECASE))
NUMERIC_SUFFIX = NamingRule("numeric-suffix", re.compile(r"^(?P<name>.+)\s\((?P<number>\d+)\)$"), numbered=True)

# Order matters: explicit copy markers win over the bare numeric suffix.
DEFAULT_RULES = (COPY_SUFFIX, COPIA_SUFFIX, COPY_OF_PREFIX, COPIA_DI_PREFIX, NUMERIC_SUFFIX)


class NameClassifier:
    """Infers the original stem a copy's stem was derived from."""

    def __init__(self, numeric_suffix: bool = True, min_copy_number: int = 2):
        """
        Initialize classifier.

        Args:
            numeric_suffix: Whether "Name (N)" counts as a copy at all
            min_copy_number: Smallest N accepted by the numeric-suffix rule
        """
        self.numeric_suffix = numeric_suffix
        self.min_copy_number = min_copy_number
        self.rules: List[NamingRule] = [
            rule for rule in DEFAULT_RULES
            if numeric_suffix or not rule.numbered
        ]

    def classify(self, stem: str) -> Optional[str]:
        """
        Classify a basename without its extension.

        Args:
            stem: Filename without extension, e.g. "Photo - Copy (2)"

        Returns:
            The inferred original stem, or None if no rule matches
        """
        for rule in self.rules:
            match = rule.pattern.match(stem)
            if not match:
                continue
            if rule.numbered and int(match.group("number")) < self.min_copy_number:
                continue
            return match.group("name")
        return None

    def original_path_for(self, path: str) -> Optional[str]:
        """Path of the sibling original implied by a copy's name, if any."""
        directory, stem, extension = split_name(path)
        original_base = self.classify(stem)
        if original_base is None:
            return None
        return os.path.join(directory, original_base + extension)


_default_classifier = NameClassifier()


def classify(stem: str) -> Optional[str]:
    """Classify with the default rule set."""
    return _default_classifier.classify(stem)
