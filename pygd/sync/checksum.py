"""Lazy, memoized content checksums for File descriptors."""

import hashlib
import logging
from typing import Optional

from ..utils import CHUNK_SIZE, format_size
from .scanner import File

logger = logging.getLogger(__name__)


def md5_checksum(f: Optional[File]) -> str:
    """Return the hex MD5 of a file's content, computing it at most once.

    Directories and absent files yield "" without any I/O. A checksum the
    origin already supplied, or one cached by an earlier call, is returned
    as is. Content that cannot be opened or read also yields "", which the
    classifier treats as a difference.

    The computation runs under the descriptor's lock, so concurrent callers
    on the same instance hash the content once when caching is enabled.

    Args:
        f: File descriptor (or None)

    Returns:
        Hex digest, or "" if unknown
    """
    if f is None or f.is_dir:
        return ""

    with f._lock:
        if f.md5_checksum:
            return f.md5_checksum

        if f.is_large:
            logger.warning(
                f"md5_checksum: '{f.name}' ({format_size(f.size)}) "
                "might take time to checksum"
            )

        try:
            h = hashlib.md5(usedforsecurity=False)
            with f.open() as fh:
                for chunk in iter(lambda: fh.read(CHUNK_SIZE), b""):
                    h.update(chunk)
        except OSError as e:
            logger.debug(f"Cannot checksum {f.name}: {e}")
            return ""

        checksum = h.hexdigest()
        if f.cache_checksum:
            f.md5_checksum = checksum
            logger.debug(f"Cached checksum {checksum} for {f.name}")
        return checksum
