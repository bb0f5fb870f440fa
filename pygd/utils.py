"""Utility functions for pygd."""

from collections.abc import Iterable
from datetime import datetime, timedelta, timezone
from typing import Optional

# =============================================================================
# Constants
# =============================================================================

# Mime type the drive uses to mark folders
DRIVE_FOLDER_MIME_TYPE: str = "application/vnd.google-apps.folder"

# Files above this size get an advisory before they are checksummed (400 MB)
BIG_FILE_SIZE: int = 400 * 1024 * 1024

# Read size used when streaming content through a hash or to disk (1 MB)
CHUNK_SIZE: int = 1024 * 1024

# Returned for remote timestamps that cannot be parsed
ZERO_TIME: datetime = datetime(1, 1, 1, tzinfo=timezone.utc)

_REMOTE_TIME_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


# =============================================================================
# Timestamp utilities
# =============================================================================


def round_to_second(dt: datetime) -> datetime:
    """Round a datetime to the nearest whole second (half rounds up)."""
    if dt.microsecond >= 500_000:
        try:
            dt = dt + timedelta(seconds=1)
        except OverflowError:
            pass
    return dt.replace(microsecond=0)


def parse_remote_timestamp(timestamp_str: Optional[str]) -> datetime:
    """Parse a drive timestamp such as ``2014-05-01T10:30:00.123Z``.

    The result is timezone-aware (UTC) and rounded to the second. A missing
    or malformed timestamp yields ``ZERO_TIME`` so that comparisons against
    it always report a modification time difference.

    Args:
        timestamp_str: Timestamp string from the API

    Returns:
        Parsed datetime, or ZERO_TIME if parsing fails
    """
    if not timestamp_str:
        return ZERO_TIME

    try:
        dt = datetime.strptime(timestamp_str, _REMOTE_TIME_FORMAT)
        dt = dt.replace(tzinfo=timezone.utc)
    except ValueError:
        # Fall back to the other ISO forms the API has been seen to return
        try:
            if timestamp_str.endswith("Z"):
                timestamp_str = timestamp_str[:-1] + "+00:00"
            dt = datetime.fromisoformat(timestamp_str)
        except (ValueError, AttributeError):
            return ZERO_TIME
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        dt = dt.astimezone(timezone.utc)

    return round_to_second(dt)


def format_remote_timestamp(dt: datetime) -> str:
    """Format a datetime the way the drive expects ``modifiedDate``."""
    dt = dt.astimezone(timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


# =============================================================================
# Name and path utilities
# =============================================================================


def url_to_path(title: str, fs_bound: bool = True) -> str:
    """Translate a remote title into a name usable on the local filesystem.

    Drive titles may contain ``/`` which is a path separator locally. When
    ``fs_bound`` is set it is replaced by ``_``; otherwise it is escaped as
    ``%2F`` so that the title can be reconstructed.

    Examples:
        >>> url_to_path("a/b.txt")
        'a_b.txt'
        >>> url_to_path("a/b.txt", fs_bound=False)
        'a%2Fb.txt'
    """
    if fs_bound:
        return title.replace("/", "_")
    return title.replace("/", "%2F")


def split_parent(path: str) -> tuple[str, str]:
    """Split a relative path into (parent, name).

    Examples:
        >>> split_parent("docs/a/b.txt")
        ('docs/a', 'b.txt')
        >>> split_parent("b.txt")
        ('', 'b.txt')
    """
    path = path.strip("/")
    if "/" not in path:
        return ("", path)
    parent, _, name = path.rpartition("/")
    return (parent, name)


def is_hidden(path: str) -> bool:
    """Return True if any component of a relative path starts with a dot."""
    return any(part.startswith(".") for part in path.split("/") if part)


# =============================================================================
# Formatting utilities
# =============================================================================


def format_size(size_bytes: int) -> str:
    """Format file size in human-readable format.

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted size string (e.g., "1.5 MB", "256 B")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / 1024 / 1024:.1f} MB"
    else:
        return f"{size_bytes / 1024 / 1024 / 1024:.1f} GB"


# =============================================================================
# Sequence utilities
# =============================================================================


def uniq_ordered(values: Iterable[str]) -> list[str]:
    """Remove duplicates while keeping first-seen order."""
    seen: set[str] = set()
    result = []
    for value in values:
        if value in seen:
            continue
        seen.add(value)
        result.append(value)
    return result


def non_empty_strings(values: Iterable[str]) -> list[str]:
    """Drop empty (or whitespace-only) strings."""
    return [v.strip() for v in values if v and v.strip()]
