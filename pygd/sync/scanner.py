"""File descriptors and the listers that produce them."""

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, BinaryIO, Optional

from ..config import GD_DIR_NAME
from ..models import FileEntry
from ..utils import (
    BIG_FILE_SIZE,
    DRIVE_FOLDER_MIME_TYPE,
    is_hidden,
    parse_remote_timestamp,
    round_to_second,
    url_to_path,
)

logger = logging.getLogger(__name__)


@dataclass
class File:
    """A filesystem entry, local or remote, in one canonical shape.

    A missing entry is represented by ``None``, never by a File with zeroed
    fields: a zero-byte file and an absent file are different things.
    """

    name: str
    """Filesystem-legal name of the entry"""

    is_dir: bool = False
    """Whether this entry is a folder"""

    size: int = 0
    """Size in bytes"""

    mod_time: datetime = field(
        default_factory=lambda: datetime(1, 1, 1, tzinfo=timezone.utc)
    )
    """Last modification time, UTC, rounded to whole seconds"""

    id: str = ""
    """Remote identifier ("" for local entries)"""

    md5_checksum: str = ""
    """Hex MD5 of the content; "" until known"""

    blob_at: str = ""
    """Where the content lives: local absolute path or remote download URL"""

    mime_type: str = ""
    export_links: dict[str, str] = field(default_factory=dict)
    etag: str = ""
    shared: bool = False
    user_permission: Optional[dict[str, Any]] = None

    cache_checksum: bool = False
    """Store a computed checksum on this instance so it is hashed only once"""

    _lock: threading.Lock = field(
        default_factory=threading.Lock, init=False, repr=False, compare=False
    )

    @property
    def is_local(self) -> bool:
        return not self.id

    @property
    def is_large(self) -> bool:
        """Whether hashing this file is expected to take a while."""
        return self.size > BIG_FILE_SIZE

    @property
    def is_exportable(self) -> bool:
        """True for native remote documents that can only be exported."""
        return not self.is_dir and not self.blob_at and bool(self.export_links)

    def open(self) -> BinaryIO:
        """Open the content for reading.

        Raises:
            OSError: If the content is not a readable local file
        """
        if not self.is_local:
            raise OSError(f"Content of remote file {self.name!r} is not local")
        return open(self.blob_at, "rb")

    @classmethod
    def from_remote(cls, entry: FileEntry) -> "File":
        """Create a File from a drive API entry.

        An unparseable modification date becomes the zero timestamp, which
        never equals a real local timestamp.
        """
        return cls(
            id=entry.id,
            # Titles may contain characters that are not legal in paths
            name=url_to_path(entry.title, fs_bound=True),
            is_dir=entry.mime_type == DRIVE_FOLDER_MIME_TYPE,
            size=entry.file_size,
            mod_time=parse_remote_timestamp(entry.modified_date),
            md5_checksum=entry.md5_checksum,
            blob_at=entry.download_url,
            mime_type=entry.mime_type,
            export_links=dict(entry.export_links),
            etag=entry.etag,
            shared=entry.shared,
            user_permission=entry.user_permission,
        )

    @classmethod
    def from_local(cls, path: Path) -> "File":
        """Create a File from a local path with a single stat call.

        Local descriptors cache their checksum once computed. This assumes
        the content does not change during one reconciliation pass; it is a
        performance trade-off, not a guarantee. A file rewritten mid-pass
        keeps the checksum computed first.

        Raises:
            OSError: If the path cannot be stat'ed
        """
        stat = path.stat()
        mtime = datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc)
        is_dir = path.is_dir()
        return cls(
            name=path.name,
            is_dir=is_dir,
            size=0 if is_dir else stat.st_size,
            mod_time=round_to_second(mtime),
            blob_at=str(path.absolute()),
            cache_checksum=True,
        )


class DirectoryScanner:
    """Builds path -> File maps for local trees and remote listings.

    Examples:
        >>> scanner = DirectoryScanner()
        >>> files = scanner.scan_local(Path("/drive/docs"), Path("/drive"))
        >>> sorted(files)
        ['docs', 'docs/a.txt']
    """

    def __init__(self, hidden: bool = False, recursive: bool = True):
        """Initialize directory scanner.

        Args:
            hidden: Include paths with a component starting with a dot
            recursive: Descend into subdirectories
        """
        self.hidden = hidden
        self.recursive = recursive

    def should_ignore(self, rel_path: str) -> bool:
        """Check if a relative path should be left out of the scan."""
        parts = rel_path.split("/")
        # The context directory itself is never synced
        if parts and parts[0] == GD_DIR_NAME:
            return True
        if not self.hidden and is_hidden(rel_path):
            return True
        return False

    def scan_local(self, path: Path, base_path: Path) -> dict[str, File]:
        """Scan a local file or directory tree.

        The starting path itself is included (unless it is ``base_path``).
        Entries that cannot be stat'ed or directories that cannot be read
        are skipped with a debug log.

        Args:
            path: File or directory to scan
            base_path: Root that relative paths are computed from

        Returns:
            Mapping of forward-slash relative path to File
        """
        files: dict[str, File] = {}

        if path != base_path:
            rel_path = path.relative_to(base_path).as_posix()
            if self.should_ignore(rel_path):
                return files
            try:
                files[rel_path] = File.from_local(path)
            except OSError as e:
                logger.debug(f"Skipping unreadable path {path}: {e}")
                return files

        if path.is_dir():
            self._scan_dir(path, base_path, files)
        return files

    def _scan_dir(self, directory: Path, base_path: Path, files: dict[str, File]):
        try:
            items = sorted(directory.iterdir())
        except OSError as e:
            logger.debug(f"Skipping unreadable directory {directory}: {e}")
            return

        for item in items:
            rel_path = item.relative_to(base_path).as_posix()
            if self.should_ignore(rel_path):
                continue
            try:
                descriptor = File.from_local(item)
            except OSError as e:
                logger.debug(f"Skipping unreadable path {item}: {e}")
                continue
            files[rel_path] = descriptor

            if descriptor.is_dir and self.recursive:
                self._scan_dir(item, base_path, files)

    def scan_remote(
        self, entries_with_paths: list[tuple[FileEntry, str]]
    ) -> dict[str, File]:
        """Translate remote listing results into a path -> File map.

        Args:
            entries_with_paths: List of (FileEntry, relative_path) tuples

        Returns:
            Mapping of relative path to File
        """
        files: dict[str, File] = {}
        for entry, rel_path in entries_with_paths:
            if self.should_ignore(rel_path):
                continue
            if rel_path in files:
                # Drive allows several entries with the same title
                logger.warning(f"Duplicate remote path {rel_path}, keeping first")
                continue
            files[rel_path] = File.from_remote(entry)
        return files
