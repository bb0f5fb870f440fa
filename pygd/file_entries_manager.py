"""Manager for fetching remote file entries with automatic pagination."""

import logging
from typing import Optional

from .api import ROOT_FOLDER_ID, DriveClient
from .exceptions import GdAPIError
from .models import FileEntriesResult, FileEntry
from .utils import url_to_path

logger = logging.getLogger(__name__)


def _quote(value: str) -> str:
    """Quote a value for use inside a drive search query."""
    escaped = value.replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


class FileEntriesManager:
    """Lists remote folders, following page tokens and caching lookups."""

    def __init__(self, client: DriveClient, page_size: Optional[int] = None):
        """Initialize the file entries manager.

        Args:
            client: Drive API client
            page_size: Number of entries per page (default: from config)
        """
        self.client = client
        self.page_size = page_size
        self._cache: dict[str, list[FileEntry]] = {}

    def list_query(self, query: str, allow_partial: bool = False) -> list[FileEntry]:
        """Run a search query and return every matching entry.

        Args:
            query: Drive search query
            allow_partial: On an API error, return the entries fetched so far
                instead of raising. Only for display; a partial listing must
                never be reconciled against a local tree.

        Raises:
            GdAPIError: If a page cannot be fetched and ``allow_partial`` is off
        """
        all_entries: list[FileEntry] = []
        page_token: Optional[str] = None

        try:
            while True:
                result = self.client.list_files(
                    query=query,
                    page_token=page_token,
                    max_results=self.page_size,
                )
                page = FileEntriesResult.from_api_response(result)
                all_entries.extend(page.entries)

                if not page.next_page_token:
                    break
                page_token = page.next_page_token

        except GdAPIError as e:
            if not allow_partial:
                logger.debug(f"API error while running query {query!r}: {e}")
                raise
            logger.warning(
                f"API error while running query {query!r}, "
                f"returning {len(all_entries)} partial results: {e}"
            )

        return all_entries

    def get_children(
        self,
        folder_id: str = ROOT_FOLDER_ID,
        in_trash: bool = False,
        use_cache: bool = True,
    ) -> list[FileEntry]:
        """Get all entries directly inside a folder.

        Args:
            folder_id: Folder to list (default: drive root)
            in_trash: List trashed children instead of live ones
            use_cache: Whether to use cached results
        """
        cache_key = f"children:{folder_id}:{in_trash}"
        if use_cache and cache_key in self._cache:
            return self._cache[cache_key]

        trashed = "true" if in_trash else "false"
        query = f"{_quote(folder_id)} in parents and trashed={trashed}"
        entries = self.list_query(query)

        if use_cache:
            self._cache[cache_key] = entries
        return entries

    def get_trashed(self) -> list[FileEntry]:
        """Get every entry currently in the trash."""
        return self.list_query("trashed=true", allow_partial=True)

    def find_by_path(
        self, rel_path: str, in_trash: bool = False
    ) -> Optional[FileEntry]:
        """Resolve a context-relative path to a remote entry.

        Intermediate folders are always looked up among live entries; only
        the last component honours ``in_trash``.

        Args:
            rel_path: Forward-slash path relative to the drive root
            in_trash: Look the final component up in the trash

        Returns:
            The entry, or None if any component is missing
        """
        parts = [p for p in rel_path.strip("/").split("/") if p]
        if not parts:
            return None

        parent_id = ROOT_FOLDER_ID
        entry: Optional[FileEntry] = None
        for index, name in enumerate(parts):
            last = index == len(parts) - 1
            children = self.get_children(parent_id, in_trash=in_trash and last)
            entry = next(
                (c for c in children if url_to_path(c.title) == name),
                None,
            )
            if entry is None:
                logger.debug(f"Remote path component not found: {name}")
                return None
            parent_id = entry.id
        return entry

    def get_all_recursive(
        self,
        folder_id: str = ROOT_FOLDER_ID,
        path_prefix: str = "",
        depth: int = -1,
        visited: Optional[set[str]] = None,
    ) -> list[tuple[FileEntry, str]]:
        """Recursively get all entries below a folder, folders included.

        Args:
            folder_id: Folder ID to start from
            path_prefix: Path prefix for nested entries
            depth: Maximum depth to descend (-1 for unlimited, 1 = children only)
            visited: Set of visited folder IDs (for cycle detection)

        Returns:
            List of (FileEntry, relative_path) tuples

        Raises:
            GdAPIError: If any folder cannot be listed completely
        """
        if visited is None:
            visited = set()

        # The same folder can have several parents
        if folder_id in visited:
            return []
        visited.add(folder_id)

        if depth == 0:
            return []

        result_entries: list[tuple[FileEntry, str]] = []
        for entry in self.get_children(folder_id, use_cache=False):
            name = url_to_path(entry.title)
            entry_path = f"{path_prefix}/{name}" if path_prefix else name
            result_entries.append((entry, entry_path))

            if entry.is_folder:
                result_entries.extend(
                    self.get_all_recursive(
                        folder_id=entry.id,
                        path_prefix=entry_path,
                        depth=depth - 1 if depth > 0 else depth,
                        visited=visited,
                    )
                )

        return result_entries
