"""Apply individual Changes to the remote drive or the local disk."""

import logging
import mimetypes
import os
import shutil
from pathlib import Path
from typing import Optional

from ..api import ROOT_FOLDER_ID, DriveClient
from ..exceptions import GdNotFoundError
from ..utils import split_parent
from .changes import Change, Op
from .scanner import File

logger = logging.getLogger(__name__)


def export_mime_type(fmt: str) -> Optional[str]:
    """Map an export format such as "pdf" or "docx" to its mime type."""
    return mimetypes.guess_type(f"export.{fmt.lstrip('.').lower()}")[0]


class SyncOperations:
    """Executes Changes in either direction.

    Push changes have the local File as ``src`` and the remote File as
    ``dest``; pull changes the other way around.
    """

    def __init__(self, client: DriveClient, local_root: Path):
        """Initialize sync operations.

        Args:
            client: Drive API client
            local_root: Local directory that mirrors the drive root
        """
        self.client = client
        self.local_root = local_root
        self._folder_ids: dict[str, str] = {"": ROOT_FOLDER_ID}

    def remember_folders(self, remote_files: dict[str, File]) -> None:
        """Record ids of known remote folders so they need not be created."""
        for path, f in remote_files.items():
            if f.is_dir and f.id:
                self._folder_ids[path] = f.id

    # =========================
    # Push (local -> remote)
    # =========================

    def ensure_remote_folder(self, rel_path: str) -> str:
        """Return the id of a remote folder, creating missing ancestors."""
        rel_path = rel_path.strip("/")
        if rel_path in self._folder_ids:
            return self._folder_ids[rel_path]

        parent, name = split_parent(rel_path)
        parent_id = self.ensure_remote_folder(parent)
        logger.debug(f"Creating remote folder {rel_path}")
        result = self.client.create_folder(name, parent_id=parent_id)
        self._folder_ids[rel_path] = result["id"]
        return result["id"]

    def _upload(self, change: Change, src: File, file_id: Optional[str]) -> None:
        parent_id = self.ensure_remote_folder(change.parent)
        _, name = split_parent(change.path)
        result = self.client.upload_file(
            Path(src.blob_at),
            title=name,
            parent_id=parent_id,
            file_id=file_id,
            modified_date=src.mod_time,
        )
        logger.debug(f"Uploaded {change.path} ({result.get('id', file_id)})")

    def _trash_remote(self, f: File, path: str) -> None:
        try:
            self.client.trash(f.id)
        except GdNotFoundError:
            # Already gone with a trashed parent folder
            logger.debug(f"Remote {path} already removed")
        self._folder_ids.pop(path, None)

    def push_change(self, change: Change) -> Op:
        """Apply a push Change to the remote drive.

        Returns:
            The operation that was applied (Op.NONE if nothing could be done)
        """
        op = change.op()
        src, dest = change.src, change.dest

        if op == Op.NONE:
            return op

        if op == Op.DELETE:
            if dest is None:
                return Op.NONE
            self._trash_remote(dest, change.path)
            return op

        if src is None:
            # A forced change for a path that only exists remotely
            logger.debug(f"{change.path}: nothing to push")
            return Op.NONE

        if dest is not None and dest.is_dir != src.is_dir:
            # A folder cannot become a file in place
            self._trash_remote(dest, change.path)
            dest = None

        if src.is_dir:
            if dest is None:
                self.ensure_remote_folder(change.path)
            return op

        self._upload(change, src, dest.id if dest is not None else None)
        return op

    # =========================
    # Pull (remote -> local)
    # =========================

    def _local_path(self, rel_path: str) -> Path:
        return self.local_root / rel_path

    def _remove_local(self, path: Path) -> None:
        try:
            if path.is_dir() and not path.is_symlink():
                shutil.rmtree(path)
            else:
                path.unlink()
        except FileNotFoundError:
            logger.debug(f"Local {path} already removed")

    def _replace_file_ancestors(self, target: Path) -> None:
        """Remove a local file standing where a folder of ``target`` must be.

        A file that becomes a folder is modified after the additions below
        it have been applied, so its children arrive first.
        """
        current = self.local_root
        for part in target.relative_to(self.local_root).parts[:-1]:
            current = current / part
            if current.is_symlink() or (current.exists() and not current.is_dir()):
                logger.debug(f"Replacing local file {current} with a folder")
                current.unlink()
                return

    def _download(self, src: File, target: Path) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        self.client.download_file(src.blob_at, target)
        # Keep the remote mtime so the next comparison sees equal files
        timestamp = src.mod_time.timestamp()
        os.utime(target, (timestamp, timestamp))

    def export(
        self,
        src: File,
        rel_path: str,
        exports: list[str],
        exports_dir: Optional[Path] = None,
    ) -> list[Path]:
        """Export a native remote document in each requested format.

        Args:
            src: Remote document (no download URL, has export links)
            rel_path: Relative path of the document
            exports: Formats such as ["pdf", "docx"]
            exports_dir: Directory for the exports (default: next to the path)

        Returns:
            Paths written
        """
        target_dir = exports_dir or self._local_path(rel_path).parent
        target_dir.mkdir(parents=True, exist_ok=True)
        written = []
        for fmt in exports:
            mime_type = export_mime_type(fmt)
            url = src.export_links.get(mime_type or "")
            if not url:
                logger.warning(f"{rel_path}: no '{fmt}' export available")
                continue
            target = target_dir / f"{src.name}.{fmt.lstrip('.')}"
            self.client.export_file(url, target)
            written.append(target)
        return written

    def pull_change(
        self,
        change: Change,
        exports: Optional[list[str]] = None,
        exports_dir: Optional[Path] = None,
    ) -> Op:
        """Apply a pull Change to the local disk.

        Returns:
            The operation that was applied (Op.NONE if nothing could be done)
        """
        op = change.op()
        src = change.src
        target = self._local_path(change.path)

        if op == Op.NONE:
            return op

        if op == Op.DELETE:
            self._remove_local(target)
            return op

        if src is None:
            # A forced change for a path that only exists locally
            logger.debug(f"{change.path}: nothing to pull")
            return Op.NONE

        self._replace_file_ancestors(target)
        # The disk may already hold the new type if children were pulled first
        if os.path.lexists(target) and target.is_dir() != src.is_dir:
            self._remove_local(target)

        if src.is_dir:
            target.mkdir(parents=True, exist_ok=True)
            return op

        if not src.blob_at:
            if src.is_exportable and exports:
                self.export(src, change.path, exports, exports_dir)
                return op
            logger.warning(
                f"{change.path}: no downloadable content "
                "(use --export to fetch native documents)"
            )
            return Op.NONE

        self._download(src, target)
        return op
