"""Sync engine: scan both sides, plan changes, and apply them in order."""

import logging
import threading
import time
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Optional

import click
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn

from ..api import ROOT_FOLDER_ID, DriveClient
from ..config import Context
from ..exceptions import GdAPIError
from ..file_entries_manager import FileEntriesManager
from .changes import Change, Op
from .comparator import FileComparator
from .operations import SyncOperations
from .scanner import DirectoryScanner, File

if TYPE_CHECKING:
    from ..output import OutputFormatter

logger = logging.getLogger(__name__)

_STAT_KEYS = {
    Op.ADD: "additions",
    Op.DELETE: "deletions",
    Op.MODIFY: "modifications",
}


def _confirm(message: str) -> bool:
    return click.confirm(message, default=True)


class SyncEngine:
    """Orchestrates diff, push and pull for a drive context."""

    def __init__(
        self,
        client: DriveClient,
        context: Context,
        output: Optional["OutputFormatter"] = None,
        max_workers: int = 1,
        confirm: Optional[Callable[[str], bool]] = None,
    ):
        """Initialize sync engine.

        Args:
            client: Drive API client
            context: Drive context the local paths live in
            output: Output formatter for displaying progress/status
            max_workers: Threads used to classify paths
            confirm: Callback asking the user to go ahead with a plan
        """
        if output is None:
            from ..output import OutputFormatter

            output = OutputFormatter()

        self.client = client
        self.context = context
        self.output = output
        self.max_workers = max_workers
        self.confirm = confirm or _confirm
        self.operations = SyncOperations(client, context.abs_path)
        self.entries_manager = FileEntriesManager(client)
        self._stop = threading.Event()

    def request_stop(self) -> None:
        """Ask the current (or next) push or pull to stop between changes."""
        self._stop.set()

    @property
    def stop_requested(self) -> bool:
        return self._stop.is_set()

    # =========================
    # Scanning
    # =========================

    def _scan_local(self, rel_path: str, scanner: DirectoryScanner) -> dict[str, File]:
        path = self.context.abs_path_of(rel_path)
        if not path.exists():
            return {}
        return scanner.scan_local(path, self.context.abs_path)

    def _scan_remote(
        self, rel_path: str, scanner: DirectoryScanner, recursive: bool
    ) -> dict[str, File]:
        depth = -1 if recursive else 1
        if not rel_path:
            entries = self.entries_manager.get_all_recursive(
                ROOT_FOLDER_ID, "", depth=depth
            )
            return scanner.scan_remote(entries)

        entry = self.entries_manager.find_by_path(rel_path)
        if entry is None:
            logger.debug(f"No remote entry at {rel_path}")
            return {}

        entries = [(entry, rel_path)]
        if entry.is_folder:
            entries.extend(
                self.entries_manager.get_all_recursive(entry.id, rel_path, depth=depth)
            )
        return scanner.scan_remote(entries)

    def scan(
        self,
        sources: list[str],
        hidden: bool = False,
        recursive: bool = True,
    ) -> tuple[dict[str, File], dict[str, File]]:
        """Scan the local and remote side of every source path.

        Args:
            sources: Context-relative paths ("" for the whole context)
            hidden: Include dot paths
            recursive: Descend into folders

        Returns:
            Tuple of (local_files, remote_files) keyed by relative path
        """
        scanner = DirectoryScanner(hidden=hidden, recursive=recursive)
        local_files: dict[str, File] = {}
        remote_files: dict[str, File] = {}

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            transient=True,
            disable=self.output.quiet or self.output.json_output,
        ) as progress:
            for rel_path in sources:
                display = rel_path or "/"
                task = progress.add_task(f"Scanning {display}...", total=None)
                local_files.update(self._scan_local(rel_path, scanner))
                remote_files.update(self._scan_remote(rel_path, scanner, recursive))
                progress.update(
                    task,
                    description=f"Scanned {display}: {len(local_files)} local, "
                    f"{len(remote_files)} remote",
                )

        logger.debug(
            f"Scanned {len(local_files)} local and {len(remote_files)} remote paths"
        )
        return local_files, remote_files

    # =========================
    # Planning
    # =========================

    @staticmethod
    def _without_native_documents(remote_files: dict[str, File]) -> dict[str, File]:
        # Native documents have no local counterpart and must not be trashed
        # just because no local file of that name exists.
        kept = {}
        for path, f in remote_files.items():
            if f.is_exportable:
                logger.debug(f"Ignoring native document {path} for push")
                continue
            kept[path] = f
        return kept

    def plan_push(
        self,
        sources: list[str],
        force: bool = False,
        no_clobber: bool = False,
        hidden: bool = False,
        recursive: bool = True,
    ) -> list[Change]:
        """Changes that make the remote side match the local side."""
        local_files, remote_files = self.scan(sources, hidden, recursive)
        self.operations.remember_folders(remote_files)
        remote_files = self._without_native_documents(remote_files)
        comparator = FileComparator(force, no_clobber, self.max_workers)
        return comparator.plan(local_files, remote_files)

    def plan_pull(
        self,
        sources: list[str],
        force: bool = False,
        no_clobber: bool = False,
        hidden: bool = False,
        recursive: bool = True,
    ) -> list[Change]:
        """Changes that make the local side match the remote side."""
        local_files, remote_files = self.scan(sources, hidden, recursive)
        comparator = FileComparator(force, no_clobber, self.max_workers)
        return comparator.plan(remote_files, local_files)

    def diff(self, sources: list[str], hidden: bool = False) -> list[Change]:
        """Show how the local side differs from the remote side.

        Returns:
            The changes a push would apply
        """
        changes = self.plan_push(sources, hidden=hidden)
        self.output.print_changes(changes)
        return changes

    # =========================
    # Applying
    # =========================

    def _create_empty_stats(self) -> dict:
        return {
            "additions": 0,
            "deletions": 0,
            "modifications": 0,
            "failures": 0,
            "skipped": 0,
            "interrupted": False,
        }

    def _interrupt(self, stats: dict, remaining: int) -> None:
        stats["interrupted"] = True
        stats["skipped"] += remaining
        self.output.warning(f"Interrupted: {remaining} change(s) not applied")

    def _apply(
        self,
        changes: list[Change],
        apply_change: Callable[[Change], Op],
        no_prompt: bool,
        dry_run: bool,
    ) -> dict:
        stats = self._create_empty_stats()

        if self.output.json_output:
            # Reported together with the statistics as one document
            stats["changes"] = [change.to_dict() for change in changes]
        else:
            self.output.print_changes(changes)
        if not changes or dry_run:
            return stats

        # A stop requested while scanning means nothing gets applied
        if self._stop.is_set():
            self._interrupt(stats, len(changes))
            return stats

        if not no_prompt and not self.confirm("Proceed with the changes?"):
            self.output.warning("Aborted.")
            stats["skipped"] = len(changes)
            return stats

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TextColumn("{task.completed}/{task.total}"),
            transient=True,
            disable=self.output.quiet or self.output.json_output,
        ) as progress:
            task = progress.add_task("Applying changes...", total=len(changes))
            for index, change in enumerate(changes):
                # Stop between changes so the destination stays path-consistent
                if self._stop.is_set():
                    self._interrupt(stats, len(changes) - index)
                    break

                progress.update(task, description=change.path)
                start = time.time()
                try:
                    op = apply_change(change)
                except (GdAPIError, OSError) as e:
                    stats["failures"] += 1
                    self.output.error(f"{change.path}: {e}")
                    logger.debug(f"Failed {change.path} in {time.time() - start:.2f}s")
                else:
                    if op == Op.NONE:
                        stats["skipped"] += 1
                    else:
                        stats[_STAT_KEYS[op]] += 1
                    elapsed = time.time() - start
                    logger.debug(f"Completed {change.path} in {elapsed:.2f}s")
                progress.advance(task)

        self._display_summary(stats)
        return stats

    def push(
        self,
        sources: list[str],
        force: bool = False,
        no_clobber: bool = False,
        no_prompt: bool = False,
        hidden: bool = False,
        recursive: bool = True,
        dry_run: bool = False,
    ) -> dict:
        """Make the remote drive match the local tree.

        A stop requested before or during the run is honoured and then
        cleared once the run returns.

        Returns:
            Dictionary with sync statistics
        """
        try:
            changes = self.plan_push(sources, force, no_clobber, hidden, recursive)
            return self._apply(changes, self.operations.push_change, no_prompt, dry_run)
        finally:
            self._stop.clear()

    def pull(
        self,
        sources: list[str],
        force: bool = False,
        no_clobber: bool = False,
        no_prompt: bool = False,
        hidden: bool = False,
        recursive: bool = True,
        exports: Optional[list[str]] = None,
        exports_dir: Optional[Path] = None,
        dry_run: bool = False,
    ) -> dict:
        """Make the local tree match the remote drive.

        Returns:
            Dictionary with sync statistics
        """
        try:
            changes = self.plan_pull(sources, force, no_clobber, hidden, recursive)
            return self._apply(
                changes,
                lambda c: self.operations.pull_change(c, exports, exports_dir),
                no_prompt,
                dry_run,
            )
        finally:
            self._stop.clear()

    def _display_summary(self, stats: dict) -> None:
        if self.output.quiet:
            return
        self.output.print("")
        applied = stats["additions"] + stats["deletions"] + stats["modifications"]
        self.output.success(f"Applied {applied} change(s)")
        if stats["skipped"]:
            self.output.info(f"Skipped: {stats['skipped']}")
        if stats["failures"]:
            self.output.warning(f"Failed: {stats['failures']}")
