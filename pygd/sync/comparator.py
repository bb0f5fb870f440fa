"""Batch comparison of source and destination trees."""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

from ..utils import split_parent
from .changes import Change, Op, resolve, sort_by_precedence
from .scanner import File

logger = logging.getLogger(__name__)


class FileComparator:
    """Compares two path -> File maps and produces Changes."""

    def __init__(
        self,
        force: bool = False,
        no_clobber: bool = False,
        max_workers: int = 1,
    ):
        """Initialize file comparator.

        Args:
            force: Resolve every path to an addition
            no_clobber: Never overwrite or delete destination content
            max_workers: Number of threads used to classify paths
        """
        self.force = force
        self.no_clobber = no_clobber
        self.max_workers = max(1, max_workers)

    def _compare_single_file(
        self, path: str, src: Optional[File], dest: Optional[File]
    ) -> Change:
        parent, _ = split_parent(path)
        return resolve(
            src,
            dest,
            path,
            parent=parent,
            force=self.force,
            no_clobber=self.no_clobber,
        )

    def compare_files(
        self,
        src_files: dict[str, File],
        dest_files: dict[str, File],
        keep_unchanged: bool = False,
    ) -> list[Change]:
        """Classify every path present on either side.

        Paths are classified independently, in parallel when
        ``max_workers > 1``. The result is ordered by path.

        Args:
            src_files: Mapping of relative path to source File
            dest_files: Mapping of relative path to destination File
            keep_unchanged: Also return changes that resolve to Op.NONE

        Returns:
            List of Change objects
        """
        all_paths = sorted(set(src_files) | set(dest_files))

        if self.max_workers > 1 and len(all_paths) > 1:
            logger.debug(
                f"Classifying {len(all_paths)} paths with {self.max_workers} workers"
            )
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                changes = list(
                    executor.map(
                        lambda p: self._compare_single_file(
                            p, src_files.get(p), dest_files.get(p)
                        ),
                        all_paths,
                    )
                )
        else:
            changes = [
                self._compare_single_file(p, src_files.get(p), dest_files.get(p))
                for p in all_paths
            ]

        if keep_unchanged:
            return changes
        return [c for c in changes if c.op() != Op.NONE]

    def plan(
        self,
        src_files: dict[str, File],
        dest_files: dict[str, File],
    ) -> list[Change]:
        """Compare two trees and return the changes in safe-apply order."""
        changes = self.compare_files(src_files, dest_files)
        return [c for c in sort_by_precedence(changes) if c is not None]
