"""Reconciliation engine for pygd - decide and apply per-path changes."""

from .changes import (
    OP_PRECEDENCE,
    Change,
    Op,
    op_to_string,
    resolve,
    sort_by_precedence,
)
from .checksum import md5_checksum
from .comparator import FileComparator
from .differences import (
    Difference,
    checksum_differs,
    dir_type_differs,
    file_differences,
    mod_time_differs,
    same_file,
    same_file_till_checksum,
    size_differs,
)
from .engine import SyncEngine
from .operations import SyncOperations
from .scanner import DirectoryScanner, File

__all__ = [
    "SyncEngine",
    "SyncOperations",
    "FileComparator",
    "DirectoryScanner",
    "File",
    "Change",
    "Op",
    "OP_PRECEDENCE",
    "op_to_string",
    "resolve",
    "sort_by_precedence",
    "md5_checksum",
    "Difference",
    "file_differences",
    "same_file",
    "same_file_till_checksum",
    "checksum_differs",
    "dir_type_differs",
    "mod_time_differs",
    "size_differs",
]
