"""Attribute-level differences between two File descriptors."""

from enum import Flag
from typing import Optional

from .checksum import md5_checksum
from .scanner import File


class Difference(Flag):
    """Attributes in which two descriptors differ."""

    NONE = 0
    DIR_TYPE = 1
    MD5_CHECKSUM = 2
    MOD_TIME = 4
    SIZE = 8
    ALL = DIR_TYPE | MD5_CHECKSUM | MOD_TIME | SIZE


def checksums_match(src: File, dest: File) -> bool:
    """Compare content checksums; an unknown ("") checksum never matches."""
    src_sum = md5_checksum(src)
    if not src_sum:
        return False
    dest_sum = md5_checksum(dest)
    return bool(dest_sum) and src_sum == dest_sum


def same_file(src: File, dest: File) -> bool:
    """Cheap pre-check: size, modification time and type are equal."""
    if src.size != dest.size or src.mod_time != dest.mod_time:
        return False
    return src.is_dir == dest.is_dir


def same_file_till_checksum(src: File, dest: File) -> bool:
    """Pre-check, then content checksums if the pre-check passes."""
    if not same_file(src, dest):
        return False
    return checksums_match(src, dest)


def file_differences(src: Optional[File], dest: Optional[File]) -> Difference:
    """Compute which attributes differ between two descriptors.

    An absent side differs in everything. Checksums are only compared for
    two regular files, and an unreadable side counts as different.
    """
    if src is None or dest is None:
        return Difference.ALL

    difference = Difference.NONE
    if src.size != dest.size:
        difference |= Difference.SIZE
    if src.mod_time != dest.mod_time:
        difference |= Difference.MOD_TIME
    if src.is_dir != dest.is_dir:
        difference |= Difference.DIR_TYPE
    elif not src.is_dir and not checksums_match(src, dest):
        difference |= Difference.MD5_CHECKSUM
    return difference


def checksum_differs(mask: Difference) -> bool:
    return bool(mask & Difference.MD5_CHECKSUM)


def dir_type_differs(mask: Difference) -> bool:
    return bool(mask & Difference.DIR_TYPE)


def mod_time_differs(mask: Difference) -> bool:
    return bool(mask & Difference.MOD_TIME)


def size_differs(mask: Difference) -> bool:
    return bool(mask & Difference.SIZE)
