"""Shared fixtures for pygd tests."""

from datetime import datetime, timezone

import pytest

from pygd.sync.scanner import File

T = datetime(2014, 5, 1, 10, 30, 0, tzinfo=timezone.utc)


def make_file(
    name: str = "file.txt",
    size: int = 10,
    mod_time: datetime = T,
    is_dir: bool = False,
    md5: str = "",
    **kwargs,
) -> File:
    """Create a File descriptor with sensible defaults."""
    return File(
        name=name,
        size=size,
        mod_time=mod_time,
        is_dir=is_dir,
        md5_checksum=md5,
        **kwargs,
    )


@pytest.fixture
def mtime():
    """A fixed, second-aligned modification time."""
    return T
