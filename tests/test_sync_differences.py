"""Tests for the difference classifier."""

from datetime import timedelta

from pygd.sync.differences import (
    Difference,
    checksum_differs,
    dir_type_differs,
    file_differences,
    mod_time_differs,
    same_file,
    same_file_till_checksum,
    size_differs,
)

from .conftest import T, make_file


class TestFileDifferences:
    """Tests for file_differences()."""

    def test_absent_side_differs_in_everything(self):
        f = make_file(md5="x")
        assert file_differences(f, None) == Difference.ALL
        assert file_differences(None, f) == Difference.ALL
        assert file_differences(None, None) == Difference.ALL

    def test_identical_files(self):
        mask = file_differences(make_file(md5="x"), make_file(md5="x"))
        assert mask == Difference.NONE

    def test_each_attribute(self):
        base = make_file(md5="x")
        assert size_differs(file_differences(base, make_file(size=11, md5="x")))
        assert mod_time_differs(
            file_differences(base, make_file(mod_time=T + timedelta(1), md5="x"))
        )
        assert checksum_differs(file_differences(base, make_file(md5="y")))
        assert dir_type_differs(file_differences(base, make_file(is_dir=True)))

    def test_combined_mask(self):
        mask = file_differences(make_file(md5="x"), make_file(size=3, md5="y"))
        assert mask == Difference.SIZE | Difference.MD5_CHECKSUM
        assert not mod_time_differs(mask)
        assert not dir_type_differs(mask)

    def test_directories_have_no_checksum_difference(self):
        mask = file_differences(
            make_file(is_dir=True, size=0), make_file(is_dir=True, size=0)
        )
        assert mask == Difference.NONE

    def test_unknown_checksum_is_a_difference(self):
        src = make_file(blob_at="/nonexistent")
        dest = make_file(md5="x")
        assert checksum_differs(file_differences(src, dest))


class TestSameFile:
    """Tests for the cheap pre-check and the full comparison."""

    def test_same_file_ignores_checksum(self):
        assert same_file(make_file(md5="x"), make_file(md5="y"))

    def test_same_file_detects_type(self):
        assert not same_file(make_file(size=0), make_file(size=0, is_dir=True))

    def test_pre_check_failure_skips_hashing(self, tmp_path):
        path = tmp_path / "a.txt"
        path.write_bytes(b"abc")
        src = make_file(size=3, blob_at=str(path), cache_checksum=True)
        dest = make_file(size=4, md5="x")

        assert not same_file_till_checksum(src, dest)
        assert src.md5_checksum == ""

    def test_same_file_till_checksum(self):
        assert same_file_till_checksum(make_file(md5="x"), make_file(md5="x"))
        assert not same_file_till_checksum(make_file(md5="x"), make_file(md5="y"))
