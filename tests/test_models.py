"""Unit tests for API response models."""

from pygd.models import About, FileEntriesResult, FileEntry
from pygd.utils import DRIVE_FOLDER_MIME_TYPE


class TestFileEntry:
    """Tests for FileEntry.from_api_response()."""

    def test_full_resource(self):
        entry = FileEntry.from_api_response(
            {
                "id": "abc",
                "title": "report.pdf",
                "mimeType": "application/pdf",
                "fileSize": "1024",
                "modifiedDate": "2014-05-01T10:30:00.000Z",
                "md5Checksum": "d41d8cd98f00b204e9800998ecf8427e",
                "downloadUrl": "https://example.com/dl",
                "etag": '"etag"',
                "shared": True,
                "labels": {"trashed": True},
                "parents": [{"id": "root"}, {"id": "other"}],
            }
        )

        assert entry.id == "abc"
        assert entry.title == "report.pdf"
        assert entry.file_size == 1024
        assert entry.md5_checksum == "d41d8cd98f00b204e9800998ecf8427e"
        assert entry.shared is True
        assert entry.trashed is True
        assert entry.parent_ids == ["root", "other"]
        assert not entry.is_folder

    def test_minimal_resource(self):
        entry = FileEntry.from_api_response({"id": "x", "title": "x"})

        assert entry.file_size == 0
        assert entry.modified_date is None
        assert entry.md5_checksum == ""
        assert entry.export_links == {}
        assert entry.parent_ids == []

    def test_bad_file_size(self):
        entry = FileEntry.from_api_response({"id": "x", "title": "x", "fileSize": "?"})
        assert entry.file_size == 0

    def test_folder(self):
        entry = FileEntry.from_api_response(
            {"id": "f", "title": "docs", "mimeType": DRIVE_FOLDER_MIME_TYPE}
        )
        assert entry.is_folder

    def test_native_document_export_links(self):
        entry = FileEntry.from_api_response(
            {
                "id": "d",
                "title": "Notes",
                "exportLinks": {"application/pdf": "https://example.com/pdf"},
            }
        )
        assert entry.download_url == ""
        assert entry.export_links == {"application/pdf": "https://example.com/pdf"}


class TestFileEntriesResult:
    def test_page(self):
        result = FileEntriesResult.from_api_response(
            {"items": [{"id": "1", "title": "a"}], "nextPageToken": "next"}
        )
        assert [e.id for e in result.entries] == ["1"]
        assert result.next_page_token == "next"

    def test_last_page(self):
        result = FileEntriesResult.from_api_response({})
        assert result.entries == []
        assert result.next_page_token is None


class TestAbout:
    def test_from_api_response(self):
        about = About.from_api_response(
            {
                "name": "Alex",
                "quotaBytesTotal": "1000",
                "quotaBytesUsed": "400",
                "quotaBytesUsedInTrash": "50",
                "maxUploadSizes": [{"type": "application/pdf", "size": "10"}],
                "features": [{"featureName": "ocr", "featureRate": 0.5}],
            }
        )

        assert about.name == "Alex"
        assert about.quota_bytes_free == 600
        assert about.quota_bytes_used_in_trash == 50
        assert about.max_upload_sizes == {"application/pdf": 10}
        assert about.features == [("ocr", 0.5)]

    def test_free_never_negative(self):
        about = About(quota_bytes_total=10, quota_bytes_used=20)
        assert about.quota_bytes_free == 0
