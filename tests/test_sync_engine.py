"""Tests for the sync engine."""

import hashlib
import os
import re
from unittest.mock import Mock

import pytest

from pygd.api import DriveClient
from pygd.config import Context
from pygd.exceptions import GdAPIError, GdNetworkError
from pygd.output import OutputFormatter
from pygd.sync import Op, SyncEngine
from pygd.utils import DRIVE_FOLDER_MIME_TYPE

from .conftest import T

REMOTE_TIME = "2014-05-01T10:30:00.000Z"


def _item(file_id, title, content=b"", folder=False, **extra):
    item = {
        "id": file_id,
        "title": title,
        "modifiedDate": REMOTE_TIME,
    }
    if folder:
        item["mimeType"] = DRIVE_FOLDER_MIME_TYPE
    else:
        item.update(
            {
                "mimeType": "text/plain",
                "fileSize": str(len(content)),
                "md5Checksum": hashlib.md5(content).hexdigest(),
                "downloadUrl": f"https://example.com/download/{file_id}",
            }
        )
    item.update(extra)
    return item


def _listing(children):
    """Build a list_files side effect from a folder_id -> items mapping."""

    def list_files(query=None, page_token=None, max_results=None):
        match = re.search(r"'([^']*)' in parents", query or "")
        folder_id = match.group(1) if match else ""
        return {"items": children.get(folder_id, [])}

    return list_files


def _write(path, content):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)
    os.utime(path, (T.timestamp(), T.timestamp()))


class TestSyncEngine:
    """Test SyncEngine functionality."""

    @pytest.fixture
    def context(self, tmp_path):
        (tmp_path / ".gd").mkdir()
        return Context(tmp_path)

    @pytest.fixture
    def mock_client(self):
        """Create a mock drive client with a small remote tree."""
        client = Mock(spec=DriveClient)
        client.list_files.side_effect = _listing(
            {
                "root": [
                    _item("same-id", "same.txt", b"same"),
                    _item("old-id", "old.txt", b"old"),
                ]
            }
        )
        client.upload_file.return_value = {"id": "new-id"}
        return client

    @pytest.fixture
    def mock_output(self):
        """Create a mock output formatter."""
        output = Mock(spec=OutputFormatter)
        output.quiet = True
        output.json_output = False
        return output

    @pytest.fixture
    def local_tree(self, context):
        _write(context.abs_path / "same.txt", b"same")
        _write(context.abs_path / "new.txt", b"new content")
        return context.abs_path

    @pytest.fixture
    def engine(self, mock_client, context, mock_output, local_tree):
        return SyncEngine(
            mock_client, context, mock_output, confirm=lambda message: True
        )

    def test_create_sync_engine(self, mock_client, context, mock_output):
        engine = SyncEngine(mock_client, context, mock_output)
        assert engine.client == mock_client
        assert engine.output == mock_output
        assert engine.operations is not None
        assert not engine.stop_requested

    def test_scan(self, engine):
        local_files, remote_files = engine.scan([""])

        assert sorted(local_files) == ["new.txt", "same.txt"]
        assert sorted(remote_files) == ["old.txt", "same.txt"]
        assert remote_files["same.txt"].mod_time == T

    def test_plan_push(self, engine):
        changes = engine.plan_push([""])

        assert [(c.path, c.op()) for c in changes] == [
            ("old.txt", Op.DELETE),
            ("new.txt", Op.ADD),
        ]

    def test_plan_pull(self, engine):
        changes = engine.plan_pull([""])

        assert [(c.path, c.op()) for c in changes] == [
            ("new.txt", Op.DELETE),
            ("old.txt", Op.ADD),
        ]

    def test_plan_pull_no_clobber(self, engine):
        changes = engine.plan_pull([""], no_clobber=True)
        assert [(c.path, c.op()) for c in changes] == [("old.txt", Op.ADD)]

    def test_diff_prints_push_changes(self, engine, mock_output):
        changes = engine.diff([""])

        mock_output.print_changes.assert_called_once_with(changes)
        assert len(changes) == 2

    def test_push(self, engine, mock_client, local_tree):
        stats = engine.push([""])

        assert stats["additions"] == 1
        assert stats["deletions"] == 1
        assert stats["failures"] == 0
        assert not stats["interrupted"]
        mock_client.trash.assert_called_once_with("old-id")
        args, kwargs = mock_client.upload_file.call_args
        assert args[0] == local_tree / "new.txt"
        assert kwargs["title"] == "new.txt"
        assert kwargs["parent_id"] == "root"

    def test_push_dry_run(self, engine, mock_client):
        stats = engine.push([""], dry_run=True)

        assert stats["additions"] == 0
        mock_client.trash.assert_not_called()
        mock_client.upload_file.assert_not_called()

    def test_push_declined(self, mock_client, context, mock_output, local_tree):
        engine = SyncEngine(
            mock_client, context, mock_output, confirm=lambda message: False
        )

        stats = engine.push([""])

        assert stats["skipped"] == 2
        mock_client.trash.assert_not_called()
        mock_client.upload_file.assert_not_called()

    def test_push_no_prompt_skips_confirmation(
        self, mock_client, context, mock_output, local_tree
    ):
        confirm = Mock(return_value=False)
        engine = SyncEngine(mock_client, context, mock_output, confirm=confirm)

        stats = engine.push([""], no_prompt=True)

        confirm.assert_not_called()
        assert stats["additions"] == 1

    def test_failures_do_not_stop_the_batch(self, engine, mock_client, mock_output):
        mock_client.trash.side_effect = GdAPIError("boom")

        stats = engine.push([""])

        assert stats["failures"] == 1
        assert stats["additions"] == 1
        mock_output.error.assert_called_once()

    def test_stop_between_changes(self, engine):
        applied = []

        def apply_and_stop(change):
            applied.append(change.path)
            engine.request_stop()
            return change.op()

        engine.operations.push_change = apply_and_stop

        stats = engine.push([""])

        assert applied == ["old.txt"]
        assert stats["interrupted"] is True
        assert stats["deletions"] == 1
        assert stats["skipped"] == 1

    def test_push_up_to_date(self, mock_client, context, mock_output):
        _write(context.abs_path / "same.txt", b"same")
        _write(context.abs_path / "old.txt", b"old")
        engine = SyncEngine(mock_client, context, mock_output)

        stats = engine.push([""])

        assert stats == engine._create_empty_stats()
        mock_output.print_changes.assert_called_once_with([])

    def test_pull(self, engine, mock_client, local_tree):
        mock_client.download_file.side_effect = lambda url, target: (
            target.write_bytes(b"old")
        )

        stats = engine.pull([""])

        assert stats["additions"] == 1
        assert stats["deletions"] == 1
        assert not (local_tree / "new.txt").exists()
        assert (local_tree / "old.txt").read_bytes() == b"old"
        mock_client.download_file.assert_called_once_with(
            "https://example.com/download/old-id", local_tree / "old.txt"
        )

    def test_native_documents_are_not_trashed_on_push(
        self, mock_client, context, mock_output
    ):
        _write(context.abs_path / "same.txt", b"same")
        mock_client.list_files.side_effect = _listing(
            {
                "root": [
                    _item("same-id", "same.txt", b"same"),
                    {
                        "id": "doc-id",
                        "title": "Notes",
                        "mimeType": "application/vnd.google-apps.document",
                        "modifiedDate": REMOTE_TIME,
                        "exportLinks": {"application/pdf": "https://example.com/p"},
                    },
                ]
            }
        )
        engine = SyncEngine(mock_client, context, mock_output)

        assert engine.plan_push([""]) == []

    def test_scan_sub_path(self, mock_client, context, mock_output):
        _write(context.abs_path / "docs" / "a.txt", b"a")
        mock_client.list_files.side_effect = _listing(
            {
                "root": [_item("docs-id", "docs", folder=True)],
                "docs-id": [_item("a-id", "a.txt", b"a")],
            }
        )
        engine = SyncEngine(mock_client, context, mock_output)

        local_files, remote_files = engine.scan(["docs"])

        assert sorted(local_files) == ["docs", "docs/a.txt"]
        assert sorted(remote_files) == ["docs", "docs/a.txt"]
        assert engine.plan_push(["docs"]) == []

    def test_scan_missing_paths(self, mock_client, context, mock_output):
        engine = SyncEngine(mock_client, context, mock_output)
        assert engine.scan(["nowhere"]) == ({}, {})

    def test_forced_push_leaves_remote_only_paths(self, engine, mock_client):
        stats = engine.push([""], force=True)

        assert stats["additions"] == 2
        assert stats["skipped"] == 1
        assert stats["failures"] == 0
        mock_client.trash.assert_not_called()

    def test_forced_pull_leaves_local_only_paths(
        self, engine, mock_client, local_tree
    ):
        mock_client.download_file.side_effect = lambda url, target: (
            target.write_bytes(b"remote")
        )

        stats = engine.pull([""], force=True)

        assert stats["additions"] == 2
        assert stats["skipped"] == 1
        assert stats["failures"] == 0
        assert (local_tree / "new.txt").read_bytes() == b"new content"

    def test_listing_error_aborts_pull(self, mock_client, context, mock_output):
        _write(context.abs_path / "docs" / "thesis.txt", b"draft")
        listing = _listing({"root": [_item("docs-id", "docs", folder=True)]})

        def flaky(query=None, page_token=None, max_results=None):
            if "'docs-id' in parents" in query:
                raise GdNetworkError("connection reset")
            return listing(query, page_token, max_results)

        mock_client.list_files.side_effect = flaky
        engine = SyncEngine(
            mock_client, context, mock_output, confirm=lambda message: True
        )

        with pytest.raises(GdNetworkError):
            engine.pull([""])

        assert (context.abs_path / "docs" / "thesis.txt").read_bytes() == b"draft"

    def test_stop_requested_before_push(self, engine, mock_client):
        engine.request_stop()

        stats = engine.push([""])

        assert stats["interrupted"] is True
        assert stats["skipped"] == 2
        mock_client.trash.assert_not_called()
        mock_client.upload_file.assert_not_called()
        assert not engine.stop_requested

        stats = engine.push([""])

        assert not stats["interrupted"]
        assert stats["additions"] == 1
        assert stats["deletions"] == 1

    def test_stop_requested_at_the_prompt(
        self, mock_client, context, mock_output, local_tree
    ):
        def confirm_then_stop(message):
            engine.request_stop()
            return True

        engine = SyncEngine(
            mock_client, context, mock_output, confirm=confirm_then_stop
        )

        stats = engine.push([""])

        assert stats["interrupted"] is True
        assert stats["skipped"] == 2
        mock_client.upload_file.assert_not_called()

    def test_pull_folder_over_local_file(self, mock_client, context, mock_output):
        _write(context.abs_path / "a", b"plain file")
        mock_client.list_files.side_effect = _listing(
            {
                "root": [_item("a-id", "a", folder=True)],
                "a-id": [_item("b-id", "b.txt", b"child")],
            }
        )
        mock_client.download_file.side_effect = lambda url, target: (
            target.write_bytes(b"child")
        )
        engine = SyncEngine(
            mock_client, context, mock_output, confirm=lambda message: True
        )

        stats = engine.pull([""])

        assert stats["failures"] == 0
        assert stats["additions"] == 1
        assert stats["modifications"] == 1
        assert (context.abs_path / "a" / "b.txt").read_bytes() == b"child"

    def test_json_output_reports_changes_with_stats(self, engine, mock_output):
        mock_output.json_output = True

        stats = engine.push([""])

        assert stats["changes"] == [
            {"path": "old.txt", "op": "deletion"},
            {"path": "new.txt", "op": "addition"},
        ]
        mock_output.print_changes.assert_not_called()
