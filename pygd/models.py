"""Data models for drive API responses."""

from dataclasses import dataclass, field
from typing import Any, Optional

from .utils import DRIVE_FOLDER_MIME_TYPE


def _to_int(value: Any) -> int:
    # The API encodes 64-bit integers as strings
    if value is None or value == "":
        return 0
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


@dataclass
class FileEntry:
    """A file or folder resource as returned by the drive API."""

    id: str
    title: str
    mime_type: str = ""
    file_size: int = 0
    modified_date: Optional[str] = None
    md5_checksum: str = ""
    download_url: str = ""
    export_links: dict[str, str] = field(default_factory=dict)
    etag: str = ""
    shared: bool = False
    user_permission: Optional[dict[str, Any]] = None
    trashed: bool = False
    parent_ids: list[str] = field(default_factory=list)

    @property
    def is_folder(self) -> bool:
        return self.mime_type == DRIVE_FOLDER_MIME_TYPE

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "FileEntry":
        """Create FileEntry from a drive ``File`` resource."""
        labels = data.get("labels") or {}
        parents = data.get("parents") or []
        return cls(
            id=data.get("id", ""),
            title=data.get("title", ""),
            mime_type=data.get("mimeType", ""),
            file_size=_to_int(data.get("fileSize")),
            modified_date=data.get("modifiedDate"),
            md5_checksum=data.get("md5Checksum", "") or "",
            download_url=data.get("downloadUrl", "") or "",
            export_links=dict(data.get("exportLinks") or {}),
            etag=data.get("etag", "") or "",
            shared=bool(data.get("shared", False)),
            user_permission=data.get("userPermission"),
            trashed=bool(labels.get("trashed", False)),
            parent_ids=[p.get("id", "") for p in parents if isinstance(p, dict)],
        )


@dataclass
class FileEntriesResult:
    """One page of a file listing."""

    entries: list[FileEntry]
    next_page_token: Optional[str] = None

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "FileEntriesResult":
        items = data.get("items") or []
        return cls(
            entries=[FileEntry.from_api_response(item) for item in items],
            next_page_token=data.get("nextPageToken") or None,
        )


@dataclass
class About:
    """Account information: quota and supported features."""

    name: str = ""
    quota_bytes_total: int = 0
    quota_bytes_used: int = 0
    quota_bytes_used_in_trash: int = 0
    max_upload_sizes: dict[str, int] = field(default_factory=dict)
    features: list[tuple[str, float]] = field(default_factory=list)

    @property
    def quota_bytes_free(self) -> int:
        return max(self.quota_bytes_total - self.quota_bytes_used, 0)

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "About":
        features = [
            (f.get("featureName", ""), float(f.get("featureRate", 0) or 0))
            for f in data.get("features") or []
        ]
        upload_sizes = {
            s.get("type", ""): _to_int(s.get("size"))
            for s in data.get("maxUploadSizes") or []
        }
        return cls(
            name=data.get("name", ""),
            quota_bytes_total=_to_int(data.get("quotaBytesTotal")),
            quota_bytes_used=_to_int(data.get("quotaBytesUsed")),
            quota_bytes_used_in_trash=_to_int(data.get("quotaBytesUsedInTrash")),
            max_upload_sizes=upload_sizes,
            features=features,
        )
