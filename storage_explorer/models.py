from __future__ import annotations
"""Data models representing normalized object-store listings."""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional


def to_iso8601(value: object) -> Optional[str]:
    """Return ``value`` as an ISO-8601 string, or ``None`` when absent."""

    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


@dataclass
class BucketInfo:
    """A bucket as reported by the store."""

    name: str
    creation_date: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "creationDate": self.creation_date}


@dataclass
class ObjectFile:
    """A single object ("file") within a listing page."""

    key: str
    size: int = 0
    last_modified: Optional[str] = None
    etag: Optional[str] = None
    storage_class: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "size": self.size,
            "lastModified": self.last_modified,
            "eTag": self.etag,
            "storageClass": self.storage_class,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ObjectFile":
        return cls(
            key=str(data.get("key", "")),
            size=int(data.get("size") or 0),
            last_modified=data.get("lastModified"),
            etag=data.get("eTag"),
            storage_class=data.get("storageClass"),
        )


@dataclass
class ListingPage:
    """One page of a delimiter-based listing under ``prefix``."""

    bucket: str
    prefix: str = ""
    folders: list[str] = field(default_factory=list)
    files: list[ObjectFile] = field(default_factory=list)
    is_truncated: bool = False
    next_continuation_token: Optional[str] = None

    @property
    def item_count(self) -> int:
        return len(self.folders) + len(self.files)

    @property
    def is_empty(self) -> bool:
        return not self.folders and not self.files

    def to_dict(self) -> dict[str, Any]:
        return {
            "bucket": self.bucket,
            "prefix": self.prefix,
            "folders": list(self.folders),
            "files": [item.to_dict() for item in self.files],
            "isTruncated": self.is_truncated,
            "nextContinuationToken": self.next_continuation_token,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ListingPage":
        return cls(
            bucket=str(data.get("bucket", "")),
            prefix=str(data.get("prefix") or ""),
            folders=[str(folder) for folder in data.get("folders") or []],
            files=[ObjectFile.from_dict(item) for item in data.get("files") or []],
            is_truncated=bool(data.get("isTruncated")),
            next_continuation_token=data.get("nextContinuationToken") or None,
        )


@dataclass
class ConnectionResult:
    """Outcome of a connection test."""

    connected: bool
    message: str
    limited_permissions: bool = False

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"connected": self.connected, "message": self.message}
        if self.limited_permissions:
            payload["limitedPermissions"] = True
        return payload


@dataclass
class ObjectDownload:
    """An object body streamed from the store together with a filename hint."""

    bucket: str
    key: str
    filename: str
    body: Any
    content_type: Optional[str] = None
    content_length: Optional[int] = None

    def iter_chunks(self, chunk_size: int = 64 * 1024):
        """Yield the body in chunks without buffering it."""

        iter_chunks = getattr(self.body, "iter_chunks", None)
        if iter_chunks is not None:
            yield from iter_chunks(chunk_size)
            return
        while True:
            chunk = self.body.read(chunk_size)
            if not chunk:
                break
            yield chunk

    def close(self) -> None:
        close = getattr(self.body, "close", None)
        if close is not None:
            close()
