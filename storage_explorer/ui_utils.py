from __future__ import annotations
"""UI-agnostic helpers for formatting and filename derivation."""
from dataclasses import dataclass
from datetime import datetime
from email.message import Message
from importlib.metadata import PackageNotFoundError, metadata, version
from urllib.parse import urlsplit

DIST_NAME = "storage-explorer"
DEFAULT_DOWNLOAD_NAME = "download"


@dataclass(frozen=True)
class PackageInfo:
    name: str
    version: str
    summary: str
    homepage: str | None
    repository: str | None
    author: str | None


def load_package_info(dist_name: str = DIST_NAME) -> PackageInfo:
    try:
        distribution_metadata = metadata(dist_name)
        package_version = version(dist_name)
    except PackageNotFoundError:
        return PackageInfo(
            name="Storage Explorer",
            version="",
            summary="Browse buckets and objects in S3-compatible storage.",
            homepage=None,
            repository=None,
            author=None,
        )
    summary = distribution_metadata.get("Summary") or ""
    author = distribution_metadata.get("Author") or distribution_metadata.get("Author-email")
    homepage = distribution_metadata.get("Home-page")
    repository = None
    for entry in distribution_metadata.get_all("Project-URL") or []:
        label, _, link = entry.partition(",")
        label = label.strip().lower()
        url = link.strip()
        if label == "repository":
            repository = url
        elif label == "homepage" and not homepage:
            homepage = url
    return PackageInfo(
        name=distribution_metadata.get("Name"),
        version=package_version,
        summary=summary,
        homepage=homepage or None,
        repository=repository,
        author=author or None,
    )


def format_size(size: int | None) -> str:
    if size is None:
        return "-"
    suffixes = ["B", "KB", "MB", "GB", "TB"]
    value = float(max(size, 0))
    for suffix in suffixes:
        if value < 1024 or suffix == suffixes[-1]:
            return f"{value:.1f} {suffix}" if suffix != "B" else f"{int(value)} {suffix}"
        value /= 1024
    return f"{size} B"


def format_last_modified(last_modified: object) -> str:
    if not last_modified:
        return "-"
    if isinstance(last_modified, str):
        try:
            last_modified = datetime.fromisoformat(last_modified)
        except ValueError:
            return last_modified
    try:
        return last_modified.strftime("%Y-%m-%d %H:%M:%S %Z").strip() or str(last_modified)
    except AttributeError:
        return str(last_modified)


def derive_profile_name(endpoint: str) -> str:
    """Name a profile after its endpoint host, e.g. ``minio.local:9000``."""

    cleaned = endpoint.strip()
    if not cleaned:
        return ""
    normalized = cleaned if cleaned.startswith("http") else f"https://{cleaned}"
    try:
        host = urlsplit(normalized).netloc
    except ValueError:
        return cleaned
    return host or cleaned


def filename_from_key(key: str) -> str:
    cleaned = key.strip().rstrip("/")
    if not cleaned:
        return DEFAULT_DOWNLOAD_NAME
    name = cleaned.rsplit("/", 1)[-1]
    return name or DEFAULT_DOWNLOAD_NAME


def filename_from_content_disposition(header: str | None) -> str | None:
    """Extract the filename from a Content-Disposition header.

    ``filename*`` (RFC 5987) wins over a plain ``filename``. Any directory
    part is dropped.
    """

    if not header:
        return None
    message = Message()
    message["Content-Disposition"] = header
    filename = message.get_filename()
    if not filename:
        return None
    name = filename.replace("\\", "/").rsplit("/", 1)[-1].strip()
    return name or None


def content_disposition(filename: str) -> str:
    """Build an attachment header that survives non-ASCII names."""

    try:
        filename.encode("ascii")
    except UnicodeEncodeError:
        message = Message()
        message.add_header("Content-Disposition", "attachment", filename=("utf-8", "", filename))
        return message["Content-Disposition"]
    escaped = filename.replace("\\", "\\\\").replace('"', '\\"')
    return f'attachment; filename="{escaped}"'
