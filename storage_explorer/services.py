from __future__ import annotations
"""Gateway between navigation requests and an S3-compatible store."""
import logging
from typing import Callable, TypeVar

import boto3
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError, HTTPClientError
from botocore.exceptions import ConnectionError as BotoConnectionError

from .errors import UNKNOWN_ERROR, GatewayError, StoreError, TransportError, UnknownError
from .models import BucketInfo, ConnectionResult, ListingPage, ObjectDownload, ObjectFile, to_iso8601
from .profiles import ConnectionProfile
from .settings import DEFAULT_PAGE_SIZE, clamp_page_size
from .ui_utils import filename_from_content_disposition, filename_from_key
from .validation import require_bucket, require_key, validate_profile

LOGGER = logging.getLogger(__name__)

DELIMITER = "/"
ACCESS_DENIED_CODES = frozenset({"AccessDenied", "AccessDeniedException"})
CONNECTED_MESSAGE = "Connection successful."
LIMITED_MESSAGE = "Connected, but this key cannot list buckets. You can still browse known buckets."

T = TypeVar("T")


def normalize_error(exc: Exception) -> GatewayError:
    """Map any failure raised while talking to the store onto :class:`GatewayError`."""

    if isinstance(exc, GatewayError):
        return exc
    if isinstance(exc, ClientError):
        error = exc.response.get("Error", {}) if isinstance(exc.response, dict) else {}
        code = error.get("Code") or UNKNOWN_ERROR
        message = error.get("Message") or str(exc) or "S3 request failed."
        return StoreError(message, str(code))
    if isinstance(exc, (BotoConnectionError, HTTPClientError)):
        return TransportError(str(exc) or "Could not reach the object store.")
    if isinstance(exc, BotoCoreError):
        return UnknownError(str(exc))
    return UnknownError(str(exc) or "Unexpected error while talking to S3.")


def normalize_endpoint(endpoint: str) -> str:
    if "://" in endpoint:
        return endpoint
    return f"https://{endpoint}"


class ObjectStoreGateway:
    """Translates browsing requests into store calls and normalizes the answers."""

    def __init__(self, client_factory: Callable[..., object] | None = None):
        self._client_factory = client_factory or boto3.client

    def test_connection(self, profile: ConnectionProfile) -> ConnectionResult:
        """Check that the credentials work.

        An access-denied answer still counts as connected: the key is valid
        but may not list buckets, so browsing a known bucket can still work.
        """

        profile = validate_profile(profile)
        client = self._call(lambda: self._create_client(profile))
        try:
            client.list_buckets()
        except ClientError as exc:
            error = normalize_error(exc)
            if error.code in ACCESS_DENIED_CODES:
                LOGGER.debug("Connection to %s has limited permissions", profile.endpoint)
                return ConnectionResult(connected=True, limited_permissions=True, message=LIMITED_MESSAGE)
            raise error from exc
        except Exception as exc:
            raise normalize_error(exc) from exc
        return ConnectionResult(connected=True, message=CONNECTED_MESSAGE)

    def list_buckets(self, profile: ConnectionProfile) -> list[BucketInfo]:
        """Return the available buckets; entries without a name are skipped."""

        profile = validate_profile(profile)
        client = self._call(lambda: self._create_client(profile))
        response = self._call(client.list_buckets)
        buckets = []
        for entry in response.get("Buckets") or []:
            name = entry.get("Name") or ""
            if not name:
                continue
            buckets.append(BucketInfo(name=name, creation_date=to_iso8601(entry.get("CreationDate"))))
        return buckets

    def list_objects(
        self,
        profile: ConnectionProfile,
        bucket: str,
        prefix: str = "",
        continuation_token: str | None = None,
        max_keys: int = DEFAULT_PAGE_SIZE,
    ) -> ListingPage:
        """Return one delimiter-based page of ``bucket`` under ``prefix``.

        Folders and files keep the order the store returned them in. The
        directory marker object (key equal to ``prefix``) is left out.
        """

        profile = validate_profile(profile)
        bucket = require_bucket(bucket)
        prefix = prefix or ""
        params: dict[str, object] = {
            "Bucket": bucket,
            "Delimiter": DELIMITER,
            "MaxKeys": clamp_page_size(max_keys),
        }
        if prefix:
            params["Prefix"] = prefix
        if continuation_token:
            params["ContinuationToken"] = continuation_token

        client = self._call(lambda: self._create_client(profile))
        LOGGER.debug("Listing s3://%s/%s (continuation=%s)", bucket, prefix, bool(continuation_token))
        response = self._call(lambda: client.list_objects_v2(**params))

        folders = [
            entry["Prefix"]
            for entry in response.get("CommonPrefixes") or []
            if entry.get("Prefix")
        ]
        files = [
            ObjectFile(
                key=item["Key"],
                size=int(item.get("Size") or 0),
                last_modified=to_iso8601(item.get("LastModified")),
                etag=item.get("ETag"),
                storage_class=item.get("StorageClass"),
            )
            for item in response.get("Contents") or []
            if item.get("Key") and item["Key"] != prefix
        ]
        return ListingPage(
            bucket=bucket,
            prefix=prefix,
            folders=folders,
            files=files,
            is_truncated=bool(response.get("IsTruncated")),
            next_continuation_token=response.get("NextContinuationToken") or None,
        )

    def download_object(self, profile: ConnectionProfile, bucket: str, key: str) -> ObjectDownload:
        """Open ``key`` for streaming; the caller must consume or close the body."""

        profile = validate_profile(profile)
        bucket = require_bucket(bucket)
        key = require_key(key)
        client = self._call(lambda: self._create_client(profile))
        response = self._call(lambda: client.get_object(Bucket=bucket, Key=key))
        filename = filename_from_content_disposition(response.get("ContentDisposition")) or filename_from_key(key)
        return ObjectDownload(
            bucket=bucket,
            key=key,
            filename=filename,
            body=response["Body"],
            content_type=response.get("ContentType"),
            content_length=response.get("ContentLength"),
        )

    def _call(self, operation: Callable[[], T]) -> T:
        try:
            return operation()
        except Exception as exc:
            raise normalize_error(exc) from exc

    def _create_client(self, profile: ConnectionProfile):
        config = Config(
            signature_version="s3v4",
            s3={"addressing_style": "path" if profile.force_path_style else "auto"},
            retries={"total_max_attempts": 1},
        )
        return self._client_factory(
            "s3",
            endpoint_url=normalize_endpoint(profile.endpoint),
            region_name=profile.region,
            aws_access_key_id=profile.access_key_id,
            aws_secret_access_key=profile.secret_access_key,
            config=config,
        )
