from __future__ import annotations
"""Request validation performed before any store call is attempted."""
from dataclasses import replace
from typing import Any

from .errors import INVALID_PROFILE, MISSING_BUCKET, MISSING_KEY, InvalidRequestError
from .profiles import DEFAULT_REGION, ConnectionProfile
from .settings import clamp_page_size

INVALID_PROFILE_MESSAGE = "Invalid profile. endpoint, accessKeyId, and secretAccessKey are required."


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def validate_profile(profile: ConnectionProfile | None) -> ConnectionProfile:
    """Return a whitespace-normalized copy of ``profile`` or raise."""

    if profile is None:
        raise InvalidRequestError(INVALID_PROFILE_MESSAGE, INVALID_PROFILE)
    endpoint = _text(profile.endpoint)
    access_key_id = _text(profile.access_key_id)
    secret_access_key = _text(profile.secret_access_key)
    if not endpoint or not access_key_id or not secret_access_key:
        raise InvalidRequestError(INVALID_PROFILE_MESSAGE, INVALID_PROFILE)
    return replace(
        profile,
        endpoint=endpoint,
        access_key_id=access_key_id,
        secret_access_key=secret_access_key,
        region=_text(profile.region) or DEFAULT_REGION,
    )


def parse_profile(value: Any) -> ConnectionProfile:
    """Build a profile from an RPC payload such as ``{"endpoint": ...}``."""

    if not isinstance(value, dict):
        raise InvalidRequestError(INVALID_PROFILE_MESSAGE, INVALID_PROFILE)
    profile = ConnectionProfile(
        id=_text(value.get("id")),
        name=_text(value.get("name")),
        endpoint=_text(value.get("endpoint")),
        access_key_id=_text(value.get("accessKeyId")),
        secret_access_key=_text(value.get("secretAccessKey")),
        region=_text(value.get("region")) or DEFAULT_REGION,
        force_path_style=value.get("forcePathStyle") is not False,
    )
    return validate_profile(profile)


def require_bucket(value: Any) -> str:
    bucket = _text(value)
    if not bucket:
        raise InvalidRequestError("Bucket is required.", MISSING_BUCKET)
    return bucket


def require_key(value: Any) -> str:
    key = _text(value)
    if not key:
        raise InvalidRequestError("Object key is required.", MISSING_KEY)
    return key


def parse_list_objects_input(body: Any) -> dict[str, Any]:
    """Validate a list-objects request body.

    Returns keyword arguments for :meth:`ObjectStoreGateway.list_objects`.
    """

    record = body if isinstance(body, dict) else {}
    profile = parse_profile(record.get("profile"))
    bucket = require_bucket(record.get("bucket"))
    prefix = record.get("prefix")
    token = record.get("continuationToken")
    # Only JSON numbers count; anything else means the default page size.
    max_keys = record.get("maxKeys")
    if not isinstance(max_keys, (int, float)):
        max_keys = None
    return {
        "profile": profile,
        "bucket": bucket,
        "prefix": prefix if isinstance(prefix, str) else "",
        "continuation_token": token if isinstance(token, str) and token else None,
        "max_keys": clamp_page_size(max_keys),
    }


def parse_download_input(body: Any) -> dict[str, Any]:
    record = body if isinstance(body, dict) else {}
    profile = parse_profile(record.get("profile"))
    bucket = require_bucket(record.get("bucket"))
    key = require_key(record.get("key"))
    return {"profile": profile, "bucket": bucket, "key": key}
