from __future__ import annotations
"""Connection profile models and persistence."""
from dataclasses import dataclass, fields, replace
import json
import logging
from typing import Any, Mapping
import uuid

import keyring
from keyring.errors import KeyringError

from .persistence import JsonFileStore, KeyValueStore

PROFILES_KEY = "storage-explorer:profiles:v1"
LAST_PROFILE_KEY = "storage-explorer:last-profile:v1"
PROFILE_VIEW_KEY = "storage-explorer:profile-view:v1"

DEFAULT_REGION = "us-east-1"

LOGGER = logging.getLogger(__name__)


def new_profile_id() -> str:
    return uuid.uuid4().hex


@dataclass
class ConnectionProfile:
    """Represents a saved connection to an S3-compatible endpoint."""

    id: str
    name: str
    endpoint: str
    access_key_id: str
    secret_access_key: str
    region: str = DEFAULT_REGION
    force_path_style: bool = True

    def to_dict(self, *, include_secret: bool = True) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "endpoint": self.endpoint,
            "region": self.region,
            "accessKeyId": self.access_key_id,
            "forcePathStyle": self.force_path_style,
        }
        if include_secret:
            data["secretAccessKey"] = self.secret_access_key
        return data


@dataclass
class ViewState:
    """Remembered browsing position for a single profile."""

    bucket: str = ""
    prefix: str = ""
    manual_bucket_name: str = ""

    def to_dict(self) -> dict[str, str]:
        return {
            "bucket": self.bucket,
            "prefix": self.prefix,
            "manualBucketName": self.manual_bucket_name,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ViewState":
        def _text(name: str) -> str:
            value = data.get(name)
            return value if isinstance(value, str) else ""

        return cls(
            bucket=_text("bucket"),
            prefix=_text("prefix"),
            manual_bucket_name=_text("manualBucketName"),
        )


VIEW_FIELDS = frozenset(item.name for item in fields(ViewState))


class ProfileNotFoundError(ValueError):
    """Raised when a profile id does not name a saved profile."""


class KeychainStore:
    """Encapsulates OS keychain access for secrets."""

    def __init__(self, service_name: str = "storage-explorer"):
        self._service_name = service_name

    def get_secret(self, profile_id: str) -> str:
        if not profile_id:
            return ""
        try:
            return keyring.get_password(self._service_name, profile_id) or ""
        except KeyringError:
            return ""

    def set_secret(self, profile_id: str, secret: str) -> bool:
        """Store ``secret``; returns ``False`` when no keychain is usable."""

        if not profile_id:
            return False
        if not secret:
            self.delete_secret(profile_id)
            return True
        try:
            keyring.set_password(self._service_name, profile_id, secret)
        except KeyringError:
            LOGGER.warning("Keychain unavailable, secret for profile '%s' stays in the state file", profile_id)
            return False
        return True

    def delete_secret(self, profile_id: str) -> None:
        if not profile_id:
            return
        try:
            keyring.delete_password(self._service_name, profile_id)
        except KeyringError:
            return


class ProfileStore:
    """Profiles, the last selected profile and per-profile view state.

    The three records live under separate keys of a :class:`KeyValueStore`.
    Secrets go to the OS keychain when one is available. Anything malformed
    in persisted data is dropped instead of raising.
    """

    def __init__(
        self,
        store: KeyValueStore | None = None,
        keychain: KeychainStore | None = None,
    ):
        self._store = store or JsonFileStore()
        self._keychain = keychain or KeychainStore()
        self._unreadable: list[dict[str, Any]] = []
        self._profiles: list[ConnectionProfile] = self._load_profiles()
        self._views: dict[str, ViewState] = self._load_views()
        self._selected_id: str | None = self._load_selected_id()

    @property
    def selected_profile_id(self) -> str | None:
        return self._selected_id

    @property
    def selected_profile(self) -> ConnectionProfile | None:
        if self._selected_id is None:
            return None
        return self.find_profile(self._selected_id)

    def list_profiles(self) -> list[ConnectionProfile]:
        return list(self._profiles)

    def find_profile(self, profile_id: str) -> ConnectionProfile | None:
        for profile in self._profiles:
            if profile.id == profile_id:
                return profile
        return None

    def get_profile(self, profile_id: str) -> ConnectionProfile:
        profile = self.find_profile(profile_id)
        if profile is None:
            raise ProfileNotFoundError(f"Profile '{profile_id}' does not exist")
        return profile

    def save(self, profile: ConnectionProfile) -> None:
        """Replace the profile with the same id in place, or prepend it."""

        for idx, existing in enumerate(self._profiles):
            if existing.id == profile.id:
                self._profiles[idx] = profile
                break
        else:
            self._profiles.insert(0, profile)
        self._persist_profiles()

    def delete(self, profile_id: str) -> None:
        self._profiles = [p for p in self._profiles if p.id != profile_id]
        self._unreadable = [entry for entry in self._unreadable if entry["id"] != profile_id]
        self._keychain.delete_secret(profile_id)
        self._persist_profiles()
        if self._views.pop(profile_id, None) is not None:
            self._persist_views()
        if self._selected_id == profile_id:
            self.select(None)

    def select(self, profile_id: str | None) -> None:
        if profile_id is not None and self.find_profile(profile_id) is None:
            raise ProfileNotFoundError(f"Profile '{profile_id}' does not exist")
        self._selected_id = profile_id
        if profile_id:
            self._store.set(LAST_PROFILE_KEY, profile_id)
        else:
            self._store.delete(LAST_PROFILE_KEY)

    def get_view(self, profile_id: str | None) -> ViewState:
        if not profile_id:
            return ViewState()
        return replace(self._views.get(profile_id, ViewState()))

    def update_view(
        self,
        profile_id: str,
        patch: Mapping[str, str] | None = None,
        **changes: str,
    ) -> ViewState:
        """Merge ``patch`` into the stored view; absent fields are kept.

        Views are only kept for saved profiles; other ids are ignored.
        """

        if self.find_profile(profile_id) is None:
            LOGGER.debug("Ignoring view update for unknown profile '%s'", profile_id)
            return ViewState()
        merged = dict(patch or {})
        merged.update(changes)
        updates = {name: value for name, value in merged.items() if name in VIEW_FIELDS}
        view = replace(self._views.get(profile_id, ViewState()), **updates)
        self._views[profile_id] = view
        self._persist_views()
        return replace(view)

    def _load_json(self, key: str) -> Any:
        raw = self._store.get(key)
        if not raw:
            return None
        try:
            return json.loads(raw)
        except (TypeError, ValueError):
            LOGGER.warning("Discarding malformed persisted value for '%s'", key)
            return None

    def _load_profiles(self) -> list[ConnectionProfile]:
        data = self._load_json(PROFILES_KEY)
        if not isinstance(data, list):
            return []

        profiles: list[ConnectionProfile] = []
        needs_rewrite = False
        for entry in data:
            if not isinstance(entry, dict):
                continue
            profile_id = entry.get("id")
            if not profile_id:
                profile_id = new_profile_id()
                needs_rewrite = True
            profile_id = str(profile_id)
            secret = entry.get("secretAccessKey")
            if isinstance(secret, str) and secret:
                needs_rewrite = self._keychain.set_secret(profile_id, secret) or needs_rewrite
            else:
                secret = self._keychain.get_secret(profile_id)
            profile = ConnectionProfile(
                id=profile_id,
                name=str(entry.get("name") or ""),
                endpoint=str(entry.get("endpoint") or ""),
                region=str(entry.get("region") or DEFAULT_REGION),
                access_key_id=str(entry.get("accessKeyId") or ""),
                secret_access_key=secret,
                force_path_style=entry.get("forcePathStyle") is not False,
            )
            if not (profile.endpoint and profile.access_key_id):
                continue
            if not profile.secret_access_key:
                # Secret not readable this session; write the record back untouched.
                LOGGER.warning("No secret available for profile '%s', hiding it for now", profile_id)
                self._unreadable.append(dict(entry, id=profile_id))
                continue
            profiles.append(profile)
        if needs_rewrite:
            self._write_profiles(profiles)
        return profiles

    def _load_views(self) -> dict[str, ViewState]:
        data = self._load_json(PROFILE_VIEW_KEY)
        if not isinstance(data, dict):
            return {}
        return {
            str(profile_id): ViewState.from_dict(value)
            for profile_id, value in data.items()
            if isinstance(value, dict)
        }

    def _load_selected_id(self) -> str | None:
        stored = self._store.get(LAST_PROFILE_KEY)
        if stored and self.find_profile(stored) is not None:
            return stored
        return self._profiles[0].id if self._profiles else None

    def _persist_profiles(self) -> None:
        for profile in self._profiles:
            self._keychain.set_secret(profile.id, profile.secret_access_key)
        self._write_profiles(self._profiles)

    def _write_profiles(self, profiles: list[ConnectionProfile]) -> None:
        data = []
        for profile in profiles:
            stored_in_keychain = self._keychain.get_secret(profile.id) == profile.secret_access_key
            data.append(profile.to_dict(include_secret=not stored_in_keychain))
        visible_ids = {profile.id for profile in profiles}
        data.extend(entry for entry in self._unreadable if entry["id"] not in visible_ids)
        self._store.set(PROFILES_KEY, json.dumps(data))

    def _persist_views(self) -> None:
        payload = {profile_id: view.to_dict() for profile_id, view in self._views.items()}
        self._store.set(PROFILE_VIEW_KEY, json.dumps(payload))
