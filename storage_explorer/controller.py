from __future__ import annotations
"""Controller layer coordinating profiles, the gateway and navigation."""
from pathlib import Path

from .models import BucketInfo, ConnectionResult, ObjectDownload
from .navigator import ListingNavigator, NavigationError, NavigatorState
from .profiles import ConnectionProfile, ProfileStore, ViewState, new_profile_id
from .services import ObjectStoreGateway
from .settings import AppSettings
from .ui_utils import derive_profile_name
from .validation import validate_profile


class NoProfileSelectedError(RuntimeError):
    """Raised when a store operation is attempted before selecting a profile."""


class ExplorerController:
    """Coordinates user actions with the :class:`ObjectStoreGateway`."""

    def __init__(
        self,
        gateway: ObjectStoreGateway | None = None,
        profiles: ProfileStore | None = None,
        settings: AppSettings | None = None,
    ):
        self._gateway = gateway or ObjectStoreGateway()
        self._profiles = profiles or ProfileStore()
        self._settings = settings or AppSettings()
        self._buckets: list[BucketInfo] = []
        self._navigator: ListingNavigator | None = None
        if self._profiles.selected_profile is not None:
            self._navigator = self._build_navigator(self._profiles.selected_profile)

    @property
    def settings(self) -> AppSettings:
        return self._settings

    @property
    def selected_profile(self) -> ConnectionProfile | None:
        return self._profiles.selected_profile

    @property
    def buckets(self) -> list[BucketInfo]:
        return list(self._buckets)

    @property
    def navigator(self) -> ListingNavigator:
        if self._navigator is None:
            raise NoProfileSelectedError("Select a connection profile first")
        return self._navigator

    @property
    def state(self) -> NavigatorState:
        if self._navigator is None:
            return NavigatorState()
        return self._navigator.state

    def list_profiles(self) -> list[ConnectionProfile]:
        return self._profiles.list_profiles()

    def get_profile(self, profile_id: str) -> ConnectionProfile:
        return self._profiles.get_profile(profile_id)

    def build_profile(
        self,
        *,
        name: str = "",
        endpoint: str,
        access_key_id: str,
        secret_access_key: str,
        region: str = "",
        force_path_style: bool = True,
        profile_id: str | None = None,
    ) -> ConnectionProfile:
        """Create a validated profile; a blank name is derived from the endpoint."""

        profile = validate_profile(
            ConnectionProfile(
                id=profile_id or new_profile_id(),
                name=name.strip(),
                endpoint=endpoint,
                access_key_id=access_key_id,
                secret_access_key=secret_access_key,
                region=region or self._settings.default_region,
                force_path_style=force_path_style,
            )
        )
        if not profile.name:
            profile.name = derive_profile_name(profile.endpoint)
        return profile

    def save_profile(self, profile: ConnectionProfile) -> ConnectionProfile:
        """Persist ``profile`` and make it the selected one."""

        profile = validate_profile(profile)
        if not profile.id:
            profile.id = new_profile_id()
        if not profile.name:
            profile.name = derive_profile_name(profile.endpoint)
        self._profiles.save(profile)
        self.select_profile(profile.id)
        return profile

    def delete_profile(self, profile_id: str) -> None:
        self._profiles.get_profile(profile_id)
        was_selected = self._profiles.selected_profile_id == profile_id
        if was_selected:
            self._close_navigator()
            self._buckets = []
        self._profiles.delete(profile_id)

    def select_profile(self, profile_id: str | None) -> ViewState:
        """Switch profiles; returns the remembered view of the new selection."""

        self._profiles.select(profile_id)
        self._close_navigator()
        self._buckets = []
        profile = self._profiles.selected_profile
        self._navigator = self._build_navigator(profile) if profile is not None else None
        return self._profiles.get_view(profile_id)

    def current_view(self) -> ViewState:
        return self._profiles.get_view(self._profiles.selected_profile_id)

    def test_connection(self, profile: ConnectionProfile | None = None) -> ConnectionResult:
        target = profile or self._require_profile()
        return self._gateway.test_connection(target)

    def load_buckets(self) -> list[BucketInfo]:
        profile = self._require_profile()
        self._buckets = self._gateway.list_buckets(profile)
        return list(self._buckets)

    def set_manual_bucket_name(self, text: str) -> None:
        self.navigator.manual_bucket_name = text

    def restore_last_view(self) -> NavigatorState | None:
        """Reopen the remembered bucket and prefix of the selected profile."""

        if not self._settings.remember_last_view:
            return None
        view = self.current_view()
        navigator = self.navigator
        navigator.manual_bucket_name = view.manual_bucket_name or view.bucket
        if not view.bucket:
            return None
        return navigator.restore(view.bucket, view.prefix)

    def open_bucket(self, name: str) -> NavigatorState:
        return self.navigator.open_bucket(name)

    def open_folder(self, folder_prefix: str) -> NavigatorState:
        return self.navigator.open_folder(folder_prefix)

    def up_one_level(self) -> NavigatorState:
        return self.navigator.up_one_level()

    def navigate_to_prefix(self, prefix: str) -> NavigatorState:
        return self.navigator.navigate_to_prefix(prefix)

    def refresh(self) -> NavigatorState:
        return self.navigator.refresh()

    def load_next_page(self) -> NavigatorState:
        return self.navigator.load_next_page()

    def load_first_page(self) -> NavigatorState:
        return self.navigator.load_first_page()

    def download_object(self, key: str) -> ObjectDownload:
        """Open ``key`` from the bucket currently on screen."""

        navigator = self.navigator
        state = navigator.state
        if not state.is_open:
            raise NavigationError("Open a bucket first.")
        return self._gateway.download_object(navigator.profile, state.bucket, key)

    def save_download(self, key: str, destination: str | Path) -> Path:
        """Stream ``key`` into ``destination`` (a directory or a file path)."""

        download = self.download_object(key)
        target = Path(destination)
        if target.is_dir():
            target = target / download.filename
        try:
            with target.open("wb") as handle:
                for chunk in download.iter_chunks():
                    handle.write(chunk)
        finally:
            download.close()
        return target

    def _require_profile(self) -> ConnectionProfile:
        profile = self._profiles.selected_profile
        if profile is None:
            raise NoProfileSelectedError("Select a connection profile first")
        return profile

    def _close_navigator(self) -> None:
        if self._navigator is not None:
            self._navigator.close()
            self._navigator = None

    def _build_navigator(self, profile: ConnectionProfile) -> ListingNavigator:
        return ListingNavigator(
            self._gateway,
            profile,
            profiles=self._profiles,
            page_size=self._settings.page_size,
        )
