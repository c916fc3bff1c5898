from __future__ import annotations
"""View-agnostic presenter that wraps controller operations."""
from functools import partial
import logging
from pathlib import Path
import threading
from typing import Callable

from .controller import ExplorerController, NoProfileSelectedError
from .errors import GatewayError
from .models import BucketInfo, ConnectionResult
from .navigator import (
    FetchRequest,
    ListingNavigator,
    NavigationError,
    NavigatorState,
    Planner,
    plan_first_page,
    plan_navigate_to_prefix,
    plan_next_page,
    plan_open_bucket,
    plan_open_folder,
    plan_refresh,
    plan_restore,
    plan_up_one_level,
)
from .profiles import ConnectionProfile
from .ui_utils import PackageInfo, load_package_info


DispatchFn = Callable[[Callable[[], None]], None]
StateFn = Callable[[NavigatorState], None]
ErrorFn = Callable[[str], None]
DoneFn = Callable[[], None]

LOGGER = logging.getLogger(__name__)


def _format_error(exc: Exception) -> str:
    if isinstance(exc, GatewayError):
        return exc.message
    return str(exc)


class ExplorerPresenter:
    """Runs background operations and returns results via callbacks.

    Navigation fetches are tagged by the session's :class:`ListingNavigator`;
    when an older fetch finishes after a newer one was started, its result
    (page or error) is not delivered.
    """

    def __init__(
        self,
        *,
        controller: ExplorerController | None = None,
        dispatch: DispatchFn | None = None,
    ) -> None:
        self._controller = controller or ExplorerController()
        self._dispatch = dispatch or (lambda func: func())
        self._package_info = load_package_info()

    @property
    def controller(self) -> ExplorerController:
        return self._controller

    @property
    def package_info(self) -> PackageInfo:
        return self._package_info

    @property
    def state(self) -> NavigatorState:
        return self._controller.state

    def test_connection(
        self,
        *,
        profile: ConnectionProfile | None = None,
        on_success: Callable[[ConnectionResult], None],
        on_error: ErrorFn,
        on_done: DoneFn | None = None,
    ) -> None:
        LOGGER.debug("Testing connection")
        def task() -> None:
            try:
                result = self._controller.test_connection(profile)
            except (GatewayError, NoProfileSelectedError) as exc:
                LOGGER.warning("Connection test failed: %s", exc)
                self._dispatch(partial(on_error, _format_error(exc)))
            except Exception as exc:
                LOGGER.exception("Unexpected connection test error")
                self._dispatch(partial(on_error, _format_error(exc)))
            else:
                LOGGER.debug("Connection test passed (limited=%s)", result.limited_permissions)
                self._dispatch(lambda: on_success(result))
            finally:
                if on_done:
                    self._dispatch(on_done)

        threading.Thread(target=task, daemon=True).start()

    def load_buckets(
        self,
        *,
        on_success: Callable[[list[BucketInfo]], None],
        on_error: ErrorFn,
        on_done: DoneFn | None = None,
    ) -> None:
        LOGGER.debug("Loading buckets")
        def task() -> None:
            try:
                buckets = self._controller.load_buckets()
            except (GatewayError, NoProfileSelectedError) as exc:
                LOGGER.warning("Bucket listing failed: %s", exc)
                self._dispatch(partial(on_error, _format_error(exc)))
            except Exception as exc:
                LOGGER.exception("Unexpected bucket listing error")
                self._dispatch(partial(on_error, _format_error(exc)))
            else:
                LOGGER.debug("Loaded %d bucket(s)", len(buckets))
                self._dispatch(lambda: on_success(buckets))
            finally:
                if on_done:
                    self._dispatch(on_done)

        threading.Thread(target=task, daemon=True).start()

    def open_bucket(self, name: str, **callbacks) -> None:
        if self._controller.selected_profile is not None:
            self._controller.set_manual_bucket_name(name.strip())
        self._navigate(plan_open_bucket, name, **callbacks)

    def restore_last_view(self, **callbacks) -> bool:
        """Start reopening the remembered view; ``False`` when there is none."""

        if not self._controller.settings.remember_last_view:
            return False
        view = self._controller.current_view()
        if not view.bucket:
            return False
        self._controller.set_manual_bucket_name(view.manual_bucket_name or view.bucket)
        self._navigate(plan_restore, view.bucket, view.prefix, **callbacks)
        return True

    def open_folder(self, folder_prefix: str, **callbacks) -> None:
        self._navigate(plan_open_folder, folder_prefix, **callbacks)

    def up_one_level(self, **callbacks) -> None:
        self._navigate(plan_up_one_level, **callbacks)

    def navigate_to_prefix(self, prefix: str, **callbacks) -> None:
        self._navigate(plan_navigate_to_prefix, prefix, **callbacks)

    def refresh(self, **callbacks) -> None:
        self._navigate(plan_refresh, **callbacks)

    def load_next_page(self, **callbacks) -> None:
        self._navigate(plan_next_page, **callbacks)

    def load_first_page(self, **callbacks) -> None:
        self._navigate(plan_first_page, **callbacks)

    def download_object(
        self,
        *,
        key: str,
        destination: str | Path,
        on_success: Callable[[Path], None] | None = None,
        on_error: ErrorFn | None = None,
        on_done: DoneFn | None = None,
    ) -> None:
        LOGGER.debug("Downloading '%s'", key)
        def task() -> None:
            try:
                target = self._controller.save_download(key, destination)
            except (GatewayError, NavigationError, NoProfileSelectedError, OSError) as exc:
                LOGGER.warning("Download of '%s' failed: %s", key, exc)
                if on_error:
                    self._dispatch(partial(on_error, _format_error(exc)))
            except Exception as exc:
                LOGGER.exception("Unexpected download error for '%s'", key)
                if on_error:
                    self._dispatch(partial(on_error, _format_error(exc)))
            else:
                if on_success:
                    self._dispatch(lambda: on_success(target))
            finally:
                if on_done:
                    self._dispatch(on_done)

        threading.Thread(target=task, daemon=True).start()

    def _navigate(
        self,
        planner: Planner,
        *args,
        on_success: StateFn,
        on_error: ErrorFn,
        on_done: DoneFn | None = None,
    ) -> None:
        try:
            navigator = self._controller.navigator
            request = navigator.prepare(planner, *args)
        except (NavigationError, NoProfileSelectedError) as exc:
            self._dispatch(partial(on_error, _format_error(exc)))
            if on_done:
                self._dispatch(on_done)
            return

        LOGGER.debug(
            "Fetching #%d s3://%s/%s (continuation=%s)",
            request.sequence,
            request.bucket,
            request.prefix,
            request.continuation_token is not None,
        )
        threading.Thread(
            target=self._run_fetch,
            args=(navigator, request, on_success, on_error, on_done),
            daemon=True,
        ).start()

    def _run_fetch(
        self,
        navigator: ListingNavigator,
        request: FetchRequest,
        on_success: StateFn,
        on_error: ErrorFn,
        on_done: DoneFn | None,
    ) -> None:
        try:
            page = navigator.fetch(request)
        except GatewayError as exc:
            LOGGER.warning("Listing s3://%s/%s failed: %s (%s)", request.bucket, request.prefix, exc.message, exc.code)
            if navigator.is_latest(request):
                self._dispatch(partial(on_error, _format_error(exc)))
        except Exception as exc:
            LOGGER.exception("Unexpected listing error for bucket '%s'", request.bucket)
            if navigator.is_latest(request):
                self._dispatch(partial(on_error, _format_error(exc)))
        else:
            if navigator.complete(request, page):
                state = navigator.state
                LOGGER.debug("Listed %d item(s) from '%s'", page.item_count, request.bucket)
                self._dispatch(lambda: on_success(state))
        finally:
            if on_done:
                self._dispatch(on_done)
