from __future__ import annotations
"""Hierarchical browsing over a flat, delimiter-based object listing.

The navigation model is split in two layers:

* pure functions that derive breadcrumbs, parent prefixes and display names,
  plus ``plan_*`` transitions that turn a :class:`NavigatorState` and a user
  action into the :class:`FetchRequest` to issue, and :func:`apply_page`
  which folds a successful page into a new state;
* :class:`ListingNavigator`, which owns the current state for one browsing
  session, tags every fetch with a sequence number, talks to the gateway and
  persists the resulting view for the active profile.

A failed fetch never changes the state. A page that arrives for a request
older than the latest one issued is dropped.
"""
from dataclasses import dataclass, field, replace
import logging
import threading
from typing import Callable, Optional

from .models import ListingPage
from .profiles import ConnectionProfile, ProfileStore
from .settings import DEFAULT_PAGE_SIZE, clamp_page_size

DELIMITER = "/"

LOGGER = logging.getLogger(__name__)


class NavigationError(RuntimeError):
    """Raised when an action is not valid in the current navigation state."""


@dataclass(frozen=True)
class PaginationCursor:
    """Continuation state of the page on screen."""

    token: Optional[str] = None
    is_continuation: bool = False


@dataclass(frozen=True)
class Breadcrumb:
    label: str
    prefix: str


@dataclass(frozen=True)
class FetchRequest:
    """A single listing call the navigator wants issued."""

    bucket: str
    prefix: str = ""
    continuation_token: Optional[str] = None
    sequence: int = 0


@dataclass(frozen=True)
class NavigatorState:
    """Current browsing position. No bucket means nothing has been opened."""

    bucket: str = ""
    prefix: str = ""
    page: Optional[ListingPage] = None
    cursor: PaginationCursor = field(default_factory=PaginationCursor)

    @property
    def is_open(self) -> bool:
        return bool(self.bucket)

    @property
    def can_load_next_page(self) -> bool:
        return self.is_open and self.cursor.token is not None

    @property
    def can_load_first_page(self) -> bool:
        return self.is_open and self.cursor.is_continuation


def _segments(prefix: str) -> list[str]:
    return [segment for segment in prefix.split(DELIMITER) if segment]


def parent_prefix(prefix: str) -> str:
    """Prefix one level above ``prefix``; the root is its own parent."""

    if not prefix:
        return ""
    segments = _segments(prefix[:-1] if prefix.endswith(DELIMITER) else prefix)
    if len(segments) <= 1:
        return ""
    return DELIMITER.join(segments[:-1]) + DELIMITER


def breadcrumbs(prefix: str, bucket: str = "") -> list[Breadcrumb]:
    """Clickable path segments for ``prefix``, starting with the bucket root.

    >>> [crumb.prefix for crumb in breadcrumbs("a/b/")]
    ['', 'a/', 'a/b/']
    """

    segments = _segments(prefix)
    crumbs = [Breadcrumb(label=bucket, prefix="")]
    for index, segment in enumerate(segments):
        target = DELIMITER.join(segments[: index + 1]) + DELIMITER
        crumbs.append(Breadcrumb(label=segment, prefix=target))
    return crumbs


def file_display_name(key: str, prefix: str) -> str:
    if prefix and key.startswith(prefix):
        return key[len(prefix):]
    return key


def folder_display_name(folder: str, prefix: str) -> str:
    """Last segment of ``folder`` below ``prefix``, e.g. ``"c"`` for ``a/b/c/``."""

    clean = folder[:-1] if folder.endswith(DELIMITER) else folder
    if prefix and clean.startswith(prefix):
        remainder = clean[len(prefix):]
    else:
        remainder = clean
    segments = _segments(remainder)
    return segments[-1] if segments else clean


def _require_open(state: NavigatorState) -> None:
    if not state.is_open:
        raise NavigationError("Open a bucket first.")


def plan_open_bucket(state: NavigatorState, name: str) -> FetchRequest:
    bucket = (name or "").strip()
    if not bucket:
        raise NavigationError("Enter a bucket name to open.")
    return FetchRequest(bucket=bucket, prefix="")


def plan_restore(state: NavigatorState, bucket: str, prefix: str = "") -> FetchRequest:
    """Reopen a remembered position; an unusable prefix falls back to the root."""

    request = plan_open_bucket(state, bucket)
    if prefix and not prefix.endswith(DELIMITER):
        prefix = ""
    return replace(request, prefix=prefix)


def plan_open_folder(state: NavigatorState, folder_prefix: str) -> FetchRequest:
    _require_open(state)
    return FetchRequest(bucket=state.bucket, prefix=folder_prefix)


def plan_up_one_level(state: NavigatorState) -> FetchRequest:
    _require_open(state)
    return FetchRequest(bucket=state.bucket, prefix=parent_prefix(state.prefix))


def plan_navigate_to_prefix(state: NavigatorState, prefix: str) -> FetchRequest:
    _require_open(state)
    return FetchRequest(bucket=state.bucket, prefix=prefix or "")


def plan_refresh(state: NavigatorState) -> FetchRequest:
    _require_open(state)
    return FetchRequest(bucket=state.bucket, prefix=state.prefix)


def plan_next_page(state: NavigatorState) -> FetchRequest:
    _require_open(state)
    if state.cursor.token is None:
        raise NavigationError("There is no next page.")
    return FetchRequest(bucket=state.bucket, prefix=state.prefix, continuation_token=state.cursor.token)


def plan_first_page(state: NavigatorState) -> FetchRequest:
    _require_open(state)
    if not state.cursor.is_continuation:
        raise NavigationError("Already on the first page.")
    return FetchRequest(bucket=state.bucket, prefix=state.prefix)


def apply_page(state: NavigatorState, request: FetchRequest, page: ListingPage) -> NavigatorState:
    """State after ``page`` arrived for ``request``; replaces the old page wholesale."""

    return NavigatorState(
        bucket=request.bucket,
        prefix=request.prefix,
        page=page,
        cursor=PaginationCursor(
            token=page.next_continuation_token or None,
            is_continuation=request.continuation_token is not None,
        ),
    )


Planner = Callable[..., FetchRequest]


class ListingNavigator:
    """Owns the browsing state of one profile session.

    The synchronous helpers (:meth:`open_bucket`, :meth:`open_folder`, ...)
    fetch and apply in one call. Callers that fetch on another thread use
    :meth:`prepare`, :meth:`fetch` and :meth:`complete` instead.
    """

    def __init__(
        self,
        gateway,
        profile: ConnectionProfile,
        *,
        profiles: ProfileStore | None = None,
        page_size: int = DEFAULT_PAGE_SIZE,
    ):
        self._gateway = gateway
        self._profile = profile
        self._profiles = profiles
        self._page_size = clamp_page_size(page_size)
        self._state = NavigatorState()
        self._sequence = 0
        self._lock = threading.Lock()
        self.manual_bucket_name = ""

    @property
    def state(self) -> NavigatorState:
        with self._lock:
            return self._state

    @property
    def profile(self) -> ConnectionProfile:
        return self._profile

    @property
    def page_size(self) -> int:
        return self._page_size

    def prepare(self, planner: Planner, *args) -> FetchRequest:
        """Plan a transition against the current state and tag it."""

        request = planner(self.state, *args)
        with self._lock:
            self._sequence += 1
            return replace(request, sequence=self._sequence)

    def close(self) -> None:
        """Invalidate every request issued so far; their pages are dropped."""

        with self._lock:
            self._sequence += 1

    def is_latest(self, request: FetchRequest) -> bool:
        with self._lock:
            return request.sequence == self._sequence

    def fetch(self, request: FetchRequest) -> ListingPage:
        return self._gateway.list_objects(
            self._profile,
            request.bucket,
            request.prefix,
            request.continuation_token,
            self._page_size,
        )

    def complete(self, request: FetchRequest, page: ListingPage) -> bool:
        """Apply ``page`` unless a newer request has been issued since."""

        with self._lock:
            if request.sequence != self._sequence:
                LOGGER.debug(
                    "Dropping stale listing #%d for s3://%s/%s (latest is #%d)",
                    request.sequence,
                    request.bucket,
                    request.prefix,
                    self._sequence,
                )
                return False
            self._state = apply_page(self._state, request, page)
            state = self._state
        self._persist(state)
        return True

    def run(self, planner: Planner, *args) -> NavigatorState:
        request = self.prepare(planner, *args)
        page = self.fetch(request)
        self.complete(request, page)
        return self.state

    def open_bucket(self, name: str) -> NavigatorState:
        self.manual_bucket_name = (name or "").strip()
        return self.run(plan_open_bucket, name)

    def restore(self, bucket: str, prefix: str = "") -> NavigatorState:
        return self.run(plan_restore, bucket, prefix)

    def open_folder(self, folder_prefix: str) -> NavigatorState:
        return self.run(plan_open_folder, folder_prefix)

    def up_one_level(self) -> NavigatorState:
        return self.run(plan_up_one_level)

    def navigate_to_prefix(self, prefix: str) -> NavigatorState:
        return self.run(plan_navigate_to_prefix, prefix)

    def refresh(self) -> NavigatorState:
        return self.run(plan_refresh)

    def load_next_page(self) -> NavigatorState:
        return self.run(plan_next_page)

    def load_first_page(self) -> NavigatorState:
        return self.run(plan_first_page)

    def breadcrumbs(self) -> list[Breadcrumb]:
        state = self.state
        return breadcrumbs(state.prefix, state.bucket)

    def _persist(self, state: NavigatorState) -> None:
        if self._profiles is None or not self._profile.id:
            return
        self._profiles.update_view(
            self._profile.id,
            bucket=state.bucket,
            prefix=state.prefix,
            manual_bucket_name=self.manual_bucket_name.strip() or state.bucket,
        )
