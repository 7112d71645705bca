"""
Collaborator interfaces for the watchlist manager.

Storage, revisions, talk page flags, hooks and deferred work are owned by
other parts of the wiki. The manager only talks to them through these
protocols; SQL-backed and in-process implementations live next to this
module.
"""
from typing import Callable, Optional, Protocol

from .entities import PageReference, Revision, UserIdentity, WatchedItem

# Revision lookup consistency flags
READ_NORMAL = 0
READ_LATEST = 1


class WatchedItemStore(Protocol):
    """Persistent (user, page) watch state."""

    def is_watched(self, user: UserIdentity, target: PageReference) -> bool:
        ...

    def is_temp_watched(self, user: UserIdentity, target: PageReference) -> bool:
        ...

    def add_watch(self, user: UserIdentity, target: PageReference, expiry: Optional[str] = None) -> None:
        ...

    def remove_watch(self, user: UserIdentity, target: PageReference) -> bool:
        ...

    def get_watched_item(self, user: UserIdentity, target: PageReference) -> Optional[WatchedItem]:
        ...

    def reset_notification_timestamp(
        self,
        user: UserIdentity,
        target: PageReference,
        force: bool = False,
        old_rev_id: int = 0
    ) -> bool:
        ...

    def reset_all_notification_timestamps_for_user(self, user: UserIdentity) -> None:
        ...


class TalkPageNotificationManager(Protocol):
    """Tracks whether a user has unseen messages on their own talk page."""

    def user_has_new_messages(self, user: UserIdentity) -> bool:
        ...

    def set_user_has_new_messages(self, user: UserIdentity, revision: Optional[Revision] = None) -> None:
        ...

    def remove_user_has_new_messages(self, user: UserIdentity) -> None:
        ...


class RevisionLookup(Protocol):

    def get_revision_by_id(self, rev_id: int, flags: int = READ_NORMAL) -> Optional[Revision]:
        ...

    def get_next_revision(self, revision: Revision) -> Optional[Revision]:
        ...


class NamespacePolicy(Protocol):
    """Which namespaces are watchable and how subject/talk pages pair up."""

    def is_watchable(self, namespace: int) -> bool:
        ...

    def can_have_talk_page(self, target: PageReference) -> bool:
        ...

    def get_subject_page(self, target: PageReference) -> PageReference:
        ...

    def get_talk_page(self, target: PageReference) -> PageReference:
        ...


class ReadOnlyMode(Protocol):

    def is_read_only(self) -> bool:
        ...

    def get_reason(self) -> Optional[str]:
        ...


class HookRunner(Protocol):

    def on_user_clear_new_talk_notification(self, user: UserIdentity, old_rev_id: int) -> bool:
        """Return False to cancel clearing the new-talk notification."""
        ...


class DeferredUpdates(Protocol):
    """Queue of work that runs after the response has been sent."""

    def add_callable_update(self, callback: Callable[[], None]) -> None:
        ...


class UserFactory(Protocol):

    def invalidate_cache(self, user: UserIdentity) -> None:
        """Bump the user's "last touched" marker so cached views refresh."""
        ...
