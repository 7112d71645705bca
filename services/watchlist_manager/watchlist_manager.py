"""
Watchlist Manager for wiki pages.

This module mediates all access to per-(user, page) watch state:
- Watching and unwatching pages, always in subject/talk pairs
- Permanent and temporary watch queries
- Notification timestamps (unseen changes), memoized per manager instance
- Clearing notifications for one page or for all of a user's pages

Permission failures and read-only mode are silent no-ops. A manager is
built per request; its notification timestamp cache must not outlive it.
"""

import logging
from typing import Dict, Optional, Union

from shared.configs.models import WatchlistManagerOptions
from shared.monitoring.structured_logger import log_business_event

from .entities import (
    Authority, PageIdentity, PageReference, UserIdentity,
    RIGHT_EDIT_WATCHLIST, RIGHT_VIEW_WATCHLIST
)
from .interfaces import (
    DeferredUpdates, HookRunner, NamespacePolicy, ReadOnlyMode, RevisionLookup,
    TalkPageNotificationManager, UserFactory, WatchedItemStore, READ_LATEST
)
from .namespaces import NS_USER_TALK

logger = logging.getLogger(__name__)

# False: not watched (or no identity); None: watched, nothing unseen;
# str: watched, unseen changes since that timestamp
NotificationTimestamp = Union[str, bool, None]


class WatchlistManager:
    """
    Manages which users watch which pages and whether they have unseen changes.
    """

    def __init__(
        self,
        options: WatchlistManagerOptions,
        hook_runner: HookRunner,
        read_only_mode: ReadOnlyMode,
        revision_lookup: RevisionLookup,
        talk_page_notifications: TalkPageNotificationManager,
        watched_item_store: WatchedItemStore,
        user_factory: UserFactory,
        namespace_info: NamespacePolicy,
        deferred_updates: DeferredUpdates
    ):
        """
        Initialize the watchlist manager.

        Args:
            options: E-mail notification and updated-marker switches
            hook_runner: Runs the UserClearNewTalkNotification hook
            read_only_mode: Read-only flag checked before every write
            revision_lookup: Finds revisions following a seen one
            talk_page_notifications: "You have new messages" flags
            watched_item_store: Persistent watch state
            user_factory: Invalidates cached user data after watch changes
            namespace_info: Watchability and subject/talk pairing
            deferred_updates: Queue for post-response work
        """
        self.options = options
        self.hook_runner = hook_runner
        self.read_only_mode = read_only_mode
        self.revision_lookup = revision_lookup
        self.talk_page_notifications = talk_page_notifications
        self.watched_item_store = watched_item_store
        self.user_factory = user_factory
        self.namespace_info = namespace_info
        self.deferred_updates = deferred_updates

        # u<user id>-<namespace>:<db key> => timestamp, None or False
        self._notification_timestamp_cache: Dict[str, NotificationTimestamp] = {}

    # =========================================================================
    # Queries
    # =========================================================================

    def is_watchable(self, target: PageReference) -> bool:
        """
        Check whether a page can be watched at all.

        Args:
            target: Page to check

        Returns:
            False for non-watchable namespaces and for pages that can't exist
        """
        if not self.namespace_info.is_watchable(target.namespace):
            return False

        if isinstance(target, PageIdentity) and not target.can_exist():
            return False

        return True

    def is_watched_ignoring_rights(self, user: UserIdentity, target: PageIdentity) -> bool:
        """Check if the page is watched by the user, without checking rights."""
        if self.is_watchable(target):
            return self.watched_item_store.is_watched(user, target)
        return False

    def is_watched(self, performer: Authority, target: PageIdentity) -> bool:
        """
        Check if the page is watched by the performer.

        Returns False when the performer may not view their watchlist.
        """
        if performer.is_allowed(RIGHT_VIEW_WATCHLIST):
            return self.is_watched_ignoring_rights(performer.get_user(), target)
        logger.debug(f"User {performer.get_user().name} may not view their watchlist")
        return False

    def is_temp_watched_ignoring_rights(self, user: UserIdentity, target: PageIdentity) -> bool:
        """Check if the page is temporarily watched by the user, without checking rights."""
        if self.is_watchable(target):
            return self.watched_item_store.is_temp_watched(user, target)
        return False

    def is_temp_watched(self, performer: Authority, target: PageIdentity) -> bool:
        """
        Check if the page is temporarily watched by the performer.

        Returns False when the performer may not view their watchlist.
        """
        if performer.is_allowed(RIGHT_VIEW_WATCHLIST):
            return self.is_temp_watched_ignoring_rights(performer.get_user(), target)
        logger.debug(f"User {performer.get_user().name} may not view their watchlist")
        return False

    def get_title_notification_timestamp(
        self,
        user: UserIdentity,
        title: PageReference
    ) -> NotificationTimestamp:
        """
        Get the time the page changed since the user last saw it.

        Args:
            user: User whose watchlist is consulted
            title: Page to check

        Returns:
            Timestamp string, False if not watched, None if nothing is unseen
        """
        if not user.user_id:
            return False

        cache_key = f"u{user.user_id}-{title.namespace}:{title.db_key}"

        # None and False are cached answers too
        if cache_key in self._notification_timestamp_cache:
            return self._notification_timestamp_cache[cache_key]

        watched_item = self.watched_item_store.get_watched_item(user, title)
        if watched_item:
            timestamp = watched_item.notification_timestamp
        else:
            timestamp = False

        self._notification_timestamp_cache[cache_key] = timestamp
        return timestamp

    # =========================================================================
    # Watching
    # =========================================================================

    def add_watch_ignoring_rights(
        self,
        user: UserIdentity,
        target: PageIdentity,
        expiry: Optional[str] = None
    ) -> None:
        """
        Watch a page and its talk page.

        Args:
            user: User who watches
            target: Subject or talk page
            expiry: Optional expiry in any format the store accepts. None
                creates no expiry and leaves an existing one unchanged.
        """
        if not self._can_write("add watch") or not self._can_watch(target):
            return

        self.watched_item_store.add_watch(user, self.namespace_info.get_subject_page(target), expiry)
        if self.namespace_info.can_have_talk_page(target):
            self.watched_item_store.add_watch(user, self.namespace_info.get_talk_page(target), expiry)

        self.user_factory.invalidate_cache(user)
        log_business_event(
            logger, "watch_added",
            watcher=user.user_id, page=str(target), expiry=expiry
        )

    def add_watch(
        self,
        performer: Authority,
        target: PageIdentity,
        expiry: Optional[str] = None
    ) -> None:
        """Watch a page if the performer may edit their watchlist."""
        if performer.is_allowed(RIGHT_EDIT_WATCHLIST):
            self.add_watch_ignoring_rights(performer.get_user(), target, expiry)
        else:
            logger.debug(f"User {performer.get_user().name} may not edit their watchlist")

    def remove_watch_ignoring_rights(self, user: UserIdentity, target: PageIdentity) -> None:
        """Stop watching a page and its talk page."""
        if not self._can_write("remove watch") or not self._can_watch(target):
            return

        self.watched_item_store.remove_watch(user, self.namespace_info.get_subject_page(target))
        if self.namespace_info.can_have_talk_page(target):
            self.watched_item_store.remove_watch(user, self.namespace_info.get_talk_page(target))

        self.user_factory.invalidate_cache(user)
        log_business_event(logger, "watch_removed", watcher=user.user_id, page=str(target))

    def remove_watch(self, performer: Authority, target: PageIdentity) -> None:
        """Stop watching a page if the performer may edit their watchlist."""
        if performer.is_allowed(RIGHT_EDIT_WATCHLIST):
            self.remove_watch_ignoring_rights(performer.get_user(), target)
        else:
            logger.debug(f"User {performer.get_user().name} may not edit their watchlist")

    # =========================================================================
    # Notifications
    # =========================================================================

    def clear_all_user_notifications(self, performer: Authority) -> None:
        """
        Reset all of the performer's page-change notification timestamps.

        With e-mail notification on, the user is mailed again on the next
        change to any watched page. Does nothing without edit-watchlist.
        """
        if not self._can_write("clear all notifications"):
            return

        if not performer.is_allowed(RIGHT_EDIT_WATCHLIST):
            logger.debug(f"User {performer.get_user().name} may not edit their watchlist")
            return

        user = performer.get_user()

        if not self.options.tracks_notification_timestamps:
            self.talk_page_notifications.remove_user_has_new_messages(user)
            return

        if not user.user_id:
            return

        self.watched_item_store.reset_all_notification_timestamps_for_user(user)
        log_business_event(logger, "notifications_cleared", watcher=user.user_id)

    def clear_title_user_notifications(
        self,
        performer: Authority,
        title: PageIdentity,
        old_rev_id: int = 0
    ) -> None:
        """
        Clear the performer's notification timestamp for a page.

        Args:
            performer: User viewing the page
            title: Page being viewed
            old_rev_id: Revision being viewed; 0 means the latest one
        """
        if not self._can_write("clear page notification"):
            return

        if not performer.is_allowed(RIGHT_EDIT_WATCHLIST):
            logger.debug(f"User {performer.get_user().name} may not edit their watchlist")
            return

        user = performer.get_user()
        is_user_talk_page = (
            title.namespace == NS_USER_TALK and
            title.db_key == user.name.replace(' ', '_')
        )

        if is_user_talk_page:
            if not self.hook_runner.on_user_clear_new_talk_notification(user, old_rev_id):
                logger.debug(f"Clearing new talk notification for {user.name} cancelled by hook")
                return

            self.deferred_updates.add_callable_update(
                self._make_new_talk_clear_update(user, old_rev_id)
            )

        if not self.options.tracks_notification_timestamps:
            return

        if not user.is_registered():
            return

        # The user's own talk page always gets a fresh timestamp
        self.watched_item_store.reset_notification_timestamp(
            user, title, force=is_user_talk_page, old_rev_id=old_rev_id
        )
        log_business_event(
            logger, "page_notification_cleared",
            watcher=user.user_id, page=str(title), old_rev_id=old_rev_id
        )

    def _make_new_talk_clear_update(self, user: UserIdentity, old_rev_id: int):
        """
        Build the deferred update that clears the "new messages" flag.

        A revision saved after the viewed one re-arms the flag, anchored to
        the revision right after the viewed one.
        """
        talk_page_notifications = self.talk_page_notifications
        revision_lookup = self.revision_lookup

        def clear_new_talk_notification() -> None:
            if not talk_page_notifications.user_has_new_messages(user):
                return

            # Notifications stack up; drop them all
            talk_page_notifications.remove_user_has_new_messages(user)

            if not old_rev_id:
                return

            old_revision = revision_lookup.get_revision_by_id(old_rev_id, READ_LATEST)
            if not old_revision:
                return

            new_revision = revision_lookup.get_next_revision(old_revision)
            if new_revision:
                talk_page_notifications.set_user_has_new_messages(user, new_revision)

        return clear_new_talk_notification

    def _can_watch(self, target: PageReference) -> bool:
        if not self.is_watchable(target):
            logger.debug(f"Skipping watchlist change: {target} is not watchable")
            return False
        return True

    def _can_write(self, action: str) -> bool:
        if self.read_only_mode.is_read_only():
            logger.debug(f"Skipping {action}: {self.read_only_mode.get_reason()}")
            return False
        return True
