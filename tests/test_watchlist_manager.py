"""
Tests for Watchlist Manager functionality.
"""

import logging

import pytest
from unittest.mock import call

from shared.configs.models import ReadOnlyConfig, WatchlistManagerOptions
from services.watchlist_manager.entities import (
    Authority, PageIdentity, PageReference, Revision, UserIdentity, WatchedItem,
    RIGHT_EDIT_WATCHLIST, RIGHT_VIEW_WATCHLIST
)
from services.watchlist_manager.interfaces import READ_LATEST
from services.watchlist_manager.namespaces import (
    NamespaceInfo, NS_MAIN, NS_TALK, NS_PROJECT, NS_PROJECT_TALK, NS_SPECIAL, NS_USER_TALK
)
from services.watchlist_manager.read_only_mode import ReadOnlyMode


NO_NOTIFICATIONS = WatchlistManagerOptions(enable_email_notification=False, show_updated_marker=False)
EMAIL_ONLY = WatchlistManagerOptions(enable_email_notification=True, show_updated_marker=False)


@pytest.fixture
def read_only_manager(make_manager):
    return make_manager(read_only_mode=ReadOnlyMode(ReadOnlyConfig(enabled=True, reason='maintenance')))


@pytest.fixture
def own_talk_page(user):
    return PageIdentity(NS_USER_TALK, user.name.replace(' ', '_'))


class TestIsWatchable:
    """Test watchability checks."""

    def test_special_page_not_watchable(self, manager):
        """Virtual namespaces are never watchable."""
        assert manager.is_watchable(PageIdentity(NS_SPECIAL, 'Watchlist')) is False
        assert manager.is_watchable(PageReference(NS_SPECIAL, 'Watchlist')) is False

    def test_configured_namespace_not_watchable(self, make_manager):
        """Configured namespaces and their talk namespaces can't be watched."""
        manager = make_manager(namespace_info=NamespaceInfo(non_watchable=[NS_PROJECT]))

        assert manager.is_watchable(PageIdentity(NS_PROJECT, 'About')) is False
        assert manager.is_watchable(PageIdentity(NS_PROJECT_TALK, 'About')) is False
        assert manager.is_watchable(PageIdentity(NS_MAIN, 'About')) is True

    def test_page_that_cannot_exist(self, manager):
        """Pages that can't exist aren't watchable, plain references are."""
        assert manager.is_watchable(PageIdentity(NS_MAIN, '')) is False
        assert manager.is_watchable(PageReference(NS_MAIN, '')) is True

    def test_article_and_talk_page_watchable(self, manager):
        """Regular articles and talk pages are watchable."""
        assert manager.is_watchable(PageIdentity(NS_MAIN, 'Main_Page')) is True
        assert manager.is_watchable(PageIdentity(NS_TALK, 'Main_Page')) is True


class TestIsWatched:
    """Test watched-state queries."""

    def test_is_watched_ignoring_rights(self, manager, collaborators, user, article):
        """Delegates to the store."""
        store = collaborators['watched_item_store']
        store.is_watched.return_value = True

        assert manager.is_watched_ignoring_rights(user, article) is True
        store.is_watched.assert_called_once_with(user, article)

    def test_not_watchable_skips_store(self, manager, collaborators, user):
        """Non-watchable pages are never looked up."""
        store = collaborators['watched_item_store']

        assert manager.is_watched_ignoring_rights(user, PageIdentity(NS_SPECIAL, 'Watchlist')) is False
        assert manager.is_temp_watched_ignoring_rights(user, PageIdentity(NS_SPECIAL, 'Watchlist')) is False
        store.is_watched.assert_not_called()
        store.is_temp_watched.assert_not_called()

    def test_is_watched_with_right(self, manager, collaborators, performer, user, article):
        """Performers with view-watchlist see their watch state."""
        collaborators['watched_item_store'].is_watched.return_value = True

        assert manager.is_watched(performer, article) is True
        collaborators['watched_item_store'].is_watched.assert_called_once_with(user, article)

    def test_is_watched_without_right(self, manager, collaborators, user, article):
        """Without view-watchlist the answer is False and the store is untouched."""
        store = collaborators['watched_item_store']
        store.is_watched.return_value = True
        store.is_temp_watched.return_value = True
        performer = Authority.with_rights(user, [RIGHT_EDIT_WATCHLIST])

        assert manager.is_watched(performer, article) is False
        assert manager.is_temp_watched(performer, article) is False
        store.is_watched.assert_not_called()
        store.is_temp_watched.assert_not_called()

    def test_is_temp_watched(self, manager, collaborators, performer, user, article):
        """Temporary watch state is read from the store."""
        store = collaborators['watched_item_store']
        store.is_temp_watched.return_value = True

        assert manager.is_temp_watched(performer, article) is True
        assert manager.is_temp_watched_ignoring_rights(user, article) is True
        assert store.is_temp_watched.call_count == 2


class TestAddRemoveWatch:
    """Test watching and unwatching."""

    def test_add_watch_watches_subject_and_talk(self, manager, collaborators, user, article):
        """Watching an article also watches its talk page."""
        manager.add_watch_ignoring_rights(user, article)

        collaborators['watched_item_store'].add_watch.assert_has_calls([
            call(user, PageIdentity(NS_MAIN, 'Main_Page'), None),
            call(user, PageIdentity(NS_TALK, 'Main_Page'), None),
        ])
        collaborators['user_factory'].invalidate_cache.assert_called_once_with(user)

    def test_add_watch_from_talk_page(self, manager, collaborators, user):
        """Watching a talk page also watches its subject page."""
        manager.add_watch_ignoring_rights(user, PageIdentity(NS_TALK, 'Main_Page'), '20300101000000')

        collaborators['watched_item_store'].add_watch.assert_has_calls([
            call(user, PageIdentity(NS_MAIN, 'Main_Page'), '20300101000000'),
            call(user, PageIdentity(NS_TALK, 'Main_Page'), '20300101000000'),
        ])

    def test_add_watch_not_watchable(self, manager, collaborators, user):
        """Non-watchable pages are ignored."""
        manager.add_watch_ignoring_rights(user, PageIdentity(NS_SPECIAL, 'Watchlist'))

        collaborators['watched_item_store'].add_watch.assert_not_called()
        collaborators['user_factory'].invalidate_cache.assert_not_called()

    def test_add_watch_with_right(self, manager, collaborators, performer, user, article):
        """Performers with edit-watchlist can watch."""
        manager.add_watch(performer, article, expiry='1 week')

        assert collaborators['watched_item_store'].add_watch.call_count == 2
        collaborators['watched_item_store'].add_watch.assert_any_call(user, article, '1 week')

    def test_add_and_remove_without_right(self, manager, collaborators, user, article):
        """Without edit-watchlist nothing reaches the store."""
        performer = Authority.with_rights(user, [RIGHT_VIEW_WATCHLIST])

        manager.add_watch(performer, article)
        manager.remove_watch(performer, article)

        collaborators['watched_item_store'].add_watch.assert_not_called()
        collaborators['watched_item_store'].remove_watch.assert_not_called()
        collaborators['user_factory'].invalidate_cache.assert_not_called()

    def test_remove_watch_removes_subject_and_talk(self, manager, collaborators, performer, user, article):
        """Unwatching an article also unwatches its talk page."""
        manager.remove_watch(performer, article)

        collaborators['watched_item_store'].remove_watch.assert_has_calls([
            call(user, PageIdentity(NS_MAIN, 'Main_Page')),
            call(user, PageIdentity(NS_TALK, 'Main_Page')),
        ])
        collaborators['user_factory'].invalidate_cache.assert_called_once_with(user)


class TestNotificationTimestamp:
    """Test notification timestamp lookups."""

    def test_anonymous_user(self, manager, collaborators, anon_user, article):
        """Anonymous users have no watchlist."""
        assert manager.get_title_notification_timestamp(anon_user, article) is False
        collaborators['watched_item_store'].get_watched_item.assert_not_called()

    def test_unseen_change(self, manager, collaborators, user, article):
        """Watched pages with unseen changes return the timestamp."""
        collaborators['watched_item_store'].get_watched_item.return_value = WatchedItem(
            user, article, notification_timestamp='20240102030405'
        )

        assert manager.get_title_notification_timestamp(user, article) == '20240102030405'

    @pytest.mark.parametrize('watched_item,expected', [
        (None, False),
        (WatchedItem(UserIdentity(7, 'Alice Example'), PageReference(NS_MAIN, 'Main_Page')), None),
        (WatchedItem(UserIdentity(7, 'Alice Example'), PageReference(NS_MAIN, 'Main_Page'), '20240102030405'),
         '20240102030405'),
    ])
    def test_memoized(self, manager, collaborators, user, article, watched_item, expected):
        """The second lookup is served from the cache, including False and None."""
        store = collaborators['watched_item_store']
        store.get_watched_item.return_value = watched_item

        assert manager.get_title_notification_timestamp(user, article) == expected
        assert manager.get_title_notification_timestamp(user, article) == expected
        assert manager.get_title_notification_timestamp(user, article) is manager.get_title_notification_timestamp(user, article)
        store.get_watched_item.assert_called_once_with(user, article)

    def test_cache_is_per_user_and_page(self, manager, collaborators, user, article):
        """Different users and pages get separate cache entries."""
        store = collaborators['watched_item_store']
        store.get_watched_item.return_value = None

        manager.get_title_notification_timestamp(user, article)
        manager.get_title_notification_timestamp(UserIdentity(8, 'Bob'), article)
        manager.get_title_notification_timestamp(user, PageIdentity(NS_TALK, 'Main_Page'))

        assert store.get_watched_item.call_count == 3

    def test_cache_not_shared_between_managers(self, make_manager, collaborators, user, article):
        """A new manager starts with an empty cache."""
        store = collaborators['watched_item_store']
        store.get_watched_item.return_value = None

        make_manager().get_title_notification_timestamp(user, article)
        make_manager().get_title_notification_timestamp(user, article)

        assert store.get_watched_item.call_count == 2


class TestClearAllUserNotifications:
    """Test clearing all notifications."""

    def test_resets_all_timestamps(self, manager, collaborators, performer, user):
        """With notifications enabled the store resets everything."""
        manager.clear_all_user_notifications(performer)

        collaborators['watched_item_store'].reset_all_notification_timestamps_for_user.assert_called_once_with(user)
        collaborators['talk_page_notifications'].remove_user_has_new_messages.assert_not_called()

    def test_notifications_disabled(self, make_manager, collaborators, performer, user):
        """With both options off only the new-messages flag is cleared."""
        manager = make_manager(options=NO_NOTIFICATIONS)
        manager.clear_all_user_notifications(performer)

        collaborators['talk_page_notifications'].remove_user_has_new_messages.assert_called_once_with(user)
        collaborators['watched_item_store'].reset_all_notification_timestamps_for_user.assert_not_called()

    def test_email_notification_alone_enables_reset(self, make_manager, collaborators, performer, user):
        """E-mail notification on its own drives the store reset."""
        make_manager(options=EMAIL_ONLY).clear_all_user_notifications(performer)

        collaborators['watched_item_store'].reset_all_notification_timestamps_for_user.assert_called_once_with(user)

    def test_without_right(self, manager, collaborators, powerless_performer):
        """Without edit-watchlist nothing happens."""
        manager.clear_all_user_notifications(powerless_performer)

        collaborators['watched_item_store'].reset_all_notification_timestamps_for_user.assert_not_called()
        collaborators['talk_page_notifications'].remove_user_has_new_messages.assert_not_called()

    def test_anonymous_performer(self, manager, collaborators, anon_user):
        """Anonymous users have no timestamps to reset."""
        performer = Authority.with_rights(anon_user, [RIGHT_EDIT_WATCHLIST])
        manager.clear_all_user_notifications(performer)

        collaborators['watched_item_store'].reset_all_notification_timestamps_for_user.assert_not_called()


class TestClearTitleUserNotifications:
    """Test clearing notifications for a single page."""

    def test_regular_page(self, manager, collaborators, performer, user, article):
        """Other pages reset the timestamp without forcing it."""
        manager.clear_title_user_notifications(performer, article, old_rev_id=12)

        collaborators['watched_item_store'].reset_notification_timestamp.assert_called_once_with(
            user, article, force=False, old_rev_id=12
        )
        collaborators['hook_runner'].on_user_clear_new_talk_notification.assert_not_called()
        assert collaborators['deferred_updates'].pending_count() == 0

    def test_own_talk_page(self, manager, collaborators, performer, user, own_talk_page):
        """The user's own talk page forces the reset and queues a deferred clear."""
        manager.clear_title_user_notifications(performer, own_talk_page, old_rev_id=5)

        collaborators['hook_runner'].on_user_clear_new_talk_notification.assert_called_once_with(user, 5)
        collaborators['watched_item_store'].reset_notification_timestamp.assert_called_once_with(
            user, own_talk_page, force=True, old_rev_id=5
        )
        assert collaborators['deferred_updates'].pending_count() == 1
        # Deferred work doesn't run inline
        collaborators['talk_page_notifications'].user_has_new_messages.assert_not_called()

    def test_someone_elses_talk_page(self, manager, collaborators, performer, user):
        """Another user's talk page is treated like any other page."""
        page = PageIdentity(NS_USER_TALK, 'Bob')
        manager.clear_title_user_notifications(performer, page)

        collaborators['hook_runner'].on_user_clear_new_talk_notification.assert_not_called()
        collaborators['watched_item_store'].reset_notification_timestamp.assert_called_once_with(
            user, page, force=False, old_rev_id=0
        )

    def test_hook_cancels(self, manager, collaborators, performer, own_talk_page):
        """A cancelling hook aborts everything."""
        collaborators['hook_runner'].on_user_clear_new_talk_notification.return_value = False

        manager.clear_title_user_notifications(performer, own_talk_page, old_rev_id=5)

        assert collaborators['deferred_updates'].pending_count() == 0
        collaborators['watched_item_store'].reset_notification_timestamp.assert_not_called()

    def test_notifications_disabled(self, make_manager, collaborators, performer, own_talk_page):
        """With both options off the deferred clear is still queued but the store is untouched."""
        manager = make_manager(options=NO_NOTIFICATIONS)
        manager.clear_title_user_notifications(performer, own_talk_page)

        assert collaborators['deferred_updates'].pending_count() == 1
        collaborators['watched_item_store'].reset_notification_timestamp.assert_not_called()

    def test_without_right(self, manager, collaborators, powerless_performer, own_talk_page):
        """Without edit-watchlist nothing happens."""
        manager.clear_title_user_notifications(powerless_performer, own_talk_page)

        collaborators['hook_runner'].on_user_clear_new_talk_notification.assert_not_called()
        assert collaborators['deferred_updates'].pending_count() == 0
        collaborators['watched_item_store'].reset_notification_timestamp.assert_not_called()

    def test_anonymous_performer(self, manager, collaborators, anon_user, article):
        """Anonymous users never reach the store."""
        performer = Authority.with_rights(anon_user, [RIGHT_EDIT_WATCHLIST])
        manager.clear_title_user_notifications(performer, article)

        collaborators['watched_item_store'].reset_notification_timestamp.assert_not_called()


class TestDeferredNewTalkClear:
    """Test the deferred update that clears the new-messages flag."""

    @pytest.fixture
    def talk(self, collaborators):
        talk = collaborators['talk_page_notifications']
        talk.user_has_new_messages.return_value = True
        return talk

    def test_successor_rearms_flag(self, manager, collaborators, talk, performer, user, own_talk_page):
        """A newer revision than the viewed one re-sets the flag to that revision."""
        old_revision = Revision(5, own_talk_page, '20240101000000')
        new_revision = Revision(6, own_talk_page, '20240101010000')
        lookup = collaborators['revision_lookup']
        lookup.get_revision_by_id.return_value = old_revision
        lookup.get_next_revision.return_value = new_revision

        manager.clear_title_user_notifications(performer, own_talk_page, old_rev_id=5)
        assert collaborators['deferred_updates'].do_updates() == 1

        talk.remove_user_has_new_messages.assert_called_once_with(user)
        lookup.get_revision_by_id.assert_called_once_with(5, READ_LATEST)
        lookup.get_next_revision.assert_called_once_with(old_revision)
        talk.set_user_has_new_messages.assert_called_once_with(user, new_revision)

    def test_no_successor_leaves_flag_cleared(self, manager, collaborators, talk, performer, user, own_talk_page):
        """Without a newer revision the flag stays cleared."""
        lookup = collaborators['revision_lookup']
        lookup.get_revision_by_id.return_value = Revision(5, own_talk_page, '20240101000000')
        lookup.get_next_revision.return_value = None

        manager.clear_title_user_notifications(performer, own_talk_page, old_rev_id=5)
        collaborators['deferred_updates'].do_updates()

        talk.remove_user_has_new_messages.assert_called_once_with(user)
        talk.set_user_has_new_messages.assert_not_called()

    def test_unknown_old_revision(self, manager, collaborators, talk, performer, own_talk_page):
        """An unknown viewed revision just clears the flag."""
        lookup = collaborators['revision_lookup']
        lookup.get_revision_by_id.return_value = None

        manager.clear_title_user_notifications(performer, own_talk_page, old_rev_id=5)
        collaborators['deferred_updates'].do_updates()

        lookup.get_next_revision.assert_not_called()
        talk.set_user_has_new_messages.assert_not_called()

    def test_latest_revision_viewed(self, manager, collaborators, talk, performer, own_talk_page):
        """Viewing the latest revision skips the revision lookup."""
        manager.clear_title_user_notifications(performer, own_talk_page)
        collaborators['deferred_updates'].do_updates()

        talk.remove_user_has_new_messages.assert_called_once()
        collaborators['revision_lookup'].get_revision_by_id.assert_not_called()

    def test_no_new_messages(self, manager, collaborators, talk, performer, own_talk_page):
        """Nothing to clear when the flag isn't set."""
        talk.user_has_new_messages.return_value = False

        manager.clear_title_user_notifications(performer, own_talk_page, old_rev_id=5)
        collaborators['deferred_updates'].do_updates()

        talk.remove_user_has_new_messages.assert_not_called()
        collaborators['revision_lookup'].get_revision_by_id.assert_not_called()


class TestReadOnlyMode:
    """Test that read-only mode blocks every write."""

    def test_writes_are_no_ops(self, read_only_manager, collaborators, performer, user, article, own_talk_page):
        """All mutating operations leave every collaborator untouched."""
        read_only_manager.add_watch(performer, article)
        read_only_manager.add_watch_ignoring_rights(user, article)
        read_only_manager.remove_watch(performer, article)
        read_only_manager.remove_watch_ignoring_rights(user, article)
        read_only_manager.clear_all_user_notifications(performer)
        read_only_manager.clear_title_user_notifications(performer, own_talk_page, old_rev_id=5)

        assert collaborators['watched_item_store'].method_calls == []
        assert collaborators['talk_page_notifications'].method_calls == []
        assert collaborators['user_factory'].method_calls == []
        collaborators['hook_runner'].on_user_clear_new_talk_notification.assert_not_called()
        assert collaborators['deferred_updates'].pending_count() == 0

    def test_reads_still_work(self, read_only_manager, collaborators, performer, article):
        """Queries are unaffected by read-only mode."""
        collaborators['watched_item_store'].is_watched.return_value = True

        assert read_only_manager.is_watched(performer, article) is True


class TestLogging:
    """Test that skipped actions and notification clears are logged."""

    MANAGER_LOGGER = 'services.watchlist_manager.watchlist_manager'

    def test_view_denial_logged(self, manager, powerless_performer, article, caplog):
        """Denied watch queries leave a debug record."""
        caplog.set_level(logging.DEBUG, logger=self.MANAGER_LOGGER)

        assert manager.is_watched(powerless_performer, article) is False
        assert manager.is_temp_watched(powerless_performer, article) is False

        denials = [r for r in caplog.records if 'may not view their watchlist' in r.getMessage()]
        assert len(denials) == 2
        assert all(r.levelno == logging.DEBUG for r in denials)

    def test_unwatchable_change_logged(self, manager, collaborators, performer, caplog):
        """Watching or unwatching a special page is skipped with a debug record."""
        caplog.set_level(logging.DEBUG, logger=self.MANAGER_LOGGER)
        page = PageIdentity(NS_SPECIAL, 'Watchlist')

        manager.add_watch(performer, page)
        manager.remove_watch(performer, page)

        skipped = [r for r in caplog.records if 'is not watchable' in r.getMessage()]
        assert len(skipped) == 2
        collaborators['watched_item_store'].add_watch.assert_not_called()
        collaborators['watched_item_store'].remove_watch.assert_not_called()

    def test_page_clear_event(self, manager, performer, user, article, caplog):
        """Clearing a page's notification emits a business event."""
        caplog.set_level(logging.INFO, logger=self.MANAGER_LOGGER)

        manager.clear_title_user_notifications(performer, article, old_rev_id=12)

        events = [r for r in caplog.records if getattr(r, 'event_type', None) == 'page_notification_cleared']
        assert len(events) == 1
        assert events[0].watcher == user.user_id
        assert events[0].page == str(article)
        assert events[0].old_rev_id == 12
