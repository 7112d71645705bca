"""
Watchlist Manager Service - Main Entry Point

CLI interface for watching wiki pages and managing change notifications.
Each invocation is one request: a fresh manager is built, the command runs,
then deferred updates are drained.
"""

import argparse
import sys
import uuid
import logging
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from shared.database.connection import get_db, init_db
from shared.configs.config import get_settings
from shared.configs.loader import load_watchlist_manager_config
from shared.configs.models import WatchlistServiceConfig
from shared.monitoring.structured_logger import StructuredLogger, setup_service_logger
from shared.utilities.date_utils import to_timestamp
from services.watchlist_manager.deferred import DeferredUpdateQueue
from services.watchlist_manager.entities import PageIdentity
from services.watchlist_manager.namespaces import NS_USER_TALK
from services.watchlist_manager.revision_lookup import SqlRevisionLookup
from services.watchlist_manager.talk_page_notifications import SqlTalkPageNotificationManager
from services.watchlist_manager.users import SqlUserFactory
from services.watchlist_manager.watched_item_store import SqlWatchedItemStore
from services.watchlist_manager.wiring import build_watchlist_manager
from tabulate import tabulate

logger = logging.getLogger(__name__)


def format_notification(timestamp) -> str:
    """Describe a notification timestamp for humans."""
    if timestamp is False:
        return 'not watched'
    if timestamp is None:
        return 'seen'
    return f'changed since {timestamp}'


def cmd_watch(args, manager, performer, db):
    """Watch a page and its talk page."""
    page = PageIdentity.from_text(args.namespace, args.title)
    if not manager.is_watchable(page):
        print(f"\n✗ {page} can't be watched")
        return

    manager.add_watch(performer, page, expiry=args.expiry)
    if manager.is_watched(performer, page):
        suffix = f" until {args.expiry}" if args.expiry else ""
        print(f"\n✓ Watching {page}{suffix}")
    else:
        print(f"\n✗ Failed to watch {page}")


def cmd_unwatch(args, manager, performer, db):
    """Stop watching a page and its talk page."""
    page = PageIdentity.from_text(args.namespace, args.title)
    manager.remove_watch(performer, page)

    if manager.is_watched(performer, page):
        print(f"\n✗ Failed to unwatch {page}")
    else:
        print(f"\n✓ No longer watching {page}")


def cmd_status(args, manager, performer, db):
    """Show watch and notification state for a page."""
    page = PageIdentity.from_text(args.namespace, args.title)
    user = performer.get_user()

    rows = [
        ['Watchable', manager.is_watchable(page)],
        ['Watched', manager.is_watched(performer, page)],
        ['Temporarily watched', manager.is_temp_watched(performer, page)],
        ['Notification', format_notification(manager.get_title_notification_timestamp(user, page))],
    ]
    print(f"\n{page} for {user.name}")
    print(tabulate(rows, tablefmt='grid'))


def cmd_list(args, manager, performer, db):
    """List all watched pages."""
    store = SqlWatchedItemStore(db)
    items = store.get_watched_items_for_user(performer.get_user())

    if not items:
        print("\nNo pages on watchlist.")
        return

    headers = ['Namespace', 'Title', 'Notification', 'Expiry']
    rows = [
        [item.target.namespace, item.target.db_key,
         format_notification(item.notification_timestamp), item.expiry or '-']
        for item in items
    ]

    print(f"\n{'='*60}")
    print(f"WATCHLIST - {len(items)} pages")
    print(f"{'='*60}")
    print("\n" + tabulate(rows, headers=headers, tablefmt='grid'))


def cmd_clear(args, manager, performer, db):
    """Mark a page as seen."""
    page = PageIdentity.from_text(args.namespace, args.title)
    manager.clear_title_user_notifications(performer, page, old_rev_id=args.oldid)
    print(f"\n✓ Cleared notifications for {page}")


def cmd_clear_all(args, manager, performer, db):
    """Mark every watched page as seen."""
    manager.clear_all_user_notifications(performer)
    print("\n✓ Cleared all notifications")


def cmd_touch(args, manager, performer, db):
    """Record an edit to a page by the performing user."""
    page = PageIdentity.from_text(args.namespace, args.title)
    timestamp = to_timestamp()

    revision = SqlRevisionLookup(db).insert_revision(page, timestamp)
    notified = SqlWatchedItemStore(db).update_notification_timestamp(performer.get_user(), page, timestamp)

    # Edits to someone else's talk page give them new messages
    if page.namespace == NS_USER_TALK:
        owner = SqlUserFactory(db).new_from_name(page.db_key)
        if owner and owner.user_id != performer.get_user().user_id:
            SqlTalkPageNotificationManager(db).set_user_has_new_messages(owner, revision)

    print(f"\n✓ Saved revision {revision.rev_id} of {page}; notified {len(notified)} watcher(s)")


COMMANDS = {
    'watch': cmd_watch,
    'unwatch': cmd_unwatch,
    'status': cmd_status,
    'list': cmd_list,
    'clear': cmd_clear,
    'clear-all': cmd_clear_all,
    'touch': cmd_touch,
}


def add_page_arguments(parser):
    parser.add_argument('namespace', type=int, help='Namespace number (0 = main, 3 = user talk, ...)')
    parser.add_argument('title', help='Page title')


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Watchlist Manager - Watch wiki pages and track unseen changes'
    )

    parser.add_argument('--user', default='Example', help='User name (default: Example)')
    parser.add_argument('--config-dir', help='Load watchlist_manager.yaml from this directory')
    parser.add_argument('--database-url', help='Database URL (default: from settings)')

    subparsers = parser.add_subparsers(dest='command', help='Commands')

    subparsers.add_parser('init-db', help='Create database tables')

    watch_parser = subparsers.add_parser('watch', help='Watch a page and its talk page')
    add_page_arguments(watch_parser)
    watch_parser.add_argument('--expiry', help="Expiry such as '1 week', a timestamp or 'infinite'")

    add_page_arguments(subparsers.add_parser('unwatch', help='Stop watching a page'))
    add_page_arguments(subparsers.add_parser('status', help='Show watch state of a page'))

    subparsers.add_parser('list', help='List watched pages')

    clear_parser = subparsers.add_parser('clear', help='Mark a page as seen')
    add_page_arguments(clear_parser)
    clear_parser.add_argument('--oldid', type=int, default=0, help='Revision id that was viewed')

    subparsers.add_parser('clear-all', help='Mark all watched pages as seen')

    add_page_arguments(subparsers.add_parser('touch', help='Record an edit to a page'))

    return parser


def load_config(args) -> WatchlistServiceConfig:
    if args.config_dir:
        return load_watchlist_manager_config(args.config_dir)
    return WatchlistServiceConfig.from_settings(get_settings())


def main():
    """Main entry point for watchlist manager CLI."""
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    config = load_config(args)
    setup_service_logger(
        'watchlist_manager',
        level=config.logging.level,
        log_file=config.logging.file_path,
        json_format=config.logging.format == 'json',
        logger_name='services'
    )

    if args.command == 'init-db':
        init_db(args.database_url)
        print("\n✓ Database tables created")
        return

    db = next(get_db(args.database_url))
    deferred_updates = DeferredUpdateQueue()

    try:
        user = SqlUserFactory(db).new_from_name(args.user, create=True)
        performer = SqlUserFactory(db).new_authority(user)
        StructuredLogger.set_context(request_id=uuid.uuid4().hex, user_id=str(user.user_id))

        manager = build_watchlist_manager(db, config, deferred_updates)
        COMMANDS[args.command](args, manager, performer, db)

        # Post-response work
        deferred_updates.do_updates()

    except Exception as e:
        logger.error(f"Error executing command: {str(e)}", exc_info=True)
        print(f"\n✗ Error: {str(e)}")
        sys.exit(1)

    finally:
        StructuredLogger.clear_context()
        db.close()


if __name__ == '__main__':
    main()
