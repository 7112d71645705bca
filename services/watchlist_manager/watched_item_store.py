"""
SQL-backed watched item store.
"""

import logging
from typing import List, Optional, Union
from datetime import datetime

from sqlalchemy import and_, func, or_
from sqlalchemy.orm import Session

from shared.database.models import WatchedItemRecord, WatchlistExpiry
from shared.utilities.date_utils import normalize_expiry, to_timestamp
from shared.utilities.validators import validate_timestamp

from .entities import PageReference, UserIdentity, WatchedItem
from .interfaces import RevisionLookup, READ_LATEST

logger = logging.getLogger(__name__)


class InvalidExpiryError(ValueError):
    """Raised for watch expiries that can't be parsed."""
    pass


class SqlWatchedItemStore:
    """
    Stores watches in the ``watchlist`` and ``watchlist_expiry`` tables.

    Lapsed temporary watches are treated as not watched.
    """

    def __init__(self, db_session: Session, revision_lookup: Optional[RevisionLookup] = None):
        """
        Args:
            db_session: SQLAlchemy database session
            revision_lookup: Used to find the first unseen revision when
                resetting a notification timestamp for an old revision
        """
        self.db = db_session
        self.revision_lookup = revision_lookup

    def _find(self, user: UserIdentity, target: PageReference) -> Optional[WatchedItemRecord]:
        return self.db.query(WatchedItemRecord).filter(
            and_(
                WatchedItemRecord.wl_user == user.user_id,
                WatchedItemRecord.wl_namespace == target.namespace,
                WatchedItemRecord.wl_title == target.db_key
            )
        ).first()

    @staticmethod
    def _is_live(record: WatchedItemRecord, now: str) -> bool:
        return record.expiry is None or record.expiry.we_expiry > now

    def _to_watched_item(self, user: UserIdentity, record: WatchedItemRecord) -> WatchedItem:
        return WatchedItem(
            user=user,
            target=PageReference(record.wl_namespace, record.wl_title),
            notification_timestamp=record.wl_notificationtimestamp,
            expiry=record.expiry.we_expiry if record.expiry else None
        )

    # =========================================================================
    # Queries
    # =========================================================================

    def get_watched_item(self, user: UserIdentity, target: PageReference) -> Optional[WatchedItem]:
        """
        Get the user's watch of a page.

        Returns:
            WatchedItem, or None for anonymous users, unwatched pages and
            lapsed temporary watches
        """
        if not user.is_registered():
            return None

        record = self._find(user, target)
        if record is None or not self._is_live(record, to_timestamp()):
            return None
        return self._to_watched_item(user, record)

    def is_watched(self, user: UserIdentity, target: PageReference) -> bool:
        return self.get_watched_item(user, target) is not None

    def is_temp_watched(self, user: UserIdentity, target: PageReference) -> bool:
        item = self.get_watched_item(user, target)
        return item is not None and item.expiry is not None

    def get_watched_items_for_user(self, user: UserIdentity) -> List[WatchedItem]:
        """
        Get all live watches of a user, ordered by namespace and title.
        """
        if not user.is_registered():
            return []

        now = to_timestamp()
        records = self.db.query(WatchedItemRecord).outerjoin(WatchlistExpiry).filter(
            and_(
                WatchedItemRecord.wl_user == user.user_id,
                or_(WatchlistExpiry.we_expiry.is_(None), WatchlistExpiry.we_expiry > now)
            )
        ).order_by(WatchedItemRecord.wl_namespace, WatchedItemRecord.wl_title).all()

        return [self._to_watched_item(user, record) for record in records]

    def count_watched_items(self, user: UserIdentity) -> int:
        """Count a user's live watches."""
        if not user.is_registered():
            return 0

        now = to_timestamp()
        return self.db.query(func.count(WatchedItemRecord.wl_id)).select_from(WatchedItemRecord).outerjoin(WatchlistExpiry).filter(
            and_(
                WatchedItemRecord.wl_user == user.user_id,
                or_(WatchlistExpiry.we_expiry.is_(None), WatchlistExpiry.we_expiry > now)
            )
        ).scalar()

    # =========================================================================
    # Writes
    # =========================================================================

    def add_watch(
        self,
        user: UserIdentity,
        target: PageReference,
        expiry: Optional[Union[str, datetime]] = None
    ) -> None:
        """
        Watch a page.

        Args:
            user: Watching user (anonymous users are ignored)
            target: Page to watch
            expiry: None keeps any existing expiry, an infinity word such as
                'infinite' makes the watch permanent, anything else is a
                timestamp or relative duration

        Raises:
            InvalidExpiryError: If the expiry can't be parsed
        """
        if not user.is_registered():
            return

        new_expiry = None
        if expiry is not None:
            try:
                new_expiry = normalize_expiry(expiry)
            except ValueError as e:
                raise InvalidExpiryError(f"Invalid watch expiry {expiry!r}: {e}")

        record = self._find(user, target)
        if record is None:
            record = WatchedItemRecord(
                wl_user=user.user_id,
                wl_namespace=target.namespace,
                wl_title=target.db_key,
                wl_notificationtimestamp=None
            )
            self.db.add(record)
        elif not self._is_live(record, to_timestamp()):
            # A lapsed watch being renewed starts over, permanent unless told otherwise
            record.wl_notificationtimestamp = None
            if expiry is None:
                record.expiry = None

        if expiry is not None:
            if new_expiry is None:
                record.expiry = None
            elif record.expiry is None:
                record.expiry = WatchlistExpiry(we_expiry=new_expiry)
            else:
                record.expiry.we_expiry = new_expiry

        self.db.commit()
        logger.debug(f"User {user.user_id} watches {target} (expiry: {new_expiry})")

    def remove_watch(self, user: UserIdentity, target: PageReference) -> bool:
        """
        Stop watching a page.

        Returns:
            True if a watch was removed
        """
        if not user.is_registered():
            return False

        record = self._find(user, target)
        if record is None:
            return False

        self.db.delete(record)
        self.db.commit()
        logger.debug(f"User {user.user_id} no longer watches {target}")
        return True

    def update_notification_timestamp(
        self,
        editor: UserIdentity,
        target: PageReference,
        timestamp: str
    ) -> List[int]:
        """
        Record an edit for everyone watching the page except the editor.

        Only watchers without pending notifications are updated, so their
        timestamp keeps pointing at the oldest unseen change.

        Returns:
            Ids of the users whose timestamp was set
        """
        if not validate_timestamp(timestamp):
            raise ValueError(f"Invalid edit timestamp: {timestamp!r}")

        now = to_timestamp()
        records = self.db.query(WatchedItemRecord).outerjoin(WatchlistExpiry).filter(
            and_(
                WatchedItemRecord.wl_namespace == target.namespace,
                WatchedItemRecord.wl_title == target.db_key,
                WatchedItemRecord.wl_user != editor.user_id,
                WatchedItemRecord.wl_notificationtimestamp.is_(None),
                or_(WatchlistExpiry.we_expiry.is_(None), WatchlistExpiry.we_expiry > now)
            )
        ).all()

        for record in records:
            record.wl_notificationtimestamp = timestamp

        self.db.commit()
        return [record.wl_user for record in records]

    def reset_notification_timestamp(
        self,
        user: UserIdentity,
        target: PageReference,
        force: bool = False,
        old_rev_id: int = 0
    ) -> bool:
        """
        Mark a page as seen by the user.

        Args:
            user: User who viewed the page
            target: Viewed page
            force: Update even if the stored state says nothing is pending
            old_rev_id: Revision viewed; a later revision keeps the page
                marked as changed from that revision on

        Returns:
            False if there was nothing to reset, True otherwise
        """
        if not user.is_registered():
            return False

        record = self._find(user, target)
        if not force:
            if record is None or not self._is_live(record, to_timestamp()):
                return False
            if record.wl_notificationtimestamp is None:
                return False

        timestamp = None
        if old_rev_id and self.revision_lookup is not None:
            old_revision = self.revision_lookup.get_revision_by_id(old_rev_id, READ_LATEST)
            if old_revision:
                next_revision = self.revision_lookup.get_next_revision(old_revision)
                if next_revision:
                    timestamp = next_revision.timestamp

        if record is not None:
            record.wl_notificationtimestamp = timestamp
            self.db.commit()
        return True

    def reset_all_notification_timestamps_for_user(self, user: UserIdentity) -> None:
        """Mark every page the user watches as seen."""
        if not user.is_registered():
            return

        updated = self.db.query(WatchedItemRecord).filter(
            and_(
                WatchedItemRecord.wl_user == user.user_id,
                WatchedItemRecord.wl_notificationtimestamp.isnot(None)
            )
        ).update({WatchedItemRecord.wl_notificationtimestamp: None}, synchronize_session=False)

        self.db.commit()
        logger.debug(f"Reset {updated} notification timestamp(s) for user {user.user_id}")
