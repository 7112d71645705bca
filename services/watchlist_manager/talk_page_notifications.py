"""
SQL-backed "you have new messages" flags.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from shared.database.models import UserNewTalk
from shared.utilities.date_utils import to_timestamp

from .entities import Revision, UserIdentity

logger = logging.getLogger(__name__)


class SqlTalkPageNotificationManager:
    """Keeps one ``user_newtalk`` row per user with unseen talk page messages."""

    def __init__(self, db_session: Session):
        self.db = db_session

    def user_has_new_messages(self, user: UserIdentity) -> bool:
        if not user.is_registered():
            return False
        return self.db.query(UserNewTalk).filter(UserNewTalk.user_id == user.user_id).first() is not None

    def get_latest_seen_message_timestamp(self, user: UserIdentity) -> Optional[str]:
        """
        Get the timestamp of the oldest unseen talk page revision.

        Returns:
            Timestamp string, or None if there are no new messages or the
            time is unknown
        """
        if not user.is_registered():
            return None
        row = self.db.query(UserNewTalk).filter(UserNewTalk.user_id == user.user_id).first()
        return row.user_last_timestamp if row else None

    def set_user_has_new_messages(self, user: UserIdentity, revision: Optional[Revision] = None) -> None:
        """
        Flag that the user has new messages.

        Args:
            user: User whose talk page changed
            revision: Oldest unseen revision (default: now)
        """
        if not user.is_registered():
            return

        timestamp = revision.timestamp if revision else to_timestamp()
        row = self.db.query(UserNewTalk).filter(UserNewTalk.user_id == user.user_id).first()
        if row is None:
            self.db.add(UserNewTalk(user_id=user.user_id, user_last_timestamp=timestamp))
        else:
            row.user_last_timestamp = timestamp
        self.db.commit()
        logger.debug(f"User {user.user_id} has new messages since {timestamp}")

    def remove_user_has_new_messages(self, user: UserIdentity) -> None:
        if not user.is_registered():
            return
        self.db.query(UserNewTalk).filter(UserNewTalk.user_id == user.user_id).delete(
            synchronize_session=False
        )
        self.db.commit()
