"""
User lookup and cache invalidation.
"""

import logging
from datetime import timedelta
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from shared.database.models import User
from shared.utilities.date_utils import parse_timestamp, to_timestamp
from shared.utilities.validators import normalize_title_key

from .entities import Authority, UserIdentity, RIGHT_EDIT_WATCHLIST, RIGHT_VIEW_WATCHLIST

logger = logging.getLogger(__name__)

DEFAULT_RIGHTS = (RIGHT_VIEW_WATCHLIST, RIGHT_EDIT_WATCHLIST)


class SqlUserFactory:
    """Builds user identities from the ``user`` table."""

    def __init__(self, db_session: Session):
        self.db = db_session

    def new_from_id(self, user_id: int) -> Optional[UserIdentity]:
        record = self.db.get(User, user_id)
        return UserIdentity(record.user_id, record.user_name) if record else None

    def new_from_name(self, name: str, create: bool = False) -> Optional[UserIdentity]:
        """
        Look a user up by name.

        Args:
            name: User name; underscores are read as spaces and the first
                letter is upper-cased, as in page titles
            create: Register the user if they don't exist yet

        Returns:
            UserIdentity, or None if unknown and not created
        """
        name = normalize_title_key(name).replace('_', ' ')
        if not name:
            return None
        record = self.db.query(User).filter(User.user_name == name).first()
        if record is None:
            if not create:
                return None
            record = User(user_name=name, user_touched=to_timestamp())
            self.db.add(record)
            self.db.commit()
            logger.info(f"Registered user {name} (ID: {record.user_id})")
        return UserIdentity(record.user_id, record.user_name)

    def new_authority(
        self,
        user: UserIdentity,
        rights: Iterable[str] = DEFAULT_RIGHTS
    ) -> Authority:
        """Wrap a user as a performer holding the given rights."""
        return Authority.with_rights(user, rights)

    def get_touched(self, user: UserIdentity) -> Optional[str]:
        record = self.db.get(User, user.user_id) if user.is_registered() else None
        return record.user_touched if record else None

    def invalidate_cache(self, user: UserIdentity) -> None:
        """Bump user_touched so cached renderings of the user's pages refresh."""
        if not user.is_registered():
            return

        record = self.db.get(User, user.user_id)
        if record is None:
            return

        # Strictly increasing even within the same second
        touched = to_timestamp()
        if record.user_touched and touched <= record.user_touched:
            touched = to_timestamp(parse_timestamp(record.user_touched) + timedelta(seconds=1))
        record.user_touched = touched
        self.db.commit()
