"""
Value objects passed between the watchlist manager and its collaborators.
"""
from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, Optional

from shared.utilities.date_utils import to_timestamp
from shared.utilities.validators import normalize_title_key, validate_title_key, validate_user_id

# Rights checked by the watchlist manager
RIGHT_VIEW_WATCHLIST = "view-watchlist"
RIGHT_EDIT_WATCHLIST = "edit-watchlist"


@dataclass(frozen=True)
class UserIdentity:
    """A user, identified by id. An id of 0 means anonymous."""
    user_id: int
    name: str

    def is_registered(self) -> bool:
        return validate_user_id(self.user_id)

    @classmethod
    def anonymous(cls, name: str = "127.0.0.1") -> "UserIdentity":
        return cls(user_id=0, name=name)


@dataclass(frozen=True)
class Authority:
    """A performer: a user together with the rights granted to them."""
    user: UserIdentity
    rights: FrozenSet[str] = field(default_factory=frozenset)

    @classmethod
    def with_rights(cls, user: UserIdentity, rights: Iterable[str]) -> "Authority":
        return cls(user=user, rights=frozenset(rights))

    def get_user(self) -> UserIdentity:
        return self.user

    def is_allowed(self, right: str) -> bool:
        return right in self.rights


@dataclass(frozen=True)
class PageReference:
    """A (namespace, title key) pair that may or may not name a real page."""
    namespace: int
    db_key: str

    def __str__(self) -> str:
        return f"{self.namespace}:{self.db_key}"


@dataclass(frozen=True)
class PageIdentity(PageReference):
    """A page reference that knows whether it can exist as a real page."""

    @classmethod
    def from_text(cls, namespace: int, text: str) -> "PageIdentity":
        return cls(namespace=namespace, db_key=normalize_title_key(text))

    def can_exist(self) -> bool:
        # Special and media pages are virtual
        return self.namespace >= 0 and validate_title_key(self.db_key)


@dataclass
class WatchedItem:
    """
    A user's watch of a page.

    Attributes:
        user: The watching user
        target: The watched page
        notification_timestamp: Time of the oldest unseen change, or None
            if everything has been seen
        expiry: When a temporary watch lapses, or None for a permanent one
    """
    user: UserIdentity
    target: PageReference
    notification_timestamp: Optional[str] = None
    expiry: Optional[str] = None

    def is_expired(self, now: Optional[str] = None) -> bool:
        if self.expiry is None:
            return False
        return self.expiry <= (now or to_timestamp())


@dataclass(frozen=True)
class Revision:
    """A page revision as seen by the revision lookup."""
    rev_id: int
    page: PageReference
    timestamp: str
