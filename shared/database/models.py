"""
Database models for the wiki watchlist service.

Timestamps are stored as 14-digit UTC strings (YYYYMMDDHHMMSS).
"""
from sqlalchemy import Column, Integer, String, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


class User(Base):
    """Registered user model."""
    __tablename__ = "user"

    user_id = Column(Integer, primary_key=True, autoincrement=True)
    user_name = Column(String(255), unique=True, nullable=False, comment="Display name with spaces")
    user_touched = Column(String(14), nullable=False, comment="Bumped to invalidate cached user data")


class WatchedItemRecord(Base):
    """One (user, page) watch relationship."""
    __tablename__ = "watchlist"

    wl_id = Column(Integer, primary_key=True, autoincrement=True)
    wl_user = Column(Integer, ForeignKey("user.user_id", ondelete="CASCADE"), nullable=False)
    wl_namespace = Column(Integer, nullable=False, default=0)
    wl_title = Column(String(255), nullable=False, comment="Title key with underscores")
    wl_notificationtimestamp = Column(String(14), nullable=True, comment="Oldest unseen change, null when seen")

    expiry = relationship(
        "WatchlistExpiry",
        uselist=False,
        back_populates="item",
        cascade="all, delete-orphan"
    )

    __table_args__ = (
        UniqueConstraint('wl_user', 'wl_namespace', 'wl_title', name='uq_watchlist_user_page'),
        Index('ix_watchlist_page', 'wl_namespace', 'wl_title'),
        Index('ix_watchlist_user_notification', 'wl_user', 'wl_notificationtimestamp'),
    )


class WatchlistExpiry(Base):
    """Expiry of a temporary watch."""
    __tablename__ = "watchlist_expiry"

    we_item = Column(Integer, ForeignKey("watchlist.wl_id", ondelete="CASCADE"), primary_key=True)
    we_expiry = Column(String(14), nullable=False, index=True)

    item = relationship("WatchedItemRecord", back_populates="expiry")


class UserNewTalk(Base):
    """Flag telling a user they have unseen talk page messages."""
    __tablename__ = "user_newtalk"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("user.user_id", ondelete="CASCADE"), nullable=False, index=True)
    user_last_timestamp = Column(String(14), nullable=True, comment="Timestamp of the oldest unseen revision")


class Revision(Base):
    """Minimal revision index used to find the revision after a seen one."""
    __tablename__ = "revision"

    rev_id = Column(Integer, primary_key=True, autoincrement=True)
    rev_namespace = Column(Integer, nullable=False)
    rev_title = Column(String(255), nullable=False)
    rev_timestamp = Column(String(14), nullable=False)

    __table_args__ = (
        Index('ix_revision_page_id', 'rev_namespace', 'rev_title', 'rev_id'),
    )
