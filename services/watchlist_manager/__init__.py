"""
Watchlist Manager Service

Tracks which users watch which wiki pages and whether they have unseen changes.
"""

from .entities import Authority, PageIdentity, PageReference, UserIdentity, WatchedItem
from .watchlist_manager import WatchlistManager
from .wiring import build_watchlist_manager

__all__ = [
    'Authority',
    'PageIdentity',
    'PageReference',
    'UserIdentity',
    'WatchedItem',
    'WatchlistManager',
    'build_watchlist_manager',
]
