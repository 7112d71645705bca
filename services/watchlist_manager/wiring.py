"""
Assembles a watchlist manager from the SQL-backed collaborators.
"""
from typing import Optional

from sqlalchemy.orm import Session

from shared.configs.models import WatchlistServiceConfig

from .deferred import DeferredUpdateQueue
from .hooks import HookContainer, HookRunner
from .namespaces import NamespaceInfo
from .read_only_mode import ReadOnlyMode
from .revision_lookup import SqlRevisionLookup
from .talk_page_notifications import SqlTalkPageNotificationManager
from .users import SqlUserFactory
from .watched_item_store import SqlWatchedItemStore
from .watchlist_manager import WatchlistManager


def build_watchlist_manager(
    db_session: Session,
    config: Optional[WatchlistServiceConfig] = None,
    deferred_updates: Optional[DeferredUpdateQueue] = None,
    hook_container: Optional[HookContainer] = None
) -> WatchlistManager:
    """
    Build a manager for one request.

    Args:
        db_session: SQLAlchemy database session for this request
        config: Service configuration (default: built-in defaults)
        deferred_updates: Queue the caller drains after responding
        hook_container: Hook handlers (default: none registered)

    Returns:
        A fresh WatchlistManager with an empty notification cache
    """
    config = config or WatchlistServiceConfig()
    revision_lookup = SqlRevisionLookup(db_session)

    return WatchlistManager(
        options=config.options,
        hook_runner=HookRunner(hook_container or HookContainer()),
        read_only_mode=ReadOnlyMode(config.read_only),
        revision_lookup=revision_lookup,
        talk_page_notifications=SqlTalkPageNotificationManager(db_session),
        watched_item_store=SqlWatchedItemStore(db_session, revision_lookup),
        user_factory=SqlUserFactory(db_session),
        namespace_info=NamespaceInfo(config.namespaces.non_watchable),
        deferred_updates=deferred_updates if deferred_updates is not None else DeferredUpdateQueue()
    )
