"""
Pytest configuration and fixtures.
"""
import pytest
from unittest.mock import Mock
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from shared.configs.models import WatchlistManagerOptions
from shared.database.models import Base, User
from services.watchlist_manager.deferred import DeferredUpdateQueue
from services.watchlist_manager.entities import (
    Authority, PageIdentity, UserIdentity, RIGHT_EDIT_WATCHLIST, RIGHT_VIEW_WATCHLIST
)
from services.watchlist_manager.hooks import HookRunner
from services.watchlist_manager.interfaces import (
    RevisionLookup, TalkPageNotificationManager, UserFactory, WatchedItemStore
)
from services.watchlist_manager.namespaces import NamespaceInfo, NS_MAIN
from services.watchlist_manager.read_only_mode import ReadOnlyMode
from services.watchlist_manager.watchlist_manager import WatchlistManager


@pytest.fixture(scope="session")
def test_db_engine():
    """Create test database engine."""
    engine = create_engine("sqlite:///:memory:", echo=False)
    Base.metadata.create_all(bind=engine, checkfirst=True)
    yield engine
    Base.metadata.drop_all(bind=engine, checkfirst=True)


@pytest.fixture(scope="function")
def test_db_session(test_db_engine):
    """Create test database session."""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_db_engine)
    session = SessionLocal()
    yield session

    # Clean up all data after each test
    session.rollback()
    for table in reversed(Base.metadata.sorted_tables):
        session.execute(table.delete())
    session.commit()
    session.close()


@pytest.fixture
def registered_user(test_db_session):
    """Create a registered user in the database."""
    record = User(user_name='Alice Example', user_touched='20240101000000')
    test_db_session.add(record)
    test_db_session.commit()
    return UserIdentity(record.user_id, record.user_name)


@pytest.fixture
def other_user(test_db_session):
    """Create a second registered user in the database."""
    record = User(user_name='Bob', user_touched='20240101000000')
    test_db_session.add(record)
    test_db_session.commit()
    return UserIdentity(record.user_id, record.user_name)


# =============================================================================
# Manager with mocked collaborators
# =============================================================================

@pytest.fixture
def user():
    return UserIdentity(user_id=7, name='Alice Example')


@pytest.fixture
def anon_user():
    return UserIdentity.anonymous()


@pytest.fixture
def performer(user):
    """Performer holding both watchlist rights."""
    return Authority.with_rights(user, [RIGHT_VIEW_WATCHLIST, RIGHT_EDIT_WATCHLIST])


@pytest.fixture
def powerless_performer(user):
    """Performer holding no rights."""
    return Authority.with_rights(user, [])


@pytest.fixture
def article():
    return PageIdentity(NS_MAIN, 'Main_Page')


@pytest.fixture
def collaborators():
    """Mocked collaborators keyed by constructor argument name."""
    read_only_mode = ReadOnlyMode()
    hook_runner = Mock(spec=HookRunner)
    hook_runner.on_user_clear_new_talk_notification.return_value = True

    return {
        'options': WatchlistManagerOptions(enable_email_notification=False, show_updated_marker=True),
        'hook_runner': hook_runner,
        'read_only_mode': read_only_mode,
        'revision_lookup': Mock(spec=RevisionLookup),
        'talk_page_notifications': Mock(spec=TalkPageNotificationManager),
        'watched_item_store': Mock(spec=WatchedItemStore),
        'user_factory': Mock(spec=UserFactory),
        'namespace_info': NamespaceInfo(),
        'deferred_updates': DeferredUpdateQueue(),
    }


@pytest.fixture
def make_manager(collaborators):
    """Build a manager, overriding any collaborator by keyword."""
    def _make(**overrides):
        return WatchlistManager(**{**collaborators, **overrides})
    return _make


@pytest.fixture
def manager(make_manager):
    return make_manager()
