"""
Pytest configuration and fixtures for reminder engine tests.

Provides shared fixtures for:
- Test database sessions
- Store instances bound to the test database
- Sample data factories (rooms, reminders, push subscriptions)
"""

import os
import time as time_module
from datetime import time

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Set test environment variables before importing app modules
os.environ['DAYLOCK_DB_URL'] = 'sqlite:///:memory:'
os.environ['DAYLOCK_ENV'] = 'test'
os.environ.pop('VAPID_PUBLIC_KEY', None)
os.environ.pop('VAPID_PRIVATE_KEY', None)

from daylock.src.models import (
    Base,
    NotificationPreference,
    PushSubscription,
    Room,
    RoomReminder,
)
from daylock.src.schemas.reminders import PushEndpoint, ReminderConfig, RoomSchedule
from daylock.src.services.reminder_store import AsyncReminderStore, ReminderStore


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest.fixture(scope='function')
def test_db_engine():
    """Create an in-memory SQLite database engine for testing."""
    engine = create_engine(
        'sqlite:///:memory:',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )

    def _fk_pragma_on_connect(dbapi_con, con_record):
        dbapi_con.execute('pragma foreign_keys=ON')

    event.listen(engine, 'connect', _fk_pragma_on_connect)

    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(scope='function')
def test_session_factory(test_db_engine):
    """Session factory bound to the test engine."""
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=test_db_engine,
        expire_on_commit=False,
    )


@pytest.fixture(scope='function')
def test_db_session(test_session_factory):
    """Create a test database session."""
    session = test_session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def reminder_store(test_session_factory):
    """ReminderStore bound to the test database."""
    return ReminderStore(test_session_factory)


@pytest.fixture
def async_reminder_store(reminder_store):
    """AsyncReminderStore wrapping the test ReminderStore."""
    return AsyncReminderStore(reminder_store, timeout=5.0)


# ============================================================================
# Sample Data Factories
# ============================================================================

@pytest.fixture
def create_room(test_db_session):
    """Factory for creating rooms."""
    def _create(name='Morning Focus', emoji='🌅', time_start=time(9, 0), time_end=time(10, 0)):
        room = Room(name=name, emoji=emoji, time_start=time_start, time_end=time_end)
        test_db_session.add(room)
        test_db_session.commit()
        test_db_session.refresh(room)
        return room
    return _create


@pytest.fixture
def create_reminder(test_db_session):
    """Factory for creating room reminders."""
    def _create(room, user_id='user-1', minutes_before=15, enabled=True, timezone='UTC'):
        reminder = RoomReminder(
            user_id=user_id,
            room_id=room.id,
            minutes_before=minutes_before,
            enabled=enabled,
            timezone=timezone,
        )
        test_db_session.add(reminder)
        test_db_session.commit()
        test_db_session.refresh(reminder)
        return reminder
    return _create


@pytest.fixture
def create_subscription(test_db_session):
    """Factory for creating push subscriptions."""
    _counter = [0]

    def _create(user_id='user-1', endpoint=None, active=True):
        _counter[0] += 1
        sub = PushSubscription(
            user_id=user_id,
            endpoint=endpoint or f"https://push.example.com/sub/{_counter[0]}",
            p256dh_key="test-p256dh-key",
            auth_key="test-auth-key",
            active=active,
        )
        test_db_session.add(sub)
        test_db_session.commit()
        test_db_session.refresh(sub)
        return sub
    return _create


@pytest.fixture
def set_preference(test_db_session):
    """Factory for writing a user's room-opening notification preference."""
    def _set(user_id='user-1', room_opening=False):
        pref = NotificationPreference(user_id=user_id, room_opening=room_opening)
        test_db_session.add(pref)
        test_db_session.commit()
        return pref
    return _set


@pytest.fixture
def sample_room():
    """Factory for RoomSchedule values (no database)."""
    def _create(id=1, name='Morning Focus', emoji='🌅', time_start='09:00', time_end=None):
        return RoomSchedule(
            id=id, name=name, emoji=emoji, time_start=time_start, time_end=time_end
        )
    return _create


@pytest.fixture
def sample_reminder():
    """Factory for ReminderConfig values (no database)."""
    def _create(user_id='user-1', room_id=1, minutes_before=15, enabled=True, timezone='UTC'):
        return ReminderConfig(
            user_id=user_id,
            room_id=room_id,
            minutes_before=minutes_before,
            enabled=enabled,
            timezone=timezone,
        )
    return _create


@pytest.fixture
def sample_endpoint():
    """Factory for PushEndpoint values (no database)."""
    def _create(id=1, user_id='user-1', endpoint=None, active=True):
        return PushEndpoint(
            id=id,
            user_id=user_id,
            endpoint=endpoint or f"https://push.example.com/sub/{id}",
            p256dh_key="test-p256dh-key",
            auth_key="test-auth-key",
            active=active,
        )
    return _create


# ============================================================================
# Server Time Zone Fixtures
# ============================================================================

@pytest.fixture
def new_york_server_zone(monkeypatch):
    """Run the test with the process-local zone set to US Eastern time."""
    if not hasattr(time_module, 'tzset'):
        pytest.skip('time.tzset is not available on this platform')

    # POSIX rule for US Eastern; needs no system zone database
    monkeypatch.setenv('TZ', 'EST+05EDT,M3.2.0,M11.1.0')
    time_module.tzset()
    yield
    monkeypatch.undo()
    time_module.tzset()
