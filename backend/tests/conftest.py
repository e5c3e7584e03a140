"""
Pytest fixtures for back-office core tests.

Provides an in-memory application, a per-test clean database, a
controllable clock and a test client with principal headers.
"""

from datetime import datetime, timedelta

import pytest

from backoffice import create_app
from backoffice.extensions import db


DEFAULT_NOW = datetime(2024, 3, 15, 9, 0, 0)


class FakeClock:
    """Callable clock whose current time the test controls."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set(self, now: datetime) -> None:
        self.now = now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'CLOCK': FakeClock(DEFAULT_NOW),
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def clock(app):
    """The app clock, reset to DEFAULT_NOW for each test."""
    fake = app.config['CLOCK']
    fake.set(DEFAULT_NOW)
    return fake


@pytest.fixture(scope='function')
def db_session(app, clock):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def client(app, db_session):
    """Create test client."""
    return app.test_client()


def principal_headers(kind: str, ref: str, name: str | None = None) -> dict:
    headers = {'X-Principal-Kind': kind, 'X-Principal-Id': ref}
    if name:
        headers['X-Principal-Name'] = name
    return headers


@pytest.fixture
def admin_headers():
    return principal_headers('admin', 'admin-1', 'Ada Admin')


@pytest.fixture
def employee_headers():
    return principal_headers('employee', 'emp-1', 'Eve Employee')


@pytest.fixture
def client_headers():
    return principal_headers('client', 'client-1', 'Acme Ltd')


@pytest.fixture
def other_client_headers():
    return principal_headers('client', 'client-2', 'Beta Inc')
