"""
Pytest configuration and fixtures for the collection tests
"""
import os
from datetime import datetime

import pytest
from flask import g, has_app_context
from flask.testing import FlaskClient

# SECURITY: create_app refuses to start without a key
os.environ.setdefault('SECRET_KEY', 'test_secret_key_for_collection_tests')

from app import create_app  # noqa: E402
from app import db as _db  # noqa: E402
from app.buisness.collections.notifications import InlineExecutor  # noqa: E402
from app.data.collections.collection_company import CollectionCompany  # noqa: E402
from app.data.collections.locality_schedule import LocalitySchedule  # noqa: E402
from app.data.core.user_info.user import User  # noqa: E402
from app.services.collections.collection_service import init_collection_service  # noqa: E402

# Wednesday
FIXED_NOW = datetime(2024, 1, 10, 9, 0)


class FixedClock:
    """Callable clock the tests can move"""

    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


class RecordingTransport:
    """Notifier that keeps every notification it is asked to send"""

    def __init__(self):
        self.sent = []

    def __call__(self, notification):
        self.sent.append(notification)
        return True


class CallerResolvingClient(FlaskClient):
    """
    Requests reuse the app context a test has pushed, so Flask-Login's cached
    user would leak from one request into the next. Each request resolves
    its caller from its own headers.
    """

    def open(self, *args, **kwargs):
        if has_app_context():
            g.pop('_login_user', None)
        return super().open(*args, **kwargs)


@pytest.fixture(scope='session')
def app():
    """Create Flask application for testing"""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'RATELIMIT_ENABLED': False,
        'NOTIFY_ASYNC': False,
        'NOTIFY_MAX_RETRIES': 1,
        'NOTIFY_MAX_DELAY': 0.0,
    })
    app.test_client_class = CallerResolvingClient
    return app


@pytest.fixture
def db(app):
    """Fresh app context and schema per test"""
    with app.app_context():
        _db.create_all()
        yield _db
        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def clock():
    return FixedClock(FIXED_NOW)


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def service(app, db, clock, transport):
    """Collection service wired with a fixed clock and inline notification delivery"""
    return init_collection_service(app, clock=clock, transport=transport, executor=InlineExecutor())


@pytest.fixture(scope='function')
def client(app, service):
    """Create Flask test client"""
    return app.test_client()


def _create_user(db, email, locality='Centro', role=User.ROLE_RESIDENT, name='Test Resident'):
    user = User(email=email, name=name, locality=locality, role=role, address='Calle 1 #2-3')
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture
def make_user(db):
    """Factory for extra users: make_user(email, locality=..., role=...)"""
    def factory(email, **kwargs):
        return _create_user(db, email, **kwargs)
    return factory


@pytest.fixture
def centro(db):
    schedule = LocalitySchedule(locality='Centro', weekday='MONDAY')
    db.session.add(schedule)
    db.session.commit()
    return schedule


@pytest.fixture
def resident(db, centro):
    return _create_user(db, 'ana@example.com')


@pytest.fixture
def admin(db):
    return _create_user(db, 'admin@example.com', locality=None, role=User.ROLE_ADMIN, name='Administrator')


@pytest.fixture
def company(db):
    company = CollectionCompany(name='EcoRecolectora')
    db.session.add(company)
    db.session.commit()
    return company


@pytest.fixture
def auth_headers():
    """Identity headers the upstream gateway would set for a user"""
    def headers(user):
        return {'X-Caller-Id': str(user.id)}
    return headers
