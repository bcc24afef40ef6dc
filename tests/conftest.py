import os

# app.py builds its Flask app at import time from the environment
os.environ['DATABASE_URL'] = 'sqlite://'
os.environ['SECRET_KEY'] = 'test-secret-key'
os.environ['INCOME_SCOPE'] = 'global'
os.environ.setdefault('LOG_LEVEL', 'WARNING')

import pytest

from app import app as flask_app
from ledger.auth import Identity, register_user
from models import db


@pytest.fixture
def app():
    flask_app.config.update(TESTING=True, INCOME_SCOPE='global')
    with flask_app.app_context():
        db.drop_all()
        db.create_all()
        yield flask_app
        db.session.remove()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def alice(app):
    register_user('alice', 'wonderland')
    return Identity('alice')


@pytest.fixture
def bob(app):
    register_user('bob', 'builder')
    return Identity('bob')


@pytest.fixture
def logged_in(client):
    resp = client.post('/register', data={'username': 'alice', 'password': 'wonderland'})
    assert resp.status_code == 307
    return client
