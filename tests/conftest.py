"""
Pytest fixtures for the ledger test suite.

Provides:
- an in-memory SQLite session per test (TestingConfig)
- a Flask app / logged-in test client on the same in-memory database
- small builders for students and CSV uploads
"""

import pytest

import db_single
from config import TestingConfig
from init_db import create_admin
from models import Student

TEST_ADMIN_EMAIL = 'tester@college.edu'
TEST_ADMIN_PASSWORD = 'secret-pass'


@pytest.fixture
def session():
    db_single.init_database(TestingConfig())
    db_single.create_tables()
    s = db_single.get_session()
    yield s
    s.close()
    db_single.drop_tables()


@pytest.fixture
def make_student(session):
    def _make(prn, name='Test Student', **fields):
        student = Student(prn=prn.upper(), name=name, is_active=True, **fields)
        session.add(student)
        session.commit()
        return student
    return _make


def csv_bytes(*lines):
    return ('\n'.join(lines) + '\n').encode('utf-8')


@pytest.fixture
def no_email(monkeypatch):
    """Record receipt emails instead of sending them"""
    sent = []
    monkeypatch.setattr(
        'notification_email.send_payment_receipt_email_async',
        lambda student, entry: sent.append((student, entry))
    )
    return sent


@pytest.fixture
def app(tmp_path, no_email):
    from main import create_app

    app = create_app('testing')
    app.config['UPLOAD_FOLDER'] = str(tmp_path / 'uploads')
    yield app
    db_single.drop_tables()


@pytest.fixture
def db(app):
    s = db_single.get_session()
    yield s
    s.close()


@pytest.fixture
def client(app):
    s = db_single.get_session()
    try:
        create_admin(s, TEST_ADMIN_EMAIL, TEST_ADMIN_PASSWORD, 'Tester')
    finally:
        s.close()

    client = app.test_client()
    response = client.post('/api/auth/login', json={'email': TEST_ADMIN_EMAIL, 'password': TEST_ADMIN_PASSWORD})
    assert response.status_code == 200
    return client
