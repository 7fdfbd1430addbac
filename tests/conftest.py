from datetime import datetime, timedelta, timezone

import pytest

from card_control.errors import BackendError
from card_control.firebase import FirebaseClient
from card_control.models import Session
from card_control.session_store import SessionStore

DB_URL = "https://test-db.firebaseio.com"
API_KEY = "test-key"
FIXED_NOW = datetime(2024, 6, 19, 12, 30, tzinfo=timezone.utc)


class FakeFirebase:
    """In-memory stand-in for FirebaseClient that records every call."""

    def __init__(self):
        self.rows = {}
        self.calls = []
        self.failing = set()
        self.tokens = []
        self.token_lifetime = None
        self.now = FIXED_NOW
        self._next_key = 0

    def _expires_at(self):
        return self.now + self.token_lifetime if self.token_lifetime else None

    def _call(self, name, session=None):
        self.calls.append(name)
        if session is not None:
            self.tokens.append(session.id_token)
        if name in self.failing:
            raise BackendError(f"{name} failed")

    def sign_in(self, email, password):
        self._call("sign_in")
        return Session(
            uid="user-1", email=email, id_token="id-tok", refresh_token="ref-tok", expires_at=self._expires_at()
        )

    def sign_up(self, email, password):
        self._call("sign_up")
        return Session(uid="user-2", email=email, id_token="new-id", refresh_token="new-ref")

    def send_email_verification(self, session):
        self._call("send_email_verification")

    def refresh(self, session):
        self._call("refresh")
        return Session(
            uid=session.uid,
            email=session.email,
            id_token="id-tok-2",
            refresh_token="ref-tok-2",
            expires_at=self._expires_at(),
        )

    def select_all(self, session, collection):
        self._call("select_all", session)
        return {key: dict(rec) for key, rec in self.rows.items()}

    def insert(self, session, collection, record):
        self._call("insert", session)
        self._next_key += 1
        key = f"-N{self._next_key:04d}"
        self.rows[key] = dict(record)
        return key

    def update(self, session, collection, key, changes):
        self._call("update", session)
        row = self.rows.setdefault(key, {})
        for field, value in changes.items():
            if value is None:
                row.pop(field, None)
            else:
                row[field] = value
        return {k: v for k, v in changes.items() if v is not None}

    def delete(self, session, collection, key):
        self._call("delete", session)
        self.rows.pop(key, None)

    @property
    def network_calls(self):
        return len(self.calls)


@pytest.fixture
def session():
    return Session(uid="user-1", email="ana@example.com", id_token="id-tok", refresh_token="ref-tok")


@pytest.fixture
def client():
    return FirebaseClient(database_url=DB_URL, api_key=API_KEY, timeout=5)


@pytest.fixture
def fake_backend():
    return FakeFirebase()


@pytest.fixture
def store():
    return SessionStore(secret="s3cret-passphrase")


@pytest.fixture
def clock():
    return lambda: FIXED_NOW
