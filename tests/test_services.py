from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from card_control.errors import BackendError, SessionStoreError
from card_control.models import AuthEvent, SyncState, Transaction
from card_control.services import AuthService, TransactionService

from tests.conftest import FIXED_NOW


def make_transaction(**overrides):
    fields = dict(
        person_name="João Silva",
        transaction_date=date(2024, 6, 19),
        amount=Decimal("150.00"),
        signature="data:image/png;base64,AAAA",
    )
    fields.update(overrides)
    return Transaction(**fields)


@pytest.fixture
def transactions(fake_backend, clock):
    return TransactionService(client=fake_backend, clock=clock)


@pytest.fixture
def auth(fake_backend, store):
    return AuthService(client=fake_backend, store=store)


# ── TransactionService ────────────────────────────────────

def test_create_stamps_and_returns_backend_id(transactions, fake_backend, session):
    saved = transactions.create(session, make_transaction())

    assert saved.id == "-N0001"
    assert saved.created_at == FIXED_NOW
    assert saved.sync_state is SyncState.REMOTE
    stored = fake_backend.rows["-N0001"]
    assert stored["amount"] == "150.00"
    assert stored["created_at"] == FIXED_NOW.isoformat()
    assert "notes" not in stored
    assert fake_backend.calls == ["insert"]


def test_list_is_most_recent_first(transactions, fake_backend, session):
    for i, name in enumerate(["old", "newest", "middle"]):
        created = [datetime(2024, 1, 1), datetime(2024, 3, 1), datetime(2024, 2, 1)][i]
        fake_backend.rows[f"k{i}"] = make_transaction(
            person_name=name, created_at=created.replace(tzinfo=timezone.utc)
        ).to_record()

    names = [t.person_name for t in transactions.list(session)]

    assert names == ["newest", "middle", "old"]
    assert fake_backend.calls == ["select_all"]


def test_list_round_trips_notes(transactions, session):
    transactions.create(session, make_transaction(notes="  Emergência médica  "))
    transactions.create(session, make_transaction(person_name="Maria"))

    by_name = {t.person_name: t for t in transactions.list(session)}

    assert by_name["João Silva"].notes == "  Emergência médica  "
    assert by_name["Maria"].notes is None


def test_malformed_record_is_backend_error(transactions, fake_backend, session):
    fake_backend.rows["bad"] = {"person_name": "x"}

    with pytest.raises(BackendError, match="Malformed"):
        transactions.list(session)


def test_update_stamps_updated_at_and_clears_notes(transactions, fake_backend, session):
    saved = transactions.create(session, make_transaction(notes="antes"))

    updated = transactions.update(session, saved.id, make_transaction(amount=Decimal("200")))

    assert updated.updated_at == FIXED_NOW
    row = fake_backend.rows[saved.id]
    assert row["amount"] == "200"
    assert "notes" not in row
    assert row["created_at"] == FIXED_NOW.isoformat()


def test_delete_and_error_propagation(transactions, fake_backend, session):
    saved = transactions.create(session, make_transaction())
    transactions.delete(session, saved.id)
    assert fake_backend.rows == {}

    fake_backend.failing.add("delete")
    with pytest.raises(BackendError):
        transactions.delete(session, "whatever")


# ── AuthService ───────────────────────────────────────────

def test_sign_in_notifies_subscribers(auth):
    events = []
    auth.on_auth_state_change(lambda event, s: events.append((event, s)))

    session = auth.sign_in("ana@example.com", "secret1")

    assert auth.session == session
    assert events == [(AuthEvent.SIGNED_IN, session)]


def test_unsubscribe_stops_notifications(auth):
    events = []
    sub = auth.on_auth_state_change(lambda event, s: events.append(event))
    sub.unsubscribe()
    sub.unsubscribe()

    auth.sign_in("ana@example.com", "secret1")

    assert events == []
    assert not sub.active


def test_failed_sign_in_keeps_signed_out(auth, fake_backend):
    fake_backend.failing.add("sign_in")
    events = []
    auth.on_auth_state_change(lambda event, s: events.append(event))

    with pytest.raises(BackendError):
        auth.sign_in("ana@example.com", "bad")

    assert auth.session is None
    assert events == []


def test_sign_up_sends_verification_without_signing_in(auth, fake_backend):
    auth.sign_up("novo@example.com", "secret1")

    assert fake_backend.calls == ["sign_up", "send_email_verification"]
    assert auth.session is None


def test_sign_up_survives_verification_failure(auth, fake_backend):
    fake_backend.failing.add("send_email_verification")

    created = auth.sign_up("novo@example.com", "secret1")

    assert created.uid == "user-2"
    assert auth.session is None


def test_sign_in_with_remember_hands_out_a_cookie(auth, store):
    session = auth.sign_in("ana@example.com", "secret1", remember=True)

    cookie = auth.take_cookie()
    assert store.open(cookie).refresh_token == session.refresh_token
    assert auth.take_cookie() is None


def test_sign_in_without_remember_sets_no_cookie(auth):
    auth.sign_in("ana@example.com", "secret1")

    assert auth.take_cookie() is None


class BrokenStore:
    enabled = True

    def seal(self, session):
        raise SessionStoreError("cannot seal")


def test_remember_failure_still_signs_in_and_notifies(fake_backend):
    auth = AuthService(client=fake_backend, store=BrokenStore())
    events = []
    auth.on_auth_state_change(lambda event, s: events.append(event))

    session = auth.sign_in("ana@example.com", "secret1", remember=True)

    assert auth.session == session
    assert events == [AuthEvent.SIGNED_IN]
    assert auth.take_cookie() is None


def test_sign_out_deletes_cookie_and_notifies(auth):
    auth.sign_in("ana@example.com", "secret1", remember=True)
    auth.take_cookie()
    events = []
    auth.on_auth_state_change(lambda event, s: events.append((event, s)))

    auth.sign_out()

    assert auth.session is None
    assert auth.take_cookie() == ""
    assert events == [(AuthEvent.SIGNED_OUT, None)]


def test_remembered_session_stays_with_its_browser(fake_backend, store):
    alice = AuthService(client=fake_backend, store=store)
    alice.sign_in("alice@example.com", "secret1", remember=True)
    alice_cookie = alice.take_cookie()

    other_visitor = AuthService(client=fake_backend, store=store)
    assert other_visitor.get_current_user() is None
    assert other_visitor.session is None

    same_browser = AuthService(client=fake_backend, store=store)
    assert same_browser.get_current_user(alice_cookie).email == "alice@example.com"


def test_get_current_user_restores_and_refreshes(fake_backend, store, session):
    cookie = store.seal(session)
    auth = AuthService(client=fake_backend, store=store)

    current = auth.get_current_user(cookie)

    assert current.uid == session.uid
    assert current.id_token == "id-tok-2"
    assert store.open(auth.take_cookie()).refresh_token == "ref-tok-2"
    assert fake_backend.calls == ["refresh"]


def test_get_current_user_without_cookie(auth, fake_backend):
    assert auth.get_current_user() is None
    assert auth.take_cookie() is None
    assert fake_backend.calls == []


def test_get_current_user_drops_unreadable_cookie(auth, fake_backend):
    assert auth.get_current_user("not a fernet token") is None
    assert auth.take_cookie() == ""
    assert fake_backend.calls == []


# ── token expiry ──────────────────────────────────────────

def test_fresh_session_refreshes_near_expiry(fake_backend, store):
    now = [FIXED_NOW]
    fake_backend.token_lifetime = timedelta(hours=1)
    auth = AuthService(client=fake_backend, store=store, clock=lambda: now[0])
    auth.sign_in("ana@example.com", "secret1")

    assert auth.fresh_session().id_token == "id-tok"

    now[0] = FIXED_NOW + timedelta(minutes=56)
    refreshed = auth.fresh_session()

    assert refreshed.id_token == "id-tok-2"
    assert auth.session == refreshed
    assert fake_backend.calls == ["sign_in", "refresh"]


def test_fresh_session_without_expiry_never_refreshes(auth, fake_backend):
    auth.sign_in("ana@example.com", "secret1")

    assert auth.fresh_session().id_token == "id-tok"
    assert fake_backend.calls == ["sign_in"]
