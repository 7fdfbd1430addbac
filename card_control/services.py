"""
card_control/services.py
------------------------
Data-access facade used by the screens.

``TransactionService`` exposes list/create/update/delete over the user's
transactions collection; ``AuthService`` exposes sign-in, sign-up,
sign-out, the current session and auth-state notifications. Every
operation is a direct call-through to ``FirebaseClient``: backend errors
propagate to the caller as ``BackendError``. The one exception is the
verification email sent after sign-up, whose failure is only logged.
"""

from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable, List, Optional

from card_control.errors import BackendError, SessionStoreError
from card_control.firebase import FirebaseClient, get_client
from card_control.logger import get_logger
from card_control.models import AuthEvent, Session, SyncState, Transaction
from card_control.session_store import SessionStore

logger = get_logger(__name__)

AuthListener = Callable[[AuthEvent, Optional[Session]], None]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _created_key(transaction: Transaction) -> float:
    return transaction.created_at.timestamp() if transaction.created_at else 0.0


class TransactionService:
    """CRUD over ``/users/<uid>/transactions``."""

    COLLECTION = "transactions"

    def __init__(self, client: Optional[FirebaseClient] = None, clock: Callable[[], datetime] = utcnow):
        self.client = client or get_client()
        self.clock = clock

    def list(self, session: Session) -> List[Transaction]:
        """All of the user's transactions, most recently created first."""
        records = self.client.select_all(session, self.COLLECTION)
        try:
            items = [Transaction.from_record(key, rec) for key, rec in records.items()]
        except (KeyError, TypeError, ValueError, ArithmeticError) as e:
            raise BackendError(f"Malformed transaction record: {e}") from e
        return sorted(items, key=_created_key, reverse=True)

    def create(self, session: Session, transaction: Transaction) -> Transaction:
        """
        Persist a new transaction.

        Args:
            session: The signed-in user.
            transaction: The record to save; its id is ignored.

        Returns:
            The saved transaction with its Firebase key and ``created_at``.
        """
        stamped = replace(transaction, id=None, created_at=self.clock(), updated_at=None)
        key = self.client.insert(session, self.COLLECTION, stamped.to_record())
        logger.info(f"Created transaction {key} for user {session.uid}")
        return stamped.with_state(SyncState.REMOTE, id=key)

    def update(self, session: Session, transaction_id: str, transaction: Transaction) -> Transaction:
        """Overwrite every field of an existing transaction and stamp ``updated_at``."""
        now = self.clock()
        changes = transaction.to_record()
        changes.pop("created_at", None)
        changes["notes"] = transaction.notes  # null removes the key
        changes["updated_at"] = now.isoformat()
        self.client.update(session, self.COLLECTION, transaction_id, changes)
        logger.info(f"Updated transaction {transaction_id} for user {session.uid}")
        return transaction.with_state(SyncState.REMOTE, id=transaction_id, updated_at=now)

    def delete(self, session: Session, transaction_id: str) -> None:
        self.client.delete(session, self.COLLECTION, transaction_id)
        logger.info(f"Deleted transaction {transaction_id} for user {session.uid}")


class Subscription:
    """Handle returned by ``AuthService.on_auth_state_change``."""

    def __init__(self, listeners: List[AuthListener], callback: AuthListener):
        self._listeners = listeners
        self._callback = callback

    @property
    def active(self) -> bool:
        return self._callback in self._listeners

    def unsubscribe(self) -> None:
        if self.active:
            self._listeners.remove(self._callback)


class AuthService:
    """
    Email/password authentication with optional encrypted Remember Me.

    Remember Me never touches the server's disk: ``sign_in`` seals the
    session into a cookie value that the screen hands to the visitor's
    browser (see ``take_cookie``), and ``get_current_user`` only restores
    a session from the cookie that same browser sent back.
    """

    def __init__(
        self,
        client: Optional[FirebaseClient] = None,
        store: Optional[SessionStore] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.client = client or get_client()
        self.store = store or SessionStore()
        self.clock = clock
        self._session: Optional[Session] = None
        self._listeners: List[AuthListener] = []
        self._cookie: Optional[str] = None

    @property
    def session(self) -> Optional[Session]:
        return self._session

    def _notify(self, event: AuthEvent, session: Optional[Session]) -> None:
        for listener in list(self._listeners):
            listener(event, session)

    def on_auth_state_change(self, callback: AuthListener) -> Subscription:
        """Call ``callback(event, session)`` on every sign-in and sign-out."""
        self._listeners.append(callback)
        return Subscription(self._listeners, callback)

    def take_cookie(self) -> Optional[str]:
        """
        The Remember Me cookie the browser should store next, once.

        Returns:
            None when nothing changed, ``""`` when the cookie must be
            deleted, otherwise the sealed session.
        """
        cookie, self._cookie = self._cookie, None
        return cookie

    def _remember(self, session: Session) -> None:
        try:
            self._cookie = self.store.seal(session)
        except SessionStoreError as e:
            logger.warning(f"Remember Me not saved for user {session.uid}: {e}")

    def sign_in(self, email: str, password: str, remember: bool = False) -> Session:
        session = self.client.sign_in(email, password)
        self._session = session
        logger.info(f"User {session.uid} signed in")
        self._notify(AuthEvent.SIGNED_IN, session)
        if remember:
            self._remember(session)
        return session

    def sign_up(self, email: str, password: str) -> Session:
        """
        Create an account and ask Firebase to send the verification email.
        The new account is not signed in. A failure to send the email is
        logged only: the account already exists at that point.
        """
        session = self.client.sign_up(email, password)
        logger.info(f"Created account {session.uid}")
        try:
            self.client.send_email_verification(session)
        except BackendError as e:
            logger.warning(f"Verification email for {session.uid} not sent: {e}")
        return session

    def sign_out(self) -> None:
        previous, self._session = self._session, None
        self._cookie = ""
        if previous is not None:
            logger.info(f"User {previous.uid} signed out")
        self._notify(AuthEvent.SIGNED_OUT, None)

    def fresh_session(self) -> Optional[Session]:
        """
        The current session, refreshed first when its id token is about to
        expire.

        Raises:
            BackendError: If the refresh was needed and failed.
        """
        session = self._session
        if session is None or not session.needs_refresh(self.clock()):
            return session
        session = self.client.refresh(session)
        self._session = session
        logger.info(f"Refreshed id token for user {session.uid}")
        return session

    def get_current_user(self, cookie: Optional[str] = None) -> Optional[Session]:
        """
        The signed-in session, if any.

        Args:
            cookie: The Remember Me cookie sent by this visitor's browser.
                A session sealed in it is refreshed against Firebase before
                it is returned.

        Raises:
            BackendError: If the restored session could not be refreshed.
        """
        if self._session is not None:
            return self._session
        try:
            saved = self.store.open(cookie)
        except SessionStoreError as e:
            logger.warning(f"Ignoring saved session: {e}")
            self._cookie = ""
            return None
        if saved is None:
            return None
        session = self.client.refresh(saved)
        self._session = session
        self._remember(session)
        logger.info(f"Restored saved session for user {session.uid}")
        return session
