"""
card_control/controller.py
--------------------------
Page-level state for the main screen.

``AppController`` owns the current session and the in-memory transaction
list and is the only thing that mutates them. Screens read them through
read-only properties and act through the controller's handlers.

When the backend fails the controller degrades instead of raising:
- loading shows a small demonstration dataset,
- submitting keeps the new record locally, marked ``LOCAL_ONLY``,
- deleting removes the record locally anyway.
The returned outcomes say which path was taken so the UI can tell the user.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Callable, List, Optional, Tuple

from card_control.errors import BackendError, ValidationError
from card_control.formatting import parse_amount
from card_control.logger import get_logger
from card_control.models import (
    AuthEvent,
    DeleteOutcome,
    FormDraft,
    Session,
    SubmitOutcome,
    SyncState,
    Transaction,
)
from card_control.services import AuthService, Subscription, TransactionService, utcnow

logger = get_logger(__name__)

# 1x1 transparent PNG
_SAMPLE_SIGNATURE = (
    "data:image/png;base64,iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNk"
    "YPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)


def sample_transactions() -> List[Transaction]:
    """Demonstration records shown when the list cannot be loaded."""
    return [
        Transaction(
            id="1",
            person_name="João Silva",
            transaction_date=date(2024, 6, 19),
            amount=Decimal("150.00"),
            notes="Emergência médica - consulta",
            signature=_SAMPLE_SIGNATURE,
            sync_state=SyncState.SAMPLE,
        ),
        Transaction(
            id="2",
            person_name="Maria Santos",
            transaction_date=date(2024, 6, 18),
            amount=Decimal("300.00"),
            notes="Medicamentos urgentes",
            signature=_SAMPLE_SIGNATURE,
            sync_state=SyncState.SAMPLE,
        ),
    ]


def validate_draft(draft: FormDraft, signature: str) -> Transaction:
    """
    Check the form and build the transaction to submit.

    Raises:
        ValidationError: If name, date, amount or signature is missing, or
            the amount is not a non-negative number.
    """
    if not draft.person_name or not draft.transaction_date or not draft.amount or not signature:
        raise ValidationError("Por favor, preencha todos os campos obrigatórios e assine.")
    return Transaction(
        person_name=draft.person_name,
        transaction_date=draft.transaction_date,
        amount=parse_amount(draft.amount),
        notes=draft.notes or None,
        signature=signature,
    )


class AppController:
    """Holds session + transaction list for one browser session."""

    def __init__(
        self,
        auth: AuthService,
        transactions: TransactionService,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.auth = auth
        self.service = transactions
        self.clock = clock
        self._session: Optional[Session] = None
        self._transactions: List[Transaction] = []
        self._subscription: Optional[Subscription] = None
        self.loading = True

    # ── read-only state ───────────────────────────────────

    @property
    def session(self) -> Optional[Session]:
        return self._session

    @property
    def transactions(self) -> Tuple[Transaction, ...]:
        return tuple(self._transactions)

    @property
    def unsynced_count(self) -> int:
        return sum(1 for t in self._transactions if t.sync_state is SyncState.LOCAL_ONLY)

    # ── lifecycle ─────────────────────────────────────────

    def start(self, cookie: Optional[str] = None) -> None:
        """
        Subscribe to auth changes and adopt an existing session, if any.

        ``cookie`` is the Remember Me cookie sent by this browser.
        """
        if self._subscription is None:
            self._subscription = self.auth.on_auth_state_change(self._on_auth_state_change)
        try:
            current = self.auth.get_current_user(cookie)
            if current is not None:
                self._session = current
                self.load_transactions()
        except BackendError as e:
            logger.error(f"Could not check the current user: {e}")
        finally:
            self.loading = False

    def close(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    def _on_auth_state_change(self, event: AuthEvent, session: Optional[Session]) -> None:
        logger.info(f"Auth state changed: {event.value}")
        if session is not None:
            self._session = session
            self.load_transactions()
        else:
            self._session = None
            self._transactions = []
        self.loading = False

    # ── handlers ──────────────────────────────────────────

    def _live_session(self) -> Session:
        """The session with an id token the backend still accepts."""
        self._session = self.auth.fresh_session() or self._session
        return self._session

    def load_transactions(self) -> None:
        if self._session is None:
            self._transactions = []
            return
        try:
            self._transactions = self.service.list(self._live_session())
        except BackendError as e:
            logger.error(f"Could not load transactions, showing sample data: {e}")
            self._transactions = sample_transactions()

    def submit(self, draft: FormDraft, signature: str) -> SubmitOutcome:
        """
        Validate the form and save the transaction.

        Returns:
            The outcome; ``persisted_remotely`` is False when the backend
            failed and the record only exists in this session.

        Raises:
            ValidationError: If the form is incomplete. Nothing is sent.
        """
        transaction = validate_draft(draft, signature)
        if self._session is None:
            raise ValidationError("Sessão expirada. Entre novamente.")
        try:
            saved = self.service.create(self._live_session(), transaction)
            outcome = SubmitOutcome(saved)
        except BackendError as e:
            logger.error(f"Could not save transaction, keeping it locally: {e}")
            now = self.clock()
            local = transaction.with_state(
                SyncState.LOCAL_ONLY,
                id=str(int(now.timestamp() * 1000)),
                created_at=now,
            )
            outcome = SubmitOutcome(local, error=str(e))
        self._transactions.insert(0, outcome.transaction)
        return outcome

    def delete(self, transaction_id: str) -> DeleteOutcome:
        """Delete remotely when the record lives there; always drop it from the list."""
        target = next((t for t in self._transactions if t.id == transaction_id), None)
        deleted_remotely = False
        error = None
        if target is not None and target.is_synced and self._session is not None:
            try:
                self.service.delete(self._live_session(), transaction_id)
                deleted_remotely = True
            except BackendError as e:
                logger.error(f"Could not delete transaction {transaction_id}, removing locally: {e}")
                error = str(e)
        self._transactions = [t for t in self._transactions if t.id != transaction_id]
        return DeleteOutcome(transaction_id, deleted_remotely, error)

    def sign_out(self) -> None:
        self.auth.sign_out()
        # the SIGNED_OUT notification already cleared state while subscribed
        self._session = None
        self._transactions = []
