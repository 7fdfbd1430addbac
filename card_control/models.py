"""
card_control/models.py
----------------------
Domain models: the signed cash-advance transaction, the authenticated
session and the outcome types returned by the controller.
"""

from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import Optional


class SyncState(str, Enum):
    """Where a transaction in the list actually lives."""

    REMOTE = "remote"          # persisted by the backend
    LOCAL_ONLY = "local_only"  # created while the backend was failing
    SAMPLE = "sample"          # demonstration data shown when loading failed


class AuthEvent(str, Enum):
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"


@dataclass(frozen=True)
class Session:
    """
    The backend's proof that a user is signed in.

    Attributes:
        uid: Opaque user id assigned by Firebase.
        email: The account email.
        id_token: Short-lived token sent with every database call.
        refresh_token: Used to obtain a fresh ``id_token``.
        expires_at: When ``id_token`` stops being accepted; None if unknown.
    """
    uid: str
    email: str
    id_token: str
    refresh_token: str
    expires_at: Optional[datetime] = None

    def __repr__(self) -> str:
        return f"Session(uid={self.uid!r}, email={self.email!r})"

    def needs_refresh(self, now: datetime, margin: timedelta = timedelta(minutes=5)) -> bool:
        """True once ``id_token`` is within ``margin`` of expiring."""
        return self.expires_at is not None and now >= self.expires_at - margin

    def to_dict(self) -> dict:
        """What Remember Me keeps. The id token is never written out."""
        return {
            "uid": self.uid,
            "email": self.email,
            "refresh_token": self.refresh_token,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Session":
        return cls(
            uid=data["uid"],
            email=data["email"],
            id_token=data.get("id_token", ""),
            refresh_token=data["refresh_token"],
        )


@dataclass
class Transaction:
    """
    One recorded cash advance.

    Attributes:
        person_name: Who received the money.
        transaction_date: Calendar date of the advance.
        amount: Non-negative amount in BRL.
        signature: PNG data URI of the recipient's signature.
        notes: Optional free text; ``None`` when absent.
        id: Backend key, or a millisecond timestamp for local-only records.
        created_at: Creation timestamp (UTC).
        updated_at: Last update timestamp, if the record was ever updated.
        sync_state: Whether the record exists remotely.
    """
    person_name: str
    transaction_date: date
    amount: Decimal
    signature: str
    notes: Optional[str] = None
    id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    sync_state: SyncState = field(default=SyncState.REMOTE, compare=False)

    @property
    def is_synced(self) -> bool:
        return self.sync_state is SyncState.REMOTE

    def with_state(self, sync_state: SyncState, **changes) -> "Transaction":
        return replace(self, sync_state=sync_state, **changes)

    def to_record(self) -> dict:
        """Serialize to the JSON shape stored in the Realtime Database."""
        record = {
            "person_name": self.person_name,
            "transaction_date": self.transaction_date.isoformat(),
            "amount": str(self.amount),
            "signature": self.signature,
        }
        if self.notes is not None:
            record["notes"] = self.notes
        if self.created_at is not None:
            record["created_at"] = self.created_at.isoformat()
        if self.updated_at is not None:
            record["updated_at"] = self.updated_at.isoformat()
        return record

    @classmethod
    def from_record(cls, record_id: str, record: dict) -> "Transaction":
        """Build a Transaction from a stored JSON record."""
        created_at = record.get("created_at")
        updated_at = record.get("updated_at")
        return cls(
            id=record_id,
            person_name=record["person_name"],
            transaction_date=date.fromisoformat(record["transaction_date"]),
            amount=Decimal(str(record["amount"])),
            signature=record.get("signature", ""),
            notes=record.get("notes"),
            created_at=datetime.fromisoformat(created_at) if created_at else None,
            updated_at=datetime.fromisoformat(updated_at) if updated_at else None,
            sync_state=SyncState.REMOTE,
        )


@dataclass
class FormDraft:
    """Transient form state on the main screen."""
    person_name: str = ""
    transaction_date: Optional[date] = None
    amount: str = ""
    notes: str = ""


@dataclass(frozen=True)
class SubmitOutcome:
    """Result of a submit: the record shown in the list and where it lives."""
    transaction: Transaction
    error: Optional[str] = None

    @property
    def persisted_remotely(self) -> bool:
        return self.transaction.sync_state is SyncState.REMOTE


@dataclass(frozen=True)
class DeleteOutcome:
    transaction_id: str
    deleted_remotely: bool
    error: Optional[str] = None
