"""
card_control/session_store.py
-----------------------------
"Remember Me": seals the signed-in user's refresh token into a cookie value,
encrypted with a key derived from SESSION_SECRET. The cookie lives in the
visitor's own browser; nothing is kept on the server, so one visitor's
saved session can never be picked up by another.
"""

import base64
import json
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from card_control import config
from card_control.errors import SessionStoreError
from card_control.logger import get_logger
from card_control.models import Session

logger = get_logger(__name__)

KDF_SALT = b"card-control-session-salt-v1"  # static salt; SESSION_SECRET must stay secret
KDF_ITERATIONS = 390_000


def _derive_key(passphrase: str) -> bytes:
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,
        salt=KDF_SALT,
        iterations=KDF_ITERATIONS,
        backend=default_backend(),
    )
    return base64.urlsafe_b64encode(kdf.derive(passphrase.encode("utf-8")))


def encrypt_session(session: Session, passphrase: str) -> str:
    f = Fernet(_derive_key(passphrase))
    return f.encrypt(json.dumps(session.to_dict()).encode("utf-8")).decode("ascii")


def decrypt_session(token: str, passphrase: str, max_age: Optional[int] = None) -> Session:
    f = Fernet(_derive_key(passphrase))
    try:
        payload = json.loads(f.decrypt(token.encode("ascii"), ttl=max_age).decode("utf-8"))
        return Session.from_dict(payload)
    except InvalidToken as e:
        raise SessionStoreError("Saved session is expired or was not sealed with SESSION_SECRET") from e
    except (ValueError, KeyError, TypeError) as e:
        raise SessionStoreError(f"Saved session is malformed: {e}") from e


class SessionStore:
    """Turns a session into an encrypted cookie value and back."""

    def __init__(
        self,
        secret: Optional[str] = config.SESSION_SECRET,
        cookie_name: str = config.SESSION_COOKIE,
        max_age_days: int = config.SESSION_COOKIE_DAYS,
    ):
        self.secret = secret
        self.cookie_name = cookie_name
        self.max_age = max_age_days * 24 * 60 * 60

    @property
    def enabled(self) -> bool:
        return bool(self.secret)

    def seal(self, session: Session) -> Optional[str]:
        """The cookie value for ``session``; None when no SESSION_SECRET is configured."""
        if not self.enabled:
            logger.warning("SESSION_SECRET missing; Remember Me is disabled.")
            return None
        return encrypt_session(session, self.secret)

    def open(self, value: Optional[str]) -> Optional[Session]:
        """
        Read a cookie value written by ``seal``.

        Returns:
            A session holding only uid, email and refresh token, or None when
            there is no cookie or Remember Me is off.

        Raises:
            SessionStoreError: If the value is expired, tampered with or was
                sealed under another secret.
        """
        if not self.enabled or not value:
            return None
        return decrypt_session(value, self.secret, max_age=self.max_age)
