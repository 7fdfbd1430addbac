"""
card_control/firebase.py
------------------------
Thin client for the two Firebase REST APIs the app uses:

- Firebase Authentication (email/password sign-in, sign-up, email
  verification and token refresh)
- Firebase Realtime Database, where each user's transactions live under
  ``/users/<uid>/transactions``

Every call is a single HTTP request. Failures of any kind are raised as
``BackendError`` carrying the message Firebase sent back.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import requests

from card_control import config
from card_control.errors import BackendError
from card_control.logger import get_logger
from card_control.models import Session

logger = get_logger(__name__)

AUTH_URL = "https://identitytoolkit.googleapis.com/v1/accounts"
TOKEN_URL = "https://securetoken.googleapis.com/v1/token"


def _expiry(seconds: Any) -> Optional[datetime]:
    """Absolute expiry for an ``expiresIn`` value (seconds, sent as a string)."""
    try:
        return datetime.now(timezone.utc) + timedelta(seconds=int(seconds))
    except (TypeError, ValueError):
        return None


def _error_message(response: requests.Response, fallback: str) -> str:
    try:
        body = response.json()
    except ValueError:
        return f"{fallback} (HTTP {response.status_code})"
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict):
        return error.get("message", fallback)
    if isinstance(error, str):
        return error
    return fallback


class FirebaseClient:
    """Issues authenticated requests against Firebase Auth and the Realtime Database."""

    def __init__(
        self,
        database_url: str = config.FIREBASE_DATABASE_URL,
        api_key: str = config.FIREBASE_WEB_API_KEY,
        timeout: float = config.REQUEST_TIMEOUT,
    ):
        self.database_url = database_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout

    # ── plumbing ──────────────────────────────────────────

    def _request(self, method: str, url: str, fallback: str, **kwargs) -> Any:
        try:
            r = requests.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise BackendError(f"{fallback}: {e}") from e
        if r.status_code != 200:
            raise BackendError(_error_message(r, fallback), status_code=r.status_code)
        try:
            return r.json()
        except ValueError as e:
            raise BackendError(f"{fallback}: invalid response from server") from e

    def _auth_call(self, action: str, payload: dict, fallback: str) -> dict:
        url = f"{AUTH_URL}:{action}?key={self.api_key}"
        return self._request("POST", url, fallback, json=payload)

    def _db_url(self, session: Session, path: str) -> str:
        return f"{self.database_url}/users/{session.uid}/{path.strip('/')}.json"

    def _db_call(self, method: str, session: Session, path: str, fallback: str, **kwargs) -> Any:
        params = {"auth": session.id_token}
        return self._request(method, self._db_url(session, path), fallback, params=params, **kwargs)

    # ── auth ──────────────────────────────────────────────

    @staticmethod
    def _session_from(data: dict) -> Session:
        try:
            return Session(
                uid=data["localId"],
                email=data["email"],
                id_token=data["idToken"],
                refresh_token=data["refreshToken"],
                expires_at=_expiry(data.get("expiresIn")),
            )
        except KeyError as e:
            raise BackendError(f"Incomplete auth response, missing {e}") from e

    def sign_in(self, email: str, password: str) -> Session:
        payload = {"email": email, "password": password, "returnSecureToken": True}
        data = self._auth_call("signInWithPassword", payload, "Login failed")
        return self._session_from(data)

    def sign_up(self, email: str, password: str) -> Session:
        payload = {"email": email, "password": password, "returnSecureToken": True}
        data = self._auth_call("signUp", payload, "Sign up failed")
        return self._session_from(data)

    def send_email_verification(self, session: Session) -> None:
        payload = {"requestType": "VERIFY_EMAIL", "idToken": session.id_token}
        self._auth_call("sendOobCode", payload, "Could not send verification email")

    def refresh(self, session: Session) -> Session:
        """Exchange the refresh token for a fresh id token."""
        url = f"{TOKEN_URL}?key={self.api_key}"
        form = {"grant_type": "refresh_token", "refresh_token": session.refresh_token}
        data = self._request("POST", url, "Session refresh failed", data=form)
        try:
            return Session(
                uid=data["user_id"],
                email=session.email,
                id_token=data["id_token"],
                refresh_token=data["refresh_token"],
                expires_at=_expiry(data.get("expires_in")),
            )
        except KeyError as e:
            raise BackendError(f"Incomplete refresh response, missing {e}") from e

    # ── realtime database ─────────────────────────────────

    def select_all(self, session: Session, collection: str) -> dict:
        """Return ``{key: record}`` for every child of ``collection``."""
        data = self._db_call("GET", session, collection, "Could not load records")
        return data or {}

    def insert(self, session: Session, collection: str, record: dict) -> str:
        """Push a new child and return the key Firebase generated for it."""
        data = self._db_call("POST", session, collection, "Could not save record", json=record)
        if not isinstance(data, dict) or "name" not in data:
            raise BackendError("Could not save record: no key returned")
        return data["name"]

    def update(self, session: Session, collection: str, key: str, changes: dict) -> dict:
        data = self._db_call(
            "PATCH", session, f"{collection}/{key}", "Could not update record", json=changes
        )
        return data or {}

    def delete(self, session: Session, collection: str, key: str) -> None:
        self._db_call("DELETE", session, f"{collection}/{key}", "Could not delete record")

    @property
    def is_placeholder(self) -> bool:
        return (
            self.database_url == config.PLACEHOLDER_DATABASE_URL
            or self.api_key == config.PLACEHOLDER_API_KEY
        )


_default_client: Optional[FirebaseClient] = None


def get_client() -> FirebaseClient:
    """Shared client built from the configured endpoint and key."""
    global _default_client
    if _default_client is None:
        _default_client = FirebaseClient()
        if _default_client.is_placeholder:
            logger.warning(
                "Firebase is not configured; backend calls will fail and local fallbacks will be used."
            )
    return _default_client
