"""Exceptions raised across the app."""


class BackendError(RuntimeError):
    """A Firebase call failed: error status, network failure or bad payload."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ValidationError(ValueError):
    """The transaction form is incomplete or holds an invalid value."""


class SessionStoreError(RuntimeError):
    """The saved "remember me" session could not be read."""
