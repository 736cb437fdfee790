"""Error taxonomy for Salesforce Einstein Agent API calls."""

from __future__ import annotations

from typing import Any


class EinsteinError(Exception):
    """Base exception for Einstein Agent API failures."""

    def __init__(self, message: str, status_code: int | None = None, details: Any = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details


class CredentialFailure(EinsteinError):
    """The OAuth client credentials exchange failed."""


class SessionCreationFailed(EinsteinError):
    """The backend refused or failed to create an agent session."""


class SessionExpired(EinsteinError):
    """The backend no longer knows the session id."""


class DispatchFailed(EinsteinError):
    """Sending a message to an agent session failed."""


class MalformedResponse(EinsteinError):
    """A successful response did not carry the expected content."""
