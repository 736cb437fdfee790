"""Salesforce Einstein Agent API client module."""

from agentforce_bot.einstein.client import EinsteinClient
from agentforce_bot.einstein.errors import (
    CredentialFailure,
    DispatchFailed,
    EinsteinError,
    MalformedResponse,
    SessionCreationFailed,
    SessionExpired,
)
from agentforce_bot.einstein.models import StreamChunk
from agentforce_bot.einstein.token import TokenProvider

__all__ = [
    "EinsteinClient",
    "TokenProvider",
    "StreamChunk",
    "EinsteinError",
    "CredentialFailure",
    "SessionCreationFailed",
    "SessionExpired",
    "DispatchFailed",
    "MalformedResponse",
]
