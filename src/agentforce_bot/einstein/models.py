"""Data models for Einstein Agent API payloads."""

from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field


class AgentMessage(BaseModel):
    """A single message element of an agent reply."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    type: str | None = None
    message: str
    message_id: str | None = Field(None, alias="id")


class MessagesResponse(BaseModel):
    """Body returned by the synchronous messages endpoint."""

    model_config = ConfigDict(extra="allow")

    messages: list[AgentMessage] = Field(min_length=1)


class SessionCreated(BaseModel):
    """Body returned when a new agent session is started."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    session_id: str = Field(alias="sessionId", min_length=1)


class TokenResponse(BaseModel):
    """OAuth client credentials token response."""

    model_config = ConfigDict(extra="allow")

    access_token: str = Field(min_length=1)
    instance_url: str | None = None
    token_type: str | None = None


@dataclass(slots=True)
class StreamChunk:
    """One event read from the agent message stream."""

    data: str
    event: str = "message"
