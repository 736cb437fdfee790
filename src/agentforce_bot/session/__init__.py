"""Conversation-to-agent-session lifecycle."""

from agentforce_bot.session.resolver import SessionResolver
from agentforce_bot.session.store import SessionEntry, SessionStore, SessionSweeper

__all__ = ["SessionEntry", "SessionResolver", "SessionStore", "SessionSweeper"]
