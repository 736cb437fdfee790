"""Bot module."""

from agentforce_bot.bot.bot import create_agent_app

__all__ = ["create_agent_app"]
