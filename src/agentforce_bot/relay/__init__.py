"""Turn handling and streaming relay between Teams and Agentforce."""

from agentforce_bot.relay.streaming import StreamEvent, StreamRelay
from agentforce_bot.relay.turn import ERROR_REPLY, TurnHandler, TurnResult

__all__ = ["ERROR_REPLY", "StreamEvent", "StreamRelay", "TurnHandler", "TurnResult"]
