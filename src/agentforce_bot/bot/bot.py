"""Bot handler relaying Teams messages to Agentforce using M365 Agents SDK."""

import re
import traceback

import structlog
from dotenv import load_dotenv
from os import environ

from microsoft_agents.hosting.aiohttp import CloudAdapter
from microsoft_agents.hosting.core import (
    Authorization,
    AgentApplication,
    TurnState,
    TurnContext,
    MemoryStorage,
)
from microsoft_agents.authentication.msal import MsalConnectionManager
from microsoft_agents.activity import load_configuration_from_env

from agentforce_bot.config import Settings
from agentforce_bot.relay.turn import TurnHandler

logger = structlog.get_logger()

TURN_ERROR_REPLY = "Oops! Something went wrong."
EMPTY_MESSAGE_REPLY = "Please send a text message for the agent."


def create_agent_app(
    settings: Settings,
    turn_handler: TurnHandler,
) -> AgentApplication[TurnState]:
    """Create and configure the agent application.

    Args:
        settings: Application settings.
        turn_handler: Relays one user message to Agentforce and returns the reply.
    """
    load_dotenv()

    agents_sdk_config = load_configuration_from_env(dict(environ))

    storage = MemoryStorage()
    connection_manager = MsalConnectionManager(**agents_sdk_config)
    adapter = CloudAdapter(connection_manager=connection_manager)
    authorization = Authorization(storage, connection_manager, **agents_sdk_config)

    agent_app = AgentApplication[TurnState](
        storage=storage,
        adapter=adapter,
        authorization=authorization,
        **agents_sdk_config,
    )

    # Store connection manager for main.py access
    agent_app._connection_manager = connection_manager

    @agent_app.message(re.compile(r".*", re.DOTALL))
    async def on_message(context: TurnContext, state: TurnState):
        user_message = (context.activity.text or "").strip()
        conversation_id = context.activity.conversation.id

        with structlog.contextvars.bound_contextvars(conversation_id=conversation_id):
            if not user_message:
                logger.info("empty_message_rejected")
                await context.send_activity(EMPTY_MESSAGE_REPLY)
                return

            logger.info("message_received", message_length=len(user_message))

            await context.send_activity(settings.status_message)

            result = await turn_handler.handle(conversation_id, user_message)
            await context.send_activity(result.reply)

            logger.info(
                "reply_delivered",
                succeeded=result.succeeded,
                attempts=result.attempts,
            )

    @agent_app.error
    async def on_error(context: TurnContext, error: Exception):
        logger.error("on_turn_error", error=str(error))
        traceback.print_exc()
        await context.send_activity(TURN_ERROR_REPLY)

    return agent_app
