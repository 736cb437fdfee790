"""Application entrypoint - aiohttp server with M365 Agents SDK."""

from collections.abc import AsyncIterator
from contextlib import aclosing

import httpx
import structlog
from aiohttp import web
from aiohttp.web import Request, Response, StreamResponse, Application, run_app
from microsoft_agents.hosting.aiohttp import (
    CloudAdapter,
    start_agent_process,
)
from microsoft_agents.hosting.core import AgentApplication

from agentforce_bot.bot import create_agent_app
from agentforce_bot.config import Settings, get_settings
from agentforce_bot.einstein import EinsteinClient, TokenProvider
from agentforce_bot.log import configure_logging
from agentforce_bot.relay import StreamRelay, TurnHandler
from agentforce_bot.relay.streaming import DEFAULT_CONVERSATION_ID
from agentforce_bot.session import SessionResolver, SessionStore, SessionSweeper

logger = structlog.get_logger()


async def messages(request: Request) -> Response:
    agent: AgentApplication = request.app["agent_app"]
    adapter: CloudAdapter = request.app["adapter"]
    response = await start_agent_process(request, agent, adapter)
    return response if response is not None else Response(status=202)


async def messages_stream(request: Request) -> StreamResponse:
    """Relay one message to Agentforce as a server-sent event stream.

    Query parameters: ``conversationId`` (optional) and ``message``.
    """
    relay: StreamRelay = request.app["stream_relay"]
    conversation_id = request.query.get("conversationId") or DEFAULT_CONVERSATION_ID
    message = request.query.get("message")

    if not message:
        return web.json_response(
            {"error": "query parameter 'message' is required"}, status=400
        )

    response = StreamResponse(
        status=200,
        headers={
            "Content-Type": "text/event-stream",
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
        },
    )
    await response.prepare(request)

    logger.info("stream_request", conversation_id=conversation_id, message_length=len(message))

    # Closed even when the client disconnects mid-stream.
    async with aclosing(relay.events(conversation_id, message)) as events:
        async for event in events:
            await response.write(event.encode())

    await response.write_eof()
    return response


async def health(request: Request) -> Response:
    """Health check endpoint - no authentication required."""
    return web.json_response({"status": "healthy"})


async def messages_health(request: Request) -> Response:
    return Response(status=200)


async def _background_tasks(app: Application) -> AsyncIterator[None]:
    """Run the session sweeper and close shared HTTP clients on shutdown."""
    sweeper: SessionSweeper = app["session_sweeper"]
    sweeper.start()
    yield
    await sweeper.stop()
    await app["http_client"].aclose()


def create_app(settings: Settings | None = None) -> Application:
    """Create and configure the aiohttp application."""
    settings = settings or get_settings()

    http_client = httpx.AsyncClient(timeout=settings.sf_timeout)
    token_provider = TokenProvider(
        token_url=settings.sf_token_url,
        client_id=settings.sf_client_id,
        client_secret=settings.sf_client_secret,
        http_client=http_client,
    )
    einstein_client = EinsteinClient(settings, http_client=http_client)

    session_store = SessionStore(timeout=settings.session_timeout_seconds)
    resolver = SessionResolver(session_store, einstein_client)
    sweeper = SessionSweeper(session_store, interval=settings.session_sweep_interval)

    turn_handler = TurnHandler(token_provider, resolver, einstein_client)
    stream_relay = StreamRelay(token_provider, resolver, einstein_client)

    agent_app = create_agent_app(settings=settings, turn_handler=turn_handler)

    app = Application()
    app["agent_configuration"] = agent_app._connection_manager.get_default_connection_configuration()
    app["agent_app"] = agent_app
    app["adapter"] = agent_app.adapter
    app["http_client"] = http_client
    app["session_store"] = session_store
    app["session_sweeper"] = sweeper
    app["stream_relay"] = stream_relay

    app.cleanup_ctx.append(_background_tasks)

    app.router.add_post("/api/messages", messages)
    app.router.add_get("/api/messages", messages_health)
    app.router.add_get("/api/messages/stream", messages_stream)
    app.router.add_get("/health", health)

    logger.info(
        "app_configured",
        session_timeout_minutes=settings.session_timeout_minutes,
        sweep_interval_seconds=settings.session_sweep_interval,
    )

    return app


def main() -> None:
    """Run the bot server."""
    settings = get_settings()
    configure_logging(settings)

    logger.info(
        "starting_bot_server",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level,
        session_timeout_minutes=settings.session_timeout_minutes,
    )

    app = create_app(settings)
    run_app(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
