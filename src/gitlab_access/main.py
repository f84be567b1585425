"""FastAPI GitLab webhook receiver that fans events out to plugins."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import BackgroundTasks, Depends, FastAPI, Request, Response
from fastapi.responses import PlainTextResponse

from .config import Settings, settings as default_settings
from .dispatcher import ACCEPTED_MESSAGE, Dispatcher
from .errors import ConfigError
from .routing import ConfigSource, ConfigStore, FileConfigSource
from .transport import FanOut, ForwardingClient

logger = logging.getLogger(__name__)


def get_dispatcher(request: Request) -> Dispatcher:
    """Get the dispatcher created during application startup."""
    return request.app.state.dispatcher


async def health() -> Response:
    """Health check endpoint."""
    return Response(status_code=200)


async def handle_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    dispatcher: Dispatcher = Depends(get_dispatcher),
) -> PlainTextResponse:
    """Acknowledge a GitLab webhook and dispatch it once the response is sent."""
    event = await dispatcher.parse_request(request)
    background_tasks.add_task(dispatcher.dispatch, event)
    return PlainTextResponse(ACCEPTED_MESSAGE)


def create_app(
    settings: Optional[Settings] = None,
    source: Optional[ConfigSource] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """Build the receiver application.

    Args:
        settings: Service settings, defaults to the environment-loaded ones.
        source: Routing configuration source, defaults to ``settings.config_file``.
        transport: Transport for outbound requests, for tests.
    """
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        store = ConfigStore(
            source or FileConfigSource(settings.config_file),
            interval=settings.reload_interval,
        )
        try:
            await store.start()
        except ConfigError as e:
            logger.error(f"Error starting config store: {e}")
            raise

        client = httpx.AsyncClient(timeout=settings.forward_timeout, transport=transport)
        forwarder = ForwardingClient(
            client,
            max_attempts=settings.forward_retry_attempts,
            retry_delay=settings.forward_retry_delay,
        )
        fan_out = FanOut(forwarder, user_agent=settings.outbound_user_agent)

        app.state.store = store
        app.state.fan_out = fan_out
        app.state.dispatcher = Dispatcher(store, fan_out, user_agent=settings.user_agent)
        logger.info(f"Receiving GitLab events on {settings.webhook_path}")

        try:
            yield
        finally:
            await store.stop()

            pending = fan_out.tracker.count
            if pending:
                logger.info(f"Waiting for {pending} in-flight deliveries")
            if not await fan_out.wait(settings.drain_timeout):
                logger.warning(
                    f"Gave up on {fan_out.tracker.count} in-flight deliveries "
                    f"after {settings.drain_timeout}s"
                )
                await fan_out.cancel()

            await client.aclose()

    app = FastAPI(title="gitlab-access", lifespan=lifespan)

    # Return 200 on / for health checks.
    app.add_api_route("/", health, methods=["GET"])
    app.add_api_route(settings.webhook_path, handle_webhook, methods=["POST"])

    return app
