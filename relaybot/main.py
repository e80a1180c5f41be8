"""FastAPI application entry point for the relay bot."""
import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from relaybot import __version__
from relaybot.api.routes.webhook import router as webhook_router
from relaybot.config import Settings, settings as default_settings
from relaybot.core.container import BotContainer, build_container
from relaybot.services.telegram_client import TelegramError

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def register_webhook(container: BotContainer) -> None:
    """Point Telegram at our webhook; failure is logged, not fatal."""
    config = container.settings
    if not config.WEBHOOK_URL:
        logger.warning("WEBHOOK_URL environment variable not set. Bot will not receive updates.")
        return

    url = f"{config.WEBHOOK_URL.rstrip('/')}/webhook/{config.BOT_TOKEN}"
    try:
        container.telegram.set_webhook(url)
        logger.info("Webhook set successfully!")
    except TelegramError as e:
        logger.error(f"Failed to set webhook: {e.description}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize state documents, register the webhook, release clients on exit."""
    container: BotContainer = app.state.container
    container.store.initialize()
    register_webhook(container)

    yield

    container.telegram.close()


def create_app(
    config: Optional[Settings] = None,
    container: Optional[BotContainer] = None,
) -> FastAPI:
    config = config or default_settings
    app = FastAPI(
        title="Relay Bot",
        description="Telegram relay between users and admins with an AI auto-responder",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.container = container or build_container(config)

    @app.get("/", response_class=PlainTextResponse)
    def root():
        return "Bot is running!"

    @app.get("/health")
    def health_check():
        """Health check endpoint."""
        return {"status": "ok"}

    app.include_router(webhook_router)

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        """Hide internal error details from clients."""
        logger.exception("Unhandled exception: %s", exc)
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"}
        )

    return app


app = create_app()


def run() -> None:
    """Console entry point: serve the app on the configured port."""
    configure_logging(default_settings.LOG_LEVEL)
    logger.info(f"Server running on port {default_settings.PORT}")
    uvicorn.run(app, host="0.0.0.0", port=default_settings.PORT)
