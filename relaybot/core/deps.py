"""FastAPI dependencies."""
from fastapi import HTTPException, Request, status

from relaybot.core.container import BotContainer


def get_container(request: Request) -> BotContainer:
    return request.app.state.container


def verify_webhook_token(token: str, request: Request) -> str:
    """Reject webhook calls whose path token is not the bot token."""
    container = get_container(request)
    if not container.settings.BOT_TOKEN or token != container.settings.BOT_TOKEN:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")
    return token
