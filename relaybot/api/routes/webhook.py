"""Telegram webhook route.

Provides:
- POST /webhook/{token} - Receive a Telegram update
"""
import logging
from typing import Any, Dict

from fastapi import APIRouter, BackgroundTasks, Depends
from fastapi.responses import PlainTextResponse
from pydantic import ValidationError

from relaybot.core.container import BotContainer
from relaybot.core.deps import get_container, verify_webhook_token
from relaybot.models.update import Update

logger = logging.getLogger(__name__)

router = APIRouter(tags=["webhook"])


def process_update(container: BotContainer, update: Update) -> None:
    """Route one update; failures are logged, never raised to the server."""
    try:
        container.router.handle_update(update)
    except Exception:
        logger.exception(f"Failed to process update {update.update_id}")


@router.post("/webhook/{token}", response_class=PlainTextResponse)
def receive_update(
    payload: Dict[str, Any],
    background_tasks: BackgroundTasks,
    token: str = Depends(verify_webhook_token),
    container: BotContainer = Depends(get_container),
) -> str:
    """
    Accept a Telegram update.

    The platform gets 200 OK immediately; routing runs as a background task.
    Payloads that do not parse as an update are acknowledged and dropped.
    """
    try:
        update = Update.model_validate(payload)
    except ValidationError as e:
        logger.warning(f"Ignoring malformed update: {str(e)}")
        return "OK"

    background_tasks.add_task(process_update, container, update)
    return "OK"
