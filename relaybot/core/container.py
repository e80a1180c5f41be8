"""Process-scoped state container injected into the router and responder."""
from dataclasses import dataclass
from typing import Any, Optional

from relaybot.config import Settings
from relaybot.database import build_engine
from relaybot.models.conversation import ConversationHistory
from relaybot.services.access import AccessControl
from relaybot.services.ai_responder import AIResponder
from relaybot.services.router import MessageRouter
from relaybot.services.state_store import JsonStateStore, SqlStateStore, StateStore
from relaybot.services.telegram_client import TelegramClient


@dataclass
class BotContainer:
    """Everything one bot process shares across updates."""
    settings: Settings
    store: StateStore
    access: AccessControl
    history: ConversationHistory
    responder: AIResponder
    telegram: TelegramClient
    router: MessageRouter


def build_store(settings: Settings) -> StateStore:
    if settings.STATE_BACKEND == "sql":
        return SqlStateStore(build_engine(settings.database_url), settings.seed_admin_id)
    if settings.STATE_BACKEND != "json":
        raise ValueError(f"Unknown STATE_BACKEND: {settings.STATE_BACKEND}")
    return JsonStateStore(settings.DATA_DIR, settings.seed_admin_id)


def build_container(
    settings: Settings,
    store: Optional[StateStore] = None,
    telegram: Optional[TelegramClient] = None,
    completion_client: Optional[Any] = None,
) -> BotContainer:
    """
    Wire the bot's collaborators.

    Args:
        settings: Application settings
        store: State store override (built from settings when None)
        telegram: Telegram client override
        completion_client: OpenAI-compatible client override

    Returns:
        BotContainer instance
    """
    store = store or build_store(settings)
    telegram = telegram or TelegramClient(
        settings.BOT_TOKEN,
        api_url=settings.TELEGRAM_API_URL,
        timeout=settings.TELEGRAM_TIMEOUT,
    )
    history = ConversationHistory(limit=settings.HISTORY_LIMIT)
    access = AccessControl(store, owner_id=settings.ADMIN_ID)
    responder = AIResponder(
        store,
        history,
        client=completion_client,
        api_key=settings.GEMINI_API_KEY,
        model=settings.GEMINI_MODEL,
        base_url=settings.GEMINI_BASE_URL,
        timeout=settings.GEMINI_TIMEOUT,
    )
    router = MessageRouter(store, access, responder, telegram)
    return BotContainer(
        settings=settings,
        store=store,
        access=access,
        history=history,
        responder=responder,
        telegram=telegram,
        router=router,
    )
