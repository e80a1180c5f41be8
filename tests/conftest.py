from __future__ import annotations

from types import SimpleNamespace
from typing import Any, Callable, List, Optional

import pytest

from relaybot.config import Settings
from relaybot.core.container import BotContainer, build_container
from relaybot.models.update import MessageKind, Update
from relaybot.services.state_store import JsonStateStore
from relaybot.services.telegram_client import TelegramError

ADMIN = "1001"
USER = "2001"


class FakeTelegram:
    """Records Bot API calls; chat ids in `failing` raise TelegramError."""

    def __init__(self) -> None:
        self.calls: List[tuple] = []
        self.failing: dict[str, str] = {}
        self.closed = False

    def _check(self, method: str, chat_id: str) -> None:
        if chat_id in self.failing:
            raise TelegramError(method, self.failing[chat_id])

    def send_message(self, chat_id: str, text: str) -> dict:
        self._check("sendMessage", chat_id)
        self.calls.append(("message", chat_id, text))
        return {}

    def send_media(self, chat_id: str, kind: MessageKind, file_id: str, caption: Optional[str] = None) -> dict:
        self._check("send" + kind.value.title(), chat_id)
        self.calls.append((kind.value, chat_id, file_id, caption))
        return {}

    def send_chat_action(self, chat_id: str, action: str = "typing") -> dict:
        self.calls.append(("action", chat_id, action))
        return {}

    def set_webhook(self, url: str) -> bool:
        self.calls.append(("webhook", url))
        return True

    def close(self) -> None:
        self.closed = True

    def messages_to(self, chat_id: str) -> List[str]:
        return [call[2] for call in self.calls if call[0] == "message" and call[1] == chat_id]

    def sent_to(self, chat_id: str) -> List[tuple]:
        return [call for call in self.calls if call[0] != "webhook" and call[1] == chat_id]


class FakeCompletions:
    def __init__(self, reply: Callable[..., Any]) -> None:
        self.reply = reply
        self.requests: List[dict] = []

    def create(self, **kwargs: Any) -> Any:
        self.requests.append(kwargs)
        return self.reply(**kwargs)


class FakeCompletionClient:
    """Stands in for the OpenAI client: client.chat.completions.create(...)."""

    def __init__(self, reply: Callable[..., Any] | None = None) -> None:
        self.completions = FakeCompletions(reply or (lambda **_: completion("Hi there!")))
        self.chat = SimpleNamespace(completions=self.completions)

    @property
    def requests(self) -> List[dict]:
        return self.completions.requests


def completion(text: Optional[str]) -> Any:
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(role="assistant", content=text))])


def make_update(
    sender: str | int,
    text: Optional[str] = None,
    update_id: int = 1,
    reply_to: Optional[dict] = None,
    username: Optional[str] = "someone",
    first_name: Optional[str] = "Sam",
    **fields: Any,
) -> Update:
    message: dict = {
        "message_id": update_id,
        "from": {"id": int(sender), "is_bot": False, "username": username, "first_name": first_name},
        "chat": {"id": int(sender), "type": "private"},
        "date": 1700000000,
    }
    if text is not None:
        message["text"] = text
    if reply_to is not None:
        message["reply_to_message"] = reply_to
    message.update(fields)
    return Update.model_validate({"update_id": update_id, "message": message})


def forwarded(text: str, message_id: int = 500) -> dict:
    """A message as admins see it after the bot forwarded it."""
    return {"message_id": message_id, "chat": {"id": int(ADMIN)}, "date": 1700000000, "text": text}


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        BOT_TOKEN="123:test-token",
        ADMIN_ID=None,
        DATA_DIR=tmp_path / "data",
        WEBHOOK_URL=None,
    )


@pytest.fixture
def telegram() -> FakeTelegram:
    return FakeTelegram()


@pytest.fixture
def completion_client() -> FakeCompletionClient:
    return FakeCompletionClient()


@pytest.fixture
def store(settings):
    store = JsonStateStore(settings.DATA_DIR, ADMIN)
    store.initialize()
    return store


@pytest.fixture
def container(settings, store, telegram, completion_client) -> BotContainer:
    return build_container(settings, store=store, telegram=telegram, completion_client=completion_client)
