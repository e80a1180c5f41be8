"""Outbound Telegram Bot API calls over httpx."""
import logging
from typing import Any, Dict, Optional

import httpx

from relaybot.models.update import MessageKind

logger = logging.getLogger(__name__)

# Telegram's single-message text limit
MAX_MESSAGE_LENGTH = 4096

# Bot API method and file parameter per media kind
MEDIA_METHODS: Dict[MessageKind, tuple[str, str]] = {
    MessageKind.PHOTO: ("sendPhoto", "photo"),
    MessageKind.VIDEO: ("sendVideo", "video"),
    MessageKind.DOCUMENT: ("sendDocument", "document"),
    MessageKind.AUDIO: ("sendAudio", "audio"),
    MessageKind.VOICE: ("sendVoice", "voice"),
    MessageKind.STICKER: ("sendSticker", "sticker"),
}


class TelegramError(Exception):
    """Bot API call failed (API rejection or transport error)."""

    def __init__(self, method: str, description: str):
        super().__init__(description)
        self.method = method
        self.description = description


class TelegramClient:
    """
    Thin Bot API client.

    Each call is a black-box RPC: identifier and payload in, result or
    TelegramError out. Transport timeouts bound every call.
    """

    def __init__(
        self,
        token: str,
        api_url: str = "https://api.telegram.org",
        timeout: float = 15.0,
        http_client: Optional[httpx.Client] = None,
    ):
        self.base_url = f"{api_url.rstrip('/')}/bot{token}"
        self._client = http_client or httpx.Client(timeout=httpx.Timeout(timeout, connect=5.0))

    def send_message(self, chat_id: str, text: str) -> Any:
        return self._call("sendMessage", {"chat_id": chat_id, "text": text})

    def send_media(
        self,
        chat_id: str,
        kind: MessageKind,
        file_id: str,
        caption: Optional[str] = None,
    ) -> Any:
        """Send a previously uploaded file by id; stickers ignore the caption."""
        if kind not in MEDIA_METHODS:
            raise ValueError(f"Unsupported media kind: {kind}")
        method, field = MEDIA_METHODS[kind]
        payload: Dict[str, Any] = {"chat_id": chat_id, field: file_id}
        if caption is not None and kind is not MessageKind.STICKER:
            payload["caption"] = caption
        return self._call(method, payload)

    def send_chat_action(self, chat_id: str, action: str = "typing") -> Any:
        return self._call("sendChatAction", {"chat_id": chat_id, "action": action})

    def set_webhook(self, url: str) -> Any:
        return self._call("setWebhook", {"url": url})

    def close(self) -> None:
        self._client.close()

    def _call(self, method: str, payload: Dict[str, Any]) -> Any:
        try:
            response = self._client.post(f"{self.base_url}/{method}", json=payload)
            body = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise TelegramError(method, str(e)) from e

        if not isinstance(body, dict) or not body.get("ok"):
            description = body.get("description") if isinstance(body, dict) else None
            raise TelegramError(method, description or f"HTTP {response.status_code}")
        return body.get("result") or {}
