"""Message router deciding, per inbound update, how a message is handled.

Paths:
- Admin reply to a forwarded message -> deliver to the footer's user
- Regular text, AI enabled -> AI responder (plus a copy to admins)
- Regular text, AI disabled -> forward to admins and acknowledge
- Regular media -> forward to admins (acknowledged only with AI disabled)
"""
import logging
import re
from typing import Optional

from relaybot.models.update import Message, MessageContent, MessageKind, TelegramUser, Update
from relaybot.services.access import AccessControl
from relaybot.services.ai_responder import AIResponder
from relaybot.services.commands import CommandHandler, register_user
from relaybot.services.state_store import StateStore
from relaybot.services.telegram_client import TelegramClient, TelegramError

logger = logging.getLogger(__name__)

# Footer appended to every forwarded message; admin replies are routed by it
FOOTER_PATTERN = re.compile(r"User ID: (\d+)")

FORWARD_ACK = "Your message has been forwarded to our team."
UNKNOWN_TARGET = "Cannot determine the target user. Please reply to a forwarded user message."

MEDIA_LABELS = {
    MessageKind.PHOTO: "Photo",
    MessageKind.VIDEO: "Video",
    MessageKind.DOCUMENT: "Document",
    MessageKind.AUDIO: "Audio",
}


def footer(user_id: str) -> str:
    return f"User ID: {user_id}"


def extract_target_user_id(replied: Optional[Message]) -> Optional[str]:
    """Recover the originating user id from a forwarded message's text or caption."""
    if replied is None:
        return None
    for body in (replied.text, replied.caption):
        if body:
            match = FOOTER_PATTERN.search(body)
            if match:
                return match.group(1)
    return None


def format_text_forward(user: TelegramUser, text: str) -> str:
    return (
        f"Message from {user.display_name} (@{user.handle}):\n\n"
        f"{text}\n\n{footer(str(user.id))}"
    )


def format_media_caption(user: TelegramUser, content: MessageContent) -> str:
    """Identifying caption for a forwarded media message (or the sticker follow-up text)."""
    sender = f"{user.display_name} (@{user.handle})"
    if content.kind is MessageKind.VOICE:
        return f"Voice message from {sender}\n\n{footer(str(user.id))}"
    if content.kind is MessageKind.STICKER:
        return f"Sticker from {sender}\n\n{footer(str(user.id))}"

    label = MEDIA_LABELS[content.kind]
    caption = content.caption or "No caption"
    return f"{label} from {sender}:\n\n{caption}\n\n{footer(str(user.id))}"


class MessageRouter:
    """Dispatches inbound updates; every failure is handled where it occurs."""

    def __init__(
        self,
        store: StateStore,
        access: AccessControl,
        responder: AIResponder,
        telegram: TelegramClient,
        commands: Optional[CommandHandler] = None,
    ):
        self.store = store
        self.access = access
        self.responder = responder
        self.telegram = telegram
        self.commands = commands or CommandHandler(store, access, responder, telegram)

    def handle_update(self, update: Update) -> None:
        message = update.message
        if message is None or message.from_user is None:
            return
        content = message.content
        if content is None:
            return

        sender_id = str(message.from_user.id)
        is_admin = self.access.is_admin(sender_id)

        if content.kind is MessageKind.TEXT and self.commands.handle(message, sender_id, is_admin):
            return

        if is_admin:
            if message.reply_to_message is not None:
                self.route_admin_reply(message, content)
            return

        register_user(self.store, message.from_user)
        ai_enabled = self.responder.is_enabled_for(sender_id)

        if content.kind is MessageKind.TEXT:
            self.forward_text_to_admins(message.from_user, content.text)
            if ai_enabled:
                self.responder.respond(self.telegram, sender_id, content.text)
            else:
                self.reply(message, FORWARD_ACK)
            return

        self.forward_media_to_admins(message.from_user, content)
        if not ai_enabled:
            self.reply(message, FORWARD_ACK)

    def route_admin_reply(self, message: Message, content: MessageContent) -> None:
        """Deliver an admin's reply to the user named in the replied-to footer."""
        target_id = extract_target_user_id(message.reply_to_message)
        if target_id is None:
            self.reply(message, UNKNOWN_TARGET)
            return

        if content.kind is MessageKind.TEXT:
            try:
                self.telegram.send_message(target_id, content.text)
            except TelegramError as e:
                self.reply(message, f"Failed to send message: {e.description}")
                return
            self.reply(message, "Message sent to user.")
            return

        try:
            self.telegram.send_media(target_id, content.kind, content.file_id, content.caption)
        except TelegramError as e:
            self.reply(message, f"Failed to send media: {e.description}")
            return
        self.reply(message, "Media sent to user.")

    def forward_text_to_admins(self, user: TelegramUser, text: str) -> None:
        forwarded = format_text_forward(user, text)
        for admin_id in self.access.admins():
            try:
                self.telegram.send_message(admin_id, forwarded)
            except Exception as e:
                logger.error(f"Failed to forward message to admin {admin_id}: {str(e)}")

    def forward_media_to_admins(self, user: TelegramUser, content: MessageContent) -> None:
        """Forward media to every admin; stickers get a separate identifying message."""
        caption = format_media_caption(user, content)
        for admin_id in self.access.admins():
            try:
                if content.kind is MessageKind.STICKER:
                    self.telegram.send_media(admin_id, content.kind, content.file_id)
                    self.telegram.send_message(admin_id, caption)
                else:
                    self.telegram.send_media(admin_id, content.kind, content.file_id, caption)
            except Exception as e:
                logger.error(f"Failed to forward media to admin {admin_id}: {str(e)}")

    def reply(self, message: Message, text: str) -> None:
        self.commands.reply(message, text)
