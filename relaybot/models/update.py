"""Inbound Telegram update payloads.

Only the fields the router reads are modelled; everything else is ignored.
Message payloads are resolved into a tagged MessageContent so routing
dispatches once over MessageKind instead of probing optional fields.
"""
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class MessageKind(str, Enum):
    TEXT = "text"
    PHOTO = "photo"
    VIDEO = "video"
    DOCUMENT = "document"
    AUDIO = "audio"
    VOICE = "voice"
    STICKER = "sticker"


MEDIA_KINDS = frozenset(kind for kind in MessageKind if kind is not MessageKind.TEXT)


class _TelegramObject(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class TelegramUser(_TelegramObject):
    id: int
    username: Optional[str] = None
    first_name: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.first_name or "Unknown"

    @property
    def handle(self) -> str:
        return self.username or "no_username"


class Chat(_TelegramObject):
    id: int


class FileRef(_TelegramObject):
    """Any file-bearing attachment (photo size, video, document, audio, voice, sticker)."""
    file_id: str


class MessageContent(_TelegramObject):
    """Resolved message variant."""
    kind: MessageKind
    text: Optional[str] = None
    file_id: Optional[str] = None
    caption: Optional[str] = None


class Message(_TelegramObject):
    message_id: int
    from_user: Optional[TelegramUser] = Field(default=None, alias="from")
    chat: Optional[Chat] = None
    text: Optional[str] = None
    caption: Optional[str] = None
    photo: Optional[List[FileRef]] = None
    video: Optional[FileRef] = None
    document: Optional[FileRef] = None
    audio: Optional[FileRef] = None
    voice: Optional[FileRef] = None
    sticker: Optional[FileRef] = None
    reply_to_message: Optional["Message"] = None

    @property
    def content(self) -> Optional[MessageContent]:
        """Resolve the message variant; None for kinds the bot does not handle."""
        if self.text is not None:
            return MessageContent(kind=MessageKind.TEXT, text=self.text)
        if self.photo:
            # Sizes are ordered smallest to largest
            return MessageContent(
                kind=MessageKind.PHOTO, file_id=self.photo[-1].file_id, caption=self.caption
            )
        for kind in (
            MessageKind.VIDEO,
            MessageKind.DOCUMENT,
            MessageKind.AUDIO,
            MessageKind.VOICE,
            MessageKind.STICKER,
        ):
            attachment = getattr(self, kind.value)
            if attachment is not None:
                return MessageContent(kind=kind, file_id=attachment.file_id, caption=self.caption)
        return None


Message.model_rebuild()


class Update(_TelegramObject):
    update_id: int
    message: Optional[Message] = None
