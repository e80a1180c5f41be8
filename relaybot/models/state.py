"""Persistent state models.

Models:
- UserRecord: registered non-admin user with optional AI override
- AISettings: process-wide AI configuration
- AdminRow, UserRow, AISettingsRow: SQLModel tables backing the SQL store
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from sqlmodel import Field as SQLField
from sqlmodel import SQLModel

DEFAULT_CHARACTER_PROMPT = (
    "You are InstantTalkBot, a friendly and helpful AI assistant for Telegram. "
    "You have a vibrant personality and love to chat with users. You provide helpful "
    "and thoughtful responses while maintaining a positive and engaging tone. Your goal "
    "is to create meaningful conversations and provide valuable feedback to users. Be "
    "concise but informative, and always try to add a touch of personality to your responses."
)


def utc_now_iso() -> str:
    return datetime.utcnow().isoformat(timespec="milliseconds") + "Z"


class UserRecord(BaseModel):
    """
    Registered user.

    ai_enabled is None when the user never set an override; the global
    AISettings.enabled flag applies then.
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    username: Optional[str] = None
    first_name: Optional[str] = None
    joined: str = Field(default_factory=utc_now_iso)
    ai_enabled: Optional[bool] = Field(default=None, alias="aiEnabled")

    def to_document(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class AISettings(BaseModel):
    """Global AI configuration; a single instance per process."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    enabled: bool = True
    character_prompt: str = Field(default=DEFAULT_CHARACTER_PROMPT, alias="characterPrompt")

    def to_document(self) -> dict:
        return self.model_dump(by_alias=True)


class AdminRow(SQLModel, table=True):
    """Admin set member; position keeps the insertion order (first = primary)."""
    __tablename__ = "admin"

    position: Optional[int] = SQLField(default=None, primary_key=True)
    user_id: str = SQLField(index=True, unique=True, nullable=False)


class UserRow(SQLModel, table=True):
    """One row per registered user, keyed by Telegram id."""
    __tablename__ = "user_record"

    id: str = SQLField(primary_key=True)
    username: Optional[str] = SQLField(default=None, max_length=255)
    first_name: Optional[str] = SQLField(default=None, max_length=255)
    joined: str = SQLField(default_factory=utc_now_iso)
    ai_enabled: Optional[bool] = SQLField(default=None)

    def to_record(self) -> UserRecord:
        return UserRecord(
            id=self.id,
            username=self.username,
            first_name=self.first_name,
            joined=self.joined,
            ai_enabled=self.ai_enabled,
        )


class AISettingsRow(SQLModel, table=True):
    """Singleton row holding the global AI settings."""
    __tablename__ = "ai_settings"

    id: int = SQLField(default=1, primary_key=True)
    enabled: bool = SQLField(default=True)
    character_prompt: str = SQLField(default=DEFAULT_CHARACTER_PROMPT)
