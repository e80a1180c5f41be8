"""State store for admins, user records and AI settings.

Two backends share one interface:
- JsonStateStore: three whole-document JSON files, last write wins
- SqlStateStore: SQLModel tables with per-row read/modify/write
"""
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import ValidationError
from sqlalchemy.engine import Engine
from sqlmodel import Session, select

from relaybot.database import init_db
from relaybot.models.state import AdminRow, AISettings, AISettingsRow, UserRecord, UserRow

logger = logging.getLogger(__name__)


class StateStore:
    """Interface of the state backends."""

    def initialize(self) -> None:
        raise NotImplementedError

    def load_admins(self) -> List[str]:
        raise NotImplementedError

    def save_admins(self, admins: List[str]) -> None:
        raise NotImplementedError

    def load_users(self) -> Dict[str, UserRecord]:
        raise NotImplementedError

    def save_users(self, users: Dict[str, UserRecord]) -> None:
        raise NotImplementedError

    def load_ai_settings(self) -> AISettings:
        raise NotImplementedError

    def save_ai_settings(self, ai_settings: AISettings) -> None:
        raise NotImplementedError

    def get_user(self, user_id: str) -> Optional[UserRecord]:
        return self.load_users().get(user_id)

    def upsert_user(self, record: UserRecord) -> None:
        users = self.load_users()
        users[record.id] = record
        self.save_users(users)


class JsonStateStore(StateStore):
    """
    Whole-document JSON persistence.

    Every load reads the full file and every save overwrites it. A missing or
    corrupt document yields its empty default instead of failing the caller.
    """

    ADMINS_FILE = "admins.json"
    USERS_FILE = "users.json"
    AI_SETTINGS_FILE = "ai_settings.json"

    def __init__(self, data_dir: Path, seed_admin_id: str):
        self.data_dir = Path(data_dir)
        self.seed_admin_id = seed_admin_id
        self.admins_path = self.data_dir / self.ADMINS_FILE
        self.users_path = self.data_dir / self.USERS_FILE
        self.ai_settings_path = self.data_dir / self.AI_SETTINGS_FILE

    def initialize(self) -> None:
        """Create the data directory and seed any missing document."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        if not self.admins_path.exists():
            self._write(self.admins_path, [self.seed_admin_id])
            logger.info(f"Bot initialized with primary admin ID: {self.seed_admin_id}")
        if not self.users_path.exists():
            self._write(self.users_path, {})
        if not self.ai_settings_path.exists():
            self._write(self.ai_settings_path, AISettings().to_document())

    def load_admins(self) -> List[str]:
        document = self._read(self.admins_path)
        if not isinstance(document, list):
            if document is not None:
                logger.error(f"Invalid admins document in {self.admins_path}")
            return []
        return [str(admin_id) for admin_id in document]

    def save_admins(self, admins: List[str]) -> None:
        self._write(self.admins_path, list(admins))

    def load_users(self) -> Dict[str, UserRecord]:
        document = self._read(self.users_path)
        if not isinstance(document, dict):
            if document is not None:
                logger.error(f"Invalid users document in {self.users_path}")
            return {}
        users = {}
        for user_id, record in document.items():
            try:
                users[str(user_id)] = UserRecord.model_validate(record)
            except ValidationError as e:
                logger.error(f"Skipping invalid user record {user_id}: {str(e)}")
        return users

    def save_users(self, users: Dict[str, UserRecord]) -> None:
        self._write(
            self.users_path,
            {user_id: record.to_document() for user_id, record in users.items()},
        )

    def load_ai_settings(self) -> AISettings:
        document = self._read(self.ai_settings_path)
        if document is None:
            return AISettings()
        try:
            return AISettings.model_validate(document)
        except ValidationError as e:
            logger.error(f"Error reading AI settings file: {str(e)}")
            return AISettings()

    def save_ai_settings(self, ai_settings: AISettings) -> None:
        self._write(self.ai_settings_path, ai_settings.to_document())

    def _read(self, path: Path) -> Any:
        """Parse a document, returning None when it is missing or unreadable."""
        try:
            with path.open("r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Error reading {path.name}: {str(e)}")
            return None

    def _write(self, path: Path, document: Any) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as f:
            json.dump(document, f)


class SqlStateStore(StateStore):
    """SQLModel-backed persistence keyed per admin and per user."""

    def __init__(self, engine: Engine, seed_admin_id: str):
        self.engine = engine
        self.seed_admin_id = seed_admin_id

    def initialize(self) -> None:
        """Create tables and seed the admin set and AI settings row."""
        init_db(self.engine)
        with Session(self.engine) as session:
            if session.exec(select(AdminRow)).first() is None:
                session.add(AdminRow(user_id=self.seed_admin_id))
                logger.info(f"Bot initialized with primary admin ID: {self.seed_admin_id}")
            if session.get(AISettingsRow, 1) is None:
                session.add(AISettingsRow(id=1))
            session.commit()

    def load_admins(self) -> List[str]:
        try:
            with Session(self.engine) as session:
                rows = session.exec(select(AdminRow).order_by(AdminRow.position)).all()
                return [row.user_id for row in rows]
        except Exception as e:
            logger.error(f"Error reading admins table: {str(e)}")
            return []

    def save_admins(self, admins: List[str]) -> None:
        with Session(self.engine) as session:
            for row in session.exec(select(AdminRow)).all():
                session.delete(row)
            session.flush()
            for position, admin_id in enumerate(admins, start=1):
                session.add(AdminRow(position=position, user_id=admin_id))
            session.commit()

    def load_users(self) -> Dict[str, UserRecord]:
        try:
            with Session(self.engine) as session:
                rows = session.exec(select(UserRow)).all()
                return {row.id: row.to_record() for row in rows}
        except Exception as e:
            logger.error(f"Error reading users table: {str(e)}")
            return {}

    def save_users(self, users: Dict[str, UserRecord]) -> None:
        with Session(self.engine) as session:
            for row in session.exec(select(UserRow)).all():
                session.delete(row)
            session.flush()
            for record in users.values():
                session.add(self._to_row(record))
            session.commit()

    def get_user(self, user_id: str) -> Optional[UserRecord]:
        try:
            with Session(self.engine) as session:
                row = session.get(UserRow, user_id)
                return row.to_record() if row else None
        except Exception as e:
            logger.error(f"Error reading user {user_id}: {str(e)}")
            return None

    def upsert_user(self, record: UserRecord) -> None:
        with Session(self.engine) as session:
            session.merge(self._to_row(record))
            session.commit()

    def load_ai_settings(self) -> AISettings:
        try:
            with Session(self.engine) as session:
                row = session.get(AISettingsRow, 1)
        except Exception as e:
            logger.error(f"Error reading AI settings: {str(e)}")
            return AISettings()
        if row is None:
            return AISettings()
        return AISettings(enabled=row.enabled, character_prompt=row.character_prompt)

    def save_ai_settings(self, ai_settings: AISettings) -> None:
        with Session(self.engine) as session:
            session.merge(
                AISettingsRow(
                    id=1,
                    enabled=ai_settings.enabled,
                    character_prompt=ai_settings.character_prompt,
                )
            )
            session.commit()

    @staticmethod
    def _to_row(record: UserRecord) -> UserRow:
        return UserRow(
            id=record.id,
            username=record.username,
            first_name=record.first_name,
            joined=record.joined,
            ai_enabled=record.ai_enabled,
        )
