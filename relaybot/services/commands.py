"""Text command handlers (/start, /help, admin management, AI toggles)."""
import logging
import re
from typing import Callable, Dict, List, Optional

from relaybot.models.state import UserRecord
from relaybot.models.update import Message, TelegramUser
from relaybot.services.access import AccessControl, AdminChange
from relaybot.services.ai_responder import AIResponder
from relaybot.services.state_store import StateStore
from relaybot.services.telegram_client import TelegramClient, TelegramError

logger = logging.getLogger(__name__)

ADMIN_ONLY_COMMANDS = frozenset({"addadmin", "removeadmin", "aimode", "setcharacter", "listadmins"})

COMMAND_PATTERN = re.compile(r"^/([A-Za-z0-9_]+)(?:@\w+)?(?:\s+(.*))?$", re.DOTALL)

NOT_AUTHORIZED = "You are not authorized to use this command."

PRIMARY_ADMIN_WELCOME = """Welcome, Primary Admin (Bot Owner)! Available commands:
/addadmin [user_id] - Add a new admin
/removeadmin [user_id] - Remove an admin
/listadmins - List all admin IDs
/aimode [on/off] - Turn AI mode on or off globally
/setcharacter [character description] - Set the AI character/personality

Reply to any forwarded message to respond to the user

As the primary admin, only you can add or remove other admins."""

ADMIN_WELCOME = """Welcome, Admin! Available commands:
/listadmins - List all admin IDs
/aimode [on/off] - Turn AI mode on or off globally
/setcharacter [character description] - Set the AI character/personality

Reply to any forwarded message to respond to the user

Note: Only the primary admin can add or remove other admins."""

USER_WELCOME = (
    "Welcome to InstantTalkBot! Send any message to chat with me "
    "or use /help to see available commands."
)

ADMIN_HELP = """Available commands for admins:
/addadmin [user_id] - Add a new admin (primary admin only)
/removeadmin [user_id] - Remove an admin (primary admin only)
/listadmins - List all admin IDs
/aimode [on/off] - Turn AI mode on or off globally
/setcharacter [character description] - Set the AI character/personality
/ai [on/off] - Turn AI on or off for yourself

Reply to any forwarded message to respond to the user"""

USER_HELP = """Available commands:
/help - Show this help message
/ai [on/off] - Turn AI responses on or off for yourself
/clear - Clear your conversation history with the AI

Send any message to chat with the AI assistant!"""

ADD_ADMIN_REPLIES = {
    AdminChange.NOT_PRIMARY: "Only the primary admin (bot owner) can add new admins.",
    AdminChange.ALREADY_ADMIN: "This user is already an admin.",
}

REMOVE_ADMIN_REPLIES = {
    AdminChange.TARGET_IS_PRIMARY: "Cannot remove the primary admin (bot owner).",
    AdminChange.NOT_PRIMARY: "Only the primary admin (bot owner) can remove admins.",
    AdminChange.LAST_ADMIN: "Cannot remove the last admin.",
    AdminChange.NOT_FOUND: "Admin not found.",
}


def parse_command(text: str) -> Optional[tuple[str, List[str], str]]:
    """
    Split a command message.

    Returns:
        (name, args, remainder) with any @botname suffix stripped from the
        name, or None if text is not a command
    """
    match = COMMAND_PATTERN.match(text)
    if match is None:
        return None
    name = match.group(1).lower()
    remainder = match.group(2) or ""
    return name, remainder.split(), remainder


def register_user(store: StateStore, user: TelegramUser) -> UserRecord:
    """Create the user's record on first contact; existing records are untouched."""
    user_id = str(user.id)
    record = store.get_user(user_id)
    if record is None:
        record = UserRecord(
            id=user_id,
            username=user.username or "unknown",
            first_name=user.first_name or "unknown",
        )
        store.upsert_user(record)
        logger.info(f"Registered new user {user_id}")
    return record


class CommandHandler:
    """Dispatches recognized commands; unknown commands fall through as text."""

    def __init__(
        self,
        store: StateStore,
        access: AccessControl,
        responder: AIResponder,
        telegram: TelegramClient,
    ):
        self.store = store
        self.access = access
        self.responder = responder
        self.telegram = telegram
        self._handlers: Dict[str, Callable[[Message, str, List[str], str, bool], None]] = {
            "start": self.start,
            "help": self.help,
            "listadmins": self.list_admins,
            "addadmin": self.add_admin,
            "removeadmin": self.remove_admin,
            "aimode": self.ai_mode,
            "ai": self.ai,
            "setcharacter": self.set_character,
            "clear": self.clear,
        }

    def handle(self, message: Message, sender_id: str, is_admin: bool) -> bool:
        """
        Run the command in message, if any.

        Returns:
            True if the message was a recognized command
        """
        parsed = parse_command(message.text or "")
        if parsed is None:
            return False
        name, args, remainder = parsed
        handler = self._handlers.get(name)
        if handler is None:
            return False

        if name in ADMIN_ONLY_COMMANDS and not is_admin:
            self.reply(message, NOT_AUTHORIZED)
            return True

        handler(message, sender_id, args, remainder, is_admin)
        return True

    def reply(self, message: Message, text: str) -> None:
        chat_id = str(message.chat.id) if message.chat else str(message.from_user.id)
        try:
            self.telegram.send_message(chat_id, text)
        except TelegramError as e:
            logger.error(f"Failed to reply in chat {chat_id}: {e.description}")

    def start(self, message, sender_id, args, remainder, is_admin) -> None:
        if is_admin:
            if self.access.is_primary_admin(sender_id):
                self.reply(message, PRIMARY_ADMIN_WELCOME)
            else:
                self.reply(message, ADMIN_WELCOME)
            return

        register_user(self.store, message.from_user)
        self.reply(message, USER_WELCOME)

    def help(self, message, sender_id, args, remainder, is_admin) -> None:
        self.reply(message, ADMIN_HELP if is_admin else USER_HELP)

    def list_admins(self, message, sender_id, args, remainder, is_admin) -> None:
        admins = self.access.admins()
        primary_id = self.access.primary_admin_id(admins)

        lines = ["👑 Admin List:", ""]
        for index, admin_id in enumerate(admins, start=1):
            if admin_id == primary_id:
                lines.append(f"{index}. {admin_id} (Primary Admin/Bot Owner) 👑")
            else:
                lines.append(f"{index}. {admin_id}")
        lines.append("")
        lines.append("Only the primary admin can add or remove other admins.")
        self.reply(message, "\n".join(lines))

    def add_admin(self, message, sender_id, args, remainder, is_admin) -> None:
        if len(args) != 1:
            self.reply(message, "Usage: /addadmin [user_id]")
            return

        new_admin_id = args[0].strip()
        result = self.access.add_admin(sender_id, new_admin_id)
        if result is AdminChange.ADDED:
            self.reply(message, f"User {new_admin_id} has been added as an admin.")
        else:
            self.reply(message, ADD_ADMIN_REPLIES[result])

    def remove_admin(self, message, sender_id, args, remainder, is_admin) -> None:
        if len(args) != 1:
            self.reply(message, "Usage: /removeadmin [user_id]")
            return

        target_id = args[0].strip()
        result = self.access.remove_admin(sender_id, target_id)
        if result is AdminChange.REMOVED:
            self.reply(message, f"User {target_id} has been removed from admins.")
        else:
            self.reply(message, REMOVE_ADMIN_REPLIES[result])

    def ai_mode(self, message, sender_id, args, remainder, is_admin) -> None:
        enabled = _parse_switch(args)
        if enabled is None:
            self.reply(message, "Usage: /aimode [on/off]")
            return

        ai_settings = self.store.load_ai_settings()
        ai_settings.enabled = enabled
        self.store.save_ai_settings(ai_settings)
        self.reply(message, f"AI mode has been turned {'ON' if enabled else 'OFF'} globally.")

    def ai(self, message, sender_id, args, remainder, is_admin) -> None:
        enabled = _parse_switch(args)
        if enabled is None:
            self.reply(message, "Usage: /ai [on/off]")
            return

        self.responder.set_user_override(sender_id, enabled)
        self.reply(message, f"AI responses for you have been turned {'ON' if enabled else 'OFF'}.")

    def set_character(self, message, sender_id, args, remainder, is_admin) -> None:
        character_prompt = remainder.strip()
        if not character_prompt:
            self.reply(message, "Usage: /setcharacter [character description]")
            return

        ai_settings = self.store.load_ai_settings()
        ai_settings.character_prompt = character_prompt
        self.store.save_ai_settings(ai_settings)
        self.reply(message, "AI character has been updated!")

    def clear(self, message, sender_id, args, remainder, is_admin) -> None:
        if self.responder.clear_history(sender_id):
            self.reply(message, "Your conversation history with the AI has been cleared.")
        else:
            self.reply(message, "You have no conversation history to clear.")


def _parse_switch(args: List[str]) -> Optional[bool]:
    """Parse a single on/off argument; None when malformed."""
    if len(args) != 1 or args[0].lower() not in ("on", "off"):
        return None
    return args[0].lower() == "on"
