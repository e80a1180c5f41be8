"""AI responder backed by the Gemini completion service.

Handles:
- Effective AI-enabled resolution (user override, else global flag)
- Bounded per-user conversation history
- Completion calls with a fixed sampling and safety configuration
- Chunked delivery of long replies
"""
from typing import Any, Dict, List, Optional
import logging

from openai import OpenAI, APIError, APITimeoutError

from relaybot.models.conversation import ConversationHistory, ConversationTurn
from relaybot.models.state import UserRecord
from relaybot.services.state_store import StateStore
from relaybot.services.telegram_client import MAX_MESSAGE_LENGTH, TelegramClient, TelegramError

logger = logging.getLogger(__name__)

GENERATION_CONFIG = {
    "temperature": 0.7,
    "top_p": 0.95,
    "top_k": 40,
    "max_output_tokens": 2048,
}

HARM_CATEGORIES = (
    "HARM_CATEGORY_HARASSMENT",
    "HARM_CATEGORY_HATE_SPEECH",
    "HARM_CATEGORY_SEXUALLY_EXPLICIT",
    "HARM_CATEGORY_DANGEROUS_CONTENT",
)

SAFETY_SETTINGS = [
    {"category": category, "threshold": "BLOCK_ONLY_HIGH"} for category in HARM_CATEGORIES
]

EMPTY_RESPONSE_MESSAGE = (
    "I'm having trouble processing your request right now. Please try again later."
)
ERROR_MESSAGE = (
    "Sorry, I encountered an error while generating a response. Please try again later."
)


class EmptyCompletionError(Exception):
    """Completion service answered without usable candidate text."""


def chunk_text(text: str, limit: int = MAX_MESSAGE_LENGTH) -> List[str]:
    """Split text into consecutive slices no longer than limit."""
    return [text[i:i + limit] for i in range(0, len(text), limit)]


class AIResponder:
    """Generates AI replies for regular users."""

    def __init__(
        self,
        store: StateStore,
        history: ConversationHistory,
        client: Optional[Any] = None,
        api_key: Optional[str] = None,
        model: str = "gemini-1.5-flash",
        base_url: Optional[str] = None,
        timeout: float = 60.0,
    ):
        """
        Initialize responder.

        Args:
            store: State store holding user overrides and AI settings
            history: Process-scoped conversation transcripts
            client: OpenAI-compatible client; built per call from api_key when None
            api_key: Completion service key
            model: Model name
            base_url: OpenAI-compatible endpoint of the completion service
            timeout: Transport timeout for completion calls
        """
        self.store = store
        self.history = history
        self._client = client
        self.api_key = api_key
        self.model = model
        self.base_url = base_url
        self.timeout = timeout

    def is_enabled_for(self, user_id: str) -> bool:
        """Effective AI-enabled value: explicit user override, else global default."""
        record = self.store.get_user(user_id)
        if record is not None and record.ai_enabled is not None:
            return record.ai_enabled
        return self.store.load_ai_settings().enabled

    def set_user_override(self, user_id: str, enabled: bool) -> None:
        """Store the user's explicit override, creating the record if absent."""
        record = self.store.get_user(user_id) or UserRecord(id=user_id)
        record.ai_enabled = enabled
        self.store.upsert_user(record)

    def generate_reply(self, user_id: str, text: str) -> tuple[Optional[str], Optional[str]]:
        """
        Run one AI turn for the user.

        Flow:
        1. Append user turn
        2. Build request from character prompt + retained history
        3. Call completion service (no retry)
        4. Append model turn on success; trim history either way

        Returns:
            Tuple of (reply_text, error_message)
            - reply_text: model text if success, None on failure
            - error_message: None if success, user-facing apology if failure
        """
        self.history.append(user_id, "user", text)
        character_prompt = self.store.load_ai_settings().character_prompt

        try:
            messages = self._build_messages(character_prompt, self.history.get(user_id))
            reply = self._complete(messages)
        except EmptyCompletionError as e:
            logger.error(f"Empty completion for user {user_id}: {str(e)}")
            error = EMPTY_RESPONSE_MESSAGE
        except (APIError, APITimeoutError) as e:
            logger.error(f"Completion API error for user {user_id}: {str(e)}")
            error = ERROR_MESSAGE
        except Exception as e:
            logger.error(f"Unexpected error generating AI response for user {user_id}: {str(e)}")
            error = ERROR_MESSAGE
        else:
            self.history.append(user_id, "model", reply)
            error = None
        finally:
            self.history.trim(user_id)

        if error:
            return None, error
        logger.info(f"AI turn processed: user={user_id}, reply_length={len(reply)}")
        return reply, None

    def respond(self, telegram: TelegramClient, user_id: str, text: str) -> None:
        """Generate a reply and deliver it to the user, chunked to the message limit."""
        try:
            telegram.send_chat_action(user_id, "typing")
        except TelegramError as e:
            logger.warning(f"Failed to send typing action to {user_id}: {e.description}")

        reply, error = self.generate_reply(user_id, text)
        try:
            if error:
                telegram.send_message(user_id, error)
                return
            for chunk in chunk_text(reply):
                telegram.send_message(user_id, chunk)
        except TelegramError as e:
            logger.error(f"Failed to deliver AI response to {user_id}: {e.description}")

    def clear_history(self, user_id: str) -> bool:
        return self.history.clear(user_id)

    def _build_messages(
        self, character_prompt: str, turns: List[ConversationTurn]
    ) -> List[Dict[str, str]]:
        """
        Convert transcript to OpenAI chat format.

        The character prompt leads as the system instruction; model turns
        are sent with the assistant role.
        """
        messages = [{"role": "system", "content": character_prompt}]
        for turn in turns:
            role = "user" if turn.role == "user" else "assistant"
            messages.append({"role": role, "content": turn.text})
        return messages

    def _complete(self, messages: List[Dict[str, str]]) -> str:
        client = self._client or OpenAI(
            api_key=self.api_key,
            base_url=self.base_url,
            timeout=self.timeout,
            max_retries=0,
        )
        response = client.chat.completions.create(
            model=self.model,
            messages=messages,
            temperature=GENERATION_CONFIG["temperature"],
            top_p=GENERATION_CONFIG["top_p"],
            max_tokens=GENERATION_CONFIG["max_output_tokens"],
            extra_body={
                "top_k": GENERATION_CONFIG["top_k"],
                "safety_settings": SAFETY_SETTINGS,
            },
        )

        choices = getattr(response, "choices", None)
        if not choices:
            raise EmptyCompletionError("response carried no candidates")
        message = getattr(choices[0], "message", None)
        content = getattr(message, "content", None)
        if not isinstance(content, str) or not content.strip():
            raise EmptyCompletionError("first candidate carried no text")
        return content
