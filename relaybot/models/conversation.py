"""In-memory conversation transcripts for the AI responder.

Models:
- ConversationTurn: one user or model turn
- ConversationHistory: per-user transcripts, bounded to the most recent turns
"""
from typing import Dict, List, Literal

from pydantic import BaseModel

Role = Literal["user", "model"]


class ConversationTurn(BaseModel):
    """Single transcript entry."""
    role: Role
    text: str


class ConversationHistory:
    """
    Process-local transcripts keyed by user id.

    Not persisted: transcripts are lost on restart.
    """

    def __init__(self, limit: int = 20):
        self.limit = limit
        self._turns: Dict[str, List[ConversationTurn]] = {}

    def get(self, user_id: str) -> List[ConversationTurn]:
        """Return a copy of the user's transcript (empty if none)."""
        return list(self._turns.get(user_id, []))

    def append(self, user_id: str, role: Role, text: str) -> None:
        self._turns.setdefault(user_id, []).append(ConversationTurn(role=role, text=text))

    def trim(self, user_id: str) -> None:
        """Keep only the most recent `limit` turns."""
        turns = self._turns.get(user_id)
        if turns is not None and len(turns) > self.limit:
            self._turns[user_id] = turns[-self.limit:]

    def clear(self, user_id: str) -> bool:
        """
        Remove the user's transcript.

        Returns:
            True if a transcript existed, False otherwise
        """
        return self._turns.pop(user_id, None) is not None

    def __contains__(self, user_id: str) -> bool:
        return user_id in self._turns
