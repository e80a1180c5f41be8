"""Admin checks and admin-set mutation rules."""
from enum import Enum
from typing import List, Optional

from relaybot.services.state_store import StateStore


class AdminChange(str, Enum):
    """Outcome of an add/remove admin request."""
    ADDED = "added"
    REMOVED = "removed"
    ALREADY_ADMIN = "already_admin"
    NOT_PRIMARY = "not_primary"
    TARGET_IS_PRIMARY = "target_is_primary"
    LAST_ADMIN = "last_admin"
    NOT_FOUND = "not_found"


class AccessControl:
    """
    Single-tier admin check plus the primary admin distinction.

    The primary admin is the configured owner id, or the first entry of the
    admin set when no owner is configured.
    """

    def __init__(self, store: StateStore, owner_id: Optional[str] = None):
        self.store = store
        self.owner_id = owner_id

    def admins(self) -> List[str]:
        return self.store.load_admins()

    def primary_admin_id(self, admins: Optional[List[str]] = None) -> Optional[str]:
        if self.owner_id:
            return self.owner_id
        admins = self.admins() if admins is None else admins
        return admins[0] if admins else None

    def is_admin(self, user_id) -> bool:
        return str(user_id) in self.admins()

    def is_primary_admin(self, user_id) -> bool:
        return str(user_id) == self.primary_admin_id()

    def add_admin(self, requester_id: str, new_admin_id: str) -> AdminChange:
        """Add an admin; only the primary admin may do so."""
        admins = self.admins()
        if str(requester_id) != self.primary_admin_id(admins):
            return AdminChange.NOT_PRIMARY
        if new_admin_id in admins:
            return AdminChange.ALREADY_ADMIN

        admins.append(new_admin_id)
        self.store.save_admins(admins)
        return AdminChange.ADDED

    def remove_admin(self, requester_id: str, target_id: str) -> AdminChange:
        """
        Remove an admin.

        The primary admin can never be removed and the set is never emptied.
        """
        admins = self.admins()
        primary_id = self.primary_admin_id(admins)
        if admins == [target_id]:
            return AdminChange.LAST_ADMIN
        if target_id == primary_id:
            return AdminChange.TARGET_IS_PRIMARY
        if str(requester_id) != primary_id:
            return AdminChange.NOT_PRIMARY

        remaining = [admin_id for admin_id in admins if admin_id != target_id]
        if len(remaining) == len(admins):
            return AdminChange.NOT_FOUND

        self.store.save_admins(remaining)
        return AdminChange.REMOVED
