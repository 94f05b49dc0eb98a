from __future__ import annotations

from dataclasses import replace
from typing import Callable, Iterable, List, Optional, Tuple

import api.endpoints as endpoints
from api.client import PortalClient
from api.models import ManagedUser, UserRole
from state.optimistic import apply_optimistic
from utils.logger import get_logger

_logger = get_logger(__name__)


class UserDirectory:
    """
    Admin view of managed users; role changes are applied optimistically.
    ``on_change`` runs after every change, tentative or final.
    """

    def __init__(
        self,
        users: Iterable[ManagedUser] = (),
        on_change: Optional[Callable[[], None]] = None,
    ):
        self._users: List[ManagedUser] = list(users)
        self._on_change = on_change

    @property
    def users(self) -> Tuple[ManagedUser, ...]:
        return tuple(self._users)

    def replace_all(self, users: Iterable[ManagedUser]) -> None:
        self._users = list(users)
        self._changed()

    def get(self, user_id: str) -> Optional[ManagedUser]:
        for user in self._users:
            if user.id == user_id:
                return user
        return None

    def _put(self, user_id: str, updated: ManagedUser) -> None:
        self._users = [updated if u.id == user_id else u for u in self._users]
        self._changed()

    def _set_role(self, user_id: str, role: UserRole) -> None:
        current = self.get(user_id)
        if current is not None:
            self._put(user_id, replace(current, role=role))

    def _changed(self) -> None:
        if self._on_change is not None:
            self._on_change()

    async def change_role(
        self, client: PortalClient, token: str, user_id: str, role: UserRole
    ) -> Optional[ManagedUser]:
        """
        Show ``role`` immediately, then ask the server.

        Returns the server's record, or None when nothing had to change.
        On failure the previous role is put back and the error re-raised.
        """
        current = self.get(user_id)
        if current is None or current.role == role:
            return None

        updated = await apply_optimistic(
            snapshot=lambda: current.role,
            apply=lambda: self._set_role(user_id, role),
            restore=lambda previous: self._set_role(user_id, previous),
            confirm=lambda: endpoints.update_user_role(client, token, user_id, role),
        )
        self._put(user_id, updated)
        _logger.info(f"Role of {updated.username} is now {updated.role.value}.")
        return updated
