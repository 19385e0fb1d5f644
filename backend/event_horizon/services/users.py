# backend/event_horizon/services/users.py
from __future__ import annotations

from typing import Iterable

from event_horizon.errors import NotAuthenticatedError, NotAuthorizedError
from event_horizon.gateway import RemoteStoreGateway
from event_horizon.models import Principal, Role
from event_horizon.schema import USERS
from event_horizon.session import SessionStateManager


class UserDirectory:
    """Admin view over user profiles."""

    def __init__(self, gateway: RemoteStoreGateway, session: SessionStateManager) -> None:
        self._gateway = gateway
        self._session = session

    def _require_admin(self, action: str) -> None:
        if not self._session.is_authenticated:
            raise NotAuthenticatedError(action)
        if not self._session.is_admin:
            raise NotAuthorizedError(action)

    async def list_users(self) -> list[Principal]:
        self._require_admin("list users")
        rows = await self._gateway.query(USERS)
        return [Principal.model_validate(row) for row in rows]

    async def set_role(self, user_id: str, role: Role) -> None:
        self._require_admin("change user roles")
        await self._gateway.update(USERS, user_id, {"role": role})


def search_users(users: Iterable[Principal], term: str) -> list[Principal]:
    term = (term or "").lower()
    return [u for u in users if term in u.display_name.lower() or term in u.email.lower()]
