# backend/event_horizon/services/events.py
from __future__ import annotations

from event_horizon.errors import NotAuthenticatedError, NotAuthorizedError
from event_horizon.gateway import RemoteStoreGateway
from event_horizon.models import EventDraft, EventRecord
from event_horizon.schema import EVENTS
from event_horizon.services.collection import CollectionStore
from event_horizon.session import SessionStateManager


class EventStore(CollectionStore[EventRecord]):
    """All events, unscoped. Creating one requires an admin principal."""

    table = EVENTS
    model = EventRecord

    def __init__(self, gateway: RemoteStoreGateway, session: SessionStateManager) -> None:
        super().__init__(gateway)
        self._session = session

    async def create(self, draft: EventDraft) -> EventRecord:
        principal = self._session.principal
        if principal is None:
            raise NotAuthenticatedError("create an event")
        if not self._session.is_admin:
            raise NotAuthorizedError("create an event")
        fields = {**draft.model_dump(mode="json"), "owner_id": principal.id}
        return await self._insert(fields)

    def owned_by(self, owner_id: str) -> list[EventRecord]:
        return [event for event in self.list() if event.owner_id == owner_id]
