# backend/event_horizon/services/bookings.py
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from event_horizon.errors import DuplicateBookingError, NotAuthenticatedError, RemoteError
from event_horizon.gateway import RemoteStoreGateway
from event_horizon.models import BookingRecord, Principal
from event_horizon.schema import BOOKINGS
from event_horizon.services.collection import CollectionStore
from event_horizon.session import SessionStateManager


class BookingStore(CollectionStore[BookingRecord]):
    """
    Bookings of the current principal.
    With scope_to_principal=False the store mirrors every booking, which is
    only fetched while an admin is signed in (dashboard revenue).
    """

    table = BOOKINGS
    model = BookingRecord

    def __init__(self, gateway: RemoteStoreGateway, session: SessionStateManager, scope_to_principal: bool = True) -> None:
        super().__init__(gateway)
        self._session = session
        self._scope_to_principal = scope_to_principal
        self._unsubscribe_session = None

    def scope(self) -> Optional[dict]:
        principal = self._session.principal
        if principal is None:
            return None
        if not self._scope_to_principal:
            return {} if principal.is_admin else None
        return {"user_id": principal.id}

    def _removal_match(self) -> Optional[dict]:
        # never let a guessed id cancel someone else's booking
        principal = self._session.principal
        return {"user_id": principal.id} if principal else None

    async def mount(self) -> None:
        if self._unsubscribe_session is None:
            self._unsubscribe_session = self._session.subscribe(self._on_principal_changed)
        await super().mount()

    async def unmount(self) -> None:
        if self._unsubscribe_session is not None:
            self._unsubscribe_session()
            self._unsubscribe_session = None
        await super().unmount()

    async def _on_principal_changed(self, principal: Optional[Principal]) -> None:
        self._clear()
        if not self.mounted:
            return
        try:
            await self._resubscribe()
            await self.refresh()
        except RemoteError as exc:
            # the principal change itself succeeded; the store stays empty until the next refresh
            logging.exception("Failed to load bookings after principal change: %s", exc)

    def exists(self, event_id: str, user_id: str) -> bool:
        return any(b.event_id == event_id and b.user_id == user_id for b in self.list())

    def for_event(self, event_id: str) -> list[BookingRecord]:
        return [b for b in self.list() if b.event_id == event_id]

    async def create(self, event_id: str) -> BookingRecord:
        principal = self._session.principal
        if principal is None:
            raise NotAuthenticatedError("book an event")
        if self.exists(event_id, principal.id):
            raise DuplicateBookingError(event_id, principal.id)
        fields = {
            "event_id": event_id,
            "user_id": principal.id,
            "booked_at": datetime.now(timezone.utc).isoformat(),
        }
        return await self._insert(fields)

    async def remove(self, id: str) -> None:
        if self._session.principal is None:
            raise NotAuthenticatedError("cancel a booking")
        await super().remove(id)
