# backend/event_horizon/services/collection.py
"""In-memory mirror of one remote table.

Subclasses pick the table, the record model and the scope (the equality
predicate sent with every fetch). Local state changes only after the remote
store confirmed the operation; a failed call leaves the cache untouched.
"""

from __future__ import annotations

import logging
from typing import Any, Generic, Mapping, Optional, TypeVar

from event_horizon.gateway import RemoteStoreGateway
from event_horizon.models import Record
from event_horizon.realtime import Subscription

T = TypeVar("T", bound=Record)


class CollectionStore(Generic[T]):
    table: str
    model: type[T]

    def __init__(self, gateway: RemoteStoreGateway) -> None:
        self._gateway = gateway
        self._records: list[T] = []
        self._records_scope: Optional[dict] = None
        self._subscription: Optional[Subscription] = None
        self._subscription_scope: Optional[dict] = None
        self._issued = 0
        self._applied = 0
        self.mounted = False

    def scope(self) -> Optional[dict]:
        """Predicate for fetches; None means there is nothing this store may show."""
        return {}

    def _removal_match(self) -> Optional[dict]:
        return None

    # reads

    def list(self) -> list[T]:
        if self._records_scope is None or self._records_scope != self.scope():
            return []
        return list(self._records)

    def get_by_id(self, id: str) -> Optional[T]:
        for record in self.list():
            if record.id == id:
                return record
        return None

    # lifecycle

    async def mount(self) -> None:
        # Subscribe before the first fetch so an early notification is not lost.
        self.mounted = True
        await self._resubscribe()
        await self.refresh()

    async def unmount(self) -> None:
        self.mounted = False
        await self._drop_subscription()

    async def _drop_subscription(self) -> None:
        subscription, self._subscription = self._subscription, None
        self._subscription_scope = None
        if subscription is not None:
            await subscription.unsubscribe()

    async def _resubscribe(self) -> None:
        scope = self.scope()
        if self._subscription is not None and scope == self._subscription_scope:
            return
        await self._drop_subscription()
        if scope is None:
            return
        self._subscription = await self._gateway.subscribe_to_changes(self.table, scope, self.refresh)
        self._subscription_scope = scope

    def _clear(self) -> None:
        self._records = []
        self._records_scope = None
        # any fetch still in flight belongs to the old scope
        self._applied = self._issued

    async def refresh(self) -> None:
        """Replace the cache with a full scoped snapshot."""
        scope = self.scope()
        if scope is None:
            self._clear()
            return
        self._issued += 1
        ticket = self._issued
        rows = await self._gateway.query(self.table, scope)
        if ticket < self._applied or scope != self.scope():
            logging.debug("Discarding stale %s snapshot (ticket %s)", self.table, ticket)
            return
        self._applied = ticket
        self._records = [self.model.model_validate(row) for row in rows]
        self._records_scope = scope

    # mutations

    def _in_scope(self, scope: Optional[dict]) -> bool:
        return scope is not None and scope == self.scope()

    async def _insert(self, fields: Mapping[str, Any]) -> T:
        scope = self.scope()
        row = await self._gateway.insert(self.table, fields)
        record = self.model.model_validate(row)
        if self._in_scope(scope):
            if self._records_scope != scope:
                self._records = []
            self._records = [*self._records, record]
            self._records_scope = scope
        return record

    async def update(self, record: T) -> T:
        patch = record.model_dump(mode="json", exclude={"id"})
        await self._gateway.update(self.table, record.id, patch)
        self._records = [record if existing.id == record.id else existing for existing in self._records]
        return record

    async def remove(self, id: str) -> None:
        await self._gateway.remove(self.table, id, self._removal_match())
        self._records = [record for record in self._records if record.id != id]
