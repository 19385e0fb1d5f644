"""Tests for the unscoped EventStore."""

import asyncio
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from event_horizon.errors import NotAuthenticatedError, NotAuthorizedError, RemoteError
from event_horizon.models import EventDraft
from event_horizon.services.events import EventStore
from tests.conftest import event_fields


def make_draft(**overrides) -> EventDraft:
    fields = {
        "name": "Art Expo",
        "description": "Modern art",
        "category": "Exhibition",
        "occurs_at": datetime(2030, 6, 1, tzinfo=timezone.utc),
        "venue": "Gallery C",
        "price": Decimal("25.00"),
    }
    fields.update(overrides)
    return EventDraft(**fields)


class TestEventSnapshot:
    async def test_mount_fetches_snapshot(self, gateway, session):
        first = gateway.seed("events", **event_fields(name="First"))
        gateway.seed("events", **event_fields(name="Second"))
        store = EventStore(gateway, session)

        await store.mount()

        assert [e.name for e in store.list()] == ["First", "Second"]
        assert store.get_by_id(first["id"]).name == "First"
        assert store.get_by_id("missing") is None
        assert gateway.calls[-2:] == [("subscribe", "events"), ("query", "events")]
        await store.unmount()

    async def test_notification_refetches_full_snapshot(self, gateway, events):
        gateway.seed("events", **event_fields(name="Late Arrival"))

        await gateway.notify("events")

        assert [e.name for e in events.list()] == ["Late Arrival"]

    async def test_refresh_is_idempotent(self, gateway, events):
        gateway.seed("events", **event_fields())

        await events.refresh()
        once = events.list()
        await events.refresh()

        assert events.list() == once

    async def test_owned_by(self, gateway, events):
        gateway.seed("events", **event_fields(owner_id="a"))
        gateway.seed("events", **event_fields(owner_id="b"))
        await events.refresh()

        assert [e.owner_id for e in events.owned_by("a")] == ["a"]

    async def test_older_fetch_resolving_last_is_discarded(self, gateway, events):
        gateway.seed("events", **event_fields(name="Before"))
        original_query = gateway.query
        gates = []

        async def gated_query(table, predicate=None):
            rows = await original_query(table, predicate)
            gate = asyncio.Event()
            gates.append(gate)
            await gate.wait()
            return rows

        gateway.query = gated_query
        older = asyncio.create_task(events.refresh())
        await asyncio.sleep(0)
        gateway.tables["events"][0]["name"] = "After"
        newer = asyncio.create_task(events.refresh())
        await asyncio.sleep(0)

        gates[1].set()
        await newer
        gates[0].set()
        await older

        assert [e.name for e in events.list()] == ["After"]


class TestEventMutations:
    async def test_admin_creates_event_with_owner(self, gateway, session, events, admin):
        await session.sign_in("admin@example.com", "admin-pass")

        created = await events.create(make_draft())

        assert created.owner_id == admin.id
        assert created.price == Decimal("25.00")
        assert events.list() == [created]

    async def test_member_cannot_create_event(self, gateway, session, events, member):
        await session.sign_in("alice@example.com", "secret-pass")

        with pytest.raises(NotAuthorizedError):
            await events.create(make_draft())

        assert gateway.calls_to("insert") == []

    async def test_anonymous_cannot_create_event(self, events):
        with pytest.raises(NotAuthenticatedError):
            await events.create(make_draft())

    async def test_update_replaces_after_confirmation(self, gateway, events):
        row = gateway.seed("events", **event_fields(name="Old"))
        await events.refresh()
        record = events.get_by_id(row["id"])

        updated = await events.update(record.model_copy(update={"name": "New"}))

        assert events.get_by_id(row["id"]).name == "New"
        assert updated.name == "New"
        assert gateway.tables["events"][0]["name"] == "New"

    async def test_failed_update_keeps_previous_snapshot(self, gateway, events):
        row = gateway.seed("events", **event_fields(name="Old"))
        await events.refresh()
        before = events.list()
        gateway.failures["update"] = RemoteError("permission denied", status_code=403)

        with pytest.raises(RemoteError):
            await events.update(events.get_by_id(row["id"]).model_copy(update={"name": "New"}))

        assert events.list() == before

    async def test_failed_remove_keeps_record(self, gateway, events):
        row = gateway.seed("events", **event_fields())
        await events.refresh()
        gateway.failures["remove"] = RemoteError("network down")

        with pytest.raises(RemoteError):
            await events.remove(row["id"])

        assert events.get_by_id(row["id"]) is not None

    async def test_remove_filters_cache(self, gateway, events):
        row = gateway.seed("events", **event_fields())
        await events.refresh()

        await events.remove(row["id"])

        assert events.list() == []
        assert gateway.tables["events"] == []
