"""Pytest configuration and shared fixtures.

Stores and the session manager talk to an in-memory FakeGateway with the
same surface as RemoteStoreGateway. It records every remote call so tests
can assert that no round-trip happened.
"""

from collections import defaultdict
from datetime import datetime, timezone
from itertools import count

import pytest

from event_horizon.callbacks import call_listener
from event_horizon.errors import RemoteError
from event_horizon.gateway import SIGNED_IN, SIGNED_OUT, USER_UPDATED
from event_horizon.models import AuthSession, AuthUser
from event_horizon.realtime import matches
from event_horizon.services.bookings import BookingStore
from event_horizon.services.events import EventStore
from event_horizon.session import SessionStateManager


def _plain(value):
    return getattr(value, "value", value)


class FakeSubscription:
    def __init__(self, gateway, entry):
        self._gateway = gateway
        self._entry = entry

    async def unsubscribe(self):
        if self._entry in self._gateway.subscriptions:
            self._gateway.subscriptions.remove(self._entry)


class FakeGateway:
    def __init__(self):
        self.tables = defaultdict(list)
        self.calls = []
        self.failures = {}
        self.subscriptions = []
        self.accounts = {}
        self.session = None
        self.listeners = []
        self.closed = False
        self._ids = count(1)

    def _call(self, op, table=None):
        self.calls.append((op, table))
        if op in self.failures:
            raise self.failures[op]

    def calls_to(self, op):
        return [c for c in self.calls if c[0] == op]

    def seed(self, table, **fields):
        row = {k: _plain(v) for k, v in fields.items()}
        row.setdefault("id", f"{table[:-1]}-{next(self._ids)}")
        self.tables[table].append(row)
        return dict(row)

    def register(self, email, password, display_name=None, role="member", profile=True):
        user = AuthUser(id=f"user-{next(self._ids)}", email=email)
        self.accounts[email] = (password, user)
        if profile:
            self.seed("users", id=user.id, display_name=display_name or email.split("@")[0], email=email, role=role)
        return user

    # tables

    async def query(self, table, predicate=None):
        self._call("query", table)
        predicate = {k: _plain(v) for k, v in (predicate or {}).items()}
        return [dict(r) for r in self.tables[table] if all(r.get(k) == v for k, v in predicate.items())]

    async def insert(self, table, record):
        self._call("insert", table)
        return self.seed(table, **record)

    async def update(self, table, id, patch):
        self._call("update", table)
        for row in self.tables[table]:
            if row["id"] == id:
                row.update({k: _plain(v) for k, v in patch.items()})

    async def remove(self, table, id, match=None):
        self._call("remove", table)
        predicate = {**(match or {}), "id": id}
        self.tables[table] = [r for r in self.tables[table] if not all(r.get(k) == v for k, v in predicate.items())]

    async def subscribe_to_changes(self, table, filter, on_change):
        self._call("subscribe", table)
        entry = (table, dict(filter or {}), on_change)
        self.subscriptions.append(entry)
        return FakeSubscription(self, entry)

    async def notify(self, table, row=None):
        for sub_table, sub_filter, on_change in list(self.subscriptions):
            if sub_table == table and matches(row or {}, sub_filter):
                await call_listener(on_change)

    async def aclose(self):
        self.closed = True

    # auth

    async def get_session(self):
        self._call("get_session")
        return self.session

    def on_session_change(self, listener):
        self.listeners.append(listener)
        return lambda: self.listeners.remove(listener)

    async def _emit(self, event):
        for listener in list(self.listeners):
            await call_listener(listener, event, self.session)

    async def sign_in(self, email, password):
        self._call("sign_in")
        account = self.accounts.get(email)
        if account is None or account[0] != password:
            raise RemoteError("Invalid login credentials", status_code=400)
        self.session = AuthSession(access_token=f"token-{account[1].id}", user=account[1])
        await self._emit(SIGNED_IN)
        return self.session

    async def sign_up(self, email, password):
        self._call("sign_up")
        if email in self.accounts:
            raise RemoteError("User already registered", status_code=422)
        user = self.register(email, password, profile=False)
        self.session = AuthSession(access_token=f"token-{user.id}", user=user)
        await self._emit(SIGNED_IN)
        return user

    async def sign_out(self):
        self._call("sign_out")
        self.session = None
        await self._emit(SIGNED_OUT)

    async def request_password_reset(self, email):
        self._call("request_password_reset")
        if email not in self.accounts:
            raise RemoteError("User not found", status_code=404)

    async def update_password(self, new_password):
        self._call("update_password")
        if self.session is None:
            raise RemoteError("Auth session missing", status_code=401)
        email = self.session.user.email
        self.accounts[email] = (new_password, self.session.user)
        await self._emit(USER_UPDATED)


def event_fields(owner_id="user-admin", **overrides):
    fields = {
        "name": "Tech Talk",
        "description": "Talks about tech",
        "category": "Conference",
        "occurs_at": datetime(2030, 5, 1, 18, 0, tzinfo=timezone.utc).isoformat(),
        "venue": "Hall B",
        "price": "10",
        "image_ref": None,
        "owner_id": owner_id,
    }
    fields.update(overrides)
    return fields


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
async def session(gateway) -> SessionStateManager:
    manager = SessionStateManager(gateway)
    await manager.start()
    yield manager
    await manager.stop()


@pytest.fixture
def member(gateway):
    return gateway.register("alice@example.com", "secret-pass", display_name="alice")


@pytest.fixture
def admin(gateway):
    return gateway.register("admin@example.com", "admin-pass", display_name="admin", role="admin")


@pytest.fixture
async def events(gateway, session) -> EventStore:
    store = EventStore(gateway, session)
    await store.mount()
    yield store
    await store.unmount()


@pytest.fixture
async def bookings(gateway, session) -> BookingStore:
    store = BookingStore(gateway, session)
    await store.mount()
    yield store
    await store.unmount()
