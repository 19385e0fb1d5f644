# backend/event_horizon/main.py
"""
Composition root: build one gateway at startup and hand it to every component.

    app = create_app()
    await app.start()
    ...
    await app.close()
"""
from typing import Optional

import httpx

from event_horizon.config import configure_logging
from event_horizon.gateway import RemoteStoreGateway, create_gateway
from event_horizon.services.bookings import BookingStore
from event_horizon.services.events import EventStore
from event_horizon.services.payments import CheckoutService, PaymentLedger
from event_horizon.services.users import UserDirectory
from event_horizon.session import SessionStateManager


class EventHorizon:
    def __init__(self, gateway: RemoteStoreGateway):
        self.gateway = gateway
        self.session = SessionStateManager(gateway)
        self.events = EventStore(gateway, self.session)
        self.bookings = BookingStore(gateway, self.session)
        self.payments = PaymentLedger(gateway)
        self.checkout = CheckoutService(self.session, self.bookings, self.payments)
        self.users = UserDirectory(gateway, self.session)

    async def start(self) -> None:
        # session first: the bookings scope depends on the principal
        await self.session.start()
        await self.events.mount()
        await self.bookings.mount()

    async def close(self) -> None:
        await self.bookings.unmount()
        await self.events.unmount()
        await self.session.stop()
        await self.gateway.aclose()


def create_app(transport: Optional[httpx.AsyncBaseTransport] = None) -> EventHorizon:
    configure_logging()
    return EventHorizon(create_gateway(transport=transport))
