# backend/event_horizon/services/payments.py
from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Awaitable, Callable, Optional

from event_horizon.errors import DuplicateBookingError, NotAuthenticatedError, PaymentFailedError
from event_horizon.gateway import RemoteStoreGateway
from event_horizon.models import BookingRecord, EventRecord, PaymentRecord, PaymentStatus
from event_horizon.schema import PAYMENTS
from event_horizon.services.bookings import BookingStore
from event_horizon.session import SessionStateManager

# (amount, customer email) -> outcome reported by the payment provider
Charge = Callable[[Decimal, Optional[str]], Awaitable[PaymentStatus]]


class PaymentLedger:
    """Append-only record of payment attempts; payments are never read back."""

    def __init__(self, gateway: RemoteStoreGateway) -> None:
        self._gateway = gateway

    async def record(self, amount: Decimal, status: PaymentStatus, event_id: Optional[str] = None) -> PaymentRecord:
        row = await self._gateway.insert(
            PAYMENTS,
            {
                "event_id": event_id,
                "amount": str(amount),
                "status": status,
                "occurred_at": datetime.now(timezone.utc).isoformat(),
            },
        )
        return PaymentRecord.model_validate(row)


class CheckoutService:
    """
    Pay for an event, then book it.
    The two writes are not atomic: if the booking insert fails after a
    completed payment, the payment row stays and the error propagates.
    """

    def __init__(self, session: SessionStateManager, bookings: BookingStore, ledger: PaymentLedger) -> None:
        self._session = session
        self._bookings = bookings
        self._ledger = ledger

    async def checkout(self, event: EventRecord, charge: Charge) -> BookingRecord:
        principal = self._session.principal
        if principal is None:
            raise NotAuthenticatedError("book an event")
        # reject before charging anyone
        if self._bookings.exists(event.id, principal.id):
            raise DuplicateBookingError(event.id, principal.id)

        status = PaymentStatus(await charge(event.price, principal.email))
        await self._ledger.record(event.price, status, event_id=event.id)
        if status is not PaymentStatus.completed:
            raise PaymentFailedError(status.value)

        try:
            return await self._bookings.create(event.id)
        except Exception:
            logging.error("Payment for event %s completed but booking failed for %s", event.id, principal.id)
            raise
