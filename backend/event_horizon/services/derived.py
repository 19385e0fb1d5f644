# backend/event_horizon/services/derived.py
"""Views that combine event and booking snapshots.

Pure functions: they own no state and never call the remote store.
"""

from __future__ import annotations

from collections import Counter
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from event_horizon.models import BookingRecord, EventRecord, EventRevenue

ALL_CATEGORIES = "All"


def has_principal_booked(bookings: Iterable[BookingRecord], event_id: str, principal_id: str) -> bool:
    return any(b.event_id == event_id and b.user_id == principal_id for b in bookings)


def bookings_with_event_details(
    bookings: Iterable[BookingRecord], events: Iterable[EventRecord]
) -> list[tuple[BookingRecord, EventRecord]]:
    """
    Inner join on event id, keeping booking order.
    Bookings whose event was deleted are dropped; deleting an event does not
    cascade to its bookings.
    """
    by_id = {event.id: event for event in events}
    return [(booking, by_id[booking.event_id]) for booking in bookings if booking.event_id in by_id]


def revenue_by_event(events: Sequence[EventRecord], bookings: Iterable[BookingRecord]) -> list[EventRevenue]:
    """Booking-derived revenue (price x bookings) per event, in event order."""
    counts = Counter(booking.event_id for booking in bookings)
    return [
        EventRevenue(event=event, booking_count=counts[event.id], revenue=event.price * counts[event.id])
        for event in events
    ]


def total_revenue(events: Sequence[EventRecord], bookings: Iterable[BookingRecord]) -> Decimal:
    return sum((row.revenue for row in revenue_by_event(events, bookings)), Decimal("0"))


def categories(events: Iterable[EventRecord]) -> list[str]:
    """Distinct categories in first-seen order."""
    return list(dict.fromkeys(event.category for event in events))


def filter_events(
    events: Iterable[EventRecord], search: str = "", category: Optional[str] = None
) -> list[EventRecord]:
    term = (search or "").lower()
    out = []
    for event in events:
        if category and category != ALL_CATEGORIES and event.category != category:
            continue
        if term and not any(term in text.lower() for text in (event.name, event.description, event.venue)):
            continue
        out.append(event)
    return out
