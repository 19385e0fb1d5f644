"""Tests for the EventHorizon composition root."""

from event_horizon.main import EventHorizon
from event_horizon.session import SessionState
from tests.conftest import event_fields


async def test_start_wires_components_to_one_gateway(gateway, member):
    gateway.seed("events", **event_fields(name="Indie Concert"))
    app = EventHorizon(gateway)

    await app.start()
    await app.session.sign_in("alice@example.com", "secret-pass")
    event = app.events.list()[0]
    booking = await app.bookings.create(event.id)

    assert app.session.state is SessionState.AUTHENTICATED
    assert event.name == "Indie Concert"
    assert app.bookings.list() == [booking]

    await app.close()
    assert gateway.subscriptions == []
    assert gateway.closed is True
