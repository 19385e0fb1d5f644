# backend/scripts/seed_demo.py
"""
Usage:
  # ensure EVENT_HORIZON_URL and EVENT_HORIZON_ANON_KEY env vars are set
  python backend/scripts/seed_demo.py
This script will:
 - skip everything if the events table already has rows
 - create the admin account and its profile if missing
 - create sample events owned by the admin
"""
import asyncio
import os
from datetime import datetime, timedelta, timezone

from event_horizon.errors import EventHorizonError
from event_horizon.gateway import create_gateway
from event_horizon.models import EventDraft, Role
from event_horizon.schema import EVENTS, USERS

ADMIN_EMAIL = os.getenv("SEED_ADMIN_EMAIL", "admin@example.com")
ADMIN_PASSWORD = os.getenv("SEED_ADMIN_PASSWORD", "password")

now = datetime.now(timezone.utc)
DEMO_EVENTS = [
    EventDraft(
        name="Tech Conference 2025",
        description="Join us for the biggest tech conference of the year.",
        category="Conference",
        occurs_at=now + timedelta(days=30),
        venue="Convention Center",
        price="49.99",
        image_ref="https://images.unsplash.com/photo-1540575467063-178a50c2df87",
    ),
    EventDraft(
        name="Music Festival",
        description="A weekend of live music across three stages.",
        category="Concert",
        occurs_at=now + timedelta(days=45),
        venue="Central Park",
        price="79.99",
        image_ref="https://images.unsplash.com/photo-1459749411175-04bf5292ceea",
    ),
    EventDraft(
        name="Photography Workshop",
        description="Hands-on workshop covering composition and lighting.",
        category="Workshop",
        occurs_at=now + timedelta(days=14),
        venue="Art Studio",
        price="29.99",
        image_ref="https://images.unsplash.com/photo-1452587925148-ce544e77e70d",
    ),
]


async def seed():
    gateway = create_gateway()
    try:
        existing = await gateway.query(EVENTS)
        if existing:
            print("Database already has events, skipping seed.")
            return

        admins = await gateway.query(USERS, {"email": ADMIN_EMAIL})
        if admins:
            admin_id = admins[0]["id"]
            await gateway.sign_in(ADMIN_EMAIL, ADMIN_PASSWORD)
        else:
            user = await gateway.sign_up(ADMIN_EMAIL, ADMIN_PASSWORD)
            admin_id = user.id
            await gateway.insert(USERS, {"id": admin_id, "display_name": "admin", "email": ADMIN_EMAIL, "role": Role.admin})

        created = []
        for draft in DEMO_EVENTS:
            row = await gateway.insert(EVENTS, {**draft.model_dump(mode="json"), "owner_id": admin_id})
            created.append(row["name"])
    except EventHorizonError as exc:
        print(f"Seed failed: {exc}")
        raise SystemExit(1)
    finally:
        await gateway.aclose()

    print("Seed complete.")
    print("Admin:", ADMIN_EMAIL)
    print("Events created:", created)


if __name__ == "__main__":
    asyncio.run(seed())
