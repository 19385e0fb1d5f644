# backend/event_horizon/schema.py
"""Translation between in-process field names and remote column names.

The remote tables were created with lowercased column names (``imageurl``,
``createdby``) and a different vocabulary (``date``, ``username``). All
renaming happens here so call sites only ever see in-process names.
"""

from __future__ import annotations

from typing import Any, Mapping

EVENTS = "events"
BOOKINGS = "bookings"
USERS = "users"
PAYMENTS = "payments"

# in-process field -> remote column
COLUMNS: dict[str, dict[str, str]] = {
    EVENTS: {
        "id": "id",
        "name": "name",
        "description": "description",
        "category": "category",
        "occurs_at": "date",
        "venue": "venue",
        "price": "price",
        "image_ref": "imageurl",
        "owner_id": "createdby",
    },
    BOOKINGS: {
        "id": "id",
        "event_id": "eventid",
        "user_id": "userid",
        "booked_at": "bookingdate",
    },
    USERS: {
        "id": "id",
        "display_name": "username",
        "email": "email",
        "role": "role",
    },
    PAYMENTS: {
        "id": "id",
        "event_id": "eventid",
        "amount": "amount",
        "status": "status",
        "occurred_at": "date",
    },
}

# (table, field) -> {in-process value: remote value}
VALUES: dict[tuple[str, str], dict[str, str]] = {
    (USERS, "role"): {"admin": "admin", "member": "user"},
}

# (table, field) -> in-process value for a remote value with no mapping
FALLBACKS: dict[tuple[str, str], str] = {
    (USERS, "role"): "member",
}


def _columns(table: str) -> dict[str, str]:
    try:
        return COLUMNS[table]
    except KeyError:
        raise ValueError(f"unknown table {table!r}") from None


def column(table: str, field: str) -> str:
    columns = _columns(table)
    if field not in columns:
        raise ValueError(f"unknown field {field!r} for table {table!r}")
    return columns[field]


def encode_value(table: str, field: str, value: Any) -> Any:
    value = getattr(value, "value", value)  # enums
    mapping = VALUES.get((table, field))
    if mapping is None or value is None:
        return value
    return mapping.get(value, value)


def decode_value(table: str, field: str, value: Any) -> Any:
    mapping = VALUES.get((table, field))
    if mapping is None or value is None:
        return value
    for local, remote in mapping.items():
        if remote == value:
            return local
    return FALLBACKS.get((table, field), value)


def to_row(table: str, fields: Mapping[str, Any]) -> dict[str, Any]:
    """Rename in-process fields to remote columns, raising on unknown fields."""
    return {
        column(table, field): encode_value(table, field, value)
        for field, value in fields.items()
    }


def from_row(table: str, row: Mapping[str, Any]) -> dict[str, Any]:
    """Rename remote columns to in-process fields; unknown columns are dropped."""
    out: dict[str, Any] = {}
    for field, col in _columns(table).items():
        if col in row:
            out[field] = decode_value(table, field, row[col])
    return out
