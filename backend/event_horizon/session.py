# backend/event_horizon/session.py
"""Session State Manager.

Tracks the authenticated principal. States move from UNKNOWN (initial session lookup
in flight) to ANONYMOUS or AUTHENTICATED. ``is_authenticated`` and
``is_admin`` are always derived from the current principal.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Callable, Optional

from event_horizon import config
from event_horizon.callbacks import call_listener
from event_horizon.errors import (
    AuthError,
    ConfigurationError,
    ProfileInconsistencyError,
    RemoteError,
)
from event_horizon.gateway import SIGNED_OUT, RemoteStoreGateway
from event_horizon.models import AuthSession, Principal, Role
from event_horizon.schema import USERS

PrincipalListener = Callable[[Optional[Principal]], Any]


class SessionState(Enum):
    UNKNOWN = "unknown"
    ANONYMOUS = "anonymous"
    AUTHENTICATED = "authenticated"


class SessionStateManager:
    def __init__(self, gateway: RemoteStoreGateway, min_password_length: int = config.MIN_PASSWORD_LENGTH) -> None:
        self._gateway = gateway
        self._min_password_length = min_password_length
        self._principal: Optional[Principal] = None
        self._state = SessionState.UNKNOWN
        self._listeners: list[PrincipalListener] = []
        self._unsubscribe_gateway: Optional[Callable[[], None]] = None
        self._resolution = 0
        self._registering = False
        self.last_error: Optional[AuthError] = None

    # derived state

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def principal(self) -> Optional[Principal]:
        return self._principal

    @property
    def is_authenticated(self) -> bool:
        return self._principal is not None

    @property
    def is_admin(self) -> bool:
        return self._principal is not None and self._principal.is_admin

    def subscribe(self, listener: PrincipalListener) -> Callable[[], None]:
        """Register a listener called with the new principal (or None) on every change."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # lifecycle

    async def start(self) -> None:
        # Listen before the lookup so a sign-in landing mid-lookup is not missed.
        self._unsubscribe_gateway = self._gateway.on_session_change(self._on_session_change)
        try:
            session = await self._gateway.get_session()
        except (ConfigurationError, RemoteError):
            await self._transition(None)
            raise
        await self._apply_session(session)

    async def stop(self) -> None:
        if self._unsubscribe_gateway is not None:
            self._unsubscribe_gateway()
            self._unsubscribe_gateway = None

    async def _on_session_change(self, event: str, session: Optional[AuthSession]) -> None:
        if event == SIGNED_OUT or session is None:
            self._resolution += 1
            await self._transition(None)
            return
        if self._registering:
            # sign_up resolves the profile itself once the row exists
            return
        await self._apply_session(session)

    async def _apply_session(self, session: Optional[AuthSession]) -> None:
        self._resolution += 1
        ticket = self._resolution
        if session is None:
            await self._transition(None)
            return
        user = session.user
        try:
            rows = await self._gateway.query(USERS, {"id": user.id})
        except RemoteError as exc:
            if ticket != self._resolution:
                return
            logging.error("Failed to load profile for %s: %s", user.id, exc)
            self.last_error = AuthError(exc.message)
            await self._transition(None)
            return
        if ticket != self._resolution:
            # a newer sign-in/sign-out superseded this lookup
            return
        if not rows:
            logging.warning("Auth session for %s has no matching profile row", user.id)
            self.last_error = ProfileInconsistencyError(user.id)
            await self._transition(None)
            return
        profile = rows[0]
        self.last_error = None
        await self._transition(
            Principal(
                id=user.id,
                display_name=profile.get("display_name"),
                email=user.email or profile.get("email"),
                role=profile.get("role"),
            )
        )

    async def _transition(self, principal: Optional[Principal]) -> None:
        new_state = SessionState.AUTHENTICATED if principal else SessionState.ANONYMOUS
        if principal == self._principal and new_state == self._state:
            return
        self._principal = principal
        self._state = new_state
        for listener in list(self._listeners):
            try:
                await call_listener(listener, principal)
            except Exception as exc:
                # one failing listener must not hide the change from the rest
                logging.exception("Principal listener %r failed: %s", listener, exc)

    # operations

    def _check_password(self, password: str) -> None:
        if len(password or "") < self._min_password_length:
            raise AuthError(f"Password must be at least {self._min_password_length} characters")

    async def sign_in(self, email: str, password: str) -> Principal:
        try:
            await self._gateway.sign_in(email, password)
        except RemoteError as exc:
            raise AuthError(exc.message) from exc
        if self._principal is None:
            raise self.last_error or AuthError("Failed to login")
        return self._principal

    async def sign_up(self, username: str, email: str, password: str) -> None:
        self._check_password(password)
        self._registering = True
        try:
            user = await self._gateway.sign_up(email, password)
            await self._gateway.insert(
                USERS,
                {"id": user.id, "display_name": username, "email": email, "role": Role.member},
            )
        except RemoteError as exc:
            raise AuthError(exc.message) from exc
        finally:
            self._registering = False
        # Without email confirmation the backend already signed us in.
        session = await self._gateway.get_session()
        if session is not None:
            await self._apply_session(session)

    async def sign_out(self) -> None:
        # Clear locally first so scoped stores drop their data before any await resolves.
        self._resolution += 1
        await self._transition(None)
        try:
            await self._gateway.sign_out()
        except RemoteError as exc:
            logging.warning("Logout failed remotely: %s", exc)

    async def request_password_reset(self, email: str) -> None:
        try:
            await self._gateway.request_password_reset(email)
        except RemoteError as exc:
            # Same outcome for unknown addresses, so accounts cannot be enumerated.
            logging.warning("Password reset request failed: %s", exc)

    async def reset_password(self, new_password: str) -> None:
        self._check_password(new_password)
        try:
            await self._gateway.update_password(new_password)
        except RemoteError as exc:
            raise AuthError(exc.message) from exc
