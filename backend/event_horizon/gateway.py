# backend/event_horizon/gateway.py
"""Remote Store Gateway: the single handle to the hosted backend.

Talks PostgREST-style REST for tables (``/rest/v1/<table>``), GoTrue-style
auth endpoints (``/auth/v1/...``) and a Redis change feed for realtime
notifications. Stateless apart from the HTTP client, the current auth
session and the session listeners.

Every failure surfaces as ``RemoteError`` with the backend's message; nothing
is retried. Missing connection parameters surface as ``ConfigurationError``
on first use.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Mapping, Optional

import httpx

from event_horizon import config
from event_horizon.callbacks import call_listener
from event_horizon.errors import ConfigurationError, RemoteError
from event_horizon.models import AuthSession, AuthUser
from event_horizon.realtime import ChangeFeed, OnChange, Subscription
from event_horizon.schema import column, encode_value, from_row, to_row

SIGNED_IN = "SIGNED_IN"
SIGNED_OUT = "SIGNED_OUT"
PASSWORD_RECOVERY = "PASSWORD_RECOVERY"
USER_UPDATED = "USER_UPDATED"

SessionListener = Callable[[str, Optional[AuthSession]], Any]


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("message", "msg", "error_description", "error"):
            if body.get(key):
                return str(body[key])
    return response.text or f"HTTP {response.status_code}"


class RemoteStoreGateway:
    def __init__(
        self,
        url: Optional[str],
        anon_key: Optional[str],
        change_feed: Optional[ChangeFeed] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        reset_redirect_url: Optional[str] = None,
    ):
        self.url = url.rstrip("/") if url else url
        self.anon_key = anon_key
        self.change_feed = change_feed or ChangeFeed(None)
        self.reset_redirect_url = reset_redirect_url
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._session: Optional[AuthSession] = None
        self._listeners: list[SessionListener] = []
        self._config_error_logged = False

    # connection

    def _http(self) -> httpx.AsyncClient:
        missing = [name for name, value in (("EVENT_HORIZON_URL", self.url), ("EVENT_HORIZON_ANON_KEY", self.anon_key)) if not value]
        if missing:
            error = ConfigurationError(missing)
            if not self._config_error_logged:
                logging.error("%s", error)
                self._config_error_logged = True
            raise error
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.url,
                headers={"apikey": self.anon_key},
                transport=self._transport,
            )
        return self._client

    def _auth_headers(self) -> dict[str, str]:
        token = self._session.access_token if self._session else self.anon_key
        return {"Authorization": f"Bearer {token}"}

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        client = self._http()
        headers = {**self._auth_headers(), **kwargs.pop("headers", {})}
        try:
            response = await client.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as exc:
            raise RemoteError(str(exc) or exc.__class__.__name__) from exc
        if response.is_error:
            raise RemoteError(_error_message(response), status_code=response.status_code)
        return response

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
        await self.change_feed.aclose()

    # tables

    @staticmethod
    def _filters(table: str, predicate: Optional[Mapping[str, Any]]) -> dict[str, str]:
        return {
            column(table, field): f"eq.{encode_value(table, field, value)}"
            for field, value in (predicate or {}).items()
        }

    async def query(self, table: str, predicate: Optional[Mapping[str, Any]] = None) -> list[dict]:
        params = {"select": "*", **self._filters(table, predicate)}
        response = await self._request("GET", f"/rest/v1/{table}", params=params)
        return [from_row(table, row) for row in response.json()]

    async def insert(self, table: str, record: Mapping[str, Any]) -> dict:
        response = await self._request(
            "POST",
            f"/rest/v1/{table}",
            json=to_row(table, record),
            headers={"Prefer": "return=representation"},
        )
        rows = response.json()
        if not rows:
            raise RemoteError(f"Insert into {table} returned no row")
        stored = from_row(table, rows[0])
        await self.change_feed.publish(table, stored)
        return stored

    async def update(self, table: str, id: str, patch: Mapping[str, Any]) -> None:
        await self._request(
            "PATCH",
            f"/rest/v1/{table}",
            params=self._filters(table, {"id": id}),
            json=to_row(table, patch),
        )
        await self.change_feed.publish(table, {**patch, "id": id})

    async def remove(self, table: str, id: str, match: Optional[Mapping[str, Any]] = None) -> None:
        predicate = {**(match or {}), "id": id}
        await self._request("DELETE", f"/rest/v1/{table}", params=self._filters(table, predicate))
        await self.change_feed.publish(table, predicate)

    async def subscribe_to_changes(
        self, table: str, filter: Optional[Mapping[str, Any]], on_change: OnChange
    ) -> Subscription:
        self._http()  # same lazy configuration check as every other operation
        return await self.change_feed.subscribe(table, filter, on_change)

    # auth

    async def get_session(self) -> Optional[AuthSession]:
        self._http()
        return self._session

    def on_session_change(self, listener: SessionListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def _emit(self, event: str) -> None:
        for listener in list(self._listeners):
            await call_listener(listener, event, self._session)

    @staticmethod
    def _session_from(body: Mapping[str, Any]) -> AuthSession:
        return AuthSession(
            access_token=body["access_token"],
            refresh_token=body.get("refresh_token"),
            user=AuthUser.model_validate(body["user"]),
        )

    async def sign_in(self, email: str, password: str) -> AuthSession:
        response = await self._request(
            "POST",
            "/auth/v1/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        self._session = self._session_from(response.json())
        await self._emit(SIGNED_IN)
        return self._session

    async def sign_up(self, email: str, password: str) -> AuthUser:
        response = await self._request("POST", "/auth/v1/signup", json={"email": email, "password": password})
        body = response.json()
        # with email confirmation enabled the backend returns only the user
        if body.get("access_token"):
            self._session = self._session_from(body)
            await self._emit(SIGNED_IN)
            return self._session.user
        return AuthUser.model_validate(body.get("user") or body)

    async def sign_out(self) -> None:
        if self._session is None:
            self._http()
            return
        try:
            await self._request("POST", "/auth/v1/logout")
        finally:
            # the local session is gone even if the backend did not acknowledge
            self._session = None
            await self._emit(SIGNED_OUT)

    async def request_password_reset(self, email: str) -> None:
        params = {"redirect_to": self.reset_redirect_url} if self.reset_redirect_url else None
        await self._request("POST", "/auth/v1/recover", params=params, json={"email": email})

    async def set_session(self, access_token: str, refresh_token: Optional[str] = None, recovery: bool = False) -> AuthSession:
        response = await self._request(
            "GET", "/auth/v1/user", headers={"Authorization": f"Bearer {access_token}"}
        )
        self._session = AuthSession(
            access_token=access_token,
            refresh_token=refresh_token,
            user=AuthUser.model_validate(response.json()),
        )
        await self._emit(PASSWORD_RECOVERY if recovery else SIGNED_IN)
        return self._session

    async def update_password(self, new_password: str) -> None:
        if self._session is None:
            self._http()
            raise RemoteError("Auth session missing", status_code=401)
        response = await self._request("PUT", "/auth/v1/user", json={"password": new_password})
        self._session = self._session.model_copy(update={"user": AuthUser.model_validate(response.json())})
        await self._emit(USER_UPDATED)


def create_gateway(transport: Optional[httpx.AsyncBaseTransport] = None) -> RemoteStoreGateway:
    """Build the process-wide gateway from environment configuration."""
    return RemoteStoreGateway(
        url=config.REMOTE_URL,
        anon_key=config.ANON_KEY,
        change_feed=ChangeFeed(config.REDIS_URL),
        transport=transport,
        reset_redirect_url=config.RESET_REDIRECT_URL,
    )
