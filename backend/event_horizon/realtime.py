# backend/event_horizon/realtime.py
import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, Mapping, Optional, Union

# Use the modern redis-py asyncio client instead of the legacy aioredis package.
try:
    import redis.asyncio as redis_client
    from redis.exceptions import RedisError
except Exception as e:
    logging.error("Failed to import redis.asyncio: %s", e)
    raise

from event_horizon.callbacks import call_listener
from event_horizon.errors import RemoteError

OnChange = Callable[[], Union[None, Awaitable[None]]]


def channel_for(table: str) -> str:
    return f"changes:{table}"


def matches(row: Mapping[str, Any], match: Optional[Mapping[str, Any]]) -> bool:
    """
    True when every filtered field present in `row` equals the filter value.
    Fields the row does not carry are not held against it: a delete may only
    publish the id, and dropping it would leave a subscriber stale.
    """
    if not match:
        return True
    for field, expected in match.items():
        if field in row and row[field] != expected:
            return False
    return True


class Subscription:
    """Handle returned by subscribe(); call unsubscribe() to stop listening."""

    def __init__(self, pubsub=None, task: Optional[asyncio.Task] = None):
        self._pubsub = pubsub
        self._task = task
        self.closed = False

    async def unsubscribe(self) -> None:
        if self.closed:
            return
        self.closed = True
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        if self._pubsub is not None:
            try:
                await self._pubsub.unsubscribe()
                await self._pubsub.aclose()
            except RedisError as exc:
                logging.warning("Redis error while closing subscription: %s", exc)


class ChangeFeed:
    """
    Per-table "something changed" notifications over Redis pub/sub.
    Payloads carry the affected row (in-process field names) only so that
    subscribers can filter; consumers are never handed the row.
    """

    def __init__(self, url: Optional[str]):
        self.url = url
        self._redis = None
        self._warned = False

    @property
    def enabled(self) -> bool:
        return bool(self.url)

    def _client(self):
        if self._redis is None:
            # decode_responses so channel names and payloads come back as str
            self._redis = redis_client.from_url(self.url, encoding="utf-8", decode_responses=True)
        return self._redis

    async def publish(self, table: str, row: Mapping[str, Any]) -> None:
        """
        Announce a change to `table` (best-effort).
        A failed publish is logged; the mutation that caused it already succeeded.
        """
        if not self.enabled:
            return
        try:
            await self._client().publish(channel_for(table), json.dumps(dict(row), default=str))
        except RedisError as exc:
            logging.exception("Redis error in publish for %s: %s", table, exc)

    async def subscribe(self, table: str, match: Optional[Mapping[str, Any]], on_change: OnChange) -> Subscription:
        if not self.enabled:
            if not self._warned:
                logging.warning("No change feed configured (REDIS_URL unset); realtime refresh disabled")
                self._warned = True
            return Subscription()
        pubsub = self._client().pubsub()
        try:
            await pubsub.subscribe(channel_for(table))
        except RedisError as exc:
            raise RemoteError(f"Failed to subscribe to {table} changes: {exc}") from exc
        task = asyncio.create_task(self._listen(pubsub, table, match, on_change))
        return Subscription(pubsub, task)

    async def _listen(self, pubsub, table: str, match, on_change: OnChange) -> None:
        try:
            async for message in pubsub.listen():
                if message.get("type") != "message":
                    continue
                try:
                    row = json.loads(message["data"])
                except (TypeError, ValueError):
                    row = {}
                if not matches(row, match):
                    continue
                try:
                    await call_listener(on_change)
                except Exception as exc:
                    # keep listening: one failed refresh must not end the feed
                    logging.exception("Change handler for %s failed: %s", table, exc)
        except RedisError as exc:
            logging.exception("Redis error while listening on %s: %s", table, exc)

    async def aclose(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
