# backend/event_horizon/callbacks.py
import inspect
from typing import Any, Callable


async def call_listener(listener: Callable[..., Any], *args: Any) -> None:
    """Invoke a plain or coroutine listener, awaiting it when needed."""
    result = listener(*args)
    if inspect.isawaitable(result):
        await result
