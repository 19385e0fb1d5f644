# backend/event_horizon/config.py
import logging
import os

# Both values must be present for the gateway to talk to the backend.
# Missing values are reported lazily by the gateway, not here.
REMOTE_URL = os.getenv("EVENT_HORIZON_URL")
ANON_KEY = os.getenv("EVENT_HORIZON_ANON_KEY")

# Optional realtime change feed; without it stores only refresh on mount/mutation.
REDIS_URL = os.getenv("REDIS_URL")

# Where password-reset emails send the user back to (optional).
RESET_REDIRECT_URL = os.getenv("EVENT_HORIZON_RESET_REDIRECT")

MIN_PASSWORD_LENGTH = int(os.getenv("EVENT_HORIZON_MIN_PASSWORD_LENGTH", 6))


def configure_logging() -> None:
    debug_flag = os.getenv("EVENT_HORIZON_DEBUG", "").lower()
    if debug_flag in {"1", "true", "yes"}:
        logging.basicConfig(level=logging.DEBUG)
        logging.getLogger("httpx").setLevel(logging.DEBUG)
