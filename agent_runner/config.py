"""
Centralized configuration — env var names, defaults, and the Settings struct.

Settings is built once at startup and handed to every client; nothing below
the CLI reads os.environ directly.
"""
import os
from dataclasses import dataclass
from typing import Mapping, Optional


class ConfigurationError(Exception):
    """Missing or invalid environment, argument, or agent parameter."""


# ── Remote entity store (Base44) ──────────────────────────────────────────────
ENV_STORE_URL = 'BASE44_API_URL'
ENV_STORE_KEY = 'BASE44_API_KEY'
ENV_STORE_APP_ID = 'BASE44_APP_ID'

# ── Google Places ─────────────────────────────────────────────────────────────
ENV_PLACES_KEY = 'GOOGLE_PLACES_API_KEY'
PLACES_API_URL = 'https://maps.googleapis.com/maps/api/place'

# ── Slack notifications ──────────────────────────────────────────────────────
ENV_SLACK_WEBHOOK = 'SLACK_WEBHOOK_URL'

# ── HTTP / store behaviour ───────────────────────────────────────────────────
ENV_HTTP_TIMEOUT = 'HTTP_TIMEOUT_SECONDS'
ENV_FILTER_MODE = 'STORE_FILTER_MODE'
ENV_LIST_WARN_SIZE = 'STORE_LIST_WARN_SIZE'

DEFAULT_HTTP_TIMEOUT = 30.0
DEFAULT_FILTER_MODE = 'auto'
DEFAULT_LIST_WARN_SIZE = 5000

FILTER_MODES = ('native', 'client', 'auto')

REQUIRED_STORE_VARS = [ENV_STORE_URL, ENV_STORE_KEY, ENV_STORE_APP_ID]


@dataclass(frozen=True)
class Settings:
    store_url: str
    store_key: str
    store_app_id: str
    places_key: Optional[str] = None
    slack_webhook_url: Optional[str] = None
    http_timeout: float = DEFAULT_HTTP_TIMEOUT
    filter_mode: str = DEFAULT_FILTER_MODE
    list_warn_size: int = DEFAULT_LIST_WARN_SIZE

    @classmethod
    def from_env(cls, environ: Mapping[str, str] = None) -> 'Settings':
        """
        Build Settings from environment variables.

        Raises ConfigurationError listing every missing store variable, or
        naming the first malformed optional one.
        """
        env = os.environ if environ is None else environ

        missing = [name for name in REQUIRED_STORE_VARS if not (env.get(name) or '').strip()]
        if missing:
            raise ConfigurationError(f"Missing required env vars: {', '.join(missing)}")

        filter_mode = (env.get(ENV_FILTER_MODE) or DEFAULT_FILTER_MODE).strip().lower()
        if filter_mode not in FILTER_MODES:
            raise ConfigurationError(
                f"{ENV_FILTER_MODE} must be one of {', '.join(FILTER_MODES)}, got '{filter_mode}'"
            )

        return cls(
            store_url=env[ENV_STORE_URL].strip().rstrip('/'),
            store_key=env[ENV_STORE_KEY].strip(),
            store_app_id=env[ENV_STORE_APP_ID].strip(),
            places_key=(env.get(ENV_PLACES_KEY) or '').strip() or None,
            slack_webhook_url=(env.get(ENV_SLACK_WEBHOOK) or '').strip() or None,
            http_timeout=_positive_number(env, ENV_HTTP_TIMEOUT, DEFAULT_HTTP_TIMEOUT, float),
            filter_mode=filter_mode,
            list_warn_size=_positive_number(env, ENV_LIST_WARN_SIZE, DEFAULT_LIST_WARN_SIZE, int),
        )

    def require_places_key(self) -> str:
        """Return the Places API key, or fail if the agent needs one and it is unset."""
        if not self.places_key:
            raise ConfigurationError(f"Missing env: {ENV_PLACES_KEY}")
        return self.places_key


def _positive_number(env, name, default, cast):
    raw = (env.get(name) or '').strip()
    if not raw:
        return default
    try:
        value = cast(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got '{raw}'")
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got '{raw}'")
    return value
