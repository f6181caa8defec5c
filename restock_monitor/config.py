"""Configuration loader.

Reads environment variables and `.env` to configure the service.
"""

from __future__ import annotations

import os
from typing import Optional
from pathlib import Path

from dotenv import load_dotenv

# Load variables from a .env file if present (project root).
load_dotenv(dotenv_path=Path(__file__).resolve().parents[1] / ".env")


def _get_env(name: str, default: Optional[str] = None) -> Optional[str]:
    return os.environ.get(name, default)


def _parse_int(value: Optional[str], default: int) -> int:
    try:
        return int(value) if value is not None else default
    except ValueError:
        return default


def _parse_float(value: Optional[str], default: float) -> float:
    try:
        return float(value) if value is not None else default
    except ValueError:
        return default


# ---- Discord -----------------------------------------------------------------

# Bot token used for the REST API (Authorization: Bot <token>).
DISCORD_TOKEN: Optional[str] = _get_env("DISCORD_TOKEN")

# Channel that receives every alert.
ALERT_CHANNEL_ID: Optional[str] = _get_env("ALERT_CHANNEL_ID")

# ---- Monitoring --------------------------------------------------------------

TARGETS_FILE: str = _get_env("TARGETS_FILE", "stores.json")
STATE_FILE: str = _get_env("STATE_FILE", "state.json")

POLL_INTERVAL_SECONDS: float = _parse_float(_get_env("POLL_INTERVAL_SECONDS"), 60.0)

# Keep low to be polite to the target sites.
CONCURRENCY: int = max(1, _parse_int(_get_env("CONCURRENCY"), 2))

FETCH_TIMEOUT_SECONDS: float = _parse_float(_get_env("FETCH_TIMEOUT_SECONDS"), 15.0)

USER_AGENT: str = _get_env(
    "USER_AGENT",
    "Mozilla/5.0 (compatible; RestockBot/1.0; +https://discord.com)",
)

# Discord asks API clients to identify as "DiscordBot ($url, $version)".
DISCORD_USER_AGENT: str = _get_env("DISCORD_USER_AGENT", "DiscordBot (https://discord.com, 0.1.0)")

# ---- Inbound webhook ---------------------------------------------------------

WEBHOOK_HOST: str = _get_env("WEBHOOK_HOST", "0.0.0.0")
PORT: int = _parse_int(_get_env("PORT"), 3000)

# Logging level: DEBUG, INFO, WARNING, ERROR.
LOG_LEVEL: str = _get_env("LOG_LEVEL", "INFO")


# ---- Validation --------------------------------------------------------------

def validate() -> None:
    """Validate required configuration parameters."""
    missing = [
        name
        for name, value in (("DISCORD_TOKEN", DISCORD_TOKEN), ("ALERT_CHANNEL_ID", ALERT_CHANNEL_ID))
        if not value
    ]
    if missing:
        raise RuntimeError(
            f"{', '.join(missing)} must be set. See .env.example for details."
        )


__all__ = [
    "DISCORD_TOKEN",
    "ALERT_CHANNEL_ID",
    "TARGETS_FILE",
    "STATE_FILE",
    "POLL_INTERVAL_SECONDS",
    "CONCURRENCY",
    "FETCH_TIMEOUT_SECONDS",
    "USER_AGENT",
    "DISCORD_USER_AGENT",
    "WEBHOOK_HOST",
    "PORT",
    "LOG_LEVEL",
    "validate",
]
