"""Discord notifier.

Posts restock embeds to a single channel through the Discord REST API
using a bot token.  Delivery failures are logged and reported to the
caller; they are never retried.
"""
from __future__ import annotations

import logging
import threading
import time
from datetime import datetime, timezone
from typing import Any, Optional

import requests

from .config import ALERT_CHANNEL_ID, DISCORD_TOKEN, DISCORD_USER_AGENT
from .scraper import Target
from .stock import Status
from .utils import HTTPError, get_http_session, raise_for_status, retryable_request

logger = logging.getLogger(__name__)

DISCORD_API_BASE = "https://discord.com/api/v10"

ETB_DEFAULT_TITLE = "🟢 Pokémon Center ETB Alert"
ETB_CATEGORY_URL = "https://www.pokemoncenter.com/category/elite-trainer-box"


class ChannelNotFound(HTTPError):
    """The configured alert channel does not exist or is not visible to the bot."""


@retryable_request
def _get(session: requests.Session, url: str, **kwargs) -> requests.Response:
    return session.get(url, **kwargs)


def _get_once(session: requests.Session, url: str, **kwargs) -> requests.Response:
    resp = session.get(url, **kwargs)
    raise_for_status(resp)
    return resp


def _iso_now(now: Optional[float] = None) -> str:
    ts = time.time() if now is None else now
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()


def build_restock_embed(target: Target, status: Status, *, now: Optional[float] = None) -> dict:
    ts = time.time() if now is None else now
    return {
        "title": f"🟢 Restock detected: {target.name}",
        "description": f"[Open product page]({target.url})",
        "fields": [
            {"name": "Status", "value": status.value, "inline": True},
            {"name": "Time", "value": f"<t:{int(ts)}:F>", "inline": True},
        ],
        "timestamp": _iso_now(ts),
    }


def build_etb_embed(title: Optional[str] = None, *, now: Optional[float] = None) -> dict:
    return {
        "title": title or ETB_DEFAULT_TITLE,
        "description": f"[Elite Trainer Box Category]({ETB_CATEGORY_URL})",
        "timestamp": _iso_now(now),
    }


class DiscordNotifier:
    def __init__(
        self,
        token: Optional[str] = None,
        channel_id: Optional[str] = None,
        *,
        session: Optional[requests.Session] = None,
        api_base: str = DISCORD_API_BASE,
        timeout: float = 10,
    ) -> None:
        self.token = (token if token is not None else DISCORD_TOKEN) or ""
        self.channel_id = (channel_id if channel_id is not None else ALERT_CHANNEL_ID) or ""
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self.session = session or get_http_session(DISCORD_USER_AGENT)
        # one request at a time: callers run on check workers and webhook threads
        self._lock = threading.Lock()
        self.session.headers.update({"Authorization": f"Bot {self.token}"})

    def close(self) -> None:
        self.session.close()

    def _url(self, path: str) -> str:
        return f"{self.api_base}/{path.lstrip('/')}"

    def whoami(self) -> dict:
        """Return the bot user (GET /users/@me)."""
        with self._lock:
            resp = _get(self.session, self._url("/users/@me"), timeout=self.timeout)
        return resp.json()

    def resolve_channel(self, *, retry: bool = True) -> dict:
        """
        Look up the alert channel.
        Raises ChannelNotFound on 404 or an unset id, HTTPError otherwise.
        With retry=False a single attempt is made.
        """
        get = _get if retry else _get_once
        if not self.channel_id:
            raise ChannelNotFound("Alert channel id is not configured.")
        try:
            with self._lock:
                resp = get(self.session, self._url(f"/channels/{self.channel_id}"), timeout=self.timeout)
        except HTTPError as e:
            if e.status_code == 404:
                raise ChannelNotFound(
                    f"Could not fetch channel {self.channel_id}. Check ALERT_CHANNEL_ID.", 404
                ) from e
            raise
        return resp.json()

    def send_embed(self, embed: dict) -> Any:
        """Post one embed to the alert channel. Raises on any failure."""
        with self._lock:
            resp = self.session.post(
                self._url(f"/channels/{self.channel_id}/messages"),
                json={"embeds": [embed]},
                timeout=self.timeout,
            )
        raise_for_status(resp)
        return resp.json() if resp.content else None

    def send_restock(self, target: Target, status: Status) -> bool:
        logger.info("Sending restock notification for %s (%s)", target.name, target.url)
        try:
            self.send_embed(build_restock_embed(target, status))
        except (requests.RequestException, HTTPError):
            logger.exception("Failed to deliver restock notification for %s", target.name)
            return False
        return True

    def send_etb_alert(self, title: Optional[str] = None) -> bool:
        """Relay an inbound Pokémon Center alert; the channel is resolved on every call, once."""
        try:
            self.resolve_channel(retry=False)
            self.send_embed(build_etb_embed(title))
        except (requests.RequestException, HTTPError):
            logger.exception("Pokemon Center webhook error")
            return False
        return True


__all__ = [
    "DiscordNotifier",
    "ChannelNotFound",
    "build_restock_embed",
    "build_etb_embed",
    "ETB_DEFAULT_TITLE",
    "ETB_CATEGORY_URL",
]
