from __future__ import annotations

import json
import logging
import re
import socket
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import requests

from .config import FETCH_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Target:
    name: str
    url: str                    # unique key
    in_stock_pattern: str
    out_of_stock_pattern: str


@dataclass
class FetchResult:
    success: bool
    http_status: Optional[int]  # None when no response was received
    body: str = ""
    error: Optional[str] = None


# On-disk key first, alias second.
_FIELD_KEYS = {
    "in_stock_pattern": ("inStockRegex", "inStockPattern"),
    "out_of_stock_pattern": ("outOfStockRegex", "outOfStockPattern"),
}


def _first_present(item: dict, keys: tuple[str, ...]) -> Optional[str]:
    for key in keys:
        value = item.get(key)
        if isinstance(value, str) and value:
            return value
    return None


def _parse_target(item: object) -> Optional[Target]:
    if not isinstance(item, dict):
        return None
    name = item.get("name")
    url = item.get("url")
    in_rx = _first_present(item, _FIELD_KEYS["in_stock_pattern"])
    out_rx = _first_present(item, _FIELD_KEYS["out_of_stock_pattern"])
    if not (isinstance(name, str) and name and isinstance(url, str) and url and in_rx and out_rx):
        return None
    for pattern in (in_rx, out_rx):
        try:
            re.compile(pattern, flags=re.IGNORECASE)
        except re.error as e:
            logger.warning("Skipping target %s: invalid pattern %r (%s)", name, pattern, e)
            return None
    return Target(name=name, url=url, in_stock_pattern=in_rx, out_of_stock_pattern=out_rx)


def load_targets(path: str | Path) -> List[Target]:
    """
    Load monitored products from a JSON list.
    Returns an empty list on a missing or unreadable file; bad entries and
    duplicate URLs are skipped.
    """
    path = Path(path)
    if not path.exists():
        logger.warning("Targets file %s not found; nothing to monitor.", path)
        return []
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Could not read targets file %s: %s", path, e)
        return []
    if not isinstance(data, list):
        logger.warning("Targets file %s must contain a JSON list.", path)
        return []

    targets: List[Target] = []
    seen: set[str] = set()
    for idx, item in enumerate(data):
        target = _parse_target(item)
        if target is None:
            logger.warning("Skipping malformed target entry #%d in %s", idx, path)
            continue
        if target.url in seen:
            logger.warning("Skipping duplicate target url %s", target.url)
            continue
        seen.add(target.url)
        targets.append(target)
    return targets


def _abort(resp: requests.Response) -> None:
    """Shut the response's socket down so a blocked body read returns."""
    conn = getattr(getattr(resp, "raw", None), "connection", None)
    sock = getattr(conn, "sock", None)
    if sock is None:
        return
    try:
        sock.shutdown(socket.SHUT_RDWR)
    except OSError:
        pass  # already closed


def _timed_out(status: Optional[int], timeout: float) -> FetchResult:
    return FetchResult(success=False, http_status=status, error=f"timeout: body not received within {timeout}s")


def fetch_page(
    session: requests.Session,
    url: str,
    timeout: float = FETCH_TIMEOUT_SECONDS,
) -> FetchResult:
    """
    GET a product page once. Never raises for transport problems.

    `timeout` bounds the whole fetch, body included: a server that keeps
    trickling bytes is cut off once the deadline passes.
    """
    deadline = time.monotonic() + timeout
    try:
        resp = session.get(url, timeout=timeout, allow_redirects=True, stream=True)
    except requests.exceptions.Timeout as exc:
        return FetchResult(success=False, http_status=None, error=f"timeout: {exc}")
    except requests.exceptions.RequestException as exc:
        return FetchResult(success=False, http_status=None, error=str(exc))

    status = resp.status_code
    expired = threading.Event()

    def _expire() -> None:
        expired.set()
        _abort(resp)

    watchdog = threading.Timer(max(0.0, deadline - time.monotonic()), _expire)
    watchdog.daemon = True
    watchdog.start()
    try:
        if not 200 <= status < 300:
            return FetchResult(success=False, http_status=status)
        chunks: List[bytes] = []
        for chunk in resp.iter_content(chunk_size=8192):
            if expired.is_set() or time.monotonic() > deadline:
                break
            if chunk:
                chunks.append(chunk)
        if expired.is_set() or time.monotonic() > deadline:
            return _timed_out(status, timeout)
    except requests.exceptions.RequestException as exc:
        if expired.is_set():
            return _timed_out(status, timeout)
        return FetchResult(success=False, http_status=status, error=str(exc))
    finally:
        watchdog.cancel()
        resp.close()

    body = b"".join(chunks).decode(resp.encoding or "utf-8", errors="replace")
    return FetchResult(success=True, http_status=status, body=body)


__all__ = ["Target", "FetchResult", "load_targets", "fetch_page"]
