"""Check orchestration: fetch, classify, compare, notify, record."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Optional, Protocol, Sequence

import requests

from .config import CONCURRENCY, FETCH_TIMEOUT_SECONDS
from .scraper import Target, fetch_page
from .state import StatusStore
from .stock import Status, detect_stock
from .utils import get_http_session

logger = logging.getLogger(__name__)


class RestockNotifier(Protocol):
    def send_restock(self, target: Target, status: Status) -> bool: ...


@dataclass
class CheckOutcome:
    target: Target
    previous: Status
    current: Optional[Status]   # None when the fetch failed
    notified: bool = False      # an alert was delivered


def check_target(
    target: Target,
    store: StatusStore,
    notifier: RestockNotifier,
    session: requests.Session,
    timeout: float = FETCH_TIMEOUT_SECONDS,
) -> CheckOutcome:
    """Perform one check of a single target."""
    prev = store.get(target.url)

    res = fetch_page(session, target.url, timeout=timeout)
    if not res.success:
        # Don't alert on errors; just log
        if res.http_status is not None:
            logger.info("[%s] HTTP %s", target.name, res.http_status)
        else:
            logger.info("[%s] fetch failed: %s", target.name, res.error)
        return CheckOutcome(target=target, previous=prev, current=None)

    now = detect_stock(res.body, target)
    notified = False
    if now is Status.IN and prev is not Status.IN:
        notified = notifier.send_restock(target, now)
    elif now is not prev:
        logger.debug("[%s] %s -> %s", target.name, prev.value, now.value)

    store.set(target.url, now)
    return CheckOutcome(target=target, previous=prev, current=now, notified=notified)


def run_cycle(
    targets: Sequence[Target],
    store: StatusStore,
    notifier: RestockNotifier,
    *,
    concurrency: int = CONCURRENCY,
    timeout: float = FETCH_TIMEOUT_SECONDS,
    session: Optional[requests.Session] = None,
) -> list[CheckOutcome]:
    """
    Check every target with at most `concurrency` checks in flight, then
    persist the store once. A save failure propagates.

    Each worker thread gets its own HTTP session unless `session` is given.
    """
    local = threading.local()
    opened: list[requests.Session] = []
    opened_lock = threading.Lock()

    def _check(target: Target) -> CheckOutcome:
        s = session
        if s is None:
            s = getattr(local, "session", None)
            if s is None:
                s = local.session = get_http_session()
                with opened_lock:
                    opened.append(s)
        return check_target(target, store, notifier, s, timeout)

    outcomes: list[CheckOutcome] = []
    try:
        with ThreadPoolExecutor(max_workers=max(1, concurrency), thread_name_prefix="check") as pool:
            futures = {
                pool.submit(_check, t): t
                for t in targets
            }
            for fut in as_completed(futures):
                target = futures[fut]
                try:
                    outcomes.append(fut.result())
                except Exception:
                    logger.exception("Unexpected error while checking %s", target.name)
    finally:
        for s in opened:
            s.close()

    store.save()

    restocks = sum(1 for o in outcomes if o.notified)
    failures = sum(1 for o in outcomes if o.current is None) + (len(targets) - len(outcomes))
    logger.info(
        "Cycle complete: %d targets, %d restock(s), %d failure(s).",
        len(targets), restocks, failures,
    )
    return outcomes


__all__ = ["CheckOutcome", "check_target", "run_cycle"]
