"""Shared stubs for the restock monitor tests."""

from __future__ import annotations

import threading
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Dict, Iterator, List, Optional, Tuple

import pytest
import requests

from restock_monitor.scraper import Target
from restock_monitor.stock import Status


class DummyResponse:  # pylint: disable=too-few-public-methods
    """Minimal stub mimicking requests.Response for tests."""

    def __init__(self, *, status_code: int = 200, text: str = "", json_body: Any = None) -> None:
        self.status_code = status_code
        self.text = text
        self._json = json_body
        self.content = text.encode("utf-8") if text else (b"{}" if json_body is not None else b"")
        self.encoding = "utf-8"
        self.closed = False

    def iter_content(self, chunk_size: int = 1) -> Iterator[bytes]:
        for i in range(0, len(self.content), chunk_size):
            yield self.content[i:i + chunk_size]

    def close(self) -> None:
        self.closed = True

    def json(self) -> Any:
        return self._json

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error")


class DummySession(requests.Session):
    """Session stub serving canned responses keyed by URL."""

    def __init__(
        self,
        responses: Optional[Dict[str, Any]] = None,
        *,
        post_response: Optional[DummyResponse] = None,
    ) -> None:
        super().__init__()
        self._responses = responses or {}
        self._post_response = post_response or DummyResponse(status_code=200, json_body={"id": "1"})
        self.get_calls: List[Tuple[str, Dict[str, Any]]] = []
        self.post_calls: List[Tuple[str, Dict[str, Any]]] = []
        self.closed = False
        self._lock = threading.Lock()

    def get(self, url: str, **kwargs: Any) -> DummyResponse:  # type: ignore[override]
        with self._lock:
            self.get_calls.append((url, kwargs))
        value = self._responses[url]
        if isinstance(value, Exception):
            raise value
        return value

    def post(self, url: str, **kwargs: Any) -> DummyResponse:  # type: ignore[override]
        with self._lock:
            self.post_calls.append((url, kwargs))
        if isinstance(self._post_response, Exception):
            raise self._post_response
        return self._post_response

    def close(self) -> None:
        self.closed = True


class RecordingNotifier:
    """Collects notifications instead of talking to Discord."""

    def __init__(self, *, succeed: bool = True) -> None:
        self.succeed = succeed
        self.restocks: List[Tuple[Target, Status]] = []
        self.etb_titles: List[Optional[str]] = []

    def send_restock(self, target: Target, status: Status) -> bool:
        self.restocks.append((target, status))
        return self.succeed

    def send_etb_alert(self, title: Optional[str] = None) -> bool:
        self.etb_titles.append(title)
        return self.succeed


@pytest.fixture
def target() -> Target:
    return Target(
        name="Elite Trainer Box",
        url="https://shop.test/etb",
        in_stock_pattern=r"add to cart",
        out_of_stock_pattern=r"sold out|out of stock",
    )


class _PageHandler(BaseHTTPRequestHandler):
    """Serves `/slow...` one byte at a time and anything else immediately."""

    def log_message(self, format, *args):
        pass

    def do_GET(self):
        if self.path.startswith("/slow"):
            self.send_response(200)
            self.send_header("Content-Type", "text/html; charset=utf-8")
            self.end_headers()
            try:
                for _ in range(60):
                    self.wfile.write(b"a")
                    self.wfile.flush()
                    time.sleep(0.25)
            except OSError:
                return
            return
        body = b"<button>Add to cart</button>"
        self.send_response(200)
        self.send_header("Content-Type", "text/html; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)


class _PageServer(ThreadingHTTPServer):
    daemon_threads = True


@pytest.fixture
def page_server() -> Iterator[str]:
    """Base URL of a loopback shop with a fast page and a trickling `/slow` page."""
    srv = _PageServer(("127.0.0.1", 0), _PageHandler)
    thread = threading.Thread(target=srv.serve_forever, daemon=True)
    thread.start()
    try:
        yield f"http://127.0.0.1:{srv.server_address[1]}"
    finally:
        srv.shutdown()
        srv.server_close()


@pytest.fixture
def http() -> Iterator[requests.Session]:
    """A session that never routes loopback calls through a proxy."""
    session = requests.Session()
    session.trust_env = False
    try:
        yield session
    finally:
        session.close()
