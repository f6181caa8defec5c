"""
Inbound alert webhook.

Single-purpose HTTP server that relays third-party restock pushes to the
alert channel:

    POST /pokemoncenter/etb   {"title": "..."}   -> 200 {"ok": true}
                                                 -> 500 {"ok": false}

The status store is never consulted here.
"""

from __future__ import annotations

import json
import logging
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Optional, Protocol, Tuple

logger = logging.getLogger(__name__)

ETB_PATH = "/pokemoncenter/etb"
MAX_BODY_BYTES = 64 * 1024


class AlertNotifier(Protocol):
    def send_etb_alert(self, title: Optional[str] = None) -> bool: ...


def parse_title(raw: bytes) -> Optional[str]:
    """Pull an optional string title out of a JSON body; anything else means no title."""
    if not raw:
        return None
    try:
        payload = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        return None
    if not isinstance(payload, dict):
        return None
    title = payload.get("title")
    return title if isinstance(title, str) and title else None


def handle_etb_alert(notifier: AlertNotifier, raw: bytes) -> Tuple[int, dict]:
    try:
        ok = notifier.send_etb_alert(parse_title(raw))
    except Exception:
        logger.exception("Pokemon Center webhook error")
        ok = False
    return (200, {"ok": True}) if ok else (500, {"ok": False})


class AlertHandler(BaseHTTPRequestHandler):
    """Routes inbound pushes to the notifier attached to the server."""

    server: "WebhookServer"

    def log_message(self, format, *args):
        """Use Python logging instead of stderr."""
        logger.debug("%s - %s", self.address_string(), format % args)

    def do_POST(self):
        try:
            length = int(self.headers.get("Content-Length") or 0)
        except ValueError:
            length = -1
        if length < 0:
            self._send_json(400, {"ok": False})
            return
        if length > MAX_BODY_BYTES:
            self._send_json(413, {"ok": False})
            return
        raw = self.rfile.read(length) if length > 0 else b""
        if self.path.split("?", 1)[0] != ETB_PATH:
            self._send_json(404, {"ok": False})
            return
        status, body = handle_etb_alert(self.server.notifier, raw)
        self._send_json(status, body)

    def do_GET(self):
        self._send_json(404, {"ok": False})

    def _send_json(self, status: int, body: dict) -> None:
        data = json.dumps(body).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(data)))
        self.end_headers()
        self.wfile.write(data)


class WebhookServer(ThreadingHTTPServer):
    daemon_threads = True

    def __init__(self, address: Tuple[str, int], notifier: AlertNotifier) -> None:
        self.notifier = notifier
        super().__init__(address, AlertHandler)
        self._thread: Optional[threading.Thread] = None

    @property
    def port(self) -> int:
        return self.server_address[1]

    def start(self) -> None:
        """Serve on a daemon thread."""
        self._thread = threading.Thread(target=self.serve_forever, name="webhook", daemon=True)
        self._thread.start()
        logger.info("Webhook server running on port %d", self.port)

    def stop(self) -> None:
        self.shutdown()
        self.server_close()
        if self._thread is not None:
            self._thread.join()
        logger.info("Webhook server stopped")

    def join(self) -> None:
        if self._thread is not None:
            self._thread.join()


def start_server(notifier: AlertNotifier, host: str = "0.0.0.0", port: int = 3000) -> WebhookServer:
    logger.info("Starting webhook server...")
    server = WebhookServer((host, port), notifier)
    server.start()
    return server


__all__ = ["ETB_PATH", "MAX_BODY_BYTES", "WebhookServer", "handle_etb_alert", "parse_title", "start_server"]
