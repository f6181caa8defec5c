"""Tests for target loading and page fetching."""

from __future__ import annotations

import json
import logging
import time
from pathlib import Path

import pytest
import requests

from conftest import DummyResponse, DummySession
from restock_monitor.scraper import Target, fetch_page, load_targets


def _write(tmp_path: Path, data: object) -> Path:
    path = tmp_path / "stores.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def test_load_targets_reads_file_keys(tmp_path: Path) -> None:
    """The file format uses inStockRegex/outOfStockRegex and keeps order."""
    path = _write(
        tmp_path,
        [
            {"name": "A", "url": "https://a.test", "inStockRegex": "add to cart", "outOfStockRegex": "sold out"},
            {"name": "B", "url": "https://b.test", "inStockPattern": "buy now", "outOfStockPattern": "unavailable"},
        ],
    )

    targets = load_targets(path)

    assert targets == [
        Target("A", "https://a.test", "add to cart", "sold out"),
        Target("B", "https://b.test", "buy now", "unavailable"),
    ]


def test_load_targets_missing_file_is_empty(tmp_path: Path) -> None:
    """No targets file means nothing to monitor, not a crash."""
    assert load_targets(tmp_path / "nope.json") == []


def test_load_targets_invalid_json_is_empty(tmp_path: Path) -> None:
    """A corrupt file yields an empty target set."""
    path = tmp_path / "stores.json"
    path.write_text("[{not json", encoding="utf-8")
    assert load_targets(path) == []


def test_load_targets_non_list_is_empty(tmp_path: Path) -> None:
    """Only a top-level list is accepted."""
    assert load_targets(_write(tmp_path, {"name": "A"})) == []


def test_load_targets_skips_bad_entries_and_duplicates(
    tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    """Malformed entries, bad regexes and repeated urls are dropped with a warning."""
    path = _write(
        tmp_path,
        [
            {"name": "A", "url": "https://a.test", "inStockRegex": "in", "outOfStockRegex": "out"},
            {"name": "missing url", "inStockRegex": "in", "outOfStockRegex": "out"},
            {"name": "bad rx", "url": "https://c.test", "inStockRegex": "([", "outOfStockRegex": "out"},
            {"name": "A again", "url": "https://a.test", "inStockRegex": "x", "outOfStockRegex": "y"},
            "just a string",
        ],
    )

    with caplog.at_level(logging.WARNING):
        targets = load_targets(path)

    assert [t.name for t in targets] == ["A"]
    assert "duplicate" in caplog.text


def test_fetch_page_success_passes_timeout() -> None:
    """2xx responses are successful and carry the body."""
    session = DummySession({"https://a.test": DummyResponse(status_code=200, text="Add to cart")})

    res = fetch_page(session, "https://a.test", timeout=7)

    assert res.success is True
    assert res.http_status == 200
    assert res.body == "Add to cart"
    assert session.get_calls[0][1]["timeout"] == 7
    assert session.get_calls[0][1]["stream"] is True


def test_fetch_page_non_2xx_is_failure() -> None:
    """Non-2xx responses keep the status code but not the body."""
    session = DummySession({"https://a.test": DummyResponse(status_code=503, text="maintenance")})

    res = fetch_page(session, "https://a.test")

    assert res.success is False
    assert res.http_status == 503
    assert res.body == ""


def test_fetch_page_timeout_is_failure() -> None:
    """Timeouts are reported, not raised."""
    session = DummySession({"https://a.test": requests.exceptions.Timeout("read timed out")})

    res = fetch_page(session, "https://a.test")

    assert res.success is False
    assert res.http_status is None
    assert "timeout" in (res.error or "")


def test_fetch_page_connection_error_is_failure() -> None:
    """Network errors are reported, not raised."""
    session = DummySession({"https://a.test": requests.exceptions.ConnectionError("refused")})

    res = fetch_page(session, "https://a.test")

    assert res.success is False
    assert "refused" in (res.error or "")


def test_fetch_page_non_2xx_closes_response() -> None:
    """Error responses are released without reading the body."""
    resp = DummyResponse(status_code=404, text="gone")
    session = DummySession({"https://a.test": resp})

    fetch_page(session, "https://a.test")

    assert resp.closed is True


def test_fetch_page_reads_real_body(page_server: str, http: requests.Session) -> None:
    """A normal page is streamed in full and decoded."""
    res = fetch_page(http, f"{page_server}/etb", timeout=5)

    assert res.success is True
    assert res.body == "<button>Add to cart</button>"


def test_fetch_page_deadline_covers_trickling_body(page_server: str, http: requests.Session) -> None:
    """A server that keeps dripping bytes is cut off at the timeout."""
    started = time.monotonic()
    res = fetch_page(http, f"{page_server}/slow", timeout=1)
    elapsed = time.monotonic() - started

    assert res.success is False
    assert res.http_status == 200
    assert "timeout" in (res.error or "")
    assert elapsed < 2.5
