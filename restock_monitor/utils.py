"""Helper utilities.

This module centralises common helper functions such as creating a
configured HTTP session and applying retry policies to network calls.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

import requests
from requests import Response
from tenacity import (after_log, retry, retry_if_exception_type,
                      stop_after_attempt, wait_exponential)

from .config import USER_AGENT


logger = logging.getLogger(__name__)


def get_http_session(user_agent: Optional[str] = None) -> requests.Session:
    """Return a new HTTP session with the bot's User-Agent.

    Caller is responsible for closing the session or letting it be
    garbage collected.
    """
    session = requests.Session()
    session.headers.update({"User-Agent": user_agent or USER_AGENT})
    return session


class HTTPError(Exception):
    """Raised when an HTTP request fails (after retries, where they apply)."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ServerError(HTTPError):
    """Raised for 5xx responses; these are worth another attempt."""


def raise_for_status(resp: Response) -> None:
    if resp.status_code >= 500:
        raise ServerError(f"Server returned status {resp.status_code}", resp.status_code)
    try:
        resp.raise_for_status()
    except requests.RequestException as e:
        raise HTTPError(str(e), resp.status_code) from e


def retryable_request(method: Callable[..., Response]) -> Callable[..., Response]:
    """Apply the retry policy to an HTTP call.

    The decorated function must accept a `requests.Session` as its first
    argument, followed by URL and optional kwargs, and return a
    `requests.Response`.  Network errors and 5xx responses are retried up
    to 3 attempts with exponential back-off between 1 and 5 seconds; any
    other non-2xx status raises `HTTPError` straight away.
    """

    @retry(
        reraise=True,
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=5),
        retry=(
            retry_if_exception_type(requests.RequestException)
            | retry_if_exception_type(ServerError)
        ),
        after=after_log(logger, logging.WARNING),
    )
    def wrapper(session: requests.Session, url: str, **kwargs: Any) -> Response:
        response = method(session, url, **kwargs)
        raise_for_status(response)
        return response

    return wrapper


__all__ = ["get_http_session", "retryable_request", "raise_for_status", "HTTPError", "ServerError"]
