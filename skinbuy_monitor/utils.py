"""Helper utilities.

This module centralises the HTTP session factory and the retry policy
applied to page fetches.
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
    """Return a new HTTP session with the configured User-Agent.

    Caller is responsible for closing the session.
    """
    session = requests.Session()
    session.headers.update(
        {
            "User-Agent": user_agent or USER_AGENT,
            "Accept": "text/html,application/xhtml+xml,application/json;q=0.9,*/*;q=0.8",
        }
    )
    return session


class HTTPError(Exception):
    """Raised when an HTTP request returns an error status or keeps failing."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def raise_for_status(resp: Response) -> None:
    try:
        resp.raise_for_status()
    except requests.RequestException as e:
        raise HTTPError(str(e), resp.status_code) from e


def retryable_request(method: Callable[..., Response]) -> Callable[..., Response]:
    """Decorator applying retry logic to HTTP calls.

    The decorated function must accept a `requests.Session` as its first
    argument, followed by URL and optional kwargs, and return a
    `requests.Response`.  Network errors and server errors (status >= 500)
    are retried; 4xx responses are returned to the caller untouched.
    A maximum of 5 attempts are made with exponential back-off between
    1 and 10 seconds.
    """

    @retry(
        reraise=True,
        stop=stop_after_attempt(5),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=(
            retry_if_exception_type(requests.ConnectionError)
            | retry_if_exception_type(requests.Timeout)
            | retry_if_exception_type(HTTPError)
        ),
        after=after_log(logger, logging.WARNING),
    )
    def wrapper(session: requests.Session, url: str, **kwargs: Any) -> Response:
        response = method(session, url, **kwargs)
        if response.status_code >= 500:
            raise HTTPError(f"Server returned status {response.status_code}", response.status_code)
        return response

    return wrapper


__all__ = ["get_http_session", "retryable_request", "raise_for_status", "HTTPError"]
