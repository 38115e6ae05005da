"""
Shared HTTP helper for the REST clients.

Every external call goes through :func:`send_json`.  A non-2xx status raises
:class:`requests.HTTPError`.  By default each call is attempted exactly once;
``max_attempts`` greater than one retries connection errors, timeouts and
429/5xx responses with exponential backoff.
"""

from __future__ import annotations

import logging
from typing import Any, Dict

import requests
from tenacity import (
    Retrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

logger = logging.getLogger(__name__)


def is_retryable(exc: BaseException) -> bool:
    """Connection errors, timeouts, 429 and 5xx responses are worth retrying."""
    if isinstance(exc, requests.HTTPError):
        status = exc.response.status_code if exc.response is not None else None
        return status is not None and (status == 429 or status >= 500)
    return isinstance(exc, (requests.ConnectionError, requests.Timeout))


def send_json(
    session: requests.Session,
    method: str,
    url: str,
    *,
    max_attempts: int = 1,
    timeout: float = 60.0,
    **kwargs: Any,
) -> Dict[str, Any]:
    """Send a request and return the decoded JSON object.

    An empty or non-object body decodes to ``{}`` so that callers only have to
    deal with missing fields.

    Raises:
        requests.HTTPError: If the response status is not 2xx.
        requests.RequestException: On connection errors or timeouts.
    """
    retrying = Retrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=1, max=30),
        retry=retry_if_exception(is_retryable),
        reraise=True,
    )
    response = retrying(_send, session, method, url, timeout=timeout, **kwargs)
    if not response.content:
        return {}
    try:
        body = response.json()
    except ValueError:
        logger.warning("Non-JSON response from %s %s", method, url)
        return {}
    return body if isinstance(body, dict) else {}


def _send(session: requests.Session, method: str, url: str, **kwargs: Any) -> requests.Response:
    response = session.request(method, url, **kwargs)
    if not response.ok:
        logger.error("%s %s failed with status %s", method, url, response.status_code)
    response.raise_for_status()
    return response
