from __future__ import annotations

import logging
from typing import Any

import requests

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60

_NO_BODY = object()


def make_request(
    method: str,
    url: str,
    headers: dict[str, str] | None = None,
    body: Any = _NO_BODY,
    timeout: float = DEFAULT_TIMEOUT,
) -> str:
    """Perform an HTTP request and describe the response for the model.

    Non-2xx statuses are reported, not raised.
    """
    kwargs: dict[str, Any] = {"headers": headers or {}, "timeout": timeout}
    if body is not _NO_BODY:
        kwargs["json"] = body
    logger.info("HTTP %s %s", method.upper(), url)
    try:
        resp = requests.request(method.upper(), url, **kwargs)
    except requests.RequestException as e:
        logger.warning("HTTP request failed: %s", e)
        return f"<request failed: {e}>"
    return f"Status: {resp.status_code}\n\n{resp.text}"
