"""Context capture from intercepted session-prepare requests.

The host application sends the working context as the ``context`` key of
a ``PUT /api/v1/context/session/prepare`` JSON body. This module pulls
that value out of the raw request bytes and stores it as the origin's
last retrieved context.
"""

from __future__ import annotations

import json
from urllib.parse import urlsplit

from core.constants import CONTEXT_PREPARE_PATH
from core.logging_config import get_logger
from store.cache_store import CacheHandle, save_captured_context

_LOGGER = get_logger(__name__)


def is_context_prepare_request(method: str, url: str) -> bool:
    """Return whether a request is a session-prepare PUT on any host."""
    if method.upper() != "PUT":
        return False
    return urlsplit(url).path.rstrip("/") == CONTEXT_PREPARE_PATH


def extract_context(raw_body: bytes | None) -> object | None:
    """Return the ``context`` value carried by a raw request body.

    Args:
        raw_body: Request body bytes, UTF-8 encoded JSON.

    Returns:
        The context value, or None when the body is empty, undecodable,
        or has no truthy ``context`` key.
    """
    if not raw_body:
        _LOGGER.info("context_body_empty")
        return None
    try:
        payload = json.loads(raw_body.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as error:
        _LOGGER.error("context_body_invalid", error=str(error))
        return None
    if not isinstance(payload, dict) or not payload.get("context"):
        _LOGGER.info("context_key_missing")
        return None
    return payload["context"]


async def capture_context(
    handle: CacheHandle,
    origin_key: str,
    method: str,
    url: str,
    raw_body: bytes | None,
) -> object | None:
    """Extract and persist the context of a session-prepare request.

    Args:
        handle: Cache handle used to store the context.
        origin_key: Origin the request belongs to.
        method: HTTP method of the intercepted request.
        url: URL of the intercepted request.
        raw_body: Raw request body.

    Returns:
        The captured context, or None when nothing was captured.

    Raises:
        MetalensStoreError: If the context could not be saved.
    """
    if not is_context_prepare_request(method, url):
        return None
    context = extract_context(raw_body)
    if context is None:
        return None
    await save_captured_context(handle, origin_key, context)
    _LOGGER.info("context_captured", origin=origin_key)
    return context
