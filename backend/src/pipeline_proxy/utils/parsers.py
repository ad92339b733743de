"""Shared parsing utilities for API Gateway events."""

from __future__ import annotations

import base64
import binascii
from typing import Any
from typing import Mapping
from typing import Optional
from urllib.parse import parse_qs


def first_param(params: Mapping[str, list[str]], key: str) -> Optional[str]:
    """Return the first query parameter value for a key.

    Args:
        params: Dictionary of parameter name to list of values.
        key: The parameter name to look up.

    Returns:
        The first value for the key, or None if not present.
    """
    values = params.get(key, [])
    return values[0] if values else None


def collect_query_params(event: Mapping[str, Any]) -> dict[str, list[str]]:
    """Collect query parameters from API Gateway events.

    Payload format 2.0 events carry ``rawQueryString``, which is parsed
    directly. Format 1.0 events carry single and multi-value parameter
    maps; when both are present the multi-value map is authoritative.

    Args:
        event: The API Gateway event dictionary.

    Returns:
        Dictionary mapping parameter names to lists of values.
    """
    raw = event.get("rawQueryString")
    if raw:
        return parse_qs(raw, keep_blank_values=True)

    params: dict[str, list[str]] = {}
    multi = event.get("multiValueQueryStringParameters") or {}
    for key, values in multi.items():
        if not values:
            continue
        for value in values:
            if value is None:
                continue
            params.setdefault(key, []).append(value)

    single = event.get("queryStringParameters") or {}
    for key, value in single.items():
        if value is None or key in params:
            continue
        params[key] = [value]

    return params


def decode_body(event: Mapping[str, Any]) -> tuple[Optional[bytes], bool]:
    """Extract the raw request body bytes from an API Gateway event.

    Args:
        event: The API Gateway event dictionary.

    Returns:
        Tuple of (body, ok). ``body`` is None when the event carries no
        body. ``ok`` is False when the body could not be decoded, in
        which case ``body`` is empty.
    """
    raw = event.get("body")
    if raw is None:
        return None, True

    if event.get("isBase64Encoded"):
        try:
            return base64.b64decode(raw, validate=True), True
        except (binascii.Error, ValueError, TypeError):
            return b"", False

    if isinstance(raw, bytes):
        return raw, True
    try:
        return str(raw).encode("utf-8"), True
    except UnicodeEncodeError:
        return b"", False
