"""Shared response helpers for the proxy.

Responses are built as ``ProxyResponse`` values; the Lambda adapter
converts them to the API Gateway shape at the very end.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from dataclasses import field
from typing import Any
from typing import Optional

from pydantic import BaseModel

ALLOW_METHODS = "POST, GET, OPTIONS"
ALLOW_HEADERS = "Content-Type, Authorization"


@dataclass
class ProxyResponse:
    """HTTP response produced by the forwarding handler."""

    status_code: int
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    def json(self) -> Any:
        """Decode the body as JSON (convenient for callers and tests)."""
        return json.loads(self.body.decode("utf-8"))


def get_cors_headers(allowed_origin: Optional[str] = None) -> dict[str, str]:
    """Return the origin header attached to every response.

    Args:
        allowed_origin: The configured public site origin, if any.

    Returns:
        Dictionary with the ``Access-Control-Allow-Origin`` header.
    """
    return {"Access-Control-Allow-Origin": allowed_origin or "*"}


def get_preflight_headers(allowed_origin: Optional[str] = None) -> dict[str, str]:
    """Return the full CORS header set for an OPTIONS preflight."""
    headers = get_cors_headers(allowed_origin)
    headers["Access-Control-Allow-Methods"] = ALLOW_METHODS
    headers["Access-Control-Allow-Headers"] = ALLOW_HEADERS
    return headers


def json_response(
    status_code: int,
    body: Any,
    allowed_origin: Optional[str] = None,
) -> ProxyResponse:
    """Create a JSON response generated by the proxy itself.

    Args:
        status_code: HTTP status code.
        body: Response body (dict or Pydantic model).
        allowed_origin: The configured CORS origin.

    Returns:
        ProxyResponse with a JSON body and CORS header.
    """
    headers = {"Content-Type": "application/json"}
    headers.update(get_cors_headers(allowed_origin))

    payload = _serialize_body(body)
    return ProxyResponse(
        status_code=status_code,
        headers=headers,
        body=json.dumps(payload, default=str).encode("utf-8"),
    )


def relay_response(
    status_code: int,
    body: bytes,
    allowed_origin: Optional[str] = None,
) -> ProxyResponse:
    """Wrap a backend body, unmodified, in a response with CORS headers."""
    headers = {"Content-Type": "application/json"}
    headers.update(get_cors_headers(allowed_origin))
    return ProxyResponse(status_code=status_code, headers=headers, body=body)


def _serialize_body(body: Any) -> Any:
    """Serialize response body to JSON-compatible format.

    Args:
        body: The body to serialize.

    Returns:
        JSON-serializable representation of the body.
    """
    if isinstance(body, BaseModel):
        return body.model_dump(exclude_none=True)

    return body
