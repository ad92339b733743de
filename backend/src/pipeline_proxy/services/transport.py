"""Outbound HTTP call to the database backend.

A transport is any callable with the signature of ``urlopen_transport``.
The forwarding handler takes one as a parameter so tests can substitute
a recording fake without touching the network.
"""

from __future__ import annotations

import http.client
import socket
import urllib.error
import urllib.request
from dataclasses import dataclass
from typing import Mapping
from typing import Optional
from typing import Protocol

from pipeline_proxy.exceptions import UpstreamError


@dataclass(frozen=True)
class UpstreamResponse:
    """Status and fully-read body returned by the backend."""

    status_code: int
    body: bytes


class Transport(Protocol):
    def __call__(
        self,
        url: str,
        body: Optional[bytes],
        headers: Mapping[str, str],
        timeout: float,
    ) -> UpstreamResponse: ...


def urlopen_transport(
    url: str,
    body: Optional[bytes],
    headers: Mapping[str, str],
    timeout: float,
) -> UpstreamResponse:
    """POST ``body`` to ``url`` and read the whole response.

    HTTP error statuses are returned, not raised; the caller relays
    them. Anything that prevents a complete response raises.

    Raises:
        UpstreamError: On DNS, connection, timeout or read failure.
    """
    req = urllib.request.Request(
        url,
        data=body,
        headers=dict(headers),
        method="POST",
    )
    try:
        with urllib.request.urlopen(req, timeout=timeout) as resp:  # nosec B310 - https URL built from config
            return UpstreamResponse(status_code=resp.status, body=resp.read())
    except urllib.error.HTTPError as exc:
        try:
            error_body = exc.read()
        except (OSError, http.client.HTTPException):
            error_body = b""
        return UpstreamResponse(status_code=exc.code, body=error_body or b"")
    except urllib.error.URLError as exc:
        raise UpstreamError(_describe(exc.reason), cause=exc) from exc
    except (socket.timeout, TimeoutError) as exc:
        raise UpstreamError(f"Timed out after {timeout:g}s", cause=exc) from exc
    except (OSError, http.client.HTTPException) as exc:
        raise UpstreamError(_describe(exc), cause=exc) from exc


def _describe(reason: object) -> str:
    if isinstance(reason, (socket.timeout, TimeoutError)):
        return "Timed out"
    if isinstance(reason, BaseException):
        text = str(reason)
        return f"{type(reason).__name__}: {text}" if text else type(reason).__name__
    return str(reason)
