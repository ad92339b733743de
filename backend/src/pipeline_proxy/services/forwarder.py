"""Forwarding handler for the database pipeline proxy.

Turns one inbound request into exactly one response. Depending on the
request it is answered locally (CORS preflight, missing configuration,
blocked training route) or forwarded as a single ``POST`` to the
backend's HTTP endpoint with the bearer token attached, and the
backend's status and body relayed back with CORS headers.

There are no retries. A transport failure is surfaced to the caller as
a 502 and the caller owns retry policy.

The handler is a pure function of (request, config, transport); it
reads no environment and keeps no state between calls.
"""

from __future__ import annotations

import json
import traceback
from dataclasses import dataclass
from dataclasses import field
from typing import Mapping
from typing import Optional
from urllib.parse import unquote

from pipeline_proxy.api.schemas import ConfigStatusSchema
from pipeline_proxy.api.schemas import ErrorSchema
from pipeline_proxy.config import BodyMode
from pipeline_proxy.config import ProxyConfig
from pipeline_proxy.exceptions import AppError
from pipeline_proxy.exceptions import ConfigurationError
from pipeline_proxy.exceptions import RouteBlockedError
from pipeline_proxy.exceptions import UpstreamError
from pipeline_proxy.services.transport import Transport
from pipeline_proxy.services.transport import urlopen_transport
from pipeline_proxy.utils.logging import get_logger
from pipeline_proxy.utils.parsers import first_param
from pipeline_proxy.utils.responses import ProxyResponse
from pipeline_proxy.utils.responses import get_preflight_headers
from pipeline_proxy.utils.responses import json_response
from pipeline_proxy.utils.responses import relay_response

logger = get_logger(__name__)

ROUTE_PREFIX = "/api"
BLOCKED_SEGMENT = "/train"
HOST_SCHEMES = ("https://", "libsql://")


@dataclass(frozen=True)
class ProxyRequest:
    """Inbound HTTP request, independent of the hosting platform.

    ``body_error`` is set when the platform delivered a body that could
    not be read; the handler then forwards an empty body instead.
    """

    method: str
    path: str
    query: Mapping[str, list[str]] = field(default_factory=dict)
    body: Optional[bytes] = None
    body_error: bool = False


def handle_request(
    request: ProxyRequest,
    config: ProxyConfig,
    transport: Optional[Transport] = None,
    *,
    timeout: Optional[float] = None,
) -> ProxyResponse:
    """Classify and answer one inbound request.

    Args:
        request: The inbound request.
        config: Resolved proxy configuration.
        transport: Callable performing the outbound POST. Defaults to
            ``urlopen_transport``.
        timeout: Outbound timeout in seconds. Defaults to
            ``config.timeout_seconds``.

    Returns:
        The response to send to the caller. Proxy-generated errors are
        returned, not raised.
    """
    if is_preflight(request.method):
        return preflight_response(config.allowed_origin)

    try:
        return _forward(
            request,
            config,
            transport or urlopen_transport,
            timeout if timeout is not None else config.timeout_seconds,
        )
    except AppError as exc:
        return error_response(exc, config)


def _forward(
    request: ProxyRequest,
    config: ProxyConfig,
    transport: Transport,
    timeout: float,
) -> ProxyResponse:
    missing = config.missing_settings()
    if missing:
        raise ConfigurationError(
            ", ".join(missing),
            hint=(
                f"Set {' and '.join(missing)} in the Lambda environment "
                "variables."
            ),
        )

    _reject_blocked(request.path)

    host = normalize_host(config.database_host or "")
    if not host:
        raise ConfigurationError(
            " or ".join(config.host_variables),
            hint="The database host setting does not contain a hostname.",
        )

    backend_path = derive_backend_path(
        request.path, request.query, config.default_path
    )
    _reject_blocked(backend_path)
    body = prepare_body(request, config.body_mode)
    url = build_backend_url(host, backend_path)

    logger.info(
        f"Forwarding {request.method.upper()} to {backend_path}",
        extra={
            "backend_host": host,
            "backend_path": backend_path,
            "body_length": len(body) if body is not None else 0,
        },
    )

    try:
        upstream = transport(url, body, build_backend_headers(config), timeout)
    except UpstreamError:
        raise
    except Exception as exc:
        raise UpstreamError(f"{type(exc).__name__}: {exc}", cause=exc) from exc

    return relay_response(upstream.status_code, upstream.body, config.allowed_origin)


def is_preflight(method: str) -> bool:
    return method.upper() == "OPTIONS"


def is_blocked_path(path: str) -> bool:
    """Training routes are rejected wherever ``/train`` appears in the path.

    The percent-decoded form is checked too, so ``/%74rain`` is caught.
    """
    return BLOCKED_SEGMENT in path or BLOCKED_SEGMENT in unquote(path)


def _reject_blocked(path: str) -> None:
    if is_blocked_path(path):
        logger.warning("Blocked training route", extra={"path": path})
        raise RouteBlockedError(path)


def normalize_host(raw_host: str) -> str:
    """Reduce a configured database URL to a bare hostname.

    Examples:
        >>> normalize_host("libsql://db-org.turso.io")
        'db-org.turso.io'
        >>> normalize_host("https://db.example.io/foo?x=1")
        'db.example.io'
    """
    host = raw_host.strip()
    for scheme in HOST_SCHEMES:
        if host.lower().startswith(scheme):
            host = host[len(scheme):]
            break
    for separator in ("/", "?"):
        host = host.split(separator, 1)[0]
    return host


def derive_backend_path(
    path: str,
    query: Mapping[str, list[str]],
    default_path: str = "/v2/pipeline",
) -> str:
    """Map the inbound path onto the backend path.

    A single leading ``/api`` segment is removed. When nothing remains
    the ``path`` query parameter is used, falling back to the pipeline
    endpoint.
    """
    backend_path = path
    if backend_path == ROUTE_PREFIX or backend_path.startswith(ROUTE_PREFIX + "/"):
        backend_path = backend_path[len(ROUTE_PREFIX):]

    if backend_path in ("", "/"):
        backend_path = first_param(query, "path") or default_path

    # A path without a leading slash would be glued onto the hostname
    if not backend_path.startswith("/"):
        backend_path = "/" + backend_path
    return backend_path


def prepare_body(request: ProxyRequest, body_mode: BodyMode) -> Optional[bytes]:
    """Return the bytes to send to the backend, or None for no body.

    Raw mode forwards POST bodies byte-for-byte. JSON mode parses and
    re-serializes them, substituting ``{}`` for anything unparseable.
    """
    method = request.method.upper()
    if body_mode is BodyMode.RAW:
        if method != "POST":
            return None
        if request.body_error:
            logger.warning("Inbound body could not be read, forwarding empty body")
            return b""
        return request.body or b""

    parsed = None
    if method == "POST" and request.body and not request.body_error:
        try:
            parsed = json.loads(request.body)
        except (ValueError, UnicodeDecodeError):
            logger.warning("Inbound body is not valid JSON, forwarding {}")
    if parsed is None:
        parsed = {}
    return json.dumps(parsed, separators=(",", ":"), ensure_ascii=False).encode(
        "utf-8"
    )


def build_backend_url(host: str, backend_path: str) -> str:
    return f"https://{host}{backend_path}"


def build_backend_headers(config: ProxyConfig) -> dict[str, str]:
    return {
        "Authorization": f"Bearer {config.auth_token}",
        "Content-Type": "application/json",
        "User-Agent": config.user_agent,
    }


def preflight_response(allowed_origin: Optional[str] = None) -> ProxyResponse:
    """Answer a CORS preflight without contacting the backend."""
    return ProxyResponse(
        status_code=200,
        headers=get_preflight_headers(allowed_origin),
        body=b"",
    )


def error_response(exc: AppError, config: ProxyConfig) -> ProxyResponse:
    """Render a proxy error as a JSON response carrying CORS headers."""
    body = ErrorSchema(**exc.to_dict())

    if isinstance(exc, ConfigurationError):
        logger.error(f"Proxy misconfigured: {exc.config_name}")
        body.details = ConfigStatusSchema(
            has_host=bool(config.database_host),
            has_token=bool(config.auth_token),
        )
    elif isinstance(exc, UpstreamError):
        logger.warning(f"Backend request failed: {exc.detail}")
        if config.include_debug:
            cause = exc.cause or exc
            body.stack = "".join(traceback.format_exception(cause))

    return json_response(exc.status_code, body, config.allowed_origin)
