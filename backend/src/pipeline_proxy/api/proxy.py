"""Lambda handler for the database pipeline proxy.

Adapts API Gateway events (REST API payload format 1.0 and HTTP API /
Function URL payload format 2.0) to ``ProxyRequest`` values, runs the
forwarding handler, and converts its ``ProxyResponse`` back into the
API Gateway response shape.
"""

from __future__ import annotations

import base64
import os
import time
from typing import Any
from typing import Mapping
from typing import Optional

from pipeline_proxy.api.schemas import ErrorSchema
from pipeline_proxy.config import ORIGIN_VARIABLE
from pipeline_proxy.config import ProxyConfig
from pipeline_proxy.config import load_config
from pipeline_proxy.exceptions import ConfigurationError
from pipeline_proxy.services.forwarder import ProxyRequest
from pipeline_proxy.services.forwarder import handle_request
from pipeline_proxy.utils.logging import clear_request_context
from pipeline_proxy.utils.logging import configure_logging
from pipeline_proxy.utils.logging import get_logger
from pipeline_proxy.utils.logging import log_lambda_event
from pipeline_proxy.utils.logging import log_response
from pipeline_proxy.utils.logging import set_request_context
from pipeline_proxy.utils.parsers import collect_query_params
from pipeline_proxy.utils.parsers import decode_body
from pipeline_proxy.utils.responses import ProxyResponse
from pipeline_proxy.utils.responses import json_response

# Configure logging on module load
configure_logging()
logger = get_logger(__name__)

# Time kept back from the Lambda deadline so an error can still be returned
TIMEOUT_MARGIN_SECONDS = 1.0
MIN_TIMEOUT_SECONDS = 1.0


def lambda_handler(event: Mapping[str, Any], context: Any) -> dict[str, Any]:
    """Handle an API Gateway request for the pipeline proxy."""

    set_request_context(req_id=_request_id(event, context))
    start_time = time.perf_counter()
    log_lambda_event(logger, event)

    try:
        request = parse_event(event)
        config = load_config()
        response = handle_request(
            request,
            config,
            timeout=compute_timeout(config, context),
        )
    except ConfigurationError as exc:
        logger.error(f"Invalid proxy configuration: {exc.config_name}")
        response = json_response(
            exc.status_code, ErrorSchema(**exc.to_dict()), _fallback_origin()
        )
    except Exception as exc:
        logger.exception("Unexpected error in pipeline proxy")
        response = json_response(
            500,
            ErrorSchema(error="Proxy Crash", message=str(exc)),
            _fallback_origin(),
        )

    log_response(
        logger,
        response.status_code,
        duration_ms=(time.perf_counter() - start_time) * 1000,
    )
    clear_request_context()
    return to_lambda_response(response)


def parse_event(event: Mapping[str, Any]) -> ProxyRequest:
    """Build a ProxyRequest from either API Gateway payload format."""

    request_context = event.get("requestContext") or {}
    http = request_context.get("http")
    if event.get("version") == "2.0" or http:
        http = http or {}
        method = http.get("method") or "GET"
        path = event.get("rawPath") or http.get("path") or "/"
    else:
        method = event.get("httpMethod") or "GET"
        path = event.get("path") or "/"

    body, body_ok = decode_body(event)
    return ProxyRequest(
        method=method.upper(),
        path=path,
        query=collect_query_params(event),
        body=body,
        body_error=not body_ok,
    )


def compute_timeout(config: ProxyConfig, context: Any) -> float:
    """Cap the outbound timeout by the time left in this invocation.

    The Lambda runtime gives no signal when the client disconnects, so
    the invocation deadline is the only point at which the outbound call
    can be abandoned.
    """
    timeout = config.timeout_seconds
    get_remaining = getattr(context, "get_remaining_time_in_millis", None)
    if callable(get_remaining):
        remaining = get_remaining() / 1000 - TIMEOUT_MARGIN_SECONDS
        timeout = min(timeout, max(remaining, MIN_TIMEOUT_SECONDS))
    return timeout


def to_lambda_response(response: ProxyResponse) -> dict[str, Any]:
    """Convert a ProxyResponse to the API Gateway response dictionary.

    Bodies that are not valid UTF-8 are base64 encoded so they reach
    the caller byte-for-byte.
    """
    try:
        body = response.body.decode("utf-8")
        is_base64 = False
    except UnicodeDecodeError:
        body = base64.b64encode(response.body).decode("ascii")
        is_base64 = True

    return {
        "statusCode": response.status_code,
        "headers": dict(response.headers),
        "body": body,
        "isBase64Encoded": is_base64,
    }


def _request_id(event: Mapping[str, Any], context: Any) -> Optional[str]:
    request_context = event.get("requestContext") or {}
    return request_context.get("requestId") or getattr(
        context, "aws_request_id", None
    )


def _fallback_origin() -> str:
    return os.getenv(ORIGIN_VARIABLE, "").strip() or "*"
