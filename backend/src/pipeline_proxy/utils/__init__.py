"""Utility modules for the pipeline proxy."""

from pipeline_proxy.utils.logging import (
    clear_request_context,
    configure_logging,
    get_logger,
    set_request_context,
)
from pipeline_proxy.utils.parsers import (
    collect_query_params,
    decode_body,
    first_param,
)
from pipeline_proxy.utils.responses import (
    ProxyResponse,
    get_cors_headers,
    get_preflight_headers,
    json_response,
    relay_response,
)

__all__ = [
    "ProxyResponse",
    "clear_request_context",
    "collect_query_params",
    "configure_logging",
    "decode_body",
    "first_param",
    "get_cors_headers",
    "get_logger",
    "get_preflight_headers",
    "json_response",
    "relay_response",
    "set_request_context",
]
