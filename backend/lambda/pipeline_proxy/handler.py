"""Lambda entrypoint for the database pipeline proxy.

Serves ``/api/*`` behind API Gateway or a Function URL and forwards
each request to the Turso HTTP endpoint configured in the environment.
"""

from __future__ import annotations

from typing import Any
from typing import Mapping

from pipeline_proxy.api.proxy import lambda_handler as _handler


def lambda_handler(event: Mapping[str, Any], context: Any) -> dict[str, Any]:
    """Delegate to the pipeline proxy handler."""

    return _handler(event, context)
