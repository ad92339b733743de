"""Pytest configuration and fixtures for proxy tests.

This module provides shared fixtures for testing the proxy, including
API Gateway events in both payload formats, a resolved configuration,
and a recording fake for the outbound transport.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass
from dataclasses import field
from pathlib import Path
from typing import Any
from typing import Callable
from typing import Mapping
from typing import Optional
from uuid import uuid4

import pytest

# Add backend source to path for imports
sys.path.insert(0, str(Path(__file__).resolve().parents[1] / 'backend' / 'src'))

PROXY_ENV_VARS = (
    'TURSO_DATABASE_HOST',
    'TURSO_DATABASE_URL',
    'TURSO_AUTH_TOKEN',
    'TURSO_AUTH_TOKEN_SECRET_ARN',
    'TURSO_AUTH_TOKEN_SECRET_KEY',
    'PUBLIC_SITE_ORIGIN',
    'PROXY_BODY_MODE',
    'PROXY_DEBUG_ERRORS',
    'PROXY_HOST_VARIABLES',
    'PROXY_TIMEOUT_SECONDS',
    'PROXY_USER_AGENT',
)


# --- Environment Fixtures ---


@pytest.fixture(autouse=True)
def clean_proxy_env(monkeypatch):
    """Make sure no proxy setting leaks in from the developer's shell."""
    for name in PROXY_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def proxy_env(monkeypatch) -> dict:
    """A complete, valid proxy environment."""
    env = {
        'TURSO_DATABASE_URL': 'libsql://db-org.turso.io',
        'TURSO_AUTH_TOKEN': 'test-token-123456',
    }
    for name, value in env.items():
        monkeypatch.setenv(name, value)
    return env


# --- Config Fixtures ---


@pytest.fixture
def proxy_config():
    """Resolved configuration pointing at a fake database host."""
    from pipeline_proxy.config import ProxyConfig

    return ProxyConfig(
        database_host='https://db-org.turso.io',
        auth_token='test-token-123456',
    )


# --- Transport Fakes ---


@dataclass
class RecordingTransport:
    """Fake transport that records calls and answers from a callable."""

    status_code: int = 200
    body: bytes = b'{"results":[]}'
    error: Optional[BaseException] = None
    echo: bool = False
    calls: list[dict[str, Any]] = field(default_factory=list)

    def __call__(
        self,
        url: str,
        body: Optional[bytes],
        headers: Mapping[str, str],
        timeout: float,
    ):
        from pipeline_proxy.services.transport import UpstreamResponse

        self.calls.append(
            {'url': url, 'body': body, 'headers': dict(headers), 'timeout': timeout}
        )
        if self.error is not None:
            raise self.error
        if self.echo:
            return UpstreamResponse(status_code=self.status_code, body=body or b'')
        return UpstreamResponse(status_code=self.status_code, body=self.body)


@pytest.fixture
def transport() -> RecordingTransport:
    """Recording transport returning an empty pipeline result."""
    return RecordingTransport()


@pytest.fixture
def make_request() -> Callable[..., Any]:
    """Factory for ProxyRequest values."""
    from pipeline_proxy.services.forwarder import ProxyRequest

    def _make(method: str = 'GET', path: str = '/api', **kwargs: Any):
        return ProxyRequest(method=method, path=path, **kwargs)

    return _make


# --- API Event Fixtures ---


@pytest.fixture
def api_gateway_event() -> dict:
    """Base API Gateway REST API (payload format 1.0) event."""
    return {
        'httpMethod': 'POST',
        'path': '/api',
        'queryStringParameters': None,
        'multiValueQueryStringParameters': None,
        'headers': {'Content-Type': 'application/json'},
        'requestContext': {
            'requestId': str(uuid4()),
        },
        'body': '{"requests":[{"type":"execute","stmt":{"sql":"SELECT 1"}}]}',
        'isBase64Encoded': False,
    }


@pytest.fixture
def http_api_event() -> dict:
    """Base HTTP API / Function URL (payload format 2.0) event."""
    return {
        'version': '2.0',
        'rawPath': '/api/v2/pipeline',
        'rawQueryString': '',
        'headers': {'content-type': 'application/json'},
        'requestContext': {
            'requestId': str(uuid4()),
            'http': {'method': 'POST', 'path': '/api/v2/pipeline'},
        },
        'body': '{"requests":[]}',
        'isBase64Encoded': False,
    }


class FakeLambdaContext:
    """Minimal stand-in for the Lambda context object."""

    def __init__(self, remaining_ms: int = 60_000):
        self.aws_request_id = str(uuid4())
        self._remaining_ms = remaining_ms

    def get_remaining_time_in_millis(self) -> int:
        return self._remaining_ms


@pytest.fixture
def lambda_context() -> FakeLambdaContext:
    return FakeLambdaContext()
