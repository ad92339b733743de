"""Tests for the urllib-based outbound transport."""

from __future__ import annotations

import io
import socket
import sys
import urllib.error
from email.message import Message
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1] / 'backend' / 'src'))

from pipeline_proxy.exceptions import UpstreamError  # noqa: E402
from pipeline_proxy.services import transport as transport_module  # noqa: E402
from pipeline_proxy.services.transport import urlopen_transport  # noqa: E402

URL = 'https://db-org.turso.io/v2/pipeline'
HEADERS = {'Authorization': 'Bearer t', 'Content-Type': 'application/json'}


class _FakeResponse:
    def __init__(self, status: int, body: bytes):
        self.status = status
        self._body = body

    def read(self) -> bytes:
        return self._body

    def __enter__(self):
        return self

    def __exit__(self, *exc_info) -> None:
        return None


def test_returns_status_and_body(mocker) -> None:
    urlopen = mocker.patch.object(
        transport_module.urllib.request,
        'urlopen',
        return_value=_FakeResponse(200, b'{"results":[]}'),
    )

    result = urlopen_transport(URL, b'{"requests":[]}', HEADERS, 7.0)

    assert result.status_code == 200
    assert result.body == b'{"results":[]}'
    req = urlopen.call_args.args[0]
    assert req.get_method() == 'POST'
    assert req.full_url == URL
    assert req.data == b'{"requests":[]}'
    assert req.get_header('Authorization') == 'Bearer t'
    assert urlopen.call_args.kwargs['timeout'] == 7.0


def test_http_error_is_relayed(mocker) -> None:
    error = urllib.error.HTTPError(
        URL, 400, 'Bad Request', Message(), io.BytesIO(b'{"error":"bad sql"}')
    )
    mocker.patch.object(transport_module.urllib.request, 'urlopen', side_effect=error)

    result = urlopen_transport(URL, b'{}', HEADERS, 5.0)

    assert result.status_code == 400
    assert result.body == b'{"error":"bad sql"}'


@pytest.mark.parametrize(
    ('error', 'expected'),
    [
        (urllib.error.URLError(socket.gaierror(-2, 'Name or service not known')), 'gaierror'),
        (urllib.error.URLError('refused'), 'refused'),
        (socket.timeout('timed out'), 'Timed out'),
        (ConnectionResetError('reset by peer'), 'reset by peer'),
    ],
)
def test_transport_failures_raise_upstream_error(mocker, error, expected) -> None:
    mocker.patch.object(transport_module.urllib.request, 'urlopen', side_effect=error)

    with pytest.raises(UpstreamError) as exc_info:
        urlopen_transport(URL, None, HEADERS, 5.0)

    assert exc_info.value.status_code == 502
    assert expected in exc_info.value.detail
    assert exc_info.value.cause is error
