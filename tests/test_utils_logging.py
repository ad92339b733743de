"""Tests for structured logging utilities."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1] / 'backend' / 'src'))

from pipeline_proxy.utils.logging import (  # noqa: E402
    StructuredLogFormatter,
    clear_request_context,
    set_request_context,
)


class TestStructuredLogFormatter:
    """Tests for the JSON log formatter."""

    def _record(self, level: int = logging.INFO, **extra) -> logging.LogRecord:
        record = logging.LogRecord(
            'pipeline_proxy.test', level, __file__, 10, 'Forwarding %s', ('POST',), None
        )
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_basic_fields(self) -> None:
        payload = json.loads(StructuredLogFormatter().format(self._record()))

        assert payload['level'] == 'INFO'
        assert payload['logger'] == 'pipeline_proxy.test'
        assert payload['message'] == 'Forwarding POST'
        assert 'source' not in payload

    def test_request_context(self) -> None:
        set_request_context(req_id='req-1')
        try:
            payload = json.loads(StructuredLogFormatter().format(self._record()))
        finally:
            clear_request_context()

        assert payload['request_id'] == 'req-1'
        assert 'correlation_id' not in payload

    def test_extra_fields(self) -> None:
        record = self._record(backend_path='/v2/pipeline')
        payload = json.loads(StructuredLogFormatter().format(record))
        assert payload['extra'] == {'backend_path': '/v2/pipeline'}

    def test_warning_includes_source(self) -> None:
        payload = json.loads(
            StructuredLogFormatter().format(self._record(logging.WARNING))
        )
        assert payload['source']['line'] == 10
