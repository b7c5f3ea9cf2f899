from __future__ import annotations

import asyncio
import json

from starlette.requests import Request

from filedrop import main
from filedrop.services.errors import AlreadyExists, WriteFailure


def _request(path: str) -> Request:
    scope = {
        'type': 'http',
        'http_version': '1.1',
        'method': 'GET',
        'scheme': 'http',
        'path': path,
        'raw_path': path.encode(),
        'query_string': b'',
        'headers': [],
        'client': ('127.0.0.1', 12345),
        'server': ('testserver', 80),
    }
    return Request(scope)


def test_unhandled_exception_handler_api_response_is_safe():
    request = _request('/api/files')
    response = asyncio.run(main.unhandled_exception_handler(request, RuntimeError('boom at /tmp/private/path')))

    assert response.status_code == 500
    assert response.body == b'{"error":"Internal server error. Please try again."}'
    assert b'/tmp/private/path' not in response.body


def test_unhandled_exception_handler_html_response_is_safe():
    request = _request('/')
    response = asyncio.run(main.unhandled_exception_handler(request, RuntimeError('unexpected /srv/files path')))

    assert response.status_code == 500
    assert b'Unexpected error' in response.body
    assert b'/srv/files' not in response.body


def test_filedrop_errors_map_to_status_and_message():
    request = _request('/api/folder')

    exists = asyncio.run(main.filedrop_error_handler(request, AlreadyExists()))
    failed = asyncio.run(main.filedrop_error_handler(request, WriteFailure()))

    assert exists.status_code == 400
    assert json.loads(exists.body) == {'error': 'Folder already exists'}
    assert failed.status_code == 500
    assert json.loads(failed.body) == {'error': 'Failed to write file'}
    assert exists.headers['X-Content-Type-Options'] == 'nosniff'
