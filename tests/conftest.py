# tests/conftest.py
import io
import json
import urllib.error
from unittest.mock import MagicMock, patch

import pytest

from sanity import SanityClient, SanityConfig


def make_response(payload):
    """A urlopen() result usable as a context manager."""
    body = payload if isinstance(payload, bytes) else json.dumps(payload).encode()
    response = MagicMock()
    response.read.return_value = body
    response.__enter__.return_value = response
    response.__exit__.return_value = False
    return response


def make_http_error(code, payload=None):
    body = json.dumps(payload).encode() if payload is not None else b""
    return urllib.error.HTTPError(
        "https://example.invalid", code, "Bad Request", {}, io.BytesIO(body)
    )


@pytest.fixture
def urlopen():
    """Patches urllib.request.urlopen for the duration of a test."""
    with patch("urllib.request.urlopen") as mocked:
        yield mocked


@pytest.fixture
def sanity_client():
    return SanityClient(SanityConfig(project_id="abc123", dataset="staging"))
