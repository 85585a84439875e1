import logging
from unittest.mock import MagicMock

import pytest
import requests
from requests.cookies import cookiejar_from_dict
from requests.structures import CaseInsensitiveDict

from storage_metrics.session import Credentials


def _response(status_code=200, body='', headers=None, cookies=None):
    response = requests.Response()
    response.status_code = status_code
    response._content = body.encode('utf-8') if isinstance(body, str) else body
    response.encoding = 'utf-8'
    response.headers = CaseInsensitiveDict(headers or {})
    response.cookies = cookiejar_from_dict(cookies or {})
    response.url = 'https://array.example.com/'
    return response


@pytest.fixture
def make_response():
    """Build a real requests.Response with the given status, body, headers and cookies."""
    return _response


@pytest.fixture
def http():
    """Stand-in for requests.Session; queue responses on http.request.side_effect."""
    return MagicMock()


@pytest.fixture
def credentials():
    return Credentials(username='monitor', password='secret')


@pytest.fixture(autouse=True)
def _debug_logging(caplog):
    caplog.set_level(logging.DEBUG)
