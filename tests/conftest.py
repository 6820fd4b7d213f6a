"""Shared fixtures for the Coolify MCP tests."""

import json
from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from coolify_client import CoolifyClient, Credentials

BASE_URL = "https://coolify.test/api/v1"
API_TOKEN = "test_api_token"


class RecordingClient(CoolifyClient):
    """Client that records each request and replays a canned outcome."""

    def __init__(self, response=None, error=None):
        super().__init__(Credentials(BASE_URL, API_TOKEN))
        self.response = response
        self.error = error
        self.calls = []

    async def request(self, method, path, params=None, json_body=None):
        self.calls.append({"method": method, "path": path, "params": params, "body": json_body})
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture
def client():
    return CoolifyClient(Credentials(BASE_URL, API_TOKEN))


@pytest.fixture
def recording_client():
    return RecordingClient(response={"ok": True})


@pytest.fixture
def httpx_mock(monkeypatch):
    """Fixture to mock httpx requests."""
    class MockTransport(httpx.MockTransport):
        def __init__(self):
            self.responses = []
            self.requests = []
            super().__init__(self._handler)

        def _handler(self, request):
            self.requests.append(request)
            for config in self.responses:
                if self._matches(request, config):
                    if config["exception"] is not None:
                        raise config["exception"]
                    if config["text"] is not None:
                        return httpx.Response(status_code=config["status_code"], text=config["text"])
                    if config["json"] is None:
                        return httpx.Response(status_code=config["status_code"])
                    return httpx.Response(status_code=config["status_code"], json=config["json"])
            raise Exception(f"No mock configured for {request.method} {request.url}")

        def _matches(self, request, config):
            if config["method"] and config["method"] != request.method:
                return False
            expected_url = config["url"]
            actual_url = str(request.url)
            # Normalize URLs for comparison (handle query param order)
            return expected_url == actual_url or self._urls_match(expected_url, actual_url)

        def _urls_match(self, expected, actual):
            exp_parsed = urlparse(expected)
            act_parsed = urlparse(actual)

            if exp_parsed.scheme != act_parsed.scheme:
                return False
            if exp_parsed.netloc != act_parsed.netloc:
                return False
            if exp_parsed.path != act_parsed.path:
                return False
            return parse_qs(exp_parsed.query) == parse_qs(act_parsed.query)

        def add_response(self, url, json=None, status_code=200, method=None, text=None, exception=None):
            self.responses.append({
                "url": url,
                "json": json,
                "status_code": status_code,
                "method": method,
                "text": text,
                "exception": exception,
            })

        def request_json(self, index=-1):
            return json.loads(self.requests[index].content)

    mock = MockTransport()

    original_init = httpx.AsyncClient.__init__

    def patched_init(self, *args, **kwargs):
        kwargs["transport"] = mock
        original_init(self, *args, **kwargs)

    monkeypatch.setattr(httpx.AsyncClient, "__init__", patched_init)

    return mock
