from __future__ import annotations

from typing import List
from urllib.parse import parse_qs

import httpx

from services.notifier import NotificationClient
from settings import Settings

_TOKEN_ENV = "APPVIEW_SLACKBOT_TOKEN"


def _client(handler) -> NotificationClient:
    settings = Settings()
    return NotificationClient(settings, client=httpx.Client(transport=httpx.MockTransport(handler)))


def test_notify_posts_form_body(monkeypatch) -> None:
    monkeypatch.setenv(_TOKEN_ENV, "xoxb-test")
    requests: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, text='{"ok":true,"channel":"C1","ts":"1"}')

    assert _client(handler).notify("pressure is rising") is True

    request = requests[0]
    assert request.method == "POST"
    assert str(request.url) == "https://slack.com/api/chat.postMessage"
    assert request.headers["content-type"] == "application/x-www-form-urlencoded"
    form = parse_qs(request.content.decode())
    assert form == {"token": ["xoxb-test"], "channel": ["#drn"], "text": ["pressure is rising"]}


def test_notify_success_is_a_substring_match(monkeypatch) -> None:
    """Any ":true" in the body counts, matching how the endpoint was always read."""
    monkeypatch.setenv(_TOKEN_ENV, "xoxb-test")

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text='{"ok":true,"message":{"is_bot":true}}')

    assert _client(handler).notify("hello") is True


def test_notify_false_without_true_substring(monkeypatch) -> None:
    monkeypatch.setenv(_TOKEN_ENV, "xoxb-test")

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text='{"ok":false,"error":"channel_not_found"}')

    assert _client(handler).notify("hello") is False


def test_notify_without_token_makes_no_request(monkeypatch) -> None:
    monkeypatch.delenv(_TOKEN_ENV, raising=False)
    calls: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, text='{"ok":true}')

    assert _client(handler).notify("hello") is False
    assert calls == []


def test_notify_transport_error_returns_false(monkeypatch, caplog) -> None:
    monkeypatch.setenv(_TOKEN_ENV, "xoxb-test")

    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    assert _client(handler).notify("hello") is False
    assert any("transport error" in record.getMessage() for record in caplog.records)
