"""Tests for outbound notices and the pooled client."""

import json

import httpx
import pytest

from deploygate.application.config_models import HttpSettings
from deploygate.application.notification import ConnectionManager, NotificationDispatcher
from deploygate.domain.events import GateEventType


def _dispatcher(handler) -> NotificationDispatcher:
    return NotificationDispatcher(ConnectionManager(transport=httpx.MockTransport(handler)))


FIELDS = {
    "runId": 3,
    "stepId": "A",
    "inputId": "A",
    "nodeId": "7",
    "pipelineName": "app",
    "pipelineFullName": "team/app",
    "submitter": "alice",
}


class TestNotify:
    def test_empty_url_is_delivered_without_request(self, recorder) -> None:
        dispatcher = _dispatcher(recorder)
        assert dispatcher.notify("", GateEventType.READY, FIELDS) is True
        assert recorder.requests == []

    def test_body_and_headers(self, recorder) -> None:
        dispatcher = _dispatcher(recorder)
        ok = dispatcher.notify(
            "http://notice.test/n", GateEventType.SUCCESS, FIELDS, user_id="u1", user_name="Alice"
        )

        assert ok is True
        request = recorder.requests[0]
        assert request.method == "POST"
        assert request.headers["Content-Type"] == "application/json;charset=utf-8"
        assert request.headers["LEO-USER"] == '{"userId":"u1","userName":"Alice"}'
        assert json.loads(request.content) == {"type": "success", **FIELDS}

    def test_no_identity_header_without_user(self, recorder) -> None:
        _dispatcher(recorder).notify("http://notice.test/n", "ready", FIELDS)
        assert "LEO-USER" not in recorder.requests[0].headers


class TestPost:
    @pytest.mark.parametrize(
        "response, expected",
        [
            (httpx.Response(200, json={"rtnCode": "000000"}), True),
            (httpx.Response(200, json={"rtnCode": "100001"}), False),
            (httpx.Response(200, json={"data": 1}), True),
            (httpx.Response(200, text="ok"), True),
            (httpx.Response(201, json={"rtnCode": "000000"}), False),
            (httpx.Response(500, text="boom"), False),
        ],
    )
    def test_acceptance(self, response: httpx.Response, expected: bool) -> None:
        dispatcher = _dispatcher(lambda request: response)
        assert dispatcher.post("http://deploy.test/x", {"runId": 1}) is expected

    def test_transport_error_is_swallowed(self) -> None:
        def _refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        assert _dispatcher(_refuse).post("http://deploy.test/x", {}) is False


class TestConnectionManager:
    def test_client_is_shared_until_closed(self, recorder) -> None:
        manager = ConnectionManager(transport=httpx.MockTransport(recorder))
        client = manager.client()
        assert manager.client() is client

        manager.close()
        assert manager.client() is not client

    def test_timeouts_from_settings(self) -> None:
        settings = HttpSettings(connect_timeout=1.5, read_timeout=9.0, pool_timeout=2.0)
        client = ConnectionManager(settings).client()
        assert client.timeout.connect == 1.5
        assert client.timeout.read == 9.0
        assert client.timeout.pool == 2.0
