"""
Unit tests for HttpxWebhookInvoker.
"""
import json
import httpx
import pytest

from chatflow.services.webhook import HttpxWebhookInvoker


def invoker_for(handler) -> HttpxWebhookInvoker:
    return HttpxWebhookInvoker(timeout=5, transport=httpx.MockTransport(handler))


class TestHttpxWebhookInvoker:
    """Tests for outbound webhook calls."""

    async def test_post_sends_json_body(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["body"] = json.loads(request.content)
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(201, json={"id": 7})

        response = await invoker_for(handler).invoke(
            "https://crm.example.com/leads",
            "post",
            {"Authorization": "Bearer abc"},
            {"nome": "Ana"}
        )

        assert response.success
        assert response.status == 201
        assert response.body == {"id": 7}
        assert seen == {"method": "POST", "body": {"nome": "Ana"}, "auth": "Bearer abc"}

    async def test_get_has_no_body(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.content == b""
            return httpx.Response(200, text="pong")

        response = await invoker_for(handler).invoke("https://api.example.com/ping", "GET", {}, {"x": 1})
        assert response.success
        assert response.body == "pong"

    async def test_error_status_is_failure(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, json={"error": "boom"})

        response = await invoker_for(handler).invoke("https://api.example.com", "POST", {}, {})
        assert not response.success
        assert response.status == 500
        assert response.error == "HTTP 500: Internal Server Error"
        assert response.body == {"error": "boom"}

    async def test_timeout_is_failure(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        response = await invoker_for(handler).invoke("https://api.example.com", "POST", {}, {})
        assert not response.success
        assert response.status is None
        assert "Timeout" in response.error

    async def test_connection_error_is_failure(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        response = await invoker_for(handler).invoke("https://api.example.com", "PUT", {}, {})
        assert not response.success
        assert response.error == "refused"

    async def test_empty_response_body(self):
        response = await invoker_for(lambda request: httpx.Response(204)).invoke(
            "https://api.example.com", "DELETE", {}, None
        )
        assert response.success
        assert response.body is None
