"""
Tests for the Smooch webhook receiver.

Verifies:
- X-API-Key verification against the verify secret
- Payload decoding and fan-out to every handler in registration order
- 401 / 422 / 405 responses
- Sync and async handlers
"""

import json

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from smooch.client import SmoochClient
from smooch.models import Payload
from smooch.webhook import API_KEY_HEADER, WebhookDispatcher

from tests.conftest import TEST_VERIFY_SECRET


def build_app(client: SmoochClient) -> TestClient:
    app = FastAPI()
    app.include_router(client.router)
    return TestClient(app)


@pytest.fixture
def smooch_client(basic_settings) -> SmoochClient:
    settings = basic_settings.model_copy(update={"WEBHOOK_URL": "/smooch/webhook"})
    return SmoochClient(settings)


class TestWebhookVerification:
    def test_matching_key_is_accepted(self):
        dispatcher = WebhookDispatcher(verify_secret="secret")

        assert dispatcher.verify_request({API_KEY_HEADER: "secret"}) is True

    def test_lowercase_header_is_accepted(self):
        dispatcher = WebhookDispatcher(verify_secret="secret")

        assert dispatcher.verify_request({"x-api-key": "secret"}) is True

    def test_wrong_key_is_rejected(self):
        dispatcher = WebhookDispatcher(verify_secret="secret")

        assert dispatcher.verify_request({API_KEY_HEADER: "nope"}) is False

    def test_missing_key_is_rejected(self):
        dispatcher = WebhookDispatcher(verify_secret="secret")

        assert dispatcher.verify_request({}) is False

    def test_no_secret_accepts_everything(self):
        dispatcher = WebhookDispatcher()

        assert dispatcher.verify_request({}) is True


class TestWebhookEndpoint:
    def test_valid_request_reaches_every_handler_in_order(
        self, smooch_client, webhook_payload_json
    ):
        received: list[tuple[str, Payload]] = []
        smooch_client.add_webhook_event_handler(lambda p: received.append(("first", p)))
        smooch_client.add_webhook_event_handler(lambda p: received.append(("second", p)))
        http = build_app(smooch_client)

        response = http.post(
            "/smooch/webhook",
            content=json.dumps(webhook_payload_json),
            headers={API_KEY_HEADER: TEST_VERIFY_SECRET},
        )

        assert response.status_code == 200
        assert [name for name, _ in received] == ["first", "second"]
        payload = received[0][1]
        assert payload.trigger == "message:appUser"
        assert payload.app.id == "5698edbf2a43bd081be982f1"
        assert payload.messages[0].text == "Hi! Do you have time to chat?"
        assert payload.messages[0].source.type == "messenger"
        assert payload.app_user.user_id == "bob@example.com"
        assert payload.app_user.given_name == "Bob"
        assert payload.conversation.id == "105e47578be874292d365ee8"
        assert payload.version == "v1.1"

    def test_async_handler_is_awaited(self, smooch_client, webhook_payload_json):
        received = []

        async def handler(payload: Payload) -> None:
            received.append(payload.trigger)

        smooch_client.add_webhook_event_handler(handler)
        http = build_app(smooch_client)

        response = http.post(
            "/smooch/webhook",
            json=webhook_payload_json,
            headers={API_KEY_HEADER: TEST_VERIFY_SECRET},
        )

        assert response.status_code == 200
        assert received == ["message:appUser"]

    def test_wrong_key_returns_401_and_skips_handlers(self, smooch_client, webhook_payload_json):
        received = []
        smooch_client.add_webhook_event_handler(received.append)
        http = build_app(smooch_client)

        response = http.post(
            "/smooch/webhook",
            json=webhook_payload_json,
            headers={API_KEY_HEADER: "wrong"},
        )

        assert response.status_code == 401
        assert received == []

    def test_missing_key_returns_401(self, smooch_client, webhook_payload_json):
        http = build_app(smooch_client)

        response = http.post("/smooch/webhook", json=webhook_payload_json)

        assert response.status_code == 401

    @pytest.mark.parametrize("body", [b"not json", b'{"messages": "nope"}', b"\xff\xfe"])
    def test_undecodable_body_returns_422(self, smooch_client, body):
        received = []
        smooch_client.add_webhook_event_handler(received.append)
        http = build_app(smooch_client)

        response = http.post(
            "/smooch/webhook",
            content=body,
            headers={API_KEY_HEADER: TEST_VERIFY_SECRET},
        )

        assert response.status_code == 422
        assert received == []

    def test_get_is_not_allowed(self, smooch_client):
        http = build_app(smooch_client)

        response = http.get("/smooch/webhook", headers={API_KEY_HEADER: TEST_VERIFY_SECRET})

        assert response.status_code == 405

    def test_no_verify_secret_accepts_unsigned_requests(self, basic_settings, webhook_payload_json):
        settings = basic_settings.model_copy(update={"VERIFY_SECRET": None})
        client = SmoochClient(settings)
        received = []
        client.add_webhook_event_handler(received.append)
        http = build_app(client)

        response = http.post("/", json=webhook_payload_json)

        assert response.status_code == 200
        assert len(received) == 1

    def test_delivery_failure_event(self, smooch_client):
        received = []
        smooch_client.add_webhook_event_handler(received.append)
        http = build_app(smooch_client)
        body = {
            "trigger": "message:delivery:failure",
            "app": {"_id": "5698edbf2a43bd081be982f1"},
            "appUser": {"_id": "c7f6e6d6c3a637261bd9656f"},
            "destination": {"type": "whatsapp"},
            "error": {"code": "uncategorized_error", "underlyingError": {"message": "boom"}},
            "message": {"_id": "5baa610ec8d7e1e5b3b15d39"},
            "isFinalEvent": True,
        }

        response = http.post(
            "/smooch/webhook",
            json=body,
            headers={API_KEY_HEADER: TEST_VERIFY_SECRET},
        )

        assert response.status_code == 200
        payload = received[0]
        assert payload.is_final_event is True
        assert payload.error.code == "uncategorized_error"
        assert payload.message.id == "5baa610ec8d7e1e5b3b15d39"
        assert payload.destination.type == "whatsapp"
