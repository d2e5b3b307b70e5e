"""
Tests for Push Transport Tool
Tests Expo token validation, payloads and the batch send client
"""

import json

import httpx
import pytest

from errors import DeliveryFailure
from tools.push_transport import (
    ExpoPushTransport,
    PushMessage,
    PushTicket,
    PushTransport,
    is_push_token,
)


def _message(token: str = "ExponentPushToken[abc]") -> PushMessage:
    return PushMessage(to=token, title="Reminder: Metformin", body="Time to take 500mg of Metformin")


def _transport_with(handler, **kwargs) -> ExpoPushTransport:
    transport = ExpoPushTransport(url="https://push.test/send", **kwargs)
    transport._client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return transport


class TestIsPushToken:
    """Tests for token shape validation"""

    @pytest.mark.parametrize("token", [
        "ExponentPushToken[xxxxxxxxxxxxxxxxxxxxxx]",
        "ExpoPushToken[yyyyyyyy]",
        "3f2b1c4d-5e6f-4a7b-8c9d-0e1f2a3b4c5d",
    ])
    def test_valid_tokens(self, token):
        assert is_push_token(token) is True

    @pytest.mark.parametrize("token", ["", None, "fcm-token-123", "ExponentPushToken[]", "apns:abcdef"])
    def test_invalid_tokens(self, token):
        assert is_push_token(token) is False


class TestPushMessage:
    """Tests for the wire payload"""

    def test_payload_fields(self):
        message = PushMessage(
            to="ExponentPushToken[abc]",
            title="Reminder",
            body="Time to take 10mg of Lisinopril",
            data={"notificationId": 7},
        )
        payload = message.to_payload()

        assert payload["to"] == "ExponentPushToken[abc]"
        assert payload["sound"] == "default"
        assert payload["priority"] == "high"
        assert payload["categoryId"] == "medication_reminder"
        assert payload["data"] == {"notificationId": 7}

    def test_category_omitted_when_empty(self):
        message = PushMessage(to="t", title="x", body="y", category_id=None)
        assert "categoryId" not in message.to_payload()


class TestChunking:
    """Tests for batch splitting"""

    def test_chunks_respect_max_batch_size(self):
        transport = PushTransport()
        transport.max_batch_size = 2
        chunks = transport.chunk([_message() for _ in range(5)])
        assert [len(c) for c in chunks] == [2, 2, 1]

    def test_no_messages_no_chunks(self):
        assert PushTransport().chunk([]) == []


class TestExpoPushTransport:
    """Tests for the Expo HTTP client"""

    @pytest.mark.asyncio
    async def test_send_returns_one_ticket_per_message(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"data": [
                {"status": "ok", "id": "ticket-a"},
                {"status": "error", "message": "DeviceNotRegistered", "details": {"error": "DeviceNotRegistered"}},
            ]})

        transport = _transport_with(handler)
        tickets = await transport.send([_message("ExponentPushToken[a]"), _message("ExponentPushToken[b]")])
        await transport.close()

        assert [m["to"] for m in seen["body"]] == ["ExponentPushToken[a]", "ExponentPushToken[b]"]
        assert tickets[0].ok and tickets[0].id == "ticket-a"
        assert not tickets[1].ok
        assert tickets[1].message == "DeviceNotRegistered"

    @pytest.mark.asyncio
    async def test_empty_batch_does_not_call_api(self):
        def handler(request):
            raise AssertionError("no request expected")

        transport = _transport_with(handler)
        assert await transport.send([]) == []

    @pytest.mark.asyncio
    async def test_http_error_raises_delivery_failure(self):
        transport = _transport_with(lambda request: httpx.Response(500, text="boom"))
        with pytest.raises(DeliveryFailure):
            await transport.send([_message()])

    @pytest.mark.asyncio
    async def test_mismatched_response_raises(self):
        transport = _transport_with(lambda request: httpx.Response(200, json={"data": []}))
        with pytest.raises(DeliveryFailure):
            await transport.send([_message()])

    @pytest.mark.asyncio
    async def test_oversized_batch_rejected(self):
        transport = _transport_with(lambda request: httpx.Response(200, json={"data": []}), max_batch_size=1)
        with pytest.raises(DeliveryFailure):
            await transport.send([_message(), _message()])

    @pytest.mark.asyncio
    async def test_unreachable_api_raises(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        transport = _transport_with(handler)
        with pytest.raises(DeliveryFailure):
            await transport.send([_message()])


def test_error_ticket():
    ticket = PushTicket.error("no route")
    assert ticket.status == "error"
    assert ticket.message == "no route"
    assert not ticket.ok
