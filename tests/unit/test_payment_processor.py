"""Unit tests for the payment processor client"""

import httpx
import pytest
from bikely_gateway.domain.exceptions import PaymentProcessorError
from bikely_gateway.infrastructure.clients.payment_processor import PaymentProcessorClient


def _client(handler) -> PaymentProcessorClient:
    client = PaymentProcessorClient(
        base_url="https://processor.test",
        secret_key="sk_test",
        transport=httpx.MockTransport(handler),
    )
    client.backoff_base = 0
    return client


async def test_get_payment_intent_parses_confirmation():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/v1/payment_intents/pi_123"
        assert request.headers["Authorization"] == "Bearer sk_test"
        return httpx.Response(
            200,
            json={"id": "pi_123", "amount": 100000, "amount_received": 100000, "currency": "zmw", "status": "succeeded"},
        )

    confirmation = await _client(handler).get_payment_intent("pi_123")

    assert confirmation.transaction_id == "pi_123"
    assert confirmation.amount_cents == 100000
    assert confirmation.succeeded


async def test_retries_server_errors_then_succeeds():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        if len(calls) < 3:
            return httpx.Response(502)
        return httpx.Response(200, json={"id": "pi_1", "amount": 500, "status": "processing"})

    confirmation = await _client(handler).get_payment_intent("pi_1")

    assert len(calls) == 3
    assert confirmation.status == "processing"
    assert not confirmation.succeeded


async def test_client_errors_are_not_retried():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(404, json={"error": {"message": "No such payment_intent"}})

    with pytest.raises(PaymentProcessorError) as exc_info:
        await _client(handler).get_payment_intent("pi_missing")

    assert len(calls) == 1
    assert exc_info.value.status_code == 404
    assert exc_info.value.rejected


async def test_gives_up_after_max_retries():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = _client(handler)
    with pytest.raises(PaymentProcessorError, match="unreachable") as exc_info:
        await client.get_payment_intent("pi_1")

    assert not exc_info.value.rejected


async def test_invalid_payload_raises():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"unexpected": True})

    with pytest.raises(PaymentProcessorError):
        await _client(handler).get_payment_intent("pi_1")


async def test_create_payment_intent_returns_client_secret():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "POST"
        body = request.content.decode()
        assert "amount=25000" in body
        assert "currency=zmw" in body
        return httpx.Response(200, json={"id": "pi_new", "client_secret": "pi_new_secret_abc"})

    assert await _client(handler).create_payment_intent(25000, currency="zmw") == "pi_new_secret_abc"
