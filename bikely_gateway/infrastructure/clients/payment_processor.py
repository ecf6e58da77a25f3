"""Payment processor HTTP client (Stripe-compatible payment intents API)"""

import asyncio
import logging
from typing import Any, Dict, Optional

import httpx

from bikely_gateway.config import settings
from bikely_gateway.domain.exceptions import PaymentProcessorError
from bikely_gateway.domain.models import ProcessorConfirmation
from bikely_gateway.infrastructure.observability.metrics import processor_failures_counter, processor_latency_histogram

logger = logging.getLogger(__name__)


class PaymentProcessorClient:
    """Client for the external card processor"""

    def __init__(
        self,
        base_url: str | None = None,
        secret_key: str | None = None,
        timeout: float | None = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url or settings.payment_processor_base
        self.secret_key = secret_key if secret_key is not None else settings.payment_processor_secret_key
        self.timeout = timeout or settings.http_timeout_seconds
        self.max_retries = settings.processor_max_retries
        self.backoff_base = settings.processor_backoff_base
        self.transport = transport

    async def create_payment_intent(self, amount_cents: int, currency: str | None = None) -> str:
        """
        Open a payment intent for an out-of-band charge.

        Returns:
            Client secret the storefront uses to confirm the card payment
        """
        data = await self._request(
            "POST",
            "/v1/payment_intents",
            data={
                "amount": amount_cents,
                "currency": currency or settings.currency,
                "automatic_payment_methods[enabled]": "true",
            },
        )
        try:
            return data["client_secret"]
        except KeyError as e:
            raise PaymentProcessorError("Processor response missing client_secret") from e

    async def get_payment_intent(self, intent_id: str) -> ProcessorConfirmation:
        """
        Fetch the charge state of a payment intent.

        Raises:
            PaymentProcessorError: On timeout, HTTP errors, or invalid response
        """
        data = await self._request("GET", f"/v1/payment_intents/{intent_id}")
        try:
            return ProcessorConfirmation(
                transaction_id=data["id"],
                amount_cents=int(data.get("amount_received") or data["amount"]),
                status=data["status"],
                currency=data.get("currency", settings.currency),
            )
        except (KeyError, ValueError, TypeError) as e:
            raise PaymentProcessorError(f"Invalid payment intent data from processor: {e}") from e

    async def _request(self, method: str, path: str, data: Dict[str, Any] | None = None) -> Dict[str, Any]:
        """
        Send a request with retry logic.

        Retry strategy:
        - Exponential backoff: base, 2*base, 4*base...
        - Retries on 5xx errors and network failures; 4xx fails immediately
        """
        headers = {"Authorization": f"Bearer {self.secret_key}"}
        attempt = 0
        async with httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self.transport) as client:
            while True:
                try:
                    with processor_latency_histogram.time():
                        response = await client.request(method, path, data=data, headers=headers)
                        response.raise_for_status()
                        return response.json()

                except httpx.HTTPStatusError as e:
                    processor_failures_counter.inc()
                    attempt += 1
                    if e.response.status_code < 500 or attempt >= self.max_retries:
                        raise PaymentProcessorError(
                            f"Processor error: {e.response.status_code}", status_code=e.response.status_code
                        ) from e

                except httpx.TimeoutException as e:
                    processor_failures_counter.inc()
                    attempt += 1
                    if attempt >= self.max_retries:
                        raise PaymentProcessorError(f"Processor timeout after {self.timeout}s") from e

                except httpx.RequestError as e:
                    processor_failures_counter.inc()
                    attempt += 1
                    if attempt >= self.max_retries:
                        raise PaymentProcessorError(f"Processor unreachable: {e}") from e

                except ValueError as e:
                    raise PaymentProcessorError(f"Invalid JSON from processor: {e}") from e

                backoff = self.backoff_base * (2 ** (attempt - 1))
                logger.warning("Retrying processor call", extra={"path": path, "attempt": attempt, "backoff": backoff})
                await asyncio.sleep(backoff)
