"""Payout gateways: HTTP bank transfer client with retry, and a simulated gateway"""

import asyncio
import logging
import uuid
from decimal import Decimal

import httpx

from quantum_credits.config import settings
from quantum_credits.domain.collaborators import PayoutGateway
from quantum_credits.domain.exceptions import PayoutFailed
from quantum_credits.domain.models import PayoutDestination
from quantum_credits.domain.validation import mask_account_identifier
from quantum_credits.infrastructure.observability.metrics import payout_failure_counter, payout_latency_histogram

logger = logging.getLogger(__name__)


class BankTransferClient(PayoutGateway):
    """Client for the external bank payout API"""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url or settings.payout_api_base
        self.timeout = timeout or settings.http_timeout_seconds
        self.max_retries = settings.payout_max_retries
        self.backoff_base = settings.payout_backoff_base
        self.currency = settings.currency
        self.transport = transport

    async def transfer(self, destination: PayoutDestination, amount: Decimal) -> str:
        """
        Request a bank transfer with retry logic.

        Retry strategy:
        - Exponential backoff: base * 2^(attempt-1)
        - Retries on 5xx errors and network failures
        - 4xx responses fail immediately
        - One idempotency key per transfer so retries cannot pay twice

        Raises:
            PayoutFailed: When the payout is rejected or retries are exhausted
        """
        idempotency_key = uuid.uuid4().hex
        payload = {
            "amount": str(amount),
            "currency": self.currency,
            "name": destination.name,
            "email": destination.email,
            "account_number": destination.account_identifier,
            "sort_code": destination.routing_code,
        }

        attempt = 0
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            while True:
                try:
                    with payout_latency_histogram.time():
                        response = await client.post(
                            f"{self.base_url}/payouts",
                            json=payload,
                            headers={"Idempotency-Key": idempotency_key},
                        )
                        response.raise_for_status()
                    return str(response.json()["id"])

                except httpx.HTTPStatusError as e:
                    payout_failure_counter.inc()
                    if e.response.status_code < 500:
                        raise PayoutFailed(f"Payout rejected: {e.response.status_code}") from e
                    last_error = f"Payout API error: {e.response.status_code}"
                except httpx.RequestError as e:
                    payout_failure_counter.inc()
                    last_error = f"Payout API unreachable: {e}"
                except (KeyError, ValueError, TypeError) as e:
                    raise PayoutFailed(f"Invalid payout response: {e}") from e

                attempt += 1
                if attempt >= self.max_retries:
                    raise PayoutFailed(f"{last_error} after {attempt} attempts")

                backoff = self.backoff_base * (2 ** (attempt - 1))
                logger.warning(
                    "Payout attempt failed, retrying",
                    extra={"attempt": attempt, "backoff_seconds": backoff, "error": last_error},
                )
                await asyncio.sleep(backoff)


class SimulatedPayoutGateway(PayoutGateway):
    """Accepts every transfer without moving money; for development"""

    async def transfer(self, destination: PayoutDestination, amount: Decimal) -> str:
        reference = f"sim_{uuid.uuid4().hex[:12]}"
        logger.info(
            "Simulated bank transfer",
            extra={
                "reference": reference,
                "amount": str(amount),
                "masked_account": mask_account_identifier(destination.account_identifier),
            },
        )
        return reference
