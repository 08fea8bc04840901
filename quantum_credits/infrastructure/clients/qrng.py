"""Quantum random number HTTP client (ANU QRNG)"""

import httpx

from quantum_credits.config import settings
from quantum_credits.domain.award import SAMPLE_MAX, SAMPLE_MIN
from quantum_credits.domain.collaborators import RandomSource
from quantum_credits.domain.exceptions import RandomSourceUnavailable


class QuantumRandomClient(RandomSource):
    """Client for the ANU quantum random number API"""

    def __init__(
        self,
        api_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_url = api_url or settings.qrng_api_url
        self.timeout = timeout or settings.qrng_timeout_seconds
        self.transport = transport

    async def sample(self) -> int:
        """
        Fetch one uint8 sample.

        Raises:
            RandomSourceUnavailable: On timeout, HTTP errors, or invalid response
        """
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            try:
                response = await client.get(self.api_url, params={"length": 1, "type": "uint8"})
                response.raise_for_status()
                data = response.json()

                if not data.get("success"):
                    raise RandomSourceUnavailable("QRNG API reported failure")

                value = data["data"][0]
                if isinstance(value, bool) or not isinstance(value, int) or not SAMPLE_MIN <= value <= SAMPLE_MAX:
                    raise RandomSourceUnavailable(f"QRNG API returned out-of-range value: {value!r}")
                return value

            except httpx.TimeoutException as e:
                raise RandomSourceUnavailable(f"QRNG API timeout after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                raise RandomSourceUnavailable(f"QRNG API error: {e.response.status_code}") from e
            except httpx.RequestError as e:
                raise RandomSourceUnavailable(f"QRNG API unreachable: {e}") from e
            except (KeyError, IndexError, ValueError, TypeError, AttributeError) as e:
                raise RandomSourceUnavailable(f"Invalid QRNG response: {e}") from e
