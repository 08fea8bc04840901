"""External capabilities the credit flows depend on"""

from abc import ABC, abstractmethod
from decimal import Decimal

from quantum_credits.domain.models import PayoutDestination


class RandomSource(ABC):
    @abstractmethod
    async def sample(self) -> int:
        """
        One unsigned byte, 0-255.

        Raises:
            RandomSourceUnavailable: On any failure to produce a sample
        """


class PayoutGateway(ABC):
    @abstractmethod
    async def transfer(self, destination: PayoutDestination, amount: Decimal) -> str:
        """
        Move amount (in currency units) to the destination account.

        Returns the gateway's payout reference.

        Raises:
            PayoutFailed: If no money moved
        """
