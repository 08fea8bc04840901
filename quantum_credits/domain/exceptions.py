"""Domain-specific exceptions"""

from decimal import Decimal
from typing import List, Optional

from quantum_credits.domain.models import FieldViolation


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class InvalidAmountError(DomainException, ValueError):
    """Credit or debit amount is not a positive, finite number"""

    pass


class InsufficientBalance(DomainException):
    """Debit requested more credits than the ledger holds"""

    def __init__(self, requested: Decimal, available: Decimal):
        self.requested = requested
        self.available = available
        super().__init__(
            f"Not enough credits to withdraw. Required: {requested}, Available: {available}"
        )


class RandomSourceUnavailable(DomainException):
    """Random source failed to produce a sample"""

    pass


class ValidationFailed(DomainException):
    """Withdrawal request failed field-level validation"""

    def __init__(self, violations: List[FieldViolation]):
        self.violations = violations
        fields = ", ".join(v.field for v in violations)
        super().__init__(f"Invalid withdrawal request: {fields}")


class PayoutFailed(DomainException):
    """Payout gateway could not move the money"""

    def __init__(self, message: str, refunded: Optional[Decimal] = None):
        self.refunded = refunded
        super().__init__(message)


class LedgerCorruptedError(DomainException):
    """Persisted ledger state cannot be decoded"""

    pass


class ConcurrentModificationError(DomainException):
    """Another writer changed the ledger on every commit attempt"""

    pass


class RefundPending(PayoutFailed):
    """Payout failed and the compensating credit could not be committed yet"""

    def __init__(self, message: str, amount: Decimal):
        self.amount = amount
        super().__init__(message, refunded=None)
