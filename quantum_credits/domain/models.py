"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict


class TransactionKind(str, Enum):
    GENERATION = "generation"
    WITHDRAWAL = "withdrawal"


@dataclass(frozen=True)
class Transaction:
    """Immutable ledger record; credit_delta is always positive, kind carries the sign"""

    id: str
    kind: TransactionKind
    credit_delta: Decimal
    monetary_value: Decimal
    timestamp: datetime
    narrative: str

    @property
    def signed_delta(self) -> Decimal:
        if self.kind is TransactionKind.WITHDRAWAL:
            return -self.credit_delta
        return self.credit_delta

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind.value,
            "credit_delta": str(self.credit_delta),
            "monetary_value": str(self.monetary_value),
            "timestamp": self.timestamp.isoformat(),
            "narrative": self.narrative,
        }

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Transaction":
        return cls(
            id=record["id"],
            kind=TransactionKind(record["kind"]),
            credit_delta=Decimal(record["credit_delta"]),
            monetary_value=Decimal(record["monetary_value"]),
            timestamp=datetime.fromisoformat(record["timestamp"]),
            narrative=record["narrative"],
        )


@dataclass(frozen=True)
class FieldViolation:
    """Single field-level validation error"""

    field: str
    message: str


@dataclass
class WithdrawalRequest:
    """Raw withdrawal request as submitted by the user"""

    name: Any
    email: Any
    account_identifier: Any
    routing_code: Any
    requested_amount: Any


@dataclass(frozen=True)
class PayoutDestination:
    """Bank account that receives a payout"""

    name: str
    email: str
    account_identifier: str
    routing_code: str


@dataclass(frozen=True)
class ValidatedWithdrawal:
    """Withdrawal request that passed validation against the live balance"""

    destination: PayoutDestination
    amount: Decimal


@dataclass
class GenerationOutcome:
    """Result of one credit generation attempt"""

    sample: int
    credits_awarded: int
    used_fallback: bool
    balance: Decimal


@dataclass
class WithdrawalOutcome:
    """Result of a completed withdrawal"""

    amount: Decimal
    monetary_value: Decimal
    balance: Decimal
    reference: str
    masked_account: str
    formatted_routing_code: str
