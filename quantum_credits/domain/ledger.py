"""
Credit ledger - balance and transaction log with atomic-mutation guarantees.

Two store keys back each ledger:
- "transactions": JSON list of transaction records, newest first
- "credits": current balance as a decimal string

Commit order is transactions first, balance second. Every read reconciles the
stored balance against the signed sum of the log and rewrites it on mismatch,
so a crash between the two writes heals on the next read. Writers from other
processes are detected by compare_and_set on the transactions blob; the losing
commit re-reads, re-checks its precondition and retries.
"""

import json
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Callable, List, Optional, Union

from quantum_credits.config import settings
from quantum_credits.domain.exceptions import (
    ConcurrentModificationError,
    InsufficientBalance,
    InvalidAmountError,
    LedgerCorruptedError,
)
from quantum_credits.domain.models import Transaction, TransactionKind
from quantum_credits.domain.notifier import ChangeNotifier
from quantum_credits.domain.store import KeyValueStore

logger = logging.getLogger(__name__)

CREDITS_KEY = "credits"
TRANSACTIONS_KEY = "transactions"

Amount = Union[int, str, Decimal]


def to_amount(value: Amount) -> Decimal:
    """Coerce a positive, finite amount to Decimal"""
    if isinstance(value, bool):
        raise InvalidAmountError(f"Not an amount: {value!r}")
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError) as e:
        raise InvalidAmountError(f"Not an amount: {value!r}") from e

    if not amount.is_finite() or amount <= 0:
        raise InvalidAmountError(f"Amount must be positive: {value!r}")
    return amount


def format_amount(amount: Decimal) -> str:
    return format(amount.normalize(), "f")


def _parse_balance(raw: str) -> Optional[Decimal]:
    try:
        balance = Decimal(raw)
    except InvalidOperation:
        return None
    return balance if balance.is_finite() else None


def _decode_transactions(raw: str) -> List[Transaction]:
    try:
        records = json.loads(raw)
        if not isinstance(records, list):
            raise TypeError(f"expected a list, got {type(records).__name__}")
        return [Transaction.from_record(record) for record in records]
    except (ValueError, KeyError, TypeError, ArithmeticError) as e:
        raise LedgerCorruptedError(f"Cannot decode transaction log: {e}") from e


def _encode_transactions(transactions: List[Transaction]) -> str:
    return json.dumps([t.to_record() for t in transactions])


@dataclass
class _Snapshot:
    raw_transactions: str
    transactions: List[Transaction]
    balance: Decimal


class Ledger:
    """
    Owns the balance and transaction history of one storage scope.

    Ledgers are explicit objects; construct one per store so tests and
    callers never share hidden global state.

    on_repair and on_conflict are called each time a read rewrites the
    stored balance and each time a commit loses a race, respectively.
    """

    def __init__(
        self,
        store: KeyValueStore,
        notifier: Optional[ChangeNotifier] = None,
        conversion_rate: Optional[Decimal] = None,
        clock: Optional[Callable[[], datetime]] = None,
        commit_attempts: Optional[int] = None,
        on_repair: Optional[Callable[[], None]] = None,
        on_conflict: Optional[Callable[[], None]] = None,
    ):
        self.store = store
        self.notifier = notifier or ChangeNotifier()
        self.conversion_rate = conversion_rate if conversion_rate is not None else settings.conversion_rate
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.commit_attempts = commit_attempts if commit_attempts is not None else settings.ledger_commit_attempts
        if self.commit_attempts < 1:
            raise ValueError(f"commit_attempts must be at least 1, got {self.commit_attempts}")
        self.on_repair = on_repair or (lambda: None)
        self.on_conflict = on_conflict or (lambda: None)

    def get_balance(self) -> Decimal:
        """Current balance; initializes an empty store as a side effect"""
        return self._load().balance

    def list_transactions(self) -> List[Transaction]:
        """All transactions, newest first"""
        return list(self._load().transactions)

    def credit(self, amount: Amount, narrative: str) -> Decimal:
        """Add credits and record a generation. Returns the new balance."""
        return self._commit(TransactionKind.GENERATION, to_amount(amount), narrative)

    def debit(self, amount: Amount, narrative: str) -> Decimal:
        """
        Remove credits and record a withdrawal. Returns the new balance.

        Raises:
            InsufficientBalance: If amount exceeds the balance; nothing is written
        """
        return self._commit(TransactionKind.WITHDRAWAL, to_amount(amount), narrative)

    def reset(self) -> None:
        """Administrative: clear balance and history"""
        self.store.set(TRANSACTIONS_KEY, "[]")
        self.store.set(CREDITS_KEY, "0")
        logger.warning("Ledger reset", extra={"step": "ledger_reset"})
        self.notifier.publish()

    def _load(self) -> _Snapshot:
        raw = self.store.get(TRANSACTIONS_KEY)
        if raw is None:
            # Losing this race is fine: someone else initialized the key
            self.store.compare_and_set(TRANSACTIONS_KEY, None, "[]")
            raw = self.store.get(TRANSACTIONS_KEY)

        transactions = _decode_transactions(raw)
        balance = sum((t.signed_delta for t in transactions), Decimal("0"))

        stored = self.store.get(CREDITS_KEY)
        if stored is None:
            self.store.set(CREDITS_KEY, format_amount(balance))
        elif _parse_balance(stored) != balance:
            self.on_repair()
            logger.warning(
                "Stored balance disagrees with transaction log; repairing",
                extra={"stored_balance": stored, "log_balance": str(balance)},
            )
            self.store.set(CREDITS_KEY, format_amount(balance))

        return _Snapshot(raw_transactions=raw, transactions=transactions, balance=balance)

    def _commit(self, kind: TransactionKind, amount: Decimal, narrative: str) -> Decimal:
        for attempt in range(1, self.commit_attempts + 1):
            snapshot = self._load()
            if kind is TransactionKind.WITHDRAWAL and amount > snapshot.balance:
                raise InsufficientBalance(requested=amount, available=snapshot.balance)

            transaction = Transaction(
                id=uuid.uuid4().hex,
                kind=kind,
                credit_delta=amount,
                monetary_value=amount * self.conversion_rate,
                timestamp=self.clock(),
                narrative=narrative,
            )
            new_balance = snapshot.balance + transaction.signed_delta
            encoded = _encode_transactions([transaction] + snapshot.transactions)

            if self.store.compare_and_set(TRANSACTIONS_KEY, snapshot.raw_transactions, encoded):
                self.store.set(CREDITS_KEY, format_amount(new_balance))
                logger.info(
                    "Ledger %s committed",
                    kind.value,
                    extra={"transaction_id": transaction.id, "amount": str(amount), "balance": str(new_balance)},
                )
                self.notifier.publish()
                return new_balance

            self.on_conflict()
            logger.warning("Concurrent ledger write detected; retrying", extra={"attempt": attempt})

        raise ConcurrentModificationError(
            f"Ledger changed underneath {self.commit_attempts} commit attempts"
        )
