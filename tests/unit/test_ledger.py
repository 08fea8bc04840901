"""Unit tests for the credit ledger"""

import json
import random
from datetime import datetime, timezone
from decimal import Decimal

import pytest
from pydantic import ValidationError

from quantum_credits.config import Settings
from quantum_credits.domain.exceptions import (
    ConcurrentModificationError,
    InsufficientBalance,
    InvalidAmountError,
    LedgerCorruptedError,
)
from quantum_credits.domain.ledger import CREDITS_KEY, TRANSACTIONS_KEY, Ledger
from quantum_credits.domain.models import Transaction, TransactionKind
from quantum_credits.domain.store import InMemoryStore


def signed_sum(ledger: Ledger) -> Decimal:
    return sum((t.signed_delta for t in ledger.list_transactions()), Decimal("0"))


class InterleavingStore(InMemoryStore):
    """Runs a queued action right before the next transaction-log swap, like a second tab writing"""

    def __init__(self):
        super().__init__()
        self.interleave = None

    def compare_and_set(self, key, expected, value):
        if key == TRANSACTIONS_KEY and expected is not None and self.interleave is not None:
            action, self.interleave = self.interleave, None
            action()
        return super().compare_and_set(key, expected, value)


class AlwaysConflictingStore(InMemoryStore):
    def compare_and_set(self, key, expected, value):
        if key == TRANSACTIONS_KEY and expected is not None:
            return False
        return super().compare_and_set(key, expected, value)


def test_empty_store_reads_zero_and_initializes(ledger: Ledger, store: InMemoryStore):
    assert ledger.get_balance() == 0
    assert ledger.list_transactions() == []
    assert store.data == {CREDITS_KEY: "0", TRANSACTIONS_KEY: "[]"}


def test_credit_records_generation(ledger: Ledger, store: InMemoryStore):
    new_balance = ledger.credit(7, "sample=85")

    assert new_balance == 7
    assert ledger.get_balance() == 7
    transactions = ledger.list_transactions()
    assert len(transactions) == 1
    assert transactions[0].kind is TransactionKind.GENERATION
    assert transactions[0].credit_delta == Decimal("7")
    assert transactions[0].narrative == "sample=85"
    assert store.data[CREDITS_KEY] == "7"


def test_credit_freezes_conversion_rate(store: InMemoryStore):
    Ledger(store, conversion_rate=Decimal("0.01")).credit(7, "old rate")
    Ledger(store, conversion_rate=Decimal("1")).credit(7, "new rate")

    newest, oldest = Ledger(store).list_transactions()
    assert oldest.monetary_value == Decimal("0.07")
    assert newest.monetary_value == Decimal("7")


def test_debit_over_balance_fails_without_change(ledger: Ledger, store: InMemoryStore):
    ledger.credit(7, "sample=85")
    before = dict(store.data)

    with pytest.raises(InsufficientBalance) as exc_info:
        ledger.debit(10, "too much")

    assert exc_info.value.requested == 10
    assert exc_info.value.available == 7
    assert ledger.get_balance() == 7
    assert store.data == before


def test_debit_entire_balance_prepends_withdrawal(ledger: Ledger):
    ledger.credit(7, "sample=85")

    assert ledger.debit(7, "Bank transfer") == 0

    transactions = ledger.list_transactions()
    assert ledger.get_balance() == 0
    assert [t.kind for t in transactions] == [TransactionKind.WITHDRAWAL, TransactionKind.GENERATION]
    assert transactions[0].credit_delta == Decimal("7")
    assert transactions[0].signed_delta == Decimal("-7")


def test_transactions_newest_first(ledger: Ledger):
    ledger.credit(7, "first")
    ledger.credit(7, "second")
    ledger.debit(4, "third")

    transactions = ledger.list_transactions()
    assert [t.narrative for t in transactions] == ["third", "second", "first"]
    assert transactions[0].timestamp > transactions[1].timestamp > transactions[2].timestamp


def test_fractional_amounts(ledger: Ledger):
    ledger.credit("7.5", "fractional")
    assert ledger.debit(Decimal("2.25"), "partial") == Decimal("5.25")
    assert ledger.get_balance() == Decimal("5.25")


@pytest.mark.parametrize("amount", [0, -7, "abc", "NaN", "Infinity", None, True])
def test_non_positive_or_invalid_amounts_rejected(ledger: Ledger, amount):
    with pytest.raises(InvalidAmountError):
        ledger.credit(amount, "bad")
    with pytest.raises(InvalidAmountError):
        ledger.debit(amount, "bad")
    assert ledger.list_transactions() == []


def test_reads_are_idempotent(ledger: Ledger):
    ledger.credit(7, "sample=85")
    ledger.debit(2, "withdrawal")

    assert ledger.get_balance() == ledger.get_balance()
    assert ledger.list_transactions() == ledger.list_transactions()


def test_balance_matches_log_for_random_sequences(ledger: Ledger):
    rng = random.Random(1234)
    for _ in range(200):
        if rng.random() < 0.6:
            ledger.credit(rng.choice([7, 1, "0.5"]), "credit")
        else:
            amount = rng.randint(1, 20)
            try:
                ledger.debit(amount, "debit")
            except InsufficientBalance:
                pass
        assert ledger.get_balance() == signed_sum(ledger)
        assert ledger.get_balance() >= 0


def test_reset_clears_everything_and_notifies(ledger: Ledger, notifier):
    calls = []
    notifier.subscribe(lambda: calls.append(1))
    ledger.credit(7, "sample=85")

    ledger.reset()

    assert ledger.get_balance() == 0
    assert ledger.list_transactions() == []
    assert calls == [1, 1]


def test_crash_between_writes_heals_on_read():
    """Transaction log written, balance write lost"""
    record = Transaction(
        id="abc",
        kind=TransactionKind.GENERATION,
        credit_delta=Decimal("7"),
        monetary_value=Decimal("7"),
        timestamp=datetime(2024, 1, 1, tzinfo=timezone.utc),
        narrative="Generated from quantum value: 85",
    ).to_record()
    store = InMemoryStore({TRANSACTIONS_KEY: json.dumps([record]), CREDITS_KEY: "0"})

    assert Ledger(store).get_balance() == 7
    assert store.data[CREDITS_KEY] == "7"


def test_unreadable_balance_is_rebuilt_from_log():
    store = InMemoryStore({TRANSACTIONS_KEY: "[]", CREDITS_KEY: "garbage"})

    assert Ledger(store).get_balance() == 0
    assert store.data[CREDITS_KEY] == "0"


@pytest.mark.parametrize("raw", ["not json", '{"kind": "generation"}', '[{"kind": "generation"}]'])
def test_corrupted_log_raises(raw):
    ledger = Ledger(InMemoryStore({TRANSACTIONS_KEY: raw}))
    with pytest.raises(LedgerCorruptedError):
        ledger.get_balance()


def test_concurrent_credit_is_not_lost():
    store = InterleavingStore()
    this_tab = Ledger(store)
    other_tab = Ledger(store)
    this_tab.get_balance()

    store.interleave = lambda: other_tab.credit(7, "other tab")
    this_tab.credit(7, "this tab")

    assert this_tab.get_balance() == 14
    assert sorted(t.narrative for t in this_tab.list_transactions()) == ["other tab", "this tab"]


def test_concurrent_debit_rechecks_balance():
    store = InterleavingStore()
    this_tab = Ledger(store)
    other_tab = Ledger(store)
    this_tab.credit(7, "sample=85")

    store.interleave = lambda: other_tab.debit(7, "other tab")
    with pytest.raises(InsufficientBalance) as exc_info:
        this_tab.debit(7, "this tab")

    assert exc_info.value.available == 0
    assert this_tab.get_balance() == 0
    assert len(this_tab.list_transactions()) == 2


def test_gives_up_after_commit_attempts():
    store = AlwaysConflictingStore()
    ledger = Ledger(store, commit_attempts=2)

    with pytest.raises(ConcurrentModificationError):
        ledger.credit(7, "never lands")

    assert ledger.get_balance() == 0
    assert ledger.list_transactions() == []


def test_commit_attempts_below_one_rejected(store: InMemoryStore):
    with pytest.raises(ValueError):
        Ledger(store, commit_attempts=0)


def test_single_commit_attempt_is_honored():
    store = AlwaysConflictingStore()
    conflicts = []
    ledger = Ledger(store, commit_attempts=1, on_conflict=lambda: conflicts.append(1))

    with pytest.raises(ConcurrentModificationError):
        ledger.credit(7, "never lands")

    assert conflicts == [1]


def test_settings_reject_zero_commit_attempts():
    with pytest.raises(ValidationError):
        Settings(ledger_commit_attempts=0)


def test_on_conflict_called_per_lost_commit():
    conflicts = []
    ledger = Ledger(AlwaysConflictingStore(), commit_attempts=3, on_conflict=lambda: conflicts.append(1))

    with pytest.raises(ConcurrentModificationError):
        ledger.credit(7, "never lands")

    assert len(conflicts) == 3


def test_on_repair_called_when_balance_rewritten():
    repairs = []
    store = InMemoryStore({TRANSACTIONS_KEY: "[]", CREDITS_KEY: "5"})
    ledger = Ledger(store, on_repair=lambda: repairs.append(1))

    assert ledger.get_balance() == 0
    assert ledger.get_balance() == 0
    assert repairs == [1]
