"""Pytest fixtures for testing"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Generator
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from quantum_credits.api.main import create_app
from quantum_credits.domain.collaborators import PayoutGateway, RandomSource
from quantum_credits.domain.exceptions import RandomSourceUnavailable
from quantum_credits.domain.ledger import Ledger
from quantum_credits.domain.models import WithdrawalRequest
from quantum_credits.domain.notifier import ChangeNotifier
from quantum_credits.domain.store import InMemoryStore
from quantum_credits.infrastructure.database.repositories import SqlKeyValueStore
from quantum_credits.infrastructure.database.session import build_engine, build_session_factory, init_db


class ScriptedRandomSource(RandomSource):
    """Returns queued samples; an exception in the queue is raised instead"""

    def __init__(self, *samples):
        self.samples = list(samples)
        self.calls = 0

    async def sample(self) -> int:
        self.calls += 1
        value = self.samples.pop(0) if self.samples else RandomSourceUnavailable("script exhausted")
        if isinstance(value, Exception):
            raise value
        return value


class SteppingClock:
    """Deterministic clock advancing one second per call"""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=1)
        return self.now


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def notifier() -> ChangeNotifier:
    return ChangeNotifier()


@pytest.fixture
def ledger(store: InMemoryStore, notifier: ChangeNotifier) -> Ledger:
    """Isolated ledger with a 1:1 conversion rate and a stepping clock"""
    return Ledger(store, notifier=notifier, conversion_rate=Decimal("1"), clock=SteppingClock())


@pytest.fixture
def random_source() -> ScriptedRandomSource:
    return ScriptedRandomSource()


@pytest.fixture
def payout_gateway() -> AsyncMock:
    gateway = AsyncMock(spec=PayoutGateway)
    gateway.transfer.return_value = "po_test_123"
    return gateway


@pytest.fixture
def valid_request_data() -> dict:
    return {
        "name": "Jane Doe",
        "email": "jane.doe@gmail.com",
        "account_identifier": "12345678",
        "routing_code": "123456",
        "requested_amount": "7",
    }


@pytest.fixture
def valid_request(valid_request_data: dict) -> WithdrawalRequest:
    return WithdrawalRequest(**valid_request_data)


@pytest.fixture
def sql_store() -> Generator[SqlKeyValueStore, None, None]:
    """SQL store on a private in-memory SQLite database"""
    engine = build_engine("sqlite://")
    init_db(engine)
    try:
        yield SqlKeyValueStore(build_session_factory(engine), namespace="test")
    finally:
        engine.dispose()


@pytest.fixture
def api_ledger(sql_store: SqlKeyValueStore) -> Ledger:
    return Ledger(sql_store, conversion_rate=Decimal("1"))


@pytest.fixture
def client(
    api_ledger: Ledger,
    random_source: ScriptedRandomSource,
    payout_gateway: AsyncMock,
) -> TestClient:
    """Create FastAPI test client wired to test collaborators"""
    app = create_app(ledger=api_ledger, random_source=random_source, payout_gateway=payout_gateway)
    return TestClient(app)
