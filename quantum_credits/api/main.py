"""FastAPI application factory"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.responses import Response

from quantum_credits.api.middleware import MetricsMiddleware, RequestIDMiddleware
from quantum_credits.api.v1 import credits, transactions, withdrawals
from quantum_credits.config import settings
from quantum_credits.domain.collaborators import PayoutGateway, RandomSource
from quantum_credits.domain.ledger import Ledger
from quantum_credits.domain.store import KeyValueStore
from quantum_credits.infrastructure.clients.payout import BankTransferClient, SimulatedPayoutGateway
from quantum_credits.infrastructure.clients.qrng import QuantumRandomClient
from quantum_credits.infrastructure.database.repositories import SqlKeyValueStore
from quantum_credits.infrastructure.database.session import build_engine, build_session_factory, init_db
from quantum_credits.infrastructure.observability.logging import setup_logging
from quantum_credits.infrastructure.observability.metrics import (
    commit_conflict_counter,
    ledger_repair_counter,
    record_balance,
)

# Setup structured logging
setup_logging(settings.log_level)


def build_payout_gateway() -> PayoutGateway:
    """Real bank transfers only when payout_mode is http"""
    if settings.payout_mode == "http":
        return BankTransferClient()
    return SimulatedPayoutGateway()


def build_ledger(store: KeyValueStore) -> Ledger:
    """Ledger whose repairs and lost commits feed the Prometheus counters"""
    return Ledger(
        store,
        on_repair=ledger_repair_counter.inc,
        on_conflict=commit_conflict_counter.inc,
    )


def create_app(
    ledger: Ledger | None = None,
    random_source: RandomSource | None = None,
    payout_gateway: PayoutGateway | None = None,
) -> FastAPI:
    """
    Create and configure FastAPI application.

    Collaborators default to the configured database, the ANU quantum source
    and the configured payout gateway; tests pass their own.
    """
    engine = None
    if ledger is None:
        engine = build_engine(settings.database_url)
        store = SqlKeyValueStore(build_session_factory(engine), namespace=settings.ledger_namespace)
        ledger = build_ledger(store)

    unsubscribe = ledger.notifier.subscribe(lambda: record_balance(ledger.get_balance()))

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if engine is not None:
            init_db(engine)
        record_balance(ledger.get_balance())
        yield
        unsubscribe()
        if engine is not None:
            engine.dispose()

    app = FastAPI(
        title="Quantum Credits",
        description="Quantum-random credit generation and bank withdrawal service",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.state.ledger = ledger
    app.state.random_source = random_source or QuantumRandomClient()
    app.state.payout_gateway = payout_gateway or build_payout_gateway()

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(credits.router, prefix="/v1", tags=["credits"])
    app.include_router(withdrawals.router, prefix="/v1", tags=["withdrawals"])
    app.include_router(transactions.router, prefix="/v1", tags=["transactions"])

    return app


app = create_app()
