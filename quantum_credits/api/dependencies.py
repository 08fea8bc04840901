"""Dependency injection for FastAPI endpoints"""

from fastapi import Request

from quantum_credits.domain.collaborators import PayoutGateway, RandomSource
from quantum_credits.domain.ledger import Ledger

LEDGER_UNREADABLE = "Credit ledger data is unreadable; please contact support"


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_ledger(request: Request) -> Ledger:
    """Provide the application's ledger"""
    return request.app.state.ledger


def get_random_source(request: Request) -> RandomSource:
    """Provide the quantum random source"""
    return request.app.state.random_source


def get_payout_gateway(request: Request) -> PayoutGateway:
    """Provide the configured payout gateway"""
    return request.app.state.payout_gateway
