"""GET /v1/transactions and the administrative reset"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from starlette.responses import Response

from quantum_credits.api.dependencies import LEDGER_UNREADABLE, get_ledger, get_request_id
from quantum_credits.api.v1.schemas import TransactionHistoryResponse, TransactionItem
from quantum_credits.config import settings
from quantum_credits.domain.exceptions import LedgerCorruptedError
from quantum_credits.domain.ledger import Ledger

router = APIRouter()


@router.get("/transactions", response_model=TransactionHistoryResponse)
async def list_transactions(request: Request, ledger: Ledger = Depends(get_ledger)):
    """
    Retrieve the full transaction history.

    Returns:
        Generations and withdrawals, newest first
    """
    try:
        transactions = ledger.list_transactions()
        balance = ledger.get_balance()
    except LedgerCorruptedError as e:
        logging.error(f"Ledger unreadable: {e}", extra={"request_id": get_request_id(request)})
        raise HTTPException(status_code=500, detail=LEDGER_UNREADABLE)

    items = [
        TransactionItem(
            id=t.id,
            kind=t.kind.value,
            credit_delta=t.credit_delta,
            monetary_value=t.monetary_value,
            timestamp=t.timestamp,
            narrative=t.narrative,
        )
        for t in transactions
    ]
    return TransactionHistoryResponse(
        balance=balance,
        transactions=items,
    )


@router.post("/admin/reset", status_code=204)
async def reset_ledger(ledger: Ledger = Depends(get_ledger)):
    """Clear balance and history. Disabled unless admin_reset_enabled is set."""
    if not settings.admin_reset_enabled:
        raise HTTPException(status_code=403, detail="Administrative reset is disabled")

    ledger.reset()
    return Response(status_code=204)
