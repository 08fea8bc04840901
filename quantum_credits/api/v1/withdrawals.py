"""POST /v1/withdrawals - redeem credits by bank transfer"""

import logging
import time
from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException, Request

from quantum_credits.api.dependencies import LEDGER_UNREADABLE, get_ledger, get_payout_gateway, get_request_id
from quantum_credits.api.v1.schemas import WithdrawalRequestBody, WithdrawalResponse
from quantum_credits.domain.collaborators import PayoutGateway
from quantum_credits.domain.exceptions import (
    ConcurrentModificationError,
    InsufficientBalance,
    LedgerCorruptedError,
    PayoutFailed,
    RefundPending,
    ValidationFailed,
)
from quantum_credits.domain.flows import withdraw_credits
from quantum_credits.domain.ledger import Ledger
from quantum_credits.domain.models import WithdrawalRequest
from quantum_credits.infrastructure.observability.logging import log_withdrawal
from quantum_credits.infrastructure.observability.metrics import record_withdrawal

router = APIRouter()


@router.post("/withdrawals", response_model=WithdrawalResponse)
async def create_withdrawal(
    request_body: WithdrawalRequestBody,
    request: Request,
    ledger: Ledger = Depends(get_ledger),
    payout_gateway: PayoutGateway = Depends(get_payout_gateway),
):
    """
    Withdraw credits to a bank account.

    Flow:
    1. Validate the request against the live balance
    2. Debit the ledger (narrative keeps only the masked account)
    3. Send the bank transfer
    4. Refund the debit if the transfer fails
    """
    start_time = time.time()
    request_id = get_request_id(request)
    withdrawal = WithdrawalRequest(**request_body.model_dump())

    def finish(outcome: str, masked_account: str | None = None) -> None:
        record_withdrawal(outcome)
        log_withdrawal(
            request_id,
            outcome,
            withdrawal.requested_amount,
            masked_account,
            (time.time() - start_time) * 1000,
        )

    try:
        result = await withdraw_credits(ledger, withdrawal, payout_gateway)

    except ValidationFailed as e:
        finish("invalid")
        raise HTTPException(
            status_code=422,
            detail={
                "message": "Invalid withdrawal request",
                "violations": [asdict(v) for v in e.violations],
            },
        )

    except InsufficientBalance as e:
        finish("insufficient")
        raise HTTPException(
            status_code=409,
            detail={
                "message": str(e),
                "requested": str(e.requested),
                "available": str(e.available),
            },
        )

    except RefundPending as e:
        finish("refund_pending")
        logging.critical(f"Payout failed, refund pending: {e}", extra={"request_id": request_id})
        raise HTTPException(
            status_code=502,
            detail={
                "message": "Bank transfer failed; returning your credits is pending, do not retry",
                "refund_pending": str(e.amount),
            },
        )

    except PayoutFailed as e:
        finish("payout_failed")
        logging.error(f"Payout failed: {e}", extra={"request_id": request_id})
        raise HTTPException(
            status_code=502,
            detail={
                "message": "Bank transfer failed; your credits have been returned",
                "refunded": str(e.refunded),
            },
        )

    except ConcurrentModificationError as e:
        logging.warning(f"Withdrawal lost ledger race: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=409, detail="Ledger busy, please retry")

    except LedgerCorruptedError as e:
        logging.error(f"Ledger unreadable: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail=LEDGER_UNREADABLE)

    finish("completed", result.masked_account)
    return WithdrawalResponse(**asdict(result))
