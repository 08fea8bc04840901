"""GET /v1/credits and POST /v1/credits/generate"""

import logging
import time
from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException, Request

from quantum_credits.api.dependencies import LEDGER_UNREADABLE, get_ledger, get_random_source, get_request_id
from quantum_credits.api.v1.schemas import BalanceResponse, GenerationResponse
from quantum_credits.config import settings
from quantum_credits.domain.collaborators import RandomSource
from quantum_credits.domain.exceptions import ConcurrentModificationError, LedgerCorruptedError
from quantum_credits.domain.flows import generate_credits
from quantum_credits.domain.ledger import Ledger
from quantum_credits.infrastructure.observability.logging import log_generation
from quantum_credits.infrastructure.observability.metrics import record_generation

router = APIRouter()


@router.get("/credits", response_model=BalanceResponse)
async def get_credits(request: Request, ledger: Ledger = Depends(get_ledger)):
    """Current balance and its value at the configured conversion rate"""
    try:
        balance = ledger.get_balance()
    except LedgerCorruptedError as e:
        logging.error(f"Ledger unreadable: {e}", extra={"request_id": get_request_id(request)})
        raise HTTPException(status_code=500, detail=LEDGER_UNREADABLE)

    return BalanceResponse(
        balance=balance,
        monetary_value=balance * ledger.conversion_rate,
        conversion_rate=ledger.conversion_rate,
        currency=settings.currency,
    )


@router.post("/credits/generate", response_model=GenerationResponse)
async def generate(
    request: Request,
    ledger: Ledger = Depends(get_ledger),
    random_source: RandomSource = Depends(get_random_source),
):
    """
    Draw one quantum sample and award credits for it.

    A failing quantum source degrades to local randomness; the response's
    used_fallback flag says which one produced the sample.
    """
    start_time = time.time()
    request_id = get_request_id(request)

    try:
        outcome = await generate_credits(ledger, random_source)
    except ConcurrentModificationError as e:
        logging.warning(f"Generation lost ledger race: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=409, detail="Ledger busy, please retry")
    except LedgerCorruptedError as e:
        logging.error(f"Ledger unreadable: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail=LEDGER_UNREADABLE)

    duration_ms = (time.time() - start_time) * 1000
    record_generation(outcome.credits_awarded, outcome.used_fallback)
    log_generation(
        request_id,
        outcome.sample,
        outcome.credits_awarded,
        outcome.used_fallback,
        outcome.balance,
        duration_ms,
    )

    return GenerationResponse(**asdict(outcome))
