"""Generation and withdrawal flows - the only callers that mutate a ledger"""

import logging
import random
from decimal import Decimal
from typing import Optional, Tuple

from quantum_credits.domain.award import SAMPLE_MAX, award
from quantum_credits.domain.collaborators import PayoutGateway, RandomSource
from quantum_credits.domain.exceptions import (
    ConcurrentModificationError,
    PayoutFailed,
    RandomSourceUnavailable,
    RefundPending,
)
from quantum_credits.domain.ledger import Ledger
from quantum_credits.domain.models import GenerationOutcome, WithdrawalOutcome, WithdrawalRequest
from quantum_credits.domain.validation import (
    format_routing_code,
    mask_account_identifier,
    validate_withdrawal_request,
)

logger = logging.getLogger(__name__)

REFUND_ROUNDS = 10


async def draw_sample(source: RandomSource, fallback: Optional[random.Random] = None) -> Tuple[int, bool]:
    """
    Draw one byte from the source, falling back to local pseudo-randomness.

    Returns (sample, used_fallback). Never raises for source failures.
    """
    try:
        return await source.sample(), False
    except RandomSourceUnavailable as e:
        logger.warning("Random source unavailable, using local fallback: %s", e)
        rng = fallback or random
        return rng.randrange(SAMPLE_MAX + 1), True


async def generate_credits(
    ledger: Ledger,
    source: RandomSource,
    fallback: Optional[random.Random] = None,
) -> GenerationOutcome:
    """
    Draw a sample, apply the award policy and credit the ledger.

    A zero award leaves the ledger untouched; only positive awards are recorded.
    """
    sample, used_fallback = await draw_sample(source, fallback)
    credits_awarded = award(sample)

    if credits_awarded > 0:
        balance = ledger.credit(credits_awarded, f"Generated from quantum value: {sample}")
    else:
        balance = ledger.get_balance()

    return GenerationOutcome(
        sample=sample,
        credits_awarded=credits_awarded,
        used_fallback=used_fallback,
        balance=balance,
    )


def _refund(ledger: Ledger, amount: Decimal, masked_account: str) -> None:
    """
    Credit back a debit whose payout failed.

    Contention is retried for REFUND_ROUNDS rounds of full ledger commits.

    Raises:
        RefundPending: If no round managed to commit the refund
    """
    narrative = f"Refund for failed bank transfer to account {masked_account}"
    for round_number in range(1, REFUND_ROUNDS + 1):
        try:
            ledger.credit(amount, narrative)
            return
        except ConcurrentModificationError:
            logger.warning(
                "Refund lost ledger race; retrying",
                extra={"round": round_number, "masked_account": masked_account, "amount": str(amount)},
            )

    logger.critical(
        "Payout failed and refund could not be committed",
        extra={"masked_account": masked_account, "amount": str(amount)},
    )
    raise RefundPending(f"Refund of {amount} credits to account {masked_account} is pending", amount=amount)


async def withdraw_credits(
    ledger: Ledger,
    request: WithdrawalRequest,
    gateway: PayoutGateway,
) -> WithdrawalOutcome:
    """
    Validate, debit, then pay out; refund the debit if the payout fails.

    Flow:
    1. Validate against the live balance (raises ValidationFailed)
    2. Debit the ledger with a masked narrative (raises InsufficientBalance)
    3. Ask the gateway to move the money
    4. On PayoutFailed, credit the amount back and re-raise
       (RefundPending if the credit cannot be committed)

    Raises:
        ValidationFailed, InsufficientBalance, PayoutFailed, RefundPending
    """
    validated = validate_withdrawal_request(request, ledger.get_balance())
    destination = validated.destination
    masked_account = mask_account_identifier(destination.account_identifier)
    routing_code = format_routing_code(destination.routing_code)

    ledger.debit(
        validated.amount,
        f"Bank transfer to {destination.name}, Account: {masked_account}, Sort Code: {routing_code}",
    )

    monetary_value = validated.amount * ledger.conversion_rate
    try:
        reference = await gateway.transfer(destination, monetary_value)
    except PayoutFailed as e:
        _refund(ledger, validated.amount, masked_account)
        logger.error(
            "Payout failed; debit refunded",
            extra={"masked_account": masked_account, "amount": str(validated.amount)},
        )
        raise PayoutFailed(str(e), refunded=validated.amount) from e

    return WithdrawalOutcome(
        amount=validated.amount,
        monetary_value=monetary_value,
        balance=ledger.get_balance(),
        reference=reference,
        masked_account=masked_account,
        formatted_routing_code=routing_code,
    )
