"""Withdrawal request validation against the live balance"""

from dataclasses import asdict
from decimal import Decimal
from typing import List

from pydantic import BaseModel, EmailStr, Field, ValidationError, ValidationInfo, field_validator

from quantum_credits.domain.exceptions import ValidationFailed
from quantum_credits.domain.models import (
    FieldViolation,
    PayoutDestination,
    ValidatedWithdrawal,
    WithdrawalRequest,
)

MIN_WITHDRAWAL = Decimal("1")
VISIBLE_ACCOUNT_DIGITS = 4

# One user-facing message per field; the amount field reports its own
_FIELD_MESSAGES = {
    "name": "Name must be at least 2 characters.",
    "email": "Please enter a valid email address.",
    "account_identifier": "Account number must be 8-10 digits.",
    "routing_code": "Sort code must be exactly 6 digits.",
}


class _WithdrawalFields(BaseModel):
    name: str = Field(..., min_length=2)
    email: EmailStr
    account_identifier: str = Field(..., pattern=r"^[0-9]{8,10}$")
    routing_code: str = Field(..., pattern=r"^[0-9]{6}$")
    requested_amount: Decimal = Field(..., ge=MIN_WITHDRAWAL)

    @field_validator("requested_amount")
    @classmethod
    def within_balance(cls, value: Decimal, info: ValidationInfo) -> Decimal:
        balance = (info.context or {}).get("balance")
        if balance is None:
            raise ValueError("Current balance is required to validate the amount.")
        if value > balance:
            raise ValueError(f"Maximum withdrawal amount is {balance}.")
        return value


def _amount_message(error: dict) -> str:
    if error["type"] == "greater_than_equal":
        return f"Withdrawal amount must be at least {MIN_WITHDRAWAL}."
    if error["type"] == "value_error":
        return str(error["ctx"]["error"])
    return "Withdrawal amount must be a number."


def _to_violations(exc: ValidationError) -> List[FieldViolation]:
    violations = []
    seen = set()
    for error in exc.errors():
        field = str(error["loc"][0]) if error["loc"] else "request"
        if field in seen:
            continue
        seen.add(field)
        if field == "requested_amount":
            message = _amount_message(error)
        else:
            message = _FIELD_MESSAGES.get(field, error["msg"])
        violations.append(FieldViolation(field=field, message=message))
    return violations


def collect_violations(request: WithdrawalRequest, balance: Decimal) -> List[FieldViolation]:
    """Return every field-level violation; an empty list means the request is valid"""
    try:
        _WithdrawalFields.model_validate(asdict(request), context={"balance": balance})
    except ValidationError as e:
        return _to_violations(e)
    return []


def validate_withdrawal_request(request: WithdrawalRequest, balance: Decimal) -> ValidatedWithdrawal:
    """
    Validate a withdrawal request against the caller-supplied balance.

    The balance must be read immediately before calling so the maximum bound
    is never stale. This check is advisory; Ledger.debit re-checks funds.

    Raises:
        ValidationFailed: With one violation per offending field
    """
    try:
        fields = _WithdrawalFields.model_validate(asdict(request), context={"balance": balance})
    except ValidationError as e:
        raise ValidationFailed(_to_violations(e)) from e

    return ValidatedWithdrawal(
        destination=PayoutDestination(
            name=fields.name,
            email=str(fields.email),
            account_identifier=fields.account_identifier,
            routing_code=fields.routing_code,
        ),
        amount=fields.requested_amount,
    )


def mask_account_identifier(account_identifier: str) -> str:
    """Redact all but the last four digits: 12345678 -> ****5678"""
    hidden = max(len(account_identifier) - VISIBLE_ACCOUNT_DIGITS, 0)
    return "*" * hidden + account_identifier[hidden:]


def format_routing_code(routing_code: str) -> str:
    """Group a sort code in pairs for display: 123456 -> 12-34-56"""
    return "-".join(routing_code[i:i + 2] for i in range(0, len(routing_code), 2))
