"""Pydantic schemas for API request/response validation"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Union

from pydantic import BaseModel, Field, field_validator


class BalanceResponse(BaseModel):
    """Response for GET /v1/credits"""

    balance: Decimal
    monetary_value: Decimal
    conversion_rate: Decimal
    currency: str


class GenerationResponse(BaseModel):
    """Response for POST /v1/credits/generate"""

    sample: int
    credits_awarded: int
    used_fallback: bool
    balance: Decimal


class WithdrawalRequestBody(BaseModel):
    """
    Request body for POST /v1/withdrawals.

    Deliberately loose: field rules are applied against the live balance by
    the withdrawal validator so violations come back together. Numeric JSON
    for the text fields is accepted and stringified; leading zeros are lost
    that way, so clients should send account numbers as strings.
    """

    name: Optional[Union[str, int]] = None
    email: Optional[str] = None
    account_identifier: Optional[Union[str, int]] = Field(default=None, description="8-10 digit account number")
    routing_code: Optional[Union[str, int]] = Field(default=None, description="6 digit sort code, no dashes")
    requested_amount: Optional[Union[Decimal, str]] = None

    @field_validator("name", "account_identifier", "routing_code", mode="after")
    @classmethod
    def stringify(cls, value):
        return str(value) if isinstance(value, int) else value


class WithdrawalResponse(BaseModel):
    """Response for POST /v1/withdrawals"""

    amount: Decimal
    monetary_value: Decimal
    balance: Decimal
    reference: str
    masked_account: str
    formatted_routing_code: str


class TransactionItem(BaseModel):
    """Single ledger transaction"""

    id: str
    kind: str
    credit_delta: Decimal
    monetary_value: Decimal
    timestamp: datetime
    narrative: str


class TransactionHistoryResponse(BaseModel):
    """Response for GET /v1/transactions"""

    balance: Decimal
    transactions: List[TransactionItem]
